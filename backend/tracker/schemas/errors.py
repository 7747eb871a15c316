# backend/tracker/schemas/errors.py
"""
Pydantic schemas for error responses.

Every error the API returns has this shape, whether it came from a service
exception, a request validation failure or an unexpected crash. Built by the
global exception handlers in main.py.
"""

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """
    Standard error response body.

    Example:
        {"error": "InsufficientQuantityError",
         "message": "Insufficient quantity to sell AAPL: requested 30, held 20",
         "details": {"field": "quantity"}}
    """

    error: str = Field(
        ...,
        description="Exception class name, e.g. 'PortfolioNotFoundError'"
    )
    message: str = Field(
        ...,
        description="Human-readable error message"
    )
    details: dict | None = Field(
        default=None,
        description="Extra context such as the offending field or the saved transaction id"
    )
    correlation_id: str | None = Field(
        default=None,
        description="Request trace id, also sent as the X-Correlation-ID header"
    )


class ValidationErrorDetail(ErrorDetail):
    """422 body for requests Pydantic rejected."""

    error: str = Field(default="ValidationError")
    message: str = Field(default="Request validation failed")
    details: dict | None = Field(
        default=None,
        description="{'errors': [...]} as reported by Pydantic"
    )
