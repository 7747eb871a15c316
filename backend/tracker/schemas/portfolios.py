# backend/tracker/schemas/portfolios.py
"""
Pydantic schemas for Portfolio validation.

These schemas define:
- What data clients must send (Create)
- What data clients can update (Update)
- What data the API returns (Response)

The owner is never part of the body: it comes from the X-User-Id header.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tracker.schemas.validators import normalize_account_number, normalize_portfolio_name


# =============================================================================
# CREATE SCHEMA
# =============================================================================

class PortfolioCreate(BaseModel):
    """Schema for creating a portfolio."""

    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        examples=["IBI Trade", "Pension"],
        description="Display name (whitespace is trimmed; must not be blank)"
    )

    fee_amount: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        max_digits=18,
        decimal_places=8,
        description="Default commission applied to BUY/SELL when the transaction omits a fee",
        examples=["0", "7.5"]
    )

    account_number: str | None = Field(
        default=None,
        max_length=50,
        description="Broker account number (optional, trimmed; blank becomes null)"
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return normalize_portfolio_name(v)

    @field_validator("account_number")
    @classmethod
    def validate_account_number(cls, v: str | None) -> str | None:
        return normalize_account_number(v)


# =============================================================================
# UPDATE SCHEMA
# =============================================================================

class PortfolioUpdate(BaseModel):
    """
    Schema for updating a portfolio.

    All fields are optional; only the fields the client sends are changed.
    Sending account_number as null or blank clears it.
    """

    name: str | None = Field(default=None, min_length=1, max_length=100)
    fee_amount: Decimal | None = Field(default=None, ge=0, max_digits=18, decimal_places=8)
    account_number: str | None = Field(default=None, max_length=50)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return normalize_portfolio_name(v)

    @field_validator("account_number")
    @classmethod
    def validate_account_number(cls, v: str | None) -> str | None:
        return normalize_account_number(v)


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class PortfolioResponse(BaseModel):
    """Portfolio as returned by the API."""

    id: int = Field(..., description="Unique identifier")
    user_id: int = Field(..., description="ID of the portfolio owner")
    name: str
    fee_amount: Decimal = Field(..., description="Default commission per trade")
    account_number: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("fee_amount", mode="before")
    @classmethod
    def default_fee(cls, v: Decimal | None) -> Decimal:
        return Decimal("0") if v is None else v


class PortfolioListResponse(BaseModel):
    items: list[PortfolioResponse] = Field(..., description="The user's portfolios, oldest first")
