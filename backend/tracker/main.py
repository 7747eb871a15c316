# backend/tracker/main.py
"""
FastAPI application entry point.

This file:
- Configures application-wide logging
- Creates the FastAPI application
- Registers global exception handlers
- Registers all routers
- Defines global endpoints (health checks)
"""

import logging

from fastapi import FastAPI, Depends, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from tracker.config import settings
from tracker.database import get_db
from tracker.middleware import CorrelationIdMiddleware
from tracker.routers import (
    dashboard_router,
    portfolios_router,
    transactions_router,
)
from tracker.schemas.errors import ErrorDetail, ValidationErrorDetail
from tracker.services.exceptions import (
    ServiceError,
    ValidationError,
    InsufficientQuantityError,
    NotFoundError,
    BalanceUpdateError,
    RefreshError,
)
from tracker.utils import get_correlation_id, setup_logging

logger = logging.getLogger(__name__)

# =============================================================================
# LOGGING SETUP (must be before app creation)
# =============================================================================

setup_logging()

# =============================================================================
# APPLICATION SETUP
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description="Dual-currency (USD/ILS) portfolio tracking API",
    version="0.1.0",
)


# =============================================================================
# MIDDLEWARE
# =============================================================================
# Origins are configured via CORS_ORIGINS environment variable

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Extracts/generates correlation IDs and adds them to response headers
app.add_middleware(CorrelationIdMiddleware)


# =============================================================================
# GLOBAL EXCEPTION HANDLERS
# =============================================================================
# These handlers catch service-layer exceptions and convert them to
# consistent HTTP responses. The most specific handler for an exception's
# class wins, so ServiceError only catches what nothing else does.
# =============================================================================

def _error_response(status_code: int, exc: Exception, details: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorDetail(
            error=type(exc).__name__,
            message=str(exc),
            details=details,
            correlation_id=get_correlation_id(),
        ).model_dump(),
    )


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    """Handle missing (or not owned) resources (404)."""
    logger.warning(f"Not found: {exc}")
    details = None
    if exc.resource_type is not None:
        details = {"resource_type": exc.resource_type, "resource_id": exc.resource_id}
    return _error_response(404, exc, details)


@app.exception_handler(InsufficientQuantityError)
async def insufficient_quantity_handler(
    request: Request, exc: InsufficientQuantityError
) -> JSONResponse:
    """Handle sells larger than the holding (422)."""
    logger.warning(f"Rejected sell: {exc}")
    return _error_response(
        422,
        exc,
        {
            "field": exc.field,
            "symbol": exc.symbol,
            "requested": str(exc.requested),
            "held": str(exc.held),
        },
    )


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Handle validation errors raised by services (400)."""
    logger.warning(f"Validation error: {exc}")
    return _error_response(400, exc, {"field": exc.field} if exc.field else None)


@app.exception_handler(BalanceUpdateError)
async def balance_update_handler(request: Request, exc: BalanceUpdateError) -> JSONResponse:
    """
    Handle a ledger entry that was saved without its balance update (409).

    The transaction id is returned so the entry can be reconciled.
    """
    logger.error(f"Balance update failed: {exc}")
    return _error_response(409, exc, {"transaction_id": exc.transaction_id})


@app.exception_handler(RefreshError)
async def refresh_error_handler(request: Request, exc: RefreshError) -> JSONResponse:
    """Handle a refresh that could not load the user's data (503)."""
    logger.error(f"Refresh failed: {exc}")
    return _error_response(503, exc, {"reason": exc.reason})


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Catch-all for service errors without a dedicated handler (500)."""
    logger.error(f"Service error: {exc}", exc_info=True)
    return _error_response(500, exc)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """
    Handle all HTTPExceptions with consistent error format.

    Converts FastAPI's default {"detail": "..."} format to our standard
    ErrorDetail format for API consistency.
    """
    error_types = {
        400: "BadRequestError",
        401: "UnauthorizedError",
        403: "ForbiddenError",
        404: "NotFoundError",
        405: "MethodNotAllowedError",
        409: "ConflictError",
        422: "ValidationError",
        429: "RateLimitError",
        500: "InternalServerError",
        503: "ServiceUnavailableError",
    }
    error_type = error_types.get(exc.status_code, "HTTPError")

    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorDetail(
            error=error_type,
            message=str(exc.detail) if exc.detail else "An error occurred",
            details=None,
            correlation_id=get_correlation_id(),
        ).model_dump(),
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle Pydantic validation errors with consistent format.

    Converts the default 422 validation error to our ValidationErrorDetail format.
    """
    errors = []
    for error in exc.errors():
        errors.append({
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        })

    return JSONResponse(
        status_code=422,
        content=ValidationErrorDetail(
            details={"errors": errors},
            correlation_id=get_correlation_id(),
        ).model_dump(),
    )


# =============================================================================
# ROUTER REGISTRATION
# =============================================================================

app.include_router(portfolios_router)  # /portfolios/*
app.include_router(transactions_router)  # /portfolios/{id}/transactions/*
app.include_router(dashboard_router)  # /dashboard/*


# =============================================================================
# GLOBAL ENDPOINTS
# =============================================================================

@app.get("/", tags=["Health"])
def root():
    """API root - returns basic application info."""
    return {
        "message": f"Welcome to {settings.app_name}!",
        "docs": "/docs",
        "redoc": "/redoc",
    }


@app.get("/health", tags=["Health"])
def health_check(db: Session = Depends(get_db)):
    """
    Health check with dependency status.

    **Response Status Codes:**
    - 200: All systems healthy, or the quote provider is in fallback mode
    - 503: Database unhealthy - do not route traffic here
    """
    checks = {}
    critical_healthy = True
    overall_status = "healthy"

    # Check 1: Database (CRITICAL)
    try:
        db.execute(text("SELECT 1"))
        checks["database"] = {
            "status": "healthy",
            "critical": True,
        }
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        checks["database"] = {
            "status": "unhealthy",
            "critical": True,
            "error": str(e),
        }
        critical_healthy = False
        overall_status = "unhealthy"

    # Check 2: Quote provider configuration (NON-CRITICAL)
    if settings.is_quote_api_configured:
        checks["quotes"] = {"status": "healthy", "critical": False, "provider": "twelvedata"}
    else:
        checks["quotes"] = {"status": "degraded", "critical": False, "provider": "static"}
        if overall_status == "healthy":
            overall_status = "degraded"

    response_data = {
        "status": overall_status,
        "checks": checks,
    }

    if not critical_healthy:
        return JSONResponse(
            status_code=503,
            content=response_data,
        )

    return response_data


@app.get("/health/live", tags=["Health"])
def liveness_check():
    """
    Liveness probe. Always 200 while the process is alive; does NOT check
    dependencies (use /health/ready for that).
    """
    return {"status": "alive"}


@app.get("/health/ready", tags=["Health"])
def readiness_check(db: Session = Depends(get_db)):
    """Readiness probe: 200 when the database answers, 503 otherwise."""
    try:
        db.execute(text("SELECT 1"))
        return {"status": "ready"}
    except Exception as e:
        logger.error(f"Readiness check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={
                "status": "not_ready",
                "error": "Database unavailable",
            },
        )
