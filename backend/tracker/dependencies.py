# backend/tracker/dependencies.py
"""
Dependency injection module for FastAPI services.

This module provides singleton service instances that are shared across
all requests. Services are lazily initialized on first use to avoid
import-time side effects (e.g. building an HTTP client at import).

Usage in routers:
    from tracker.dependencies import (
        get_current_user_id,
        get_transaction_service,
        DisplayCurrency,
    )

    @router.post("/")
    def create_transaction(
        user_id: int = Depends(get_current_user_id),
        service: TransactionService = Depends(get_transaction_service),
    ):
        ...

Tests replace any of these with app.dependency_overrides.
"""

import logging
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Query, status
from pydantic import AfterValidator

from tracker.models import Currency
from tracker.schemas.validators import validate_currency_query
from tracker.services.dashboard_service import DashboardService
from tracker.services.market_data import QuoteProvider, create_quote_provider
from tracker.services.portfolio_service import PortfolioService
from tracker.services.refresh_service import RefreshService
from tracker.services.transactions.service import TransactionService
from tracker.utils.context import set_user_id

logger = logging.getLogger(__name__)


# =============================================================================
# SINGLETON SERVICE INSTANCES
# =============================================================================
# Order matters: define dependencies before dependents
# 1. get_quote_provider (no deps)
# 2. get_refresh_service (depends on provider)
# 3. get_transaction_service, get_dashboard_service (depend on refresh service)
# 4. get_portfolio_service (no deps)


@lru_cache(maxsize=1)
def get_quote_provider() -> QuoteProvider:
    """
    Get the singleton quote provider.

    Shares one HTTP client (and its connection pool) across all requests.
    """
    logger.debug("Initializing singleton quote provider")
    return create_quote_provider()


@lru_cache(maxsize=1)
def get_refresh_service() -> RefreshService:
    logger.debug("Initializing singleton RefreshService")
    return RefreshService(quote_provider=get_quote_provider())


@lru_cache(maxsize=1)
def get_transaction_service() -> TransactionService:
    """Transaction recording, refreshing quotes and snapshots afterwards."""
    logger.debug("Initializing singleton TransactionService")
    return TransactionService(refresh_service=get_refresh_service())


@lru_cache(maxsize=1)
def get_dashboard_service() -> DashboardService:
    logger.debug("Initializing singleton DashboardService")
    return DashboardService(refresh_service=get_refresh_service())


@lru_cache(maxsize=1)
def get_portfolio_service() -> PortfolioService:
    logger.debug("Initializing singleton PortfolioService")
    return PortfolioService()


# =============================================================================
# REQUEST-SCOPED DEPENDENCIES
# =============================================================================

async def get_current_user_id(
        x_user_id: Annotated[str | None, Header(alias="X-User-Id")] = None,
) -> int:
    """
    The caller's user id, as asserted by the upstream authentication layer.

    Also binds the id to the logging context for the rest of the request.

    Raises:
        HTTPException 401: If the header is missing
        HTTPException 400: If the header is not a positive integer
    """
    if x_user_id is None or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )

    try:
        user_id = int(x_user_id.strip())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-User-Id must be an integer",
        ) from None

    if user_id <= 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-User-Id must be a positive integer",
        )

    set_user_id(user_id)
    return user_id


CurrencyQuery = Annotated[
    str | None,
    Query(description="Display currency (USD or ILS); defaults to the configured currency"),
    AfterValidator(validate_currency_query),
]


def get_display_currency(currency: CurrencyQuery = None) -> Currency | None:
    return currency


CurrentUserId = Annotated[int, Depends(get_current_user_id)]
DisplayCurrency = Annotated[Currency | None, Depends(get_display_currency)]
