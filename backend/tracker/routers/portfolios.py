# backend/tracker/routers/portfolios.py
"""
Portfolio management endpoints.

Provides CRUD operations for the caller's portfolios plus the portfolio page:
- POST   /portfolios/                   - Create
- GET    /portfolios/                   - List (oldest first)
- GET    /portfolios/{id}               - Get
- PATCH  /portfolios/{id}               - Update name, default fee, account number
- DELETE /portfolios/{id}               - Delete with holdings, cash, ledger, snapshots
- GET    /portfolios/{id}/overview      - Summary, holdings, cash, transactions
- POST   /portfolios/{id}/refresh       - Refresh quotes, then the overview

The caller is identified by the X-User-Id header. A portfolio owned by
someone else answers 404, exactly like a missing one.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from tracker.database import get_db
from tracker.dependencies import (
    CurrentUserId,
    DisplayCurrency,
    get_dashboard_service,
    get_portfolio_service,
)
from tracker.models import Portfolio
from tracker.routers.mappers import map_portfolio_page, map_refresh
from tracker.schemas.portfolios import (
    PortfolioCreate,
    PortfolioUpdate,
    PortfolioResponse,
    PortfolioListResponse,
)
from tracker.schemas.valuation import PortfolioPageRefreshResponse, PortfolioPageResponse
from tracker.services.dashboard_service import DashboardService
from tracker.services.portfolio_service import PortfolioService

# =============================================================================
# ROUTER SETUP
# =============================================================================

router = APIRouter(
    prefix="/portfolios",
    tags=["Portfolios"],
)


# =============================================================================
# CRUD ENDPOINTS
# =============================================================================

@router.post(
    "/",
    response_model=PortfolioResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new portfolio",
    response_description="The created portfolio"
)
def create_portfolio(
        portfolio: PortfolioCreate,
        user_id: CurrentUserId,
        db: Annotated[Session, Depends(get_db)],
        service: Annotated[PortfolioService, Depends(get_portfolio_service)],
) -> Portfolio:
    """
    Create a new portfolio for the caller.

    - **name**: Display name (trimmed, must not be blank)
    - **fee_amount**: Default commission for trades that omit a fee (default 0)
    - **account_number**: Optional broker account number
    """
    return service.create_portfolio(db, user_id, portfolio)


@router.get(
    "/",
    response_model=PortfolioListResponse,
    summary="List portfolios",
)
def list_portfolios(
        user_id: CurrentUserId,
        db: Annotated[Session, Depends(get_db)],
        service: Annotated[PortfolioService, Depends(get_portfolio_service)],
) -> PortfolioListResponse:
    portfolios = service.list_portfolios(db, user_id)
    return PortfolioListResponse(items=[PortfolioResponse.model_validate(p) for p in portfolios])


@router.get(
    "/{portfolio_id}",
    response_model=PortfolioResponse,
    summary="Get a portfolio by ID",
)
def get_portfolio(
        portfolio_id: int,
        user_id: CurrentUserId,
        db: Annotated[Session, Depends(get_db)],
        service: Annotated[PortfolioService, Depends(get_portfolio_service)],
) -> Portfolio:
    """Raises **404** if the portfolio does not exist or is not yours."""
    return service.get_portfolio(db, user_id, portfolio_id)


@router.patch(
    "/{portfolio_id}",
    response_model=PortfolioResponse,
    summary="Update a portfolio",
)
def update_portfolio(
        portfolio_id: int,
        portfolio_update: PortfolioUpdate,
        user_id: CurrentUserId,
        db: Annotated[Session, Depends(get_db)],
        service: Annotated[PortfolioService, Depends(get_portfolio_service)],
) -> Portfolio:
    """
    Partially update a portfolio. Only the fields you send change.

    Changing **fee_amount** only affects transactions recorded afterwards.
    """
    return service.update_portfolio(db, user_id, portfolio_id, portfolio_update)


@router.delete(
    "/{portfolio_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a portfolio",
)
def delete_portfolio(
        portfolio_id: int,
        user_id: CurrentUserId,
        db: Annotated[Session, Depends(get_db)],
        service: Annotated[PortfolioService, Depends(get_portfolio_service)],
) -> None:
    """
    Delete a portfolio together with its holdings, cash balances,
    transactions and snapshots. This cannot be undone.
    """
    service.delete_portfolio(db, user_id, portfolio_id)


# =============================================================================
# PORTFOLIO PAGE
# =============================================================================

@router.get(
    "/{portfolio_id}/overview",
    response_model=PortfolioPageResponse,
    summary="Portfolio page data",
)
def get_portfolio_overview(
        portfolio_id: int,
        user_id: CurrentUserId,
        currency: DisplayCurrency,
        db: Annotated[Session, Depends(get_db)],
        service: Annotated[DashboardService, Depends(get_dashboard_service)],
) -> PortfolioPageResponse:
    """
    Summary, holdings, cash balances and recent transactions, valued at the
    last cached prices and stored USD/ILS rate. Does not call the quote
    provider; use **POST /refresh** for fresh quotes.
    """
    data = service.get_portfolio_page_data(db, user_id, portfolio_id, currency)
    return map_portfolio_page(data)


@router.post(
    "/{portfolio_id}/refresh",
    response_model=PortfolioPageRefreshResponse,
    summary="Refresh quotes and return portfolio page data",
)
def refresh_portfolio(
        portfolio_id: int,
        user_id: CurrentUserId,
        currency: DisplayCurrency,
        db: Annotated[Session, Depends(get_db)],
        service: Annotated[DashboardService, Depends(get_dashboard_service)],
) -> PortfolioPageRefreshResponse:
    """
    Fetch quotes and the USD/ILS rate, write today's snapshots for all of
    your portfolios, then return this portfolio's page.

    Raises **503** if the refresh could not load your data.
    """
    result, data = service.refresh_portfolio_page_data(db, user_id, portfolio_id, currency)
    return PortfolioPageRefreshResponse(refresh=map_refresh(result), page=map_portfolio_page(data))
