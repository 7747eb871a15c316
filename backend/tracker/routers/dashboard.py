# backend/tracker/routers/dashboard.py
"""
Dashboard endpoints.

- GET  /dashboard          - All portfolios valued at cached prices
- POST /dashboard/refresh  - Fetch quotes, write today's snapshots, then the dashboard

Both accept ?currency=USD|ILS; the default is the configured display currency.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from tracker.database import get_db
from tracker.dependencies import CurrentUserId, DisplayCurrency, get_dashboard_service
from tracker.routers.mappers import map_dashboard, map_refresh
from tracker.schemas.valuation import DashboardRefreshResponse, DashboardResponse
from tracker.services.dashboard_service import DashboardService

router = APIRouter(
    prefix="/dashboard",
    tags=["Dashboard"],
)


@router.get(
    "",
    response_model=DashboardResponse,
    summary="Dashboard data",
)
def get_dashboard(
        user_id: CurrentUserId,
        currency: DisplayCurrency,
        db: Annotated[Session, Depends(get_db)],
        service: Annotated[DashboardService, Depends(get_dashboard_service)],
) -> DashboardResponse:
    """
    Totals across all portfolios, daily change against yesterday's snapshot,
    total return (unrealized P/L) and one row per portfolio.

    Values are computed now from cached prices; **last_snapshot_at** tells
    when quotes were last refreshed.
    """
    return map_dashboard(service.get_dashboard_data(db, user_id, currency))


@router.post(
    "/refresh",
    response_model=DashboardRefreshResponse,
    summary="Refresh quotes and return dashboard data",
)
def refresh_dashboard(
        user_id: CurrentUserId,
        currency: DisplayCurrency,
        db: Annotated[Session, Depends(get_db)],
        service: Annotated[DashboardService, Depends(get_dashboard_service)],
) -> DashboardRefreshResponse:
    """
    Run a full refresh: prices, USD/ILS rate, snapshots. Missing quotes or
    an unavailable rate do not fail the refresh (see the counters in
    **refresh**). Raises **503** only if your data could not be loaded.
    """
    result, data = service.refresh_dashboard_data(db, user_id, currency)
    return DashboardRefreshResponse(refresh=map_refresh(result), dashboard=map_dashboard(data))
