# backend/tracker/routers/mappers.py
"""
Mapper functions: internal service types -> Pydantic response schemas.

Services return dataclasses and ORM rows; routers never build responses
from them by hand.
"""

from tracker.schemas.portfolios import PortfolioResponse
from tracker.schemas.transactions import TransactionResponse
from tracker.schemas.valuation import (
    CashBalanceResponse,
    DashboardPortfolioRow,
    DashboardResponse,
    HoldingSummaryResponse,
    PortfolioPageResponse,
    PortfolioSummaryResponse,
    RefreshResponse,
)
from tracker.services.dashboard_service import DashboardData, PortfolioPageData
from tracker.services.refresh_service import RefreshResult


def map_dashboard(data: DashboardData) -> DashboardResponse:
    return DashboardResponse(
        total_value=data.total_value,
        total_cash=data.total_cash,
        total_holdings=data.total_holdings,
        daily_change=data.daily_change.amount,
        daily_change_percent=data.daily_change.percent,
        total_return=data.total_return,
        total_return_percent=data.total_return_percent,
        display_currency=data.display_currency,
        usdils_rate=data.usdils_rate,
        computed_at=data.computed_at,
        last_snapshot_at=data.last_snapshot_at,
        portfolios=[
            DashboardPortfolioRow(
                id=p.id,
                name=p.name,
                total_value=p.total_value,
                change=p.change,
                change_percent=p.change_percent,
            )
            for p in data.portfolios
        ],
    )


def map_portfolio_page(data: PortfolioPageData) -> PortfolioPageResponse:
    summary = data.summary
    return PortfolioPageResponse(
        portfolio=PortfolioResponse.model_validate(data.portfolio),
        summary=PortfolioSummaryResponse.model_validate(summary),
        holdings=[HoldingSummaryResponse.model_validate(h) for h in summary.holdings],
        cash_balances=[CashBalanceResponse.model_validate(c) for c in summary.cash_balances],
        transactions=[TransactionResponse.model_validate(t) for t in data.transactions],
        usdils_rate=data.usdils_rate,
        display_currency=data.display_currency,
    )


def map_refresh(result: RefreshResult) -> RefreshResponse:
    return RefreshResponse(
        prices_updated=result.prices_updated,
        snapshots_saved=result.snapshots_saved,
        usdils_rate=result.usdils_rate,
        rate_is_fallback=result.rate_is_fallback,
        missing_symbols=list(result.missing_symbols),
    )
