# backend/tracker/schemas/valuation.py
"""
Pydantic schemas for valuation output.

These schemas handle:
- Holding, cash and portfolio summaries in the display currency
- The dashboard (all portfolios, daily change, total return)
- The portfolio page (one portfolio with its ledger)
- Refresh results

Summaries are built by the valuation engine as dataclasses and validated
into these models with from_attributes.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from tracker.models import Currency
from tracker.schemas.portfolios import PortfolioResponse
from tracker.schemas.transactions import TransactionResponse


# =============================================================================
# SUMMARY SCHEMAS
# =============================================================================

class HoldingSummaryResponse(BaseModel):
    """A holding valued in the display currency."""

    model_config = ConfigDict(from_attributes=True)

    symbol: str
    quantity: Decimal
    avg_cost: Decimal = Field(..., description="Weighted average cost in holding_currency")
    current_price: Decimal = Field(..., description="Last cached price in holding_currency")
    holding_currency: Currency
    market_value: Decimal
    cost_basis: Decimal
    unrealized_pl: Decimal
    unrealized_pl_percent: Decimal
    currency: Currency = Field(..., description="Currency of the money fields")
    price_available: bool = Field(
        ...,
        description="False when no quote was cached and the holding is valued at 0"
    )


class CashBalanceResponse(BaseModel):
    """A cash balance in its own currency."""

    model_config = ConfigDict(from_attributes=True)

    currency: Currency
    amount: Decimal


class PortfolioSummaryResponse(BaseModel):
    """Totals for one portfolio."""

    model_config = ConfigDict(from_attributes=True)

    portfolio_id: int
    portfolio_name: str
    holdings_value: Decimal
    cash_value: Decimal
    total_value: Decimal
    cost_basis: Decimal
    unrealized_pl: Decimal
    unrealized_pl_percent: Decimal
    currency: Currency
    missing_prices: list[str] = Field(default_factory=list)


class GlobalSummaryResponse(BaseModel):
    """All portfolios combined."""

    model_config = ConfigDict(from_attributes=True)

    total_value: Decimal
    total_cash: Decimal
    total_holdings: Decimal
    total_cost_basis: Decimal
    total_unrealized_pl: Decimal
    total_unrealized_pl_percent: Decimal
    currency: Currency
    usdils_rate: Decimal
    portfolio_summaries: list[PortfolioSummaryResponse] = Field(default_factory=list)


# =============================================================================
# DASHBOARD
# =============================================================================

class DashboardPortfolioRow(BaseModel):
    """One portfolio card on the dashboard."""

    id: int
    name: str
    total_value: Decimal
    change: Decimal = Field(..., description="Unrealized P/L")
    change_percent: Decimal


class DashboardResponse(BaseModel):
    """
    Dashboard data.

    Values are computed live from cached prices and the stored rate at
    computed_at. last_snapshot_at is when a refresh last wrote the global
    snapshot (null if never), so the UI can show how fresh the quotes are.
    """

    total_value: Decimal
    total_cash: Decimal
    total_holdings: Decimal
    daily_change: Decimal = Field(..., description="Change vs. yesterday's global snapshot")
    daily_change_percent: Decimal
    total_return: Decimal = Field(..., description="Unrealized P/L across all portfolios")
    total_return_percent: Decimal
    display_currency: Currency
    usdils_rate: Decimal
    computed_at: datetime
    last_snapshot_at: datetime | None = None
    portfolios: list[DashboardPortfolioRow] = Field(default_factory=list)


# =============================================================================
# PORTFOLIO PAGE
# =============================================================================

class PortfolioPageResponse(BaseModel):
    """Everything the portfolio page shows."""

    portfolio: PortfolioResponse
    summary: PortfolioSummaryResponse
    holdings: list[HoldingSummaryResponse]
    cash_balances: list[CashBalanceResponse]
    transactions: list[TransactionResponse] = Field(..., description="Newest first")
    usdils_rate: Decimal
    display_currency: Currency


# =============================================================================
# REFRESH
# =============================================================================

class RefreshResponse(BaseModel):
    """Counters from a refresh pass, returned alongside refreshed data."""

    prices_updated: int
    snapshots_saved: int
    usdils_rate: Decimal
    rate_is_fallback: bool
    missing_symbols: list[str] = Field(default_factory=list)


class DashboardRefreshResponse(BaseModel):
    refresh: RefreshResponse
    dashboard: DashboardResponse


class PortfolioPageRefreshResponse(BaseModel):
    refresh: RefreshResponse
    page: PortfolioPageResponse
