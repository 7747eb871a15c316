# backend/tracker/services/valuation/__init__.py
"""
Valuation package: position math and the aggregation engine.

Usage:
    from tracker.services.valuation import PortfolioAggregator

    aggregator = PortfolioAggregator()
    summary = aggregator.calculate_portfolio_totals(
        portfolio, holdings, cash_balances, prices,
        display_currency=Currency.ILS, usdils_rate=Decimal("3.65"),
    )

Architecture:
    valuation/
    ├── __init__.py       # This file - package exports
    ├── types.py          # Result dataclasses
    ├── calculators.py    # WAC, P/L, market value, cost basis
    └── aggregation.py    # PortfolioAggregator (holding -> portfolio -> global)

Data Flow:
    Holding + price -> HoldingSummary
    HoldingSummaries + cash -> PortfolioSummary
    PortfolioSummaries -> GlobalSummary
"""

from tracker.services.valuation.aggregation import PortfolioAggregator
from tracker.services.valuation.calculators import (
    calculate_wac,
    update_wac_after_buy,
    calculate_unrealized_pl,
    calculate_market_value,
    calculate_cost_basis,
    calculate_daily_return,
)
from tracker.services.valuation.types import (
    BuyLot,
    UnrealizedPnL,
    DailyChange,
    HoldingSummary,
    CashSummary,
    PortfolioSummary,
    GlobalSummary,
)

__all__ = [
    "PortfolioAggregator",
    "calculate_wac",
    "update_wac_after_buy",
    "calculate_unrealized_pl",
    "calculate_market_value",
    "calculate_cost_basis",
    "calculate_daily_return",
    "BuyLot",
    "UnrealizedPnL",
    "DailyChange",
    "HoldingSummary",
    "CashSummary",
    "PortfolioSummary",
    "GlobalSummary",
]
