# backend/tracker/services/valuation/types.py
"""
Internal data types for valuation and aggregation.

These dataclasses are the engine's outputs. They are NOT Pydantic schemas;
the API representations live in tracker/schemas/valuation.py.

Conventions:
    - Decimal for every money and percent value (never float)
    - Money values are rounded to 2 dp once, when the summary is built
    - Percentages are expressed in percent units (7.14 means 7.14%)

Type Hierarchy:
    BuyLot              - One purchase (input to WAC / cost basis)
    UnrealizedPnL       - P/L amount and percent for one position
    DailyChange         - Value change between two days
    HoldingSummary      - One holding valued in the display currency
    PortfolioSummary    - One portfolio's totals plus its holding summaries
    GlobalSummary       - All of a user's portfolios combined
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from tracker.models import Currency
from tracker.utils.decimal_math import ZERO


# =============================================================================
# POSITION INPUTS & RESULTS
# =============================================================================

@dataclass(frozen=True)
class BuyLot:
    """A single purchase: quantity units at price, plus a flat fee."""

    quantity: Decimal
    price: Decimal
    fee: Decimal = ZERO


@dataclass(frozen=True)
class UnrealizedPnL:
    """
    Unrealized profit or loss of an open position.

    Attributes:
        amount: (current price - avg cost) x quantity
        percent: (current price - avg cost) / avg cost x 100, 0 when avg cost is 0
    """

    amount: Decimal
    percent: Decimal


@dataclass(frozen=True)
class DailyChange:
    """Change in value between two days."""

    amount: Decimal
    percent: Decimal

    @classmethod
    def zero(cls) -> DailyChange:
        return cls(amount=ZERO, percent=ZERO)


# =============================================================================
# SUMMARIES
# =============================================================================

@dataclass(frozen=True)
class HoldingSummary:
    """
    A holding valued in the display currency.

    quantity, avg_cost and current_price are in the holding's own currency
    and unrounded; the money fields are converted and rounded to 2 dp.

    Attributes:
        price_available: False when no quote was found and 0 was used
    """

    symbol: str
    quantity: Decimal
    avg_cost: Decimal
    current_price: Decimal
    holding_currency: Currency
    market_value: Decimal
    cost_basis: Decimal
    unrealized_pl: Decimal
    unrealized_pl_percent: Decimal
    currency: Currency
    price_available: bool = True


@dataclass(frozen=True)
class CashSummary:
    """One cash balance in its own currency (not converted)."""

    currency: Currency
    amount: Decimal


@dataclass
class PortfolioSummary:
    """Totals for one portfolio in the display currency, rounded to 2 dp."""

    portfolio_id: int
    portfolio_name: str
    holdings_value: Decimal
    cash_value: Decimal
    total_value: Decimal
    cost_basis: Decimal
    unrealized_pl: Decimal
    unrealized_pl_percent: Decimal
    currency: Currency
    holdings: list[HoldingSummary] = field(default_factory=list)
    cash_balances: list[CashSummary] = field(default_factory=list)

    @property
    def missing_prices(self) -> list[str]:
        """Symbols that were valued at 0 because no quote was available."""
        return [h.symbol for h in self.holdings if not h.price_available]


@dataclass
class GlobalSummary:
    """
    All of a user's portfolios combined.

    unrealized_pl_percent is recomputed from the summed P/L and cost basis,
    never averaged across portfolios.
    """

    total_value: Decimal
    total_cash: Decimal
    total_holdings: Decimal
    total_cost_basis: Decimal
    total_unrealized_pl: Decimal
    total_unrealized_pl_percent: Decimal
    currency: Currency
    usdils_rate: Decimal
    portfolio_summaries: list[PortfolioSummary] = field(default_factory=list)

    @classmethod
    def empty(cls, currency: Currency, usdils_rate: Decimal) -> GlobalSummary:
        """Summary for a user with no portfolios."""
        return cls(
            total_value=ZERO,
            total_cash=ZERO,
            total_holdings=ZERO,
            total_cost_basis=ZERO,
            total_unrealized_pl=ZERO,
            total_unrealized_pl_percent=ZERO,
            currency=currency,
            usdils_rate=usdils_rate,
        )
