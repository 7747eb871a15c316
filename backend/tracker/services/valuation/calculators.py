# backend/tracker/services/valuation/calculators.py
"""
Position calculators.

Pure functions over Decimal. No database, no network, no rounding: callers
decide when to round (see PortfolioAggregator).

Formulas:
    WAC          = (sum(qty x price) + sum(fee)) / sum(qty)
    WAC after buy = (old_wac x old_qty + price x qty + fee) / (old_qty + qty)
    Unrealized   = (price - wac) x qty,  percent = (price - wac) / wac x 100
    Market value = price x qty
    Cost basis   = sum(qty x price) + sum(fee)

Fees are part of cost: a buy of 10 @ 100 with a 5 fee has a WAC of 100.5.
The incremental form agrees with the batch form over the same history, so a
holding's stored avg_cost never drifts from what the full buy list implies.
Sells never change WAC.
"""

from collections.abc import Iterable
from decimal import Decimal

from tracker.services.valuation.types import BuyLot, DailyChange, UnrealizedPnL
from tracker.utils.decimal_math import MONEY_CONTEXT, ZERO, money_context, percent_of, safe_divide


# =============================================================================
# WEIGHTED AVERAGE COST
# =============================================================================

def calculate_wac(buys: Iterable[BuyLot]) -> Decimal:
    """
    Weighted average cost per unit over a list of buys, fees included.

    Returns 0 for an empty list or a zero total quantity.
    """
    total_cost = ZERO
    total_quantity = ZERO

    with money_context():
        for buy in buys:
            total_cost += buy.quantity * buy.price + buy.fee
            total_quantity += buy.quantity

        return safe_divide(total_cost, total_quantity)


def update_wac_after_buy(
        current_wac: Decimal,
        current_quantity: Decimal,
        new_price: Decimal,
        new_quantity: Decimal,
        fee: Decimal = ZERO,
) -> Decimal:
    """
    Fold one more buy into an existing average cost.

    Example:
        10 units @ 100.5 avg, buy 10 @ 110 with fee 5
        -> (1005 + 1100 + 5) / 20 = 105.5
    """
    with money_context():
        existing_value = current_wac * current_quantity
        added_value = new_price * new_quantity + fee
        total_quantity = current_quantity + new_quantity

        return safe_divide(existing_value + added_value, total_quantity)


# =============================================================================
# VALUE & P/L
# =============================================================================

def calculate_unrealized_pl(
        current_price: Decimal,
        avg_cost: Decimal,
        quantity: Decimal,
) -> UnrealizedPnL:
    """
    Unrealized P/L of an open position in the position's currency.

    The percent is relative to avg_cost and is 0 when avg_cost is 0.
    """
    with money_context():
        per_unit = current_price - avg_cost
        amount = per_unit * quantity

    return UnrealizedPnL(amount=amount, percent=percent_of(per_unit, avg_cost))


def calculate_market_value(current_price: Decimal, quantity: Decimal) -> Decimal:
    return MONEY_CONTEXT.multiply(current_price, quantity)


def calculate_cost_basis(buys: Iterable[BuyLot]) -> Decimal:
    """Total amount paid for a list of buys, fees included."""
    total = ZERO
    with money_context():
        for buy in buys:
            total += buy.quantity * buy.price + buy.fee
    return total


# =============================================================================
# RETURNS
# =============================================================================

def calculate_daily_return(today_value: Decimal, yesterday_value: Decimal) -> DailyChange:
    """
    Change from yesterday's value to today's.

    Unlike PortfolioAggregator.calculate_daily_change, the amount is kept when
    yesterday is 0; only the percent falls back to 0.
    """
    with money_context():
        amount = today_value - yesterday_value

    return DailyChange(amount=amount, percent=percent_of(amount, yesterday_value))
