# backend/tracker/utils/decimal_math.py
"""
Decimal arithmetic helpers for money calculations.

Every monetary value in the tracker is a ``decimal.Decimal``. Floats are never
used for money: 0.1 + 0.2 must equal 0.3 exactly.

Precision policy:
    - Intermediate results carry 20 significant digits (MONEY_CONTEXT).
    - ROUND_HALF_UP everywhere (1.005 -> 1.01, never banker's rounding).
    - round_to() is the single normalization point before a value is
      returned to a caller or persisted.

The context is an explicit value entered through money_context(). The
process-global decimal context is never mutated, so importing this module
has no side effects on other libraries.

Usage:
    from tracker.utils.decimal_math import money_context, round_to, to_decimal

    with money_context():
        total = to_decimal(price) * to_decimal(quantity) + fee
    return round_to(total)
"""

from contextlib import contextmanager
from collections.abc import Iterator
from decimal import Context, Decimal, ROUND_HALF_UP, localcontext

# Significant digits carried by every intermediate money calculation
MONEY_PRECISION = 20

# Currency amounts: 2 decimal places
CURRENCY_PRECISION = Decimal("0.01")

ZERO = Decimal("0")
HUNDRED = Decimal("100")

MONEY_CONTEXT = Context(prec=MONEY_PRECISION, rounding=ROUND_HALF_UP)


@contextmanager
def money_context() -> Iterator[Context]:
    """Run the enclosed block under MONEY_CONTEXT (thread and task local)."""
    with localcontext(MONEY_CONTEXT) as ctx:
        yield ctx


def to_decimal(value: Decimal | int | float | str | None) -> Decimal:
    """
    Convert a number-like value to Decimal.

    None becomes 0. Floats go through str() so 0.1 stays 0.1 instead of
    0.1000000000000000055511151231257827.

    Raises:
        decimal.InvalidOperation: If a string is not a number
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_to(value: Decimal | int | float | str | None, decimals: int = 2) -> Decimal:
    """
    Quantize to a fixed number of decimal places with ROUND_HALF_UP.

    Args:
        value: Value to round (None is treated as 0)
        decimals: Places after the decimal point (default: 2, currency)

    Returns:
        Decimal with exactly ``decimals`` places, e.g. round_to(1.005) == Decimal("1.01")
    """
    exponent = Decimal(1).scaleb(-decimals)
    return to_decimal(value).quantize(exponent, rounding=ROUND_HALF_UP, context=MONEY_CONTEXT)


def safe_divide(numerator: Decimal, denominator: Decimal) -> Decimal:
    """Divide under MONEY_CONTEXT, returning 0 instead of raising when the denominator is 0."""
    if denominator == 0:
        return ZERO
    return MONEY_CONTEXT.divide(numerator, denominator)


def percent_of(part: Decimal, whole: Decimal) -> Decimal:
    """part / whole * 100, or 0 when whole is 0."""
    if whole == 0:
        return ZERO
    return MONEY_CONTEXT.multiply(safe_divide(part, whole), HUNDRED)
