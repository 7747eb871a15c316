# backend/tracker/utils/fx_conversion.py
"""
USD/ILS conversion utilities.

The tracker knows exactly one exchange rate, quoted as USDILS:

    1 USD = usdils_rate ILS      (e.g. 3.65)

Therefore:
    USD -> ILS: MULTIPLY by the rate
    ILS -> USD: DIVIDE by the rate

These helpers are the only place the direction of the rate is decided.
Callers never multiply or divide by a rate themselves.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from tracker.models import Currency
from tracker.utils.decimal_math import MONEY_CONTEXT, ZERO

__all__ = [
    "Currency",
    "MoneyValue",
    "DEFAULT_USDILS_RATE",
    "FX_RATE_MIN",
    "FX_RATE_MAX",
    "convert_currency",
    "convert_to_display_currency",
    "aggregate_in_currency",
    "is_valid_fx_rate",
    "resolve_fx_rate",
]

# Used when the live rate is missing or fails the sanity check
DEFAULT_USDILS_RATE = Decimal("3.65")

# Inclusive bounds for a plausible USD/ILS rate
FX_RATE_MIN = Decimal("2.5")
FX_RATE_MAX = Decimal("5.0")


@dataclass(frozen=True)
class MoneyValue:
    """An amount tagged with its currency."""
    amount: Decimal
    currency: Currency


def convert_currency(
    amount: Decimal,
    from_currency: Currency | str,
    to_currency: Currency | str,
    usdils_rate: Decimal,
) -> Decimal:
    """
    Convert an amount between USD and ILS.

    Example:
        convert_currency(Decimal("100"), "USD", "ILS", Decimal("3.65")) == Decimal("365.00")

    Args:
        amount: Amount in from_currency
        from_currency: Source currency
        to_currency: Target currency
        usdils_rate: ILS per 1 USD

    Returns:
        Amount in to_currency (unrounded; callers round once at the end)

    Raises:
        ValueError: If a currency is not USD/ILS, or the rate is not positive
            when a conversion is actually needed
    """
    source = Currency(from_currency)
    target = Currency(to_currency)

    if source == target:
        return amount

    if usdils_rate <= 0:
        raise ValueError(f"USD/ILS rate must be positive, got {usdils_rate}")

    if source == Currency.USD:
        return MONEY_CONTEXT.multiply(amount, usdils_rate)
    return MONEY_CONTEXT.divide(amount, usdils_rate)


def convert_to_display_currency(
    amount: Decimal,
    amount_currency: Currency | str,
    display_currency: Currency | str,
    usdils_rate: Decimal,
) -> Decimal:
    """Convert a stored amount into the currency the caller asked to see."""
    return convert_currency(amount, amount_currency, display_currency, usdils_rate)


def aggregate_in_currency(
    values: Iterable[MoneyValue],
    target_currency: Currency | str,
    usdils_rate: Decimal,
) -> Decimal:
    """
    Sum mixed-currency amounts after converting each one to target_currency.

    Every element is converted independently, so the result does not depend
    on the order of the input. An empty input sums to 0.
    """
    total = ZERO
    for value in values:
        converted = convert_currency(value.amount, value.currency, target_currency, usdils_rate)
        total = MONEY_CONTEXT.add(total, converted)
    return total


def is_valid_fx_rate(
    rate: Decimal | None,
    minimum: Decimal = FX_RATE_MIN,
    maximum: Decimal = FX_RATE_MAX,
) -> bool:
    """True if the rate is within [minimum, maximum] (both inclusive)."""
    if rate is None:
        return False
    return minimum <= rate <= maximum


def resolve_fx_rate(
    rate: Decimal | None,
    default: Decimal = DEFAULT_USDILS_RATE,
    minimum: Decimal = FX_RATE_MIN,
    maximum: Decimal = FX_RATE_MAX,
) -> Decimal:
    """Return the rate if it passes is_valid_fx_rate(), else the default."""
    if is_valid_fx_rate(rate, minimum, maximum):
        return rate
    return default
