# backend/tracker/services/transactions/processor.py
"""
Transaction processor: turns a ledger entry into holding and cash effects.

Rules per type:

    | Type     | Holding                                   | Cash                              |
    |----------|-------------------------------------------|-----------------------------------|
    | BUY      | create at price + fee/qty, or fold in WAC | -(price x qty + fee)              |
    | SELL     | decrement, delete at exactly 0; WAC kept  | +(price x qty - fee)              |
    | DEPOSIT  | -                                         | +amount                           |
    | WITHDRAW | -                                         | -amount                           |
    | CONVERT  | -                                         | -amount from, +amount x rate to   |
    | DIVIDEND | -                                         | +amount                           |

A SELL of more than is held (or of a symbol not held) raises
InsufficientQuantityError and produces no effect. Cash may go negative:
there is no overdraft check. BUY into or SELL out of an existing holding in
another currency raises ValidationError.

Everything here is pure. TransactionService does the reading and writing.
"""

from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from typing import Any, assert_never

from tracker.models import Currency, TransactionType
from tracker.services.constants import STORED_DECIMAL_PLACES
from tracker.services.exceptions import InsufficientQuantityError, ValidationError
from tracker.services.transactions.types import (
    BuyCommand,
    CashDelta,
    ConvertCommand,
    DeleteHolding,
    DepositCommand,
    DividendCommand,
    HoldingState,
    SellCommand,
    TransactionCommand,
    TransactionEffect,
    UpsertHolding,
    WithdrawCommand,
)
from tracker.services.valuation.calculators import update_wac_after_buy
from tracker.utils.decimal_math import ZERO, money_context, safe_divide, to_decimal


# =============================================================================
# APPLY
# =============================================================================

def apply_transaction(
        command: TransactionCommand,
        holding: HoldingState | None = None,
) -> TransactionEffect:
    """
    Compute the effect of one command.

    Args:
        command: The transaction to apply
        holding: Current state of command.symbol for BUY/SELL, None if not held.
            Ignored for cash-only types.

    Raises:
        InsufficientQuantityError: SELL exceeds the held quantity
        ValidationError: BUY/SELL currency differs from the holding's
    """
    match command:
        case BuyCommand():
            return _apply_buy(command, holding)
        case SellCommand():
            return _apply_sell(command, holding)
        case DepositCommand() | DividendCommand():
            return TransactionEffect(None, (CashDelta(command.currency, command.amount),))
        case WithdrawCommand():
            return TransactionEffect(None, (CashDelta(command.currency, -command.amount),))
        case ConvertCommand():
            with money_context():
                received = command.amount * command.fx_rate
            return TransactionEffect(
                None,
                (
                    CashDelta(command.from_currency, -command.amount),
                    CashDelta(command.to_currency, received),
                ),
            )
        case _:
            assert_never(command)


def _check_holding_currency(command: BuyCommand | SellCommand, holding: HoldingState) -> None:
    """A holding keeps one currency: its avg_cost and trade cash flows are in it."""
    if command.currency != holding.currency:
        raise ValidationError(
            f"currency must match the existing {holding.symbol} holding ({Currency(holding.currency).value})",
            field="currency",
        )


def _apply_buy(command: BuyCommand, holding: HoldingState | None) -> TransactionEffect:
    if holding is not None:
        _check_holding_currency(command, holding)

    with money_context():
        if holding is None:
            new_state = HoldingState(
                symbol=command.symbol,
                quantity=command.quantity,
                avg_cost=command.price + safe_divide(command.fee, command.quantity),
                currency=command.currency,
            )
        else:
            new_state = HoldingState(
                symbol=holding.symbol,
                quantity=holding.quantity + command.quantity,
                avg_cost=update_wac_after_buy(
                    holding.avg_cost,
                    holding.quantity,
                    command.price,
                    command.quantity,
                    command.fee,
                ),
                currency=holding.currency,
            )
        cost = command.price * command.quantity + command.fee

    return TransactionEffect(UpsertHolding(new_state), (CashDelta(command.currency, -cost),))


def _apply_sell(command: SellCommand, holding: HoldingState | None) -> TransactionEffect:
    held = holding.quantity if holding is not None else ZERO
    if holding is None or held < command.quantity:
        raise InsufficientQuantityError(command.symbol, command.quantity, held)
    _check_holding_currency(command, holding)

    with money_context():
        remaining = holding.quantity - command.quantity
        proceeds = command.price * command.quantity - command.fee

    if remaining == 0:
        change = DeleteHolding(holding.symbol)
    else:
        change = UpsertHolding(
            HoldingState(
                symbol=holding.symbol,
                quantity=remaining,
                avg_cost=holding.avg_cost,
                currency=holding.currency,
            )
        )

    return TransactionEffect(change, (CashDelta(command.currency, proceeds),))


# =============================================================================
# BUILD
# =============================================================================

def build_command(
        transaction_type: TransactionType | str,
        fields: Mapping[str, Any],
        default_fee: Decimal | None = None,
) -> TransactionCommand:
    """
    Validate raw transaction fields into the command for their type.

    Fee resolution for BUY/SELL: fields["fee"], else default_fee, else 0.
    Symbols are trimmed and upper-cased.

    Raises:
        ValidationError: A field the type needs is missing or out of range
    """
    try:
        kind = TransactionType(transaction_type)
    except ValueError:
        raise ValidationError(f"Unknown transaction type: {transaction_type}", field="type") from None

    match kind:
        case TransactionType.BUY | TransactionType.SELL:
            fee = _decimal_field(fields, "fee", required=False)
            if fee is None:
                fee = to_decimal(default_fee)
            if fee < 0:
                raise ValidationError("fee must not be negative", field="fee")

            command_cls = BuyCommand if kind == TransactionType.BUY else SellCommand
            return command_cls(
                symbol=_symbol_field(fields),
                quantity=_positive_field(fields, "quantity"),
                price=_positive_field(fields, "price"),
                currency=_currency_field(fields, "currency"),
                fee=fee,
            )
        case TransactionType.DEPOSIT:
            return DepositCommand(_positive_field(fields, "amount"), _currency_field(fields, "currency"))
        case TransactionType.WITHDRAW:
            return WithdrawCommand(_positive_field(fields, "amount"), _currency_field(fields, "currency"))
        case TransactionType.DIVIDEND:
            return DividendCommand(_positive_field(fields, "amount"), _currency_field(fields, "currency"))
        case TransactionType.CONVERT:
            from_currency = _currency_field(fields, "from_currency")
            to_currency = _currency_field(fields, "to_currency")
            if from_currency == to_currency:
                raise ValidationError(
                    "from_currency and to_currency must differ", field="to_currency"
                )
            return ConvertCommand(
                amount=_positive_field(fields, "amount"),
                from_currency=from_currency,
                to_currency=to_currency,
                fx_rate=_positive_field(fields, "fx_rate"),
            )
        case _:
            assert_never(kind)


def _decimal_field(fields: Mapping[str, Any], name: str, required: bool = True) -> Decimal | None:
    value = fields.get(name)
    if value is None:
        if required:
            raise ValidationError(f"{name} is required", field=name)
        return None
    try:
        number = to_decimal(value)
    except (InvalidOperation, TypeError):
        raise ValidationError(f"{name} must be a number, got {value!r}", field=name) from None
    if not number.is_finite():
        raise ValidationError(f"{name} must be a finite number, got {value!r}", field=name)
    if -number.normalize().as_tuple().exponent > STORED_DECIMAL_PLACES:
        raise ValidationError(
            f"{name} allows at most {STORED_DECIMAL_PLACES} decimal places, got {value!r}",
            field=name,
        )
    return number


def _positive_field(fields: Mapping[str, Any], name: str) -> Decimal:
    value = _decimal_field(fields, name)
    if value <= 0:
        raise ValidationError(f"{name} must be greater than 0", field=name)
    return value


def _currency_field(fields: Mapping[str, Any], name: str) -> Currency:
    value = fields.get(name)
    if value is None:
        raise ValidationError(f"{name} is required", field=name)
    try:
        return Currency(value)
    except ValueError:
        raise ValidationError(f"{name} must be USD or ILS, got {value!r}", field=name) from None


def _symbol_field(fields: Mapping[str, Any]) -> str:
    symbol = (fields.get("symbol") or "").strip().upper()
    if not symbol:
        raise ValidationError("symbol is required", field="symbol")
    return symbol
