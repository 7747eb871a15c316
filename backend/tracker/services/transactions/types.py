# backend/tracker/services/transactions/types.py
"""
Transaction commands and their effects.

A command is one ledger entry reduced to exactly the fields its type uses.
An effect is what applying that command does to the portfolio's holding and
cash rows. Both are immutable; nothing here touches the database.

Type Hierarchy:
    TransactionCommand = BuyCommand | SellCommand | DepositCommand
                       | WithdrawCommand | ConvertCommand | DividendCommand
    HoldingState       - Current quantity/avg cost of one symbol
    HoldingChange      = UpsertHolding | DeleteHolding
    CashDelta          - Signed change to one currency's cash balance
    TransactionEffect  - Optional holding change + ordered cash deltas
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Union

from tracker.models import Currency, TransactionType
from tracker.utils.decimal_math import ZERO


# =============================================================================
# COMMANDS
# =============================================================================

@dataclass(frozen=True)
class BuyCommand:
    symbol: str
    quantity: Decimal
    price: Decimal
    currency: Currency
    fee: Decimal = ZERO

    type = TransactionType.BUY


@dataclass(frozen=True)
class SellCommand:
    symbol: str
    quantity: Decimal
    price: Decimal
    currency: Currency
    fee: Decimal = ZERO

    type = TransactionType.SELL


@dataclass(frozen=True)
class DepositCommand:
    amount: Decimal
    currency: Currency

    type = TransactionType.DEPOSIT


@dataclass(frozen=True)
class WithdrawCommand:
    amount: Decimal
    currency: Currency

    type = TransactionType.WITHDRAW


@dataclass(frozen=True)
class ConvertCommand:
    """Move ``amount`` of from_currency into to_currency at fx_rate (to per from)."""

    amount: Decimal
    from_currency: Currency
    to_currency: Currency
    fx_rate: Decimal

    type = TransactionType.CONVERT


@dataclass(frozen=True)
class DividendCommand:
    amount: Decimal
    currency: Currency

    type = TransactionType.DIVIDEND


TransactionCommand = Union[
    BuyCommand,
    SellCommand,
    DepositCommand,
    WithdrawCommand,
    ConvertCommand,
    DividendCommand,
]


# =============================================================================
# EFFECTS
# =============================================================================

@dataclass(frozen=True)
class HoldingState:
    """What the store currently holds for one symbol in one portfolio."""

    symbol: str
    quantity: Decimal
    avg_cost: Decimal
    currency: Currency


@dataclass(frozen=True)
class UpsertHolding:
    """Create the holding, or overwrite quantity/avg_cost of the existing one."""

    state: HoldingState


@dataclass(frozen=True)
class DeleteHolding:
    """The position was sold down to exactly zero."""

    symbol: str


HoldingChange = Union[UpsertHolding, DeleteHolding]


@dataclass(frozen=True)
class CashDelta:
    currency: Currency
    delta: Decimal


@dataclass(frozen=True)
class TransactionEffect:
    """
    Result of applying a command.

    cash_deltas are applied in order; a CONVERT debits the source currency
    before crediting the target one.
    """

    holding_change: HoldingChange | None
    cash_deltas: tuple[CashDelta, ...]
