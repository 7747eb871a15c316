# backend/tracker/services/transactions/__init__.py
"""
Transaction processing.

Architecture:
    transactions/
    ├── __init__.py     # This file - pure exports
    ├── types.py        # Commands (one per transaction type) and effects
    ├── processor.py    # build_command() and apply_transaction(), no I/O
    └── service.py      # TransactionService: ledger write + balance update

TransactionService is imported from its module directly
(tracker.services.transactions.service) because it depends on the store,
which in turn depends on the types exported here.
"""

from tracker.services.transactions.processor import apply_transaction, build_command
from tracker.services.transactions.types import (
    BuyCommand,
    SellCommand,
    DepositCommand,
    WithdrawCommand,
    DividendCommand,
    ConvertCommand,
    TransactionCommand,
    HoldingState,
    UpsertHolding,
    DeleteHolding,
    HoldingChange,
    CashDelta,
    TransactionEffect,
)

__all__ = [
    "apply_transaction",
    "build_command",
    "BuyCommand",
    "SellCommand",
    "DepositCommand",
    "WithdrawCommand",
    "DividendCommand",
    "ConvertCommand",
    "TransactionCommand",
    "HoldingState",
    "UpsertHolding",
    "DeleteHolding",
    "HoldingChange",
    "CashDelta",
    "TransactionEffect",
]
