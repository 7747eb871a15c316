# backend/tracker/services/transactions/service.py
"""
Transaction recording.

create_transaction() runs in this order:

    1. Ownership check          -> PortfolioNotFoundError
    2. Payload -> command       -> ValidationError
    3. Effect against current holding state (oversell -> InsufficientQuantityError)
    4. Ledger row committed
    5. Holding and cash rows written and committed
       A failure here leaves the ledger row in place and raises
       BalanceUpdateError carrying its id.
    6. Optional refresh of quotes and snapshots (never fails the call)

Steps 1-3 write nothing, so a rejected transaction leaves no trace.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tracker.config import settings
from tracker.models import Portfolio, Transaction
from tracker.services import store
from tracker.services.exceptions import BalanceUpdateError, PortfolioNotFoundError
from tracker.services.protocols import RefreshServiceProtocol
from tracker.services.refresh_service import RefreshResult
from tracker.services.transactions.processor import apply_transaction, build_command
from tracker.services.transactions.types import (
    BuyCommand,
    ConvertCommand,
    SellCommand,
    TransactionCommand,
    TransactionEffect,
)
from tracker.utils.decimal_math import ZERO

logger = logging.getLogger(__name__)


@dataclass
class TransactionResult:
    """A recorded transaction, what it did, and the follow-up refresh (if any)."""

    transaction: Transaction
    effect: TransactionEffect
    refresh: RefreshResult | None = None

    @property
    def refreshed(self) -> bool:
        return self.refresh is not None and self.refresh.success


def ledger_row(user_id: int, portfolio_id: int, command: TransactionCommand) -> Transaction:
    """Build the ledger entry for a command; unused columns stay NULL."""
    row = Transaction(user_id=user_id, portfolio_id=portfolio_id, type=command.type, fee=ZERO)

    match command:
        case BuyCommand() | SellCommand():
            row.symbol = command.symbol
            row.quantity = command.quantity
            row.price = command.price
            row.currency = command.currency.value
            row.fee = command.fee
        case ConvertCommand():
            row.amount = command.amount
            row.currency = command.from_currency.value
            row.from_currency = command.from_currency.value
            row.to_currency = command.to_currency.value
            row.fx_rate = command.fx_rate
        case _:
            row.amount = command.amount
            row.currency = command.currency.value

    return row


class TransactionService:
    """
    Records transactions and keeps holdings and cash in step with the ledger.

    Args:
        refresh_service: Runs after each recorded transaction when
            settings.refresh_after_transaction is on. None disables it.
    """

    def __init__(self, refresh_service: RefreshServiceProtocol | None = None) -> None:
        self._refresh_service = refresh_service

    def create_transaction(
            self,
            db: Session,
            user_id: int,
            portfolio_id: int,
            payload: BaseModel | Mapping[str, Any],
    ) -> TransactionResult:
        """
        Record one transaction and apply it to holdings and cash.

        Args:
            db: Database session
            user_id: Caller; must own the portfolio
            portfolio_id: Target portfolio
            payload: A TransactionCreate variant or a plain mapping with the
                same keys (type, symbol, quantity, price, amount, currency,
                fee, fx_rate, from_currency, to_currency)

        Raises:
            PortfolioNotFoundError: Unknown portfolio or owned by someone else
            ValidationError: Missing/invalid fields, or a SELL larger than the holding
            BalanceUpdateError: Ledger saved but balances could not be updated
        """
        portfolio = store.get_user_portfolio(db, user_id, portfolio_id)
        if portfolio is None:
            raise PortfolioNotFoundError(portfolio_id)

        fields = payload.model_dump() if isinstance(payload, BaseModel) else dict(payload)
        command = build_command(fields.get("type"), fields, default_fee=portfolio.fee_amount)

        symbol = getattr(command, "symbol", None)
        existing = store.get_holding(db, portfolio.id, symbol) if symbol else None
        effect = apply_transaction(command, store.holding_state(existing))

        transaction = self._append_to_ledger(db, user_id, portfolio, command)

        try:
            store.apply_effect(db, user_id, portfolio.id, effect, existing)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(
                f"Transaction {transaction.id} saved but balances not updated: {e}",
                extra={"portfolio_id": portfolio.id, "transaction_id": transaction.id},
            )
            raise BalanceUpdateError(transaction.id, str(e)) from e

        db.refresh(transaction)
        logger.info(
            f"Recorded {command.type.value} in portfolio {portfolio.id} (transaction {transaction.id})"
        )

        return TransactionResult(
            transaction=transaction,
            effect=effect,
            refresh=self._refresh_after(db, user_id),
        )

    def list_transactions(
            self,
            db: Session,
            user_id: int,
            portfolio_id: int,
            skip: int = 0,
            limit: int = 100,
    ) -> tuple[list[Transaction], int]:
        """
        Ledger entries for one portfolio, newest first.

        Returns:
            (page of transactions, total count)

        Raises:
            PortfolioNotFoundError: Unknown portfolio or owned by someone else
        """
        if store.get_user_portfolio(db, user_id, portfolio_id) is None:
            raise PortfolioNotFoundError(portfolio_id)

        total = store.count_transactions(db, portfolio_id)
        return store.list_transactions(db, portfolio_id, skip=skip, limit=limit), total

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _append_to_ledger(
            self,
            db: Session,
            user_id: int,
            portfolio: Portfolio,
            command: TransactionCommand,
    ) -> Transaction:
        transaction = ledger_row(user_id, portfolio.id, command)
        db.add(transaction)
        try:
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.error(f"Failed to record {command.type.value} for portfolio {portfolio.id}")
            raise
        db.refresh(transaction)
        return transaction

    def _refresh_after(self, db: Session, user_id: int) -> RefreshResult | None:
        if self._refresh_service is None or not settings.refresh_after_transaction:
            return None
        try:
            result = self._refresh_service.refresh_portfolio_data(db, user_id)
        except Exception:
            # The transaction is already committed; a refresh failure only delays snapshots
            logger.exception(f"Refresh after transaction failed for user {user_id}")
            return None
        if not result.success:
            logger.warning(f"Refresh after transaction failed for user {user_id}: {result.error}")
        return result
