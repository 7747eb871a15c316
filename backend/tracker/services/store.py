# backend/tracker/services/store.py
"""
Record store helpers.

Thin query/upsert functions over the SQLAlchemy session, shared by the
transaction, refresh and dashboard services. They flush but never commit;
the calling service owns the transaction boundary.

Upserts:
    - prices / fx_rates: INSERT ... ON CONFLICT DO UPDATE on the primary key
      (PostgreSQL and SQLite both support it). Each price is written inside
      its own SAVEPOINT so one bad row does not undo the others.
    - snapshots: select-then-update keyed by (user_id, portfolio_id, date).
      The global row has portfolio_id NULL, which a SQL unique index cannot
      match on, so ON CONFLICT is not usable here. Two refreshes racing on
      the same day both write; the last one wins.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tracker.models import (
    CashBalance,
    Currency,
    FxRate,
    Holding,
    Portfolio,
    PriceQuote,
    Snapshot,
    Transaction,
)
from tracker.services.constants import USDILS_PAIR
from tracker.services.transactions.types import (
    DeleteHolding,
    HoldingState,
    TransactionEffect,
    UpsertHolding,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UpsertResult:
    """Outcome of writing one row in a batch upsert."""

    key: str
    success: bool
    error: str | None = None


@dataclass(frozen=True)
class SnapshotValues:
    """Values for one snapshot row. portfolio_id None means the global row."""

    portfolio_id: int | None
    total_value: Decimal
    cash_value: Decimal
    holdings_value: Decimal
    currency: Currency
    usdils_rate: Decimal


def _insert_for(db: Session):
    """Dialect-specific INSERT construct that supports ON CONFLICT."""
    if db.get_bind().dialect.name == "postgresql":
        return pg_insert
    return sqlite_insert


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# PORTFOLIOS, HOLDINGS, CASH
# =============================================================================

def get_user_portfolio(db: Session, user_id: int, portfolio_id: int) -> Portfolio | None:
    """The portfolio if it exists and belongs to user_id, else None."""
    return db.scalar(
        select(Portfolio).where(Portfolio.id == portfolio_id, Portfolio.user_id == user_id)
    )


def list_user_portfolios(db: Session, user_id: int) -> list[Portfolio]:
    return list(
        db.scalars(
            select(Portfolio).where(Portfolio.user_id == user_id).order_by(Portfolio.created_at, Portfolio.id)
        )
    )


def list_holdings(db: Session, portfolio_ids: Iterable[int]) -> list[Holding]:
    ids = list(portfolio_ids)
    if not ids:
        return []
    return list(
        db.scalars(select(Holding).where(Holding.portfolio_id.in_(ids)).order_by(Holding.symbol))
    )


def list_cash_balances(db: Session, portfolio_ids: Iterable[int]) -> list[CashBalance]:
    ids = list(portfolio_ids)
    if not ids:
        return []
    return list(
        db.scalars(
            select(CashBalance).where(CashBalance.portfolio_id.in_(ids)).order_by(CashBalance.currency)
        )
    )


def get_holding(db: Session, portfolio_id: int, symbol: str) -> Holding | None:
    return db.scalar(
        select(Holding).where(Holding.portfolio_id == portfolio_id, Holding.symbol == symbol)
    )


def holding_state(holding: Holding | None) -> HoldingState | None:
    if holding is None:
        return None
    return HoldingState(
        symbol=holding.symbol,
        quantity=holding.quantity,
        avg_cost=holding.avg_cost,
        currency=Currency(holding.currency),
    )


def update_cash_balance(
        db: Session,
        user_id: int,
        portfolio_id: int,
        currency: Currency,
        delta: Decimal,
) -> CashBalance:
    """Add delta to the currency's balance, creating the row on first use."""
    balance = db.scalar(
        select(CashBalance).where(
            CashBalance.portfolio_id == portfolio_id,
            CashBalance.currency == currency.value,
        )
    )
    if balance is None:
        balance = CashBalance(
            user_id=user_id,
            portfolio_id=portfolio_id,
            currency=currency.value,
            amount=delta,
        )
        db.add(balance)
    else:
        balance.amount = balance.amount + delta
    db.flush()
    return balance


def apply_effect(
        db: Session,
        user_id: int,
        portfolio_id: int,
        effect: TransactionEffect,
        existing: Holding | None,
) -> None:
    """Write a TransactionEffect: holding change first, then cash deltas in order."""
    match effect.holding_change:
        case None:
            pass
        case UpsertHolding(state=state):
            if existing is None:
                db.add(Holding(
                    user_id=user_id,
                    portfolio_id=portfolio_id,
                    symbol=state.symbol,
                    quantity=state.quantity,
                    avg_cost=state.avg_cost,
                    currency=state.currency.value,
                ))
            else:
                existing.quantity = state.quantity
                existing.avg_cost = state.avg_cost
        case DeleteHolding():
            if existing is not None:
                db.delete(existing)

    db.flush()

    for cash in effect.cash_deltas:
        update_cash_balance(db, user_id, portfolio_id, cash.currency, cash.delta)


# =============================================================================
# LEDGER
# =============================================================================

def list_transactions(
        db: Session,
        portfolio_id: int,
        skip: int = 0,
        limit: int | None = None,
) -> list[Transaction]:
    """Ledger entries for a portfolio, newest first."""
    stmt = (
        select(Transaction)
        .where(Transaction.portfolio_id == portfolio_id)
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .offset(skip)
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    return list(db.scalars(stmt))


def count_transactions(db: Session, portfolio_id: int) -> int:
    return db.scalar(
        select(func.count(Transaction.id)).where(Transaction.portfolio_id == portfolio_id)
    ) or 0


# =============================================================================
# PRICES & FX RATES
# =============================================================================

def upsert_prices(
        db: Session,
        prices: Mapping[str, Decimal],
        currency: Currency = Currency.USD,
) -> list[UpsertResult]:
    """
    Write the latest price per symbol.

    Returns one UpsertResult per symbol; a failure on one symbol is logged
    and reported, and the remaining symbols are still written.
    """
    insert = _insert_for(db)
    results: list[UpsertResult] = []
    now = _utcnow()

    for symbol, price in prices.items():
        stmt = insert(PriceQuote).values(
            symbol=symbol,
            price=price,
            currency=currency.value,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["symbol"],
            set_={"price": stmt.excluded.price, "currency": stmt.excluded.currency, "updated_at": now},
        )
        try:
            with db.begin_nested():
                db.execute(stmt)
            results.append(UpsertResult(key=symbol, success=True))
        except SQLAlchemyError as e:
            logger.warning(f"Failed to store price for {symbol}: {e}")
            results.append(UpsertResult(key=symbol, success=False, error=str(e)))

    return results


def get_cached_prices(db: Session, symbols: Iterable[str]) -> dict[str, Decimal]:
    """Last stored price per symbol; symbols never priced are absent."""
    wanted = set(symbols)
    if not wanted:
        return {}
    rows = db.scalars(select(PriceQuote).where(PriceQuote.symbol.in_(wanted)))
    return {row.symbol: row.price for row in rows}


def upsert_fx_rate(db: Session, rate: Decimal, pair: str = USDILS_PAIR) -> None:
    insert = _insert_for(db)
    now = _utcnow()
    stmt = insert(FxRate).values(pair=pair, rate=rate, updated_at=now)
    stmt = stmt.on_conflict_do_update(
        index_elements=["pair"],
        set_={"rate": stmt.excluded.rate, "updated_at": now},
    )
    db.execute(stmt)


def get_fx_rate(db: Session, pair: str = USDILS_PAIR) -> Decimal | None:
    return db.scalar(select(FxRate.rate).where(FxRate.pair == pair))


# =============================================================================
# SNAPSHOTS
# =============================================================================

def _snapshot_query(user_id: int, portfolio_id: int | None):
    stmt = select(Snapshot).where(Snapshot.user_id == user_id)
    if portfolio_id is None:
        return stmt.where(Snapshot.portfolio_id.is_(None))
    return stmt.where(Snapshot.portfolio_id == portfolio_id)


def upsert_snapshot(
        db: Session,
        user_id: int,
        snapshot_date: date,
        values: SnapshotValues,
) -> Snapshot:
    """Insert or overwrite the (user, portfolio-or-global, date) snapshot."""
    snapshot = db.scalar(
        _snapshot_query(user_id, values.portfolio_id).where(Snapshot.date == snapshot_date)
    )
    if snapshot is None:
        snapshot = Snapshot(user_id=user_id, portfolio_id=values.portfolio_id, date=snapshot_date)
        db.add(snapshot)

    snapshot.total_value = values.total_value
    snapshot.cash_value = values.cash_value
    snapshot.holdings_value = values.holdings_value
    snapshot.currency = values.currency.value
    snapshot.usdils_rate = values.usdils_rate
    snapshot.created_at = _utcnow()
    db.flush()
    return snapshot


def upsert_snapshots(
        db: Session,
        user_id: int,
        snapshot_date: date,
        rows: Iterable[SnapshotValues],
) -> list[UpsertResult]:
    """Upsert several snapshots, each in its own SAVEPOINT."""
    results: list[UpsertResult] = []
    for values in rows:
        key = "global" if values.portfolio_id is None else str(values.portfolio_id)
        try:
            with db.begin_nested():
                upsert_snapshot(db, user_id, snapshot_date, values)
            results.append(UpsertResult(key=key, success=True))
        except SQLAlchemyError as e:
            logger.warning(f"Failed to save snapshot {key} for user {user_id}: {e}")
            results.append(UpsertResult(key=key, success=False, error=str(e)))
    return results


def get_latest_snapshot(
        db: Session,
        user_id: int,
        portfolio_id: int | None = None,
) -> Snapshot | None:
    """Most recent snapshot by date (global row when portfolio_id is None)."""
    return db.scalar(
        _snapshot_query(user_id, portfolio_id)
        .order_by(Snapshot.date.desc(), Snapshot.created_at.desc())
        .limit(1)
    )


def get_snapshot_for_date(
        db: Session,
        user_id: int,
        snapshot_date: date,
        portfolio_id: int | None = None,
) -> Snapshot | None:
    return db.scalar(
        _snapshot_query(user_id, portfolio_id).where(Snapshot.date == snapshot_date).limit(1)
    )
