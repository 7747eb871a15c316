import enum
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Date, DateTime, ForeignKey, Enum, Numeric, UniqueConstraint, Index
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class Currency(str, enum.Enum):
    """The two currencies the tracker understands. USDILS is the only FX pair."""
    USD = "USD"
    ILS = "ILS"


class TransactionType(str, enum.Enum):
    BUY = "BUY"
    SELL = "SELL"
    DEPOSIT = "DEPOSIT"
    WITHDRAW = "WITHDRAW"
    CONVERT = "CONVERT"
    DIVIDEND = "DIVIDEND"


# Numeric(18, 8) supports values up to 9,999,999,999.99999999
MONEY = Numeric(18, 8)


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    email: Mapped[str] = mapped_column(String, unique=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    portfolios: Mapped[list["Portfolio"]] = relationship(
        back_populates="owner",
        cascade="all, delete",
    )


class Portfolio(Base):
    __tablename__ = "portfolios"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    name: Mapped[str] = mapped_column(String)
    # Default commission applied when a transaction does not state its own fee
    fee_amount: Mapped[Decimal | None] = mapped_column(MONEY, default=Decimal("0"))
    account_number: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    owner: Mapped["User"] = relationship(back_populates="portfolios")
    holdings: Mapped[list["Holding"]] = relationship(
        back_populates="portfolio",
        cascade="all, delete",
    )
    cash_balances: Mapped[list["CashBalance"]] = relationship(
        back_populates="portfolio",
        cascade="all, delete",
    )
    transactions: Mapped[list["Transaction"]] = relationship(
        back_populates="portfolio",
        cascade="all, delete",
    )
    snapshots: Mapped[list["Snapshot"]] = relationship(
        back_populates="portfolio",
        cascade="all, delete",
    )


class Holding(Base):
    """
    Current position in one symbol within one portfolio.

    A row exists only while quantity > 0; selling the full quantity deletes it.
    avg_cost is the weighted average cost per unit (fees included) and changes
    only on buys.
    """
    __tablename__ = "holdings"
    __table_args__ = (
        UniqueConstraint('portfolio_id', 'symbol', name='uq_holding_portfolio_symbol'),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    portfolio_id: Mapped[int] = mapped_column(ForeignKey("portfolios.id"), index=True)
    symbol: Mapped[str] = mapped_column(String, index=True)
    quantity: Mapped[Decimal] = mapped_column(MONEY)
    avg_cost: Mapped[Decimal] = mapped_column(MONEY)
    currency: Mapped[str] = mapped_column(String, default=Currency.USD.value)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    portfolio: Mapped["Portfolio"] = relationship(back_populates="holdings")


class CashBalance(Base):
    """Cash in one currency within one portfolio. May be negative (no overdraft guard)."""
    __tablename__ = "cash_balances"
    __table_args__ = (
        UniqueConstraint('portfolio_id', 'currency', name='uq_cash_portfolio_currency'),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    portfolio_id: Mapped[int] = mapped_column(ForeignKey("portfolios.id"), index=True)
    currency: Mapped[str] = mapped_column(String)
    amount: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    portfolio: Mapped["Portfolio"] = relationship(back_populates="cash_balances")


class Transaction(Base):
    """
    Append-only ledger entry.

    BUY/SELL use symbol, quantity and price. DEPOSIT/WITHDRAW/DIVIDEND use
    amount. CONVERT uses amount, from_currency, to_currency and fx_rate.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        Index('ix_transaction_portfolio_created', 'portfolio_id', 'created_at'),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    portfolio_id: Mapped[int] = mapped_column(ForeignKey("portfolios.id"), index=True)
    type: Mapped[TransactionType] = mapped_column(Enum(TransactionType))
    symbol: Mapped[str | None] = mapped_column(String, nullable=True)
    quantity: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    price: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    amount: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    currency: Mapped[str] = mapped_column(String)
    fee: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    fx_rate: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    from_currency: Mapped[str | None] = mapped_column(String, nullable=True)
    to_currency: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    portfolio: Mapped["Portfolio"] = relationship(back_populates="transactions")


class Snapshot(Base):
    """
    Daily valuation record.

    One row per portfolio per day plus one global row (portfolio_id NULL) per
    user per day. Rows are upserted by (user_id, portfolio_id, date); NULLs are
    never equal in a SQL unique index, so the global row's uniqueness is
    enforced by the upsert lookup rather than by the constraint.
    """
    __tablename__ = "snapshots"
    __table_args__ = (
        UniqueConstraint('user_id', 'portfolio_id', 'date', name='uq_snapshot_user_portfolio_date'),
        Index('ix_snapshot_user_date', 'user_id', 'date'),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    portfolio_id: Mapped[int | None] = mapped_column(ForeignKey("portfolios.id"), nullable=True, index=True)
    date: Mapped[date] = mapped_column(Date, index=True)
    total_value: Mapped[Decimal] = mapped_column(MONEY)
    cash_value: Mapped[Decimal] = mapped_column(MONEY)
    holdings_value: Mapped[Decimal] = mapped_column(MONEY)
    currency: Mapped[str] = mapped_column(String)
    usdils_rate: Mapped[Decimal] = mapped_column(MONEY)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    portfolio: Mapped["Portfolio | None"] = relationship(back_populates="snapshots")


class PriceQuote(Base):
    """Last fetched price per symbol (USD). Refreshed opportunistically."""
    __tablename__ = "prices"

    symbol: Mapped[str] = mapped_column(String, primary_key=True)
    price: Mapped[Decimal] = mapped_column(MONEY)
    currency: Mapped[str] = mapped_column(String, default=Currency.USD.value)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class FxRate(Base):
    """Last fetched rate per currency pair, e.g. pair="USDILS" (ILS per USD)."""
    __tablename__ = "fx_rates"

    pair: Mapped[str] = mapped_column(String, primary_key=True)
    rate: Mapped[Decimal] = mapped_column(MONEY)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
