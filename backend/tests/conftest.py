# backend/tests/conftest.py
"""
Pytest configuration and fixtures.

This module provides shared fixtures for all tests:
- Database session fixtures (in-memory SQLite)
- Mock quote provider
- Sample data factories
- A TestClient wired to the test database and mock provider
"""

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("APP_NAME", "Test App")

from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from typing import Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from tracker.models import (
    Base,
    CashBalance,
    Currency,
    FxRate,
    Holding,
    Portfolio,
    PriceQuote,
    Snapshot,
    User,
)
from tracker.services.constants import USDILS_PAIR
from tracker.services.exceptions import ProviderUnavailableError
from tracker.services.market_data.base import QuoteProvider, normalize_symbols
from tracker.services.refresh_service import RefreshService


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture(scope="function")
def db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def db(db_engine) -> Iterator[Session]:
    """Create a database session for testing."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# =============================================================================
# MOCK QUOTE PROVIDER
# =============================================================================

class MockQuoteProvider(QuoteProvider):
    """
    Mock implementation of QuoteProvider for testing.

    Serves configured prices and rate, and can simulate an outage.
    """

    def __init__(
            self,
            prices: dict[str, Decimal] | None = None,
            usdils_rate: Decimal | None = Decimal("3.65"),
    ):
        self.prices: dict[str, Decimal] = dict(prices or {})
        self.usdils_rate = usdils_rate
        self.unavailable = False
        self.price_calls: list[list[str]] = []
        self.rate_calls = 0

    @property
    def name(self) -> str:
        return "mock"

    def fetch_prices(self, symbols: Iterable[str]) -> dict[str, Decimal]:
        wanted = normalize_symbols(symbols)
        self.price_calls.append(wanted)
        if self.unavailable:
            raise ProviderUnavailableError(self.name, "simulated outage")
        return {s: self.prices[s] for s in wanted if s in self.prices}

    def fetch_usdils_rate(self) -> Decimal | None:
        self.rate_calls += 1
        if self.unavailable:
            raise ProviderUnavailableError(self.name, "simulated outage")
        return self.usdils_rate


@pytest.fixture
def mock_provider() -> MockQuoteProvider:
    """Create a fresh mock provider for each test."""
    return MockQuoteProvider(prices={"AAPL": Decimal("150"), "MSFT": Decimal("400")})


@pytest.fixture
def refresh_service(mock_provider: MockQuoteProvider) -> RefreshService:
    return RefreshService(quote_provider=mock_provider)


# =============================================================================
# SAMPLE DATA FACTORIES
# =============================================================================

def create_user(db: Session, email: str = "test@example.com") -> User:
    """Factory function for creating User entities in the database."""
    user = User(email=email)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def create_portfolio(
        db: Session,
        user: User,
        name: str = "Test Portfolio",
        fee_amount: Decimal = Decimal("0"),
        account_number: str | None = None,
) -> Portfolio:
    """Factory function for creating Portfolio entities in the database."""
    portfolio = Portfolio(
        user_id=user.id,
        name=name,
        fee_amount=fee_amount,
        account_number=account_number,
    )
    db.add(portfolio)
    db.commit()
    db.refresh(portfolio)
    return portfolio


def create_holding(
        db: Session,
        portfolio: Portfolio,
        symbol: str,
        quantity: Decimal | str,
        avg_cost: Decimal | str,
        currency: Currency = Currency.USD,
) -> Holding:
    holding = Holding(
        user_id=portfolio.user_id,
        portfolio_id=portfolio.id,
        symbol=symbol,
        quantity=Decimal(quantity),
        avg_cost=Decimal(avg_cost),
        currency=currency.value,
    )
    db.add(holding)
    db.commit()
    db.refresh(holding)
    return holding


def create_cash(
        db: Session,
        portfolio: Portfolio,
        currency: Currency,
        amount: Decimal | str,
) -> CashBalance:
    balance = CashBalance(
        user_id=portfolio.user_id,
        portfolio_id=portfolio.id,
        currency=currency.value,
        amount=Decimal(amount),
    )
    db.add(balance)
    db.commit()
    db.refresh(balance)
    return balance


def create_price(db: Session, symbol: str, price: Decimal | str) -> PriceQuote:
    quote = PriceQuote(symbol=symbol, price=Decimal(price), currency=Currency.USD.value)
    db.add(quote)
    db.commit()
    return quote


def create_fx_rate(db: Session, rate: Decimal | str, pair: str = USDILS_PAIR) -> FxRate:
    fx_rate = FxRate(pair=pair, rate=Decimal(rate))
    db.add(fx_rate)
    db.commit()
    return fx_rate


def create_snapshot(
        db: Session,
        user: User,
        snapshot_date: date,
        total_value: Decimal | str,
        portfolio: Portfolio | None = None,
        currency: Currency = Currency.ILS,
        usdils_rate: Decimal | str = "3.65",
) -> Snapshot:
    """Snapshot with all of total_value in holdings (global row when portfolio is None)."""
    snapshot = Snapshot(
        user_id=user.id,
        portfolio_id=portfolio.id if portfolio else None,
        date=snapshot_date,
        total_value=Decimal(total_value),
        cash_value=Decimal("0"),
        holdings_value=Decimal(total_value),
        currency=currency.value,
        usdils_rate=Decimal(usdils_rate),
    )
    db.add(snapshot)
    db.commit()
    db.refresh(snapshot)
    return snapshot


# =============================================================================
# FIXTURE EXPORTS (for convenience imports in tests)
# =============================================================================

@pytest.fixture
def sample_user(db: Session) -> User:
    """Provide a sample User for tests."""
    return create_user(db)


@pytest.fixture
def other_user(db: Session) -> User:
    return create_user(db, email="other@example.com")


@pytest.fixture
def sample_portfolio(db: Session, sample_user: User) -> Portfolio:
    """Provide a sample Portfolio for tests."""
    return create_portfolio(db, sample_user)


# =============================================================================
# API CLIENT
# =============================================================================

@pytest.fixture(scope="function")
def client(db: Session, refresh_service: RefreshService) -> Iterator[TestClient]:
    """
    TestClient with the database and every service bound to test doubles.

    The services share one RefreshService built on the mock provider, so
    no test ever reaches the network.
    """
    from tracker.database import get_db
    from tracker.dependencies import (
        get_dashboard_service,
        get_portfolio_service,
        get_transaction_service,
    )
    from tracker.main import app
    from tracker.services.dashboard_service import DashboardService
    from tracker.services.portfolio_service import PortfolioService
    from tracker.services.transactions.service import TransactionService

    def override_get_db():
        try:
            yield db
        finally:
            pass

    transaction_service = TransactionService(refresh_service=refresh_service)
    dashboard_service = DashboardService(refresh_service=refresh_service)
    portfolio_service = PortfolioService()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_transaction_service] = lambda: transaction_service
    app.dependency_overrides[get_dashboard_service] = lambda: dashboard_service
    app.dependency_overrides[get_portfolio_service] = lambda: portfolio_service

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


def auth_headers(user: User) -> dict[str, str]:
    return {"X-User-Id": str(user.id)}
