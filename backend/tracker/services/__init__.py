# backend/tracker/services/__init__.py
"""
Service layer for business logic.

This package contains the service layer which encapsulates business logic
separate from the API (router) layer. Services:
- Have NO knowledge of HTTP (no HTTPException, no status codes)
- Raise domain-specific exceptions
- Receive database sessions as parameters (not via Depends)
- Are easily testable via dependency injection

Usage:
    from tracker.services import TransactionService, RefreshService
    from tracker.services import (
        PortfolioNotFoundError,
        InsufficientQuantityError,
        BalanceUpdateError,
    )

Architecture:
    services/
    ├── __init__.py               # This file - main exports
    ├── exceptions.py             # Domain exceptions
    ├── constants.py              # Business constants and limits
    ├── protocols.py              # Service interfaces (Protocol classes)
    ├── store.py                  # Queries and upserts over the session
    ├── portfolio_service.py      # Portfolio CRUD
    ├── refresh_service.py        # Refresh orchestrator (quotes -> snapshots)
    ├── dashboard_service.py      # Dashboard and portfolio page read side
    ├── market_data/              # Quote providers
    │   ├── base.py               # Abstract provider interface + retry
    │   ├── twelvedata.py         # TwelveData HTTP client
    │   └── static.py             # Fixed price table (no API key)
    ├── transactions/             # Transaction processing
    │   ├── types.py              # Commands and effects
    │   ├── processor.py          # Pure state transitions
    │   └── service.py            # Ledger + balances
    └── valuation/                # Valuation engine
        ├── types.py              # Summary dataclasses
        ├── calculators.py        # Position math
        └── aggregation.py        # Holding -> portfolio -> global
"""

# Exceptions
from tracker.services.exceptions import (
    # Base exception
    ServiceError,
    # Validation
    ValidationError,
    InsufficientQuantityError,
    # Not found
    NotFoundError,
    PortfolioNotFoundError,
    # Consistency
    BalanceUpdateError,
    RefreshError,
    # Market data
    MarketDataError,
    ProviderUnavailableError,
    RateLimitError,
)
# Market data
from tracker.services.market_data import (
    QuoteProvider,
    StaticQuoteProvider,
    TwelveDataProvider,
    create_quote_provider,
)
# Services
from tracker.services.dashboard_service import DashboardService
from tracker.services.portfolio_service import PortfolioService
from tracker.services.refresh_service import RefreshResult, RefreshService
from tracker.services.transactions.service import TransactionResult, TransactionService
# Valuation
from tracker.services.valuation import PortfolioAggregator

__all__ = [
    # Exceptions
    "ServiceError",
    "ValidationError",
    "InsufficientQuantityError",
    "NotFoundError",
    "PortfolioNotFoundError",
    "BalanceUpdateError",
    "RefreshError",
    "MarketDataError",
    "ProviderUnavailableError",
    "RateLimitError",
    # Market data
    "QuoteProvider",
    "StaticQuoteProvider",
    "TwelveDataProvider",
    "create_quote_provider",
    # Services
    "DashboardService",
    "PortfolioService",
    "RefreshResult",
    "RefreshService",
    "TransactionResult",
    "TransactionService",
    # Valuation
    "PortfolioAggregator",
]
