# backend/tracker/schemas/__init__.py
"""
Pydantic schemas for API request/response validation.

This package contains all Pydantic schemas organized by domain:
- errors: Error response formats
- pagination: Standardized pagination for list endpoints
- portfolios: Portfolio CRUD operations
- transactions: Transaction create payloads (discriminated on type) and responses
- validators: Reusable validation functions (symbol, names, currency)
- valuation: Summaries, dashboard, portfolio page, refresh results

Usage:
    from tracker.schemas import PortfolioCreate, PortfolioResponse
    from tracker.schemas import TransactionCreate, TransactionResponse
    from tracker.schemas import DashboardResponse, PortfolioPageResponse
    from tracker.schemas import PaginationMeta
"""

from tracker.schemas.errors import (
    ErrorDetail,
    ValidationErrorDetail,
)
from tracker.schemas.pagination import PaginationMeta
from tracker.schemas.portfolios import (
    PortfolioCreate,
    PortfolioUpdate,
    PortfolioResponse,
    PortfolioListResponse,
)
from tracker.schemas.transactions import (
    BuyCreate,
    SellCreate,
    DepositCreate,
    WithdrawCreate,
    DividendCreate,
    ConvertCreate,
    TransactionCreate,
    TransactionResponse,
    TransactionCreatedResponse,
    TransactionListResponse,
)
from tracker.schemas.valuation import (
    HoldingSummaryResponse,
    CashBalanceResponse,
    PortfolioSummaryResponse,
    GlobalSummaryResponse,
    DashboardPortfolioRow,
    DashboardResponse,
    PortfolioPageResponse,
    RefreshResponse,
    DashboardRefreshResponse,
    PortfolioPageRefreshResponse,
)

__all__ = [
    # Errors
    "ErrorDetail",
    "ValidationErrorDetail",
    # Pagination
    "PaginationMeta",
    # Portfolios
    "PortfolioCreate",
    "PortfolioUpdate",
    "PortfolioResponse",
    "PortfolioListResponse",
    # Transactions
    "BuyCreate",
    "SellCreate",
    "DepositCreate",
    "WithdrawCreate",
    "DividendCreate",
    "ConvertCreate",
    "TransactionCreate",
    "TransactionResponse",
    "TransactionCreatedResponse",
    "TransactionListResponse",
    # Valuation
    "HoldingSummaryResponse",
    "CashBalanceResponse",
    "PortfolioSummaryResponse",
    "GlobalSummaryResponse",
    "DashboardPortfolioRow",
    "DashboardResponse",
    "PortfolioPageResponse",
    "RefreshResponse",
    "DashboardRefreshResponse",
    "PortfolioPageRefreshResponse",
]
