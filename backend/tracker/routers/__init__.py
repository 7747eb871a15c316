# backend/tracker/routers/__init__.py
"""
API routers for the portfolio tracker.

Each router handles a specific domain:
- portfolios: Portfolio management and the portfolio page
- transactions: Ledger entries within a portfolio
- dashboard: All portfolios combined
"""

from tracker.routers.dashboard import router as dashboard_router
from tracker.routers.portfolios import router as portfolios_router
from tracker.routers.transactions import router as transactions_router

__all__ = [
    "dashboard_router",
    "portfolios_router",
    "transactions_router",
]
