# backend/tracker/services/protocols.py
"""
Protocol interfaces for service dependency injection.

Structural typing lets tests hand a service any object with the right
methods (a MagicMock, a fake) without inheriting from the real class.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal
from typing import Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from tracker.models import Currency
    from tracker.services.refresh_service import RefreshResult


class QuoteProviderProtocol(Protocol):
    """Interface required by RefreshService."""

    @property
    def name(self) -> str:
        ...

    def fetch_prices(self, symbols: Iterable[str]) -> dict[str, Decimal]:
        ...

    def fetch_usdils_rate(self) -> Decimal | None:
        ...


class RefreshServiceProtocol(Protocol):
    """Interface required by TransactionService and DashboardService."""

    def refresh_portfolio_data(
        self,
        db: Session,
        user_id: int,
        display_currency: Currency | None = None,
    ) -> RefreshResult:
        ...
