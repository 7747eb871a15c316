# backend/tracker/services/dashboard_service.py
"""
Read side for the dashboard and the portfolio page.

Everything here is computed from what is already stored: cached prices, the
stored USD/ILS rate and the snapshots written by refreshes. Nothing here
calls the quote provider except the refresh_* methods, which delegate to the
refresh orchestrator and then read back.

Dashboard values are always live (holdings and cash as they are right now,
valued at cached prices). The latest global snapshot only supplies the
"last updated" timestamp, and yesterday's global snapshot supplies the
baseline for the daily change.

Usage:
    service = DashboardService(refresh_service)
    data = service.get_dashboard_data(db, user_id=1, display_currency=Currency.USD)
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy.orm import Session

from tracker.config import settings
from tracker.models import CashBalance, Currency, Holding, Portfolio, Snapshot, Transaction
from tracker.services import store
from tracker.services.constants import PORTFOLIO_PAGE_TRANSACTIONS
from tracker.services.exceptions import PortfolioNotFoundError, RefreshError
from tracker.services.protocols import RefreshServiceProtocol
from tracker.services.refresh_service import RefreshResult, utc_today
from tracker.services.valuation import (
    DailyChange,
    GlobalSummary,
    PortfolioAggregator,
    PortfolioSummary,
)
from tracker.utils.decimal_math import ZERO, round_to, to_decimal
from tracker.utils.fx_conversion import convert_currency, resolve_fx_rate

logger = logging.getLogger(__name__)


# =============================================================================
# RESULT TYPES
# =============================================================================

@dataclass
class LiveData:
    """Summaries computed from cached prices and the stored rate."""

    global_summary: GlobalSummary
    usdils_rate: Decimal


@dataclass
class SnapshotView:
    """
    The most recent global snapshot, rebuilt as a summary.

    last_updated is None when no snapshot exists and the summary was
    computed live instead.
    """

    global_summary: GlobalSummary
    last_updated: datetime | None
    usdils_rate: Decimal


@dataclass
class DashboardPortfolio:
    id: int
    name: str
    total_value: Decimal
    change: Decimal
    change_percent: Decimal


@dataclass
class DashboardData:
    total_value: Decimal
    total_cash: Decimal
    total_holdings: Decimal
    daily_change: DailyChange
    total_return: Decimal
    total_return_percent: Decimal
    display_currency: Currency
    usdils_rate: Decimal
    computed_at: datetime
    last_snapshot_at: datetime | None
    portfolios: list[DashboardPortfolio] = field(default_factory=list)


@dataclass
class PortfolioPageData:
    portfolio: Portfolio
    summary: PortfolioSummary
    transactions: list[Transaction]
    usdils_rate: Decimal
    display_currency: Currency


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DashboardService:
    """
    Builds dashboard and portfolio page data.

    Args:
        refresh_service: Used by refresh_dashboard_data and
            refresh_portfolio_page_data
        aggregator: Valuation engine (a fresh PortfolioAggregator by default)
    """

    def __init__(
            self,
            refresh_service: RefreshServiceProtocol | None = None,
            aggregator: PortfolioAggregator | None = None,
    ) -> None:
        self._refresh_service = refresh_service
        self._aggregator = aggregator or PortfolioAggregator()

    # =========================================================================
    # LIVE DATA
    # =========================================================================

    def stored_rate(self, db: Session) -> Decimal:
        """Stored USD/ILS rate if it is sane, else the configured default."""
        return resolve_fx_rate(
            store.get_fx_rate(db),
            default=settings.default_usdils_rate,
            minimum=settings.fx_rate_min,
            maximum=settings.fx_rate_max,
        )

    def calculate_live_data(
            self,
            db: Session,
            user_id: int,
            display_currency: Currency,
    ) -> LiveData:
        """Value every portfolio of the user at cached prices; no network calls."""
        usdils_rate = self.stored_rate(db)
        portfolios = store.list_user_portfolios(db, user_id)
        if not portfolios:
            return LiveData(GlobalSummary.empty(display_currency, usdils_rate), usdils_rate)

        portfolio_ids = [p.id for p in portfolios]
        holdings = store.list_holdings(db, portfolio_ids)
        cash_balances = store.list_cash_balances(db, portfolio_ids)
        prices = store.get_cached_prices(db, {h.symbol for h in holdings})

        summaries = [
            self._summarize_portfolio(
                portfolio,
                [h for h in holdings if h.portfolio_id == portfolio.id],
                [c for c in cash_balances if c.portfolio_id == portfolio.id],
                prices,
                display_currency,
                usdils_rate,
            )
            for portfolio in portfolios
        ]
        global_summary = self._aggregator.calculate_global_totals(summaries, display_currency, usdils_rate)
        return LiveData(global_summary, usdils_rate)

    # =========================================================================
    # SNAPSHOTS
    # =========================================================================

    def get_latest_snapshot(
            self,
            db: Session,
            user_id: int,
            display_currency: Currency,
    ) -> SnapshotView:
        """
        Latest global snapshot with the portfolio snapshots of the same day.

        Snapshot values are converted to display_currency with the rate
        stored on each snapshot. Snapshots carry no cost basis, so P/L fields
        are 0. Falls back to live data when the user has no snapshot yet.
        """
        latest = store.get_latest_snapshot(db, user_id)
        if latest is None:
            live = self.calculate_live_data(db, user_id, display_currency)
            return SnapshotView(live.global_summary, None, live.usdils_rate)

        names = {p.id: p.name for p in store.list_user_portfolios(db, user_id)}
        summaries = []
        for portfolio_id, name in names.items():
            snapshot = store.get_snapshot_for_date(db, user_id, latest.date, portfolio_id)
            if snapshot is None:
                continue
            summaries.append(PortfolioSummary(
                portfolio_id=portfolio_id,
                portfolio_name=name,
                holdings_value=self._snapshot_amount(snapshot, snapshot.holdings_value, display_currency),
                cash_value=self._snapshot_amount(snapshot, snapshot.cash_value, display_currency),
                total_value=self._snapshot_amount(snapshot, snapshot.total_value, display_currency),
                cost_basis=ZERO,
                unrealized_pl=ZERO,
                unrealized_pl_percent=ZERO,
                currency=display_currency,
            ))

        global_summary = GlobalSummary(
            total_value=self._snapshot_amount(latest, latest.total_value, display_currency),
            total_cash=self._snapshot_amount(latest, latest.cash_value, display_currency),
            total_holdings=self._snapshot_amount(latest, latest.holdings_value, display_currency),
            total_cost_basis=ZERO,
            total_unrealized_pl=ZERO,
            total_unrealized_pl_percent=ZERO,
            currency=display_currency,
            usdils_rate=to_decimal(latest.usdils_rate),
            portfolio_summaries=summaries,
        )
        return SnapshotView(global_summary, latest.created_at, to_decimal(latest.usdils_rate))

    def get_yesterday_snapshot(
            self,
            db: Session,
            user_id: int,
            today: date | None = None,
    ) -> Snapshot | None:
        """Global snapshot dated the day before today (UTC), if one was written."""
        yesterday = (today or utc_today()) - timedelta(days=1)
        return store.get_snapshot_for_date(db, user_id, yesterday)

    # =========================================================================
    # DASHBOARD
    # =========================================================================

    def get_dashboard_data(
            self,
            db: Session,
            user_id: int,
            display_currency: Currency | None = None,
            today: date | None = None,
    ) -> DashboardData:
        currency = Currency(display_currency or settings.default_display_currency)
        live = self.calculate_live_data(db, user_id, currency)
        summary = live.global_summary

        latest = store.get_latest_snapshot(db, user_id)
        yesterday = self.get_yesterday_snapshot(db, user_id, today)
        yesterday_value = (
            self._snapshot_amount(yesterday, yesterday.total_value, currency)
            if yesterday is not None else None
        )
        daily_change = self._aggregator.calculate_daily_change(summary.total_value, yesterday_value)

        return DashboardData(
            total_value=summary.total_value,
            total_cash=summary.total_cash,
            total_holdings=summary.total_holdings,
            daily_change=daily_change,
            total_return=summary.total_unrealized_pl,
            total_return_percent=summary.total_unrealized_pl_percent,
            display_currency=currency,
            usdils_rate=live.usdils_rate,
            computed_at=_utcnow(),
            last_snapshot_at=latest.created_at if latest is not None else None,
            portfolios=[
                DashboardPortfolio(
                    id=p.portfolio_id,
                    name=p.portfolio_name,
                    total_value=p.total_value,
                    change=p.unrealized_pl,
                    change_percent=p.unrealized_pl_percent,
                )
                for p in summary.portfolio_summaries
            ],
        )

    def refresh_dashboard_data(
            self,
            db: Session,
            user_id: int,
            display_currency: Currency | None = None,
    ) -> tuple[RefreshResult, DashboardData]:
        """
        Run a refresh, then rebuild the dashboard.

        Raises:
            RefreshError: If the refresh could not load the user's data
        """
        result = self._run_refresh(db, user_id, display_currency)
        return result, self.get_dashboard_data(db, user_id, display_currency)

    # =========================================================================
    # PORTFOLIO PAGE
    # =========================================================================

    def get_portfolio_page_data(
            self,
            db: Session,
            user_id: int,
            portfolio_id: int,
            display_currency: Currency | None = None,
            transaction_limit: int = PORTFOLIO_PAGE_TRANSACTIONS,
    ) -> PortfolioPageData:
        """
        One portfolio valued at cached prices, with its latest transactions.

        Raises:
            PortfolioNotFoundError: Unknown portfolio or owned by someone else
        """
        currency = Currency(display_currency or settings.default_display_currency)
        portfolio = store.get_user_portfolio(db, user_id, portfolio_id)
        if portfolio is None:
            raise PortfolioNotFoundError(portfolio_id)

        usdils_rate = self.stored_rate(db)
        holdings = store.list_holdings(db, [portfolio.id])
        cash_balances = store.list_cash_balances(db, [portfolio.id])
        prices = store.get_cached_prices(db, {h.symbol for h in holdings})
        summary = self._summarize_portfolio(portfolio, holdings, cash_balances, prices, currency, usdils_rate)

        return PortfolioPageData(
            portfolio=portfolio,
            summary=summary,
            transactions=store.list_transactions(db, portfolio.id, limit=transaction_limit),
            usdils_rate=usdils_rate,
            display_currency=currency,
        )

    def refresh_portfolio_page_data(
            self,
            db: Session,
            user_id: int,
            portfolio_id: int,
            display_currency: Currency | None = None,
    ) -> tuple[RefreshResult, PortfolioPageData]:
        """
        Refresh all of the user's data, then rebuild one portfolio page.

        Raises:
            PortfolioNotFoundError: Unknown portfolio or owned by someone else
            RefreshError: If the refresh could not load the user's data
        """
        if store.get_user_portfolio(db, user_id, portfolio_id) is None:
            raise PortfolioNotFoundError(portfolio_id)
        result = self._run_refresh(db, user_id, display_currency)
        return result, self.get_portfolio_page_data(db, user_id, portfolio_id, display_currency)

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _summarize_portfolio(
            self,
            portfolio: Portfolio,
            holdings: list[Holding],
            cash_balances: list[CashBalance],
            prices: dict[str, Decimal],
            currency: Currency,
            usdils_rate: Decimal,
    ) -> PortfolioSummary:
        return self._aggregator.calculate_portfolio_totals(
            portfolio, holdings, cash_balances, prices, currency, usdils_rate
        )

    def _snapshot_amount(self, snapshot: Snapshot, amount: Decimal, currency: Currency) -> Decimal:
        rate = to_decimal(snapshot.usdils_rate)
        return round_to(convert_currency(to_decimal(amount), snapshot.currency, currency, rate))

    def _run_refresh(
            self,
            db: Session,
            user_id: int,
            display_currency: Currency | None,
    ) -> RefreshResult:
        if self._refresh_service is None:
            raise RefreshError(user_id, "refresh is not configured")
        result = self._refresh_service.refresh_portfolio_data(db, user_id, display_currency)
        if not result.success:
            raise RefreshError(user_id, result.error or "unknown error")
        return result
