# backend/tracker/services/refresh_service.py
"""
Refresh orchestrator.

One refresh pass for one user:

    1. Load portfolios, holdings and cash balances   (failure here is fatal)
    2. Fetch prices for the distinct held symbols    (failure -> cached prices)
    3. Store the prices, one result per symbol
    4. Fetch the USD/ILS rate and sanity-check it    (failure -> stored or default rate)
    5. Store the rate when it came from the provider
    6. Summarize each portfolio and all of them together
    7. Upsert today's snapshots: one per portfolio plus one global

Only step 1 can make a refresh fail. Everything after it degrades: missing
quotes fall back to the last stored price (a holding never priced counts as
0), a bad rate falls back, and a snapshot that fails to save is logged and
left out of snapshots_saved.

Steps run sequentially with blocking I/O (HTTP first, then the database).
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tracker.config import settings
from tracker.models import CashBalance, Currency, Holding, Portfolio
from tracker.services import store
from tracker.services.exceptions import MarketDataError
from tracker.services.protocols import QuoteProviderProtocol
from tracker.services.store import SnapshotValues
from tracker.services.valuation import GlobalSummary, PortfolioAggregator, PortfolioSummary
from tracker.utils.fx_conversion import is_valid_fx_rate, resolve_fx_rate

logger = logging.getLogger(__name__)


@dataclass
class RefreshResult:
    """
    Outcome of one refresh pass.

    Attributes:
        success: False only when the base data could not be loaded
        global_summary: Summary of all portfolios, None on failure
        usdils_rate: Rate used for the pass (0 on failure)
        prices_updated: Number of prices written to the store
        snapshots_saved: Number of snapshot rows written (portfolios + global)
        rate_is_fallback: True when the provider's rate was missing or implausible
        missing_symbols: Held symbols the provider returned no price for
        error: Failure reason when success is False
    """

    success: bool
    global_summary: GlobalSummary | None
    usdils_rate: Decimal
    prices_updated: int = 0
    snapshots_saved: int = 0
    rate_is_fallback: bool = False
    missing_symbols: tuple[str, ...] = ()
    error: str | None = None

    @classmethod
    def failed(cls, error: str) -> "RefreshResult":
        return cls(success=False, global_summary=None, usdils_rate=Decimal("0"), error=error)


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


class RefreshService:
    """
    Fetches quotes, recomputes summaries and writes daily snapshots.

    Args:
        quote_provider: Source of prices and the USD/ILS rate
        aggregator: Valuation engine (a fresh PortfolioAggregator by default)
    """

    def __init__(
            self,
            quote_provider: QuoteProviderProtocol,
            aggregator: PortfolioAggregator | None = None,
    ) -> None:
        self._provider = quote_provider
        self._aggregator = aggregator or PortfolioAggregator()

    def refresh_portfolio_data(
            self,
            db: Session,
            user_id: int,
            display_currency: Currency | None = None,
            today: date | None = None,
    ) -> RefreshResult:
        """
        Run a full refresh for one user.

        Args:
            db: Database session
            user_id: Owner of the portfolios to refresh
            display_currency: Currency for summaries and snapshots
                (default: settings.default_display_currency)
            today: Snapshot date (default: current UTC date)

        Returns:
            RefreshResult; never raises for partial failures
        """
        currency = Currency(display_currency or settings.default_display_currency)
        snapshot_date = today or utc_today()

        # Step 1: base data
        try:
            portfolios = store.list_user_portfolios(db, user_id)
            portfolio_ids = [p.id for p in portfolios]
            holdings = store.list_holdings(db, portfolio_ids)
            cash_balances = store.list_cash_balances(db, portfolio_ids)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Refresh for user {user_id} could not load base data: {e}")
            return RefreshResult.failed(str(e))

        if not portfolios:
            logger.info(f"Refresh for user {user_id}: no portfolios")
            return RefreshResult(
                success=True,
                global_summary=GlobalSummary.empty(currency, settings.default_usdils_rate),
                usdils_rate=settings.default_usdils_rate,
            )

        # Steps 2-3: prices, topped up from the cache for symbols the provider missed
        symbols = {h.symbol for h in holdings}
        fetched = self._fetch_prices(symbols)
        prices_updated = self._store_prices(db, fetched)
        prices = self._with_cached_prices(db, symbols, fetched)

        # Steps 4-5: FX rate
        usdils_rate, rate_is_fallback = self._resolve_rate(db)

        # Step 6: summaries
        summaries = self._summarize(portfolios, holdings, cash_balances, prices, currency, usdils_rate)
        global_summary = self._aggregator.calculate_global_totals(summaries, currency, usdils_rate)

        # Step 7: snapshots
        snapshots_saved = self._save_snapshots(
            db, user_id, snapshot_date, summaries, global_summary, currency, usdils_rate
        )

        missing = tuple(sorted(symbols - fetched.keys()))
        logger.info(
            f"Refresh for user {user_id}: {len(portfolios)} portfolios, "
            f"{prices_updated}/{len(symbols)} prices updated, "
            f"{snapshots_saved} snapshots saved, USD/ILS {usdils_rate}"
            + (" (fallback)" if rate_is_fallback else "")
        )

        return RefreshResult(
            success=True,
            global_summary=global_summary,
            usdils_rate=usdils_rate,
            prices_updated=prices_updated,
            snapshots_saved=snapshots_saved,
            rate_is_fallback=rate_is_fallback,
            missing_symbols=missing,
        )

    # =========================================================================
    # STEPS
    # =========================================================================

    def _fetch_prices(self, symbols: set[str]) -> dict[str, Decimal]:
        if not symbols:
            return {}
        try:
            return self._provider.fetch_prices(symbols)
        except MarketDataError as e:
            logger.warning(f"Price fetch failed, continuing without prices: {e}")
            return {}

    def _store_prices(self, db: Session, prices: dict[str, Decimal]) -> int:
        if not prices:
            return 0
        results = store.upsert_prices(db, prices)
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning(f"Failed to commit {len(results)} prices: {e}")
            return 0
        return sum(1 for r in results if r.success)

    def _with_cached_prices(
            self,
            db: Session,
            symbols: set[str],
            fetched: dict[str, Decimal],
    ) -> dict[str, Decimal]:
        stale = symbols - fetched.keys()
        if not stale:
            return fetched
        try:
            cached = store.get_cached_prices(db, stale)
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning(f"Could not read cached prices for {sorted(stale)}: {e}")
            return fetched
        if cached:
            logger.info(f"Valuing {sorted(cached)} at last stored prices")
        return {**cached, **fetched}

    def _resolve_rate(self, db: Session) -> tuple[Decimal, bool]:
        """
        Rate to use for this pass and whether it is a fallback.

        A live rate inside the sane range is stored and used. Otherwise the
        last stored rate is used if it is sane, else the configured default.
        The stored rate is never overwritten by a fallback.
        """
        try:
            live_rate = self._provider.fetch_usdils_rate()
        except MarketDataError as e:
            logger.warning(f"USD/ILS fetch failed: {e}")
            live_rate = None

        if is_valid_fx_rate(live_rate, settings.fx_rate_min, settings.fx_rate_max):
            try:
                store.upsert_fx_rate(db, live_rate)
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                logger.warning(f"Failed to store USD/ILS rate {live_rate}: {e}")
            return live_rate, False

        if live_rate is not None:
            logger.warning(
                f"USD/ILS rate {live_rate} outside [{settings.fx_rate_min}, {settings.fx_rate_max}], ignoring"
            )

        stored_rate = store.get_fx_rate(db)
        rate = resolve_fx_rate(
            stored_rate,
            default=settings.default_usdils_rate,
            minimum=settings.fx_rate_min,
            maximum=settings.fx_rate_max,
        )
        logger.warning(f"Using fallback USD/ILS rate {rate}")
        return rate, True

    def _summarize(
            self,
            portfolios: list[Portfolio],
            holdings: list[Holding],
            cash_balances: list[CashBalance],
            prices: dict[str, Decimal],
            currency: Currency,
            usdils_rate: Decimal,
    ) -> list[PortfolioSummary]:
        holdings_by_portfolio: dict[int, list[Holding]] = {}
        for holding in holdings:
            holdings_by_portfolio.setdefault(holding.portfolio_id, []).append(holding)

        cash_by_portfolio: dict[int, list[CashBalance]] = {}
        for balance in cash_balances:
            cash_by_portfolio.setdefault(balance.portfolio_id, []).append(balance)

        return [
            self._aggregator.calculate_portfolio_totals(
                portfolio,
                holdings_by_portfolio.get(portfolio.id, []),
                cash_by_portfolio.get(portfolio.id, []),
                prices,
                currency,
                usdils_rate,
            )
            for portfolio in portfolios
        ]

    def _save_snapshots(
            self,
            db: Session,
            user_id: int,
            snapshot_date: date,
            summaries: list[PortfolioSummary],
            global_summary: GlobalSummary,
            currency: Currency,
            usdils_rate: Decimal,
    ) -> int:
        rows = [
            SnapshotValues(
                portfolio_id=s.portfolio_id,
                total_value=s.total_value,
                cash_value=s.cash_value,
                holdings_value=s.holdings_value,
                currency=currency,
                usdils_rate=usdils_rate,
            )
            for s in summaries
        ]
        rows.append(SnapshotValues(
            portfolio_id=None,
            total_value=global_summary.total_value,
            cash_value=global_summary.total_cash,
            holdings_value=global_summary.total_holdings,
            currency=currency,
            usdils_rate=usdils_rate,
        ))

        results = store.upsert_snapshots(db, user_id, snapshot_date, rows)
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning(f"Failed to commit snapshots for user {user_id}: {e}")
            return 0
        return sum(1 for r in results if r.success)
