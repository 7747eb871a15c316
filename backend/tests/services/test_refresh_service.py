# backend/tests/services/test_refresh_service.py
"""
Tests for the refresh orchestrator.

Test Coverage:
- Full pass: prices stored, rate stored, snapshots per portfolio plus global
- Idempotent same-day snapshots
- FX fallback (stored rate, then default) without persisting the fallback
- Provider outage degrades instead of failing
- Base data failure is the only hard failure
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from tracker.models import Currency, Snapshot
from tracker.services import store
from tests.conftest import (
    create_cash,
    create_fx_rate,
    create_holding,
    create_portfolio,
    create_price,
)

TODAY = date(2026, 10, 19)


def seed(db, portfolio):
    create_holding(db, portfolio, "AAPL", "10", "100")
    create_cash(db, portfolio, Currency.USD, "100")


class TestRefreshPass:

    def test_full_refresh(self, db, sample_user, sample_portfolio, refresh_service, mock_provider):
        seed(db, sample_portfolio)

        result = refresh_service.refresh_portfolio_data(db, sample_user.id, Currency.USD, today=TODAY)

        assert result.success is True
        assert result.prices_updated == 1
        assert result.snapshots_saved == 2
        assert result.rate_is_fallback is False
        assert result.usdils_rate == Decimal("3.65")
        assert result.missing_symbols == ()
        assert result.global_summary.total_value == Decimal("1600.00")
        assert result.global_summary.total_unrealized_pl == Decimal("500.00")
        assert mock_provider.price_calls == [["AAPL"]]
        assert store.get_cached_prices(db, ["AAPL"]) == {"AAPL": Decimal("150")}
        assert store.get_fx_rate(db) == Decimal("3.65")

    def test_snapshots_in_display_currency(self, db, sample_user, sample_portfolio, refresh_service):
        seed(db, sample_portfolio)

        refresh_service.refresh_portfolio_data(db, sample_user.id, Currency.ILS, today=TODAY)

        snapshot = store.get_snapshot_for_date(db, sample_user.id, TODAY)
        assert snapshot.currency == "ILS"
        assert snapshot.total_value == Decimal("5840.00")
        assert snapshot.usdils_rate == Decimal("3.65")

    def test_same_day_refresh_is_idempotent(self, db, sample_user, sample_portfolio, refresh_service, mock_provider):
        seed(db, sample_portfolio)

        refresh_service.refresh_portfolio_data(db, sample_user.id, Currency.USD, today=TODAY)
        mock_provider.prices["AAPL"] = Decimal("160")
        refresh_service.refresh_portfolio_data(db, sample_user.id, Currency.USD, today=TODAY)

        snapshots = db.scalars(select(Snapshot)).all()
        assert len(snapshots) == 2
        global_row = store.get_snapshot_for_date(db, sample_user.id, TODAY)
        assert global_row.total_value == Decimal("1700.00")

    def test_one_snapshot_per_portfolio(self, db, sample_user, sample_portfolio, refresh_service):
        seed(db, sample_portfolio)
        second = create_portfolio(db, sample_user, name="Second")
        create_cash(db, second, Currency.ILS, "365")

        result = refresh_service.refresh_portfolio_data(db, sample_user.id, Currency.USD, today=TODAY)

        assert result.snapshots_saved == 3
        assert store.get_snapshot_for_date(db, sample_user.id, TODAY, second.id).total_value == Decimal("100.00")
        assert result.global_summary.total_value == Decimal("1700.00")

    def test_user_without_portfolios(self, db, sample_user, refresh_service, mock_provider):
        result = refresh_service.refresh_portfolio_data(db, sample_user.id, Currency.USD, today=TODAY)

        assert result.success is True
        assert result.global_summary.total_value == Decimal("0")
        assert result.snapshots_saved == 0
        assert mock_provider.price_calls == []
        assert mock_provider.rate_calls == 0

    def test_cash_only_portfolio_skips_price_fetch(self, db, sample_user, sample_portfolio, refresh_service, mock_provider):
        create_cash(db, sample_portfolio, Currency.USD, "50")

        result = refresh_service.refresh_portfolio_data(db, sample_user.id, Currency.USD, today=TODAY)

        assert result.global_summary.total_value == Decimal("50.00")
        assert mock_provider.price_calls == []


class TestFxFallback:

    def test_implausible_rate_uses_default_and_is_not_stored(
            self, db, sample_user, sample_portfolio, refresh_service, mock_provider
    ):
        seed(db, sample_portfolio)
        mock_provider.usdils_rate = Decimal("36.5")

        result = refresh_service.refresh_portfolio_data(db, sample_user.id, Currency.USD, today=TODAY)

        assert result.rate_is_fallback is True
        assert result.usdils_rate == Decimal("3.65")
        assert store.get_fx_rate(db) is None

    def test_missing_rate_uses_stored_rate(self, db, sample_user, sample_portfolio, refresh_service, mock_provider):
        seed(db, sample_portfolio)
        create_fx_rate(db, "3.5")
        mock_provider.usdils_rate = None

        result = refresh_service.refresh_portfolio_data(db, sample_user.id, Currency.ILS, today=TODAY)

        assert result.rate_is_fallback is True
        assert result.usdils_rate == Decimal("3.5")
        assert store.get_fx_rate(db) == Decimal("3.5")

    def test_live_rate_replaces_stored_rate(self, db, sample_user, sample_portfolio, refresh_service, mock_provider):
        seed(db, sample_portfolio)
        create_fx_rate(db, "3.5")
        mock_provider.usdils_rate = Decimal("3.8")

        refresh_service.refresh_portfolio_data(db, sample_user.id, Currency.USD, today=TODAY)

        assert store.get_fx_rate(db) == Decimal("3.8")


class TestDegradedRefresh:

    def test_provider_outage_still_succeeds(self, db, sample_user, sample_portfolio, refresh_service, mock_provider):
        seed(db, sample_portfolio)
        mock_provider.unavailable = True

        result = refresh_service.refresh_portfolio_data(db, sample_user.id, Currency.USD, today=TODAY)

        assert result.success is True
        assert result.prices_updated == 0
        assert result.missing_symbols == ("AAPL",)
        assert result.rate_is_fallback is True
        assert result.global_summary.total_holdings == Decimal("0.00")
        assert result.global_summary.total_cash == Decimal("100.00")
        assert result.snapshots_saved == 2

    def test_provider_outage_values_holdings_at_cached_price(
            self, db, sample_user, sample_portfolio, refresh_service, mock_provider
    ):
        seed(db, sample_portfolio)
        create_price(db, "AAPL", "150")
        mock_provider.unavailable = True

        result = refresh_service.refresh_portfolio_data(db, sample_user.id, Currency.USD, today=TODAY)

        assert result.prices_updated == 0
        assert result.missing_symbols == ("AAPL",)
        assert result.global_summary.total_holdings == Decimal("1500.00")
        global_row = store.get_snapshot_for_date(db, sample_user.id, TODAY)
        assert global_row.holdings_value == Decimal("1500")
        assert global_row.total_value == Decimal("1600")

    def test_symbol_dropped_by_provider_keeps_cached_price(
            self, db, sample_user, sample_portfolio, refresh_service, mock_provider
    ):
        create_holding(db, sample_portfolio, "AAPL", "10", "100")
        create_holding(db, sample_portfolio, "TSLA", "2", "200")
        create_price(db, "TSLA", "250")
        create_price(db, "AAPL", "120")

        result = refresh_service.refresh_portfolio_data(db, sample_user.id, Currency.USD, today=TODAY)

        assert result.missing_symbols == ("TSLA",)
        # live 150 for AAPL beats the cached 120
        assert result.global_summary.total_holdings == Decimal("2000.00")
        assert store.get_cached_prices(db, ["AAPL"]) == {"AAPL": Decimal("150")}

    def test_missing_symbol_is_reported(self, db, sample_user, sample_portfolio, refresh_service):
        create_holding(db, sample_portfolio, "AAPL", "1", "100")
        create_holding(db, sample_portfolio, "ZZZZ", "1", "10")

        result = refresh_service.refresh_portfolio_data(db, sample_user.id, Currency.USD, today=TODAY)

        assert result.missing_symbols == ("ZZZZ",)
        assert result.prices_updated == 1

    def test_base_data_failure_is_reported(self, db, sample_user, refresh_service, monkeypatch):
        def broken(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("database is gone"))

        monkeypatch.setattr(store, "list_user_portfolios", broken)

        result = refresh_service.refresh_portfolio_data(db, sample_user.id, Currency.USD, today=TODAY)

        assert result.success is False
        assert result.global_summary is None
        assert "database is gone" in result.error
