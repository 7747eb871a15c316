# backend/tests/routers/test_dashboard_api.py
"""
API tests for /dashboard.
"""

from datetime import timedelta
from decimal import Decimal

from tracker.models import Currency
from tracker.services.refresh_service import utc_today
from tests.conftest import (
    auth_headers,
    create_cash,
    create_holding,
    create_portfolio,
    create_price,
    create_snapshot,
)


def dec(value) -> Decimal:
    return Decimal(str(value))


class TestGetDashboard:

    def test_empty_dashboard(self, client, sample_user):
        response = client.get("/dashboard?currency=USD", headers=auth_headers(sample_user))

        assert response.status_code == 200
        body = response.json()
        assert dec(body["total_value"]) == Decimal("0")
        assert body["portfolios"] == []
        assert body["last_snapshot_at"] is None

    def test_totals_across_portfolios(self, client, db, sample_user, sample_portfolio):
        create_holding(db, sample_portfolio, "AAPL", "10", "100")
        create_price(db, "AAPL", "150")
        second = create_portfolio(db, sample_user, name="Savings")
        create_cash(db, second, Currency.ILS, "365")

        response = client.get("/dashboard?currency=USD", headers=auth_headers(sample_user))

        body = response.json()
        assert dec(body["total_value"]) == Decimal("1600.00")
        assert dec(body["total_cash"]) == Decimal("100.00")
        assert dec(body["total_holdings"]) == Decimal("1500.00")
        assert dec(body["total_return"]) == Decimal("500.00")
        assert dec(body["total_return_percent"]) == Decimal("50.00")
        assert [p["name"] for p in body["portfolios"]] == ["Test Portfolio", "Savings"]

    def test_daily_change(self, client, db, sample_user, sample_portfolio):
        create_cash(db, sample_portfolio, Currency.ILS, "1100")
        create_snapshot(db, sample_user, utc_today() - timedelta(days=1), "1000")

        response = client.get("/dashboard?currency=ILS", headers=auth_headers(sample_user))

        body = response.json()
        assert dec(body["daily_change"]) == Decimal("100.00")
        assert dec(body["daily_change_percent"]) == Decimal("10.00")
        assert body["last_snapshot_at"] is not None

    def test_requires_caller(self, client):
        assert client.get("/dashboard").status_code == 401

    def test_currency_is_case_insensitive(self, client, db, sample_user, sample_portfolio):
        create_cash(db, sample_portfolio, Currency.ILS, "365")

        response = client.get("/dashboard?currency=usd", headers=auth_headers(sample_user))

        assert response.status_code == 200
        body = response.json()
        assert body["display_currency"] == "USD"
        assert dec(body["total_value"]) == Decimal("100.00")

    def test_unknown_currency_is_rejected(self, client, sample_user):
        response = client.get("/dashboard?currency=EUR", headers=auth_headers(sample_user))

        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "ValidationError"
        assert [e["field"] for e in body["details"]["errors"]] == ["query.currency"]

    def test_unknown_currency_is_rejected_on_refresh(self, client, sample_user):
        response = client.post("/dashboard/refresh?currency=gbp", headers=auth_headers(sample_user))

        assert response.status_code == 422


class TestRefreshDashboard:

    def test_refresh(self, client, db, sample_user, sample_portfolio, mock_provider):
        create_holding(db, sample_portfolio, "AAPL", "10", "100")

        response = client.post("/dashboard/refresh?currency=USD", headers=auth_headers(sample_user))

        assert response.status_code == 200
        body = response.json()
        assert body["refresh"]["prices_updated"] == 1
        assert body["refresh"]["snapshots_saved"] == 2
        assert body["refresh"]["missing_symbols"] == []
        assert dec(body["dashboard"]["total_value"]) == Decimal("1500.00")
        assert body["dashboard"]["last_snapshot_at"] is not None

    def test_refresh_during_provider_outage(self, client, db, sample_user, sample_portfolio, mock_provider):
        create_holding(db, sample_portfolio, "AAPL", "10", "100")
        mock_provider.unavailable = True

        response = client.post("/dashboard/refresh?currency=USD", headers=auth_headers(sample_user))

        assert response.status_code == 200
        refresh = response.json()["refresh"]
        assert refresh["rate_is_fallback"] is True
        assert refresh["missing_symbols"] == ["AAPL"]
        assert dec(refresh["usdils_rate"]) == Decimal("3.65")
