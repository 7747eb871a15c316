# backend/tests/services/test_store.py
"""
Tests for the record store helpers against in-memory SQLite.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import select

from tracker.models import CashBalance, Currency, FxRate, Holding, PriceQuote, Snapshot
from tracker.services import store
from tracker.services.store import SnapshotValues
from tracker.services.transactions import (
    CashDelta,
    DeleteHolding,
    HoldingState,
    TransactionEffect,
    UpsertHolding,
)
from tests.conftest import (
    create_cash,
    create_holding,
    create_portfolio,
    create_snapshot,
)


def snapshot_values(portfolio_id: int | None, total: str) -> SnapshotValues:
    return SnapshotValues(
        portfolio_id=portfolio_id,
        total_value=Decimal(total),
        cash_value=Decimal("0"),
        holdings_value=Decimal(total),
        currency=Currency.ILS,
        usdils_rate=Decimal("3.65"),
    )


# =============================================================================
# OWNERSHIP
# =============================================================================

class TestOwnership:

    def test_owner_gets_portfolio(self, db, sample_user, sample_portfolio):
        assert store.get_user_portfolio(db, sample_user.id, sample_portfolio.id) == sample_portfolio

    def test_other_user_gets_none(self, db, other_user, sample_portfolio):
        assert store.get_user_portfolio(db, other_user.id, sample_portfolio.id) is None

    def test_list_user_portfolios_in_creation_order(self, db, sample_user, other_user):
        first = create_portfolio(db, sample_user, name="First")
        second = create_portfolio(db, sample_user, name="Second")
        create_portfolio(db, other_user, name="Not mine")

        assert store.list_user_portfolios(db, sample_user.id) == [first, second]

    def test_empty_id_lists(self, db):
        assert store.list_holdings(db, []) == []
        assert store.list_cash_balances(db, []) == []


# =============================================================================
# EFFECTS
# =============================================================================

class TestApplyEffect:

    def test_creates_holding_and_cash(self, db, sample_user, sample_portfolio):
        effect = TransactionEffect(
            UpsertHolding(HoldingState("AAPL", Decimal("10"), Decimal("100.5"), Currency.USD)),
            (CashDelta(Currency.USD, Decimal("-1005")),),
        )

        store.apply_effect(db, sample_user.id, sample_portfolio.id, effect, None)
        db.commit()

        holding = store.get_holding(db, sample_portfolio.id, "AAPL")
        assert holding.quantity == Decimal("10")
        assert holding.avg_cost == Decimal("100.5")
        cash = store.list_cash_balances(db, [sample_portfolio.id])
        assert [(c.currency, c.amount) for c in cash] == [("USD", Decimal("-1005"))]

    def test_updates_existing_holding_in_place(self, db, sample_user, sample_portfolio):
        existing = create_holding(db, sample_portfolio, "AAPL", "10", "100.5")
        effect = TransactionEffect(
            UpsertHolding(HoldingState("AAPL", Decimal("20"), Decimal("105.5"), Currency.USD)),
            (),
        )

        store.apply_effect(db, sample_user.id, sample_portfolio.id, effect, existing)
        db.commit()

        rows = db.scalars(select(Holding)).all()
        assert len(rows) == 1
        assert rows[0].quantity == Decimal("20")
        assert rows[0].avg_cost == Decimal("105.5")

    def test_delete_holding(self, db, sample_user, sample_portfolio):
        existing = create_holding(db, sample_portfolio, "AAPL", "20", "105.5")
        effect = TransactionEffect(DeleteHolding("AAPL"), (CashDelta(Currency.USD, Decimal("2400")),))

        store.apply_effect(db, sample_user.id, sample_portfolio.id, effect, existing)
        db.commit()

        assert store.get_holding(db, sample_portfolio.id, "AAPL") is None

    def test_cash_delta_adds_to_existing_balance(self, db, sample_user, sample_portfolio):
        create_cash(db, sample_portfolio, Currency.ILS, "100")

        store.update_cash_balance(db, sample_user.id, sample_portfolio.id, Currency.ILS, Decimal("365"))
        db.commit()

        balances = db.scalars(select(CashBalance)).all()
        assert len(balances) == 1
        assert balances[0].amount == Decimal("465")

    def test_cash_may_go_negative(self, db, sample_user, sample_portfolio):
        balance = store.update_cash_balance(
            db, sample_user.id, sample_portfolio.id, Currency.USD, Decimal("-50")
        )
        assert balance.amount == Decimal("-50")


# =============================================================================
# PRICES & FX
# =============================================================================

class TestQuoteCache:

    def test_upsert_prices_is_idempotent(self, db):
        store.upsert_prices(db, {"AAPL": Decimal("150"), "MSFT": Decimal("400")})
        results = store.upsert_prices(db, {"AAPL": Decimal("155")})
        db.commit()

        assert all(r.success for r in results)
        assert len(db.scalars(select(PriceQuote)).all()) == 2
        assert store.get_cached_prices(db, ["AAPL", "MSFT", "NOPE"]) == {
            "AAPL": Decimal("155"),
            "MSFT": Decimal("400"),
        }

    def test_cached_prices_for_no_symbols(self, db):
        assert store.get_cached_prices(db, []) == {}

    def test_upsert_fx_rate_overwrites(self, db):
        store.upsert_fx_rate(db, Decimal("3.6"))
        store.upsert_fx_rate(db, Decimal("3.7"))
        db.commit()

        assert len(db.scalars(select(FxRate)).all()) == 1
        assert store.get_fx_rate(db) == Decimal("3.7")

    def test_missing_fx_rate_is_none(self, db):
        assert store.get_fx_rate(db) is None


# =============================================================================
# SNAPSHOTS
# =============================================================================

class TestSnapshots:

    def test_same_day_upsert_overwrites(self, db, sample_user, sample_portfolio):
        day = date(2026, 10, 19)

        store.upsert_snapshots(db, sample_user.id, day, [snapshot_values(sample_portfolio.id, "100")])
        store.upsert_snapshots(db, sample_user.id, day, [snapshot_values(sample_portfolio.id, "200")])
        db.commit()

        rows = db.scalars(select(Snapshot)).all()
        assert len(rows) == 1
        assert rows[0].total_value == Decimal("200")

    def test_global_row_is_unique_per_day(self, db, sample_user):
        day = date(2026, 10, 19)

        first = store.upsert_snapshots(db, sample_user.id, day, [snapshot_values(None, "100")])
        store.upsert_snapshots(db, sample_user.id, day, [snapshot_values(None, "300")])
        db.commit()

        assert first[0].key == "global"
        rows = db.scalars(select(Snapshot).where(Snapshot.portfolio_id.is_(None))).all()
        assert len(rows) == 1
        assert rows[0].total_value == Decimal("300")

    def test_global_and_portfolio_rows_coexist(self, db, sample_user, sample_portfolio):
        day = date(2026, 10, 19)

        store.upsert_snapshots(
            db,
            sample_user.id,
            day,
            [snapshot_values(sample_portfolio.id, "100"), snapshot_values(None, "100")],
        )
        db.commit()

        assert store.get_snapshot_for_date(db, sample_user.id, day).portfolio_id is None
        assert store.get_snapshot_for_date(db, sample_user.id, day, sample_portfolio.id) is not None

    def test_latest_snapshot_by_date(self, db, sample_user):
        create_snapshot(db, sample_user, date(2026, 10, 17), "100")
        create_snapshot(db, sample_user, date(2026, 10, 18), "110")

        latest = store.get_latest_snapshot(db, sample_user.id)

        assert latest.date == date(2026, 10, 18)
        assert latest.total_value == Decimal("110")

    def test_snapshot_for_missing_date_is_none(self, db, sample_user):
        create_snapshot(db, sample_user, date(2026, 10, 17), "100")
        assert store.get_snapshot_for_date(db, sample_user.id, date(2026, 10, 18)) is None
