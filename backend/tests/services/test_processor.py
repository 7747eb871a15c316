# backend/tests/services/test_processor.py
"""
Tests for the pure transaction processor.

Test Coverage:
- BUY: new holding and WAC fold-in, cash debit includes fee
- SELL: partial, full (delete), oversell rejection
- Cash-only types: DEPOSIT, WITHDRAW, DIVIDEND, CONVERT
- build_command: validation of raw fields per type
"""

from decimal import Decimal

import pytest

from tracker.models import Currency, TransactionType
from tracker.services.exceptions import InsufficientQuantityError, ValidationError
from tracker.services.transactions import (
    BuyCommand,
    CashDelta,
    ConvertCommand,
    DeleteHolding,
    DepositCommand,
    DividendCommand,
    HoldingState,
    SellCommand,
    UpsertHolding,
    WithdrawCommand,
    apply_transaction,
    build_command,
)


def held(symbol: str, quantity: str, avg_cost: str) -> HoldingState:
    return HoldingState(symbol, Decimal(quantity), Decimal(avg_cost), Currency.USD)


# =============================================================================
# BUY
# =============================================================================

class TestBuy:

    def test_first_buy_creates_holding_with_fee_in_cost(self):
        command = BuyCommand("AAPL", Decimal("10"), Decimal("100"), Currency.USD, Decimal("5"))

        effect = apply_transaction(command)

        assert isinstance(effect.holding_change, UpsertHolding)
        assert effect.holding_change.state.quantity == Decimal("10")
        assert effect.holding_change.state.avg_cost == Decimal("100.5")
        assert effect.cash_deltas == (CashDelta(Currency.USD, Decimal("-1005")),)

    def test_second_buy_folds_into_wac(self):
        command = BuyCommand("AAPL", Decimal("10"), Decimal("110"), Currency.USD, Decimal("5"))

        effect = apply_transaction(command, held("AAPL", "10", "100.5"))

        state = effect.holding_change.state
        assert state.quantity == Decimal("20")
        assert state.avg_cost == Decimal("105.5")
        assert effect.cash_deltas[0].delta == Decimal("-1105")

    def test_buy_in_ils_debits_ils(self):
        command = BuyCommand("TEVA", Decimal("2"), Decimal("50"), Currency.ILS)

        effect = apply_transaction(command)

        assert effect.cash_deltas == (CashDelta(Currency.ILS, Decimal("-100")),)

    def test_buy_in_other_currency_than_holding_is_rejected(self):
        command = BuyCommand("AAPL", Decimal("10"), Decimal("365"), Currency.ILS)

        with pytest.raises(ValidationError) as exc_info:
            apply_transaction(command, held("AAPL", "10", "100"))

        assert exc_info.value.field == "currency"
        assert "USD" in str(exc_info.value)


# =============================================================================
# SELL
# =============================================================================

class TestSell:

    def test_partial_sell_keeps_wac(self):
        command = SellCommand("AAPL", Decimal("4"), Decimal("120"), Currency.USD, Decimal("2"))

        effect = apply_transaction(command, held("AAPL", "10", "100.5"))

        state = effect.holding_change.state
        assert state.quantity == Decimal("6")
        assert state.avg_cost == Decimal("100.5")
        assert effect.cash_deltas == (CashDelta(Currency.USD, Decimal("478")),)

    def test_full_sell_deletes_holding(self):
        command = SellCommand("AAPL", Decimal("20"), Decimal("120"), Currency.USD)

        effect = apply_transaction(command, held("AAPL", "20", "105.5"))

        assert effect.holding_change == DeleteHolding("AAPL")
        assert effect.cash_deltas == (CashDelta(Currency.USD, Decimal("2400")),)

    def test_oversell_is_rejected(self):
        command = SellCommand("AAPL", Decimal("21"), Decimal("120"), Currency.USD)

        with pytest.raises(InsufficientQuantityError) as exc_info:
            apply_transaction(command, held("AAPL", "20", "105.5"))

        assert exc_info.value.requested == Decimal("21")
        assert exc_info.value.held == Decimal("20")
        assert exc_info.value.field == "quantity"

    def test_sell_without_holding_is_rejected(self):
        command = SellCommand("MSFT", Decimal("1"), Decimal("400"), Currency.USD)

        with pytest.raises(InsufficientQuantityError) as exc_info:
            apply_transaction(command, None)

        assert exc_info.value.held == Decimal("0")

    def test_sell_in_other_currency_than_holding_is_rejected(self):
        command = SellCommand("AAPL", Decimal("5"), Decimal("400"), Currency.ILS)

        with pytest.raises(ValidationError) as exc_info:
            apply_transaction(command, held("AAPL", "10", "100"))

        assert exc_info.value.field == "currency"
        assert not isinstance(exc_info.value, InsufficientQuantityError)

    def test_insufficient_quantity_is_a_validation_error(self):
        assert issubclass(InsufficientQuantityError, ValidationError)


# =============================================================================
# CASH ONLY
# =============================================================================

class TestCashTransactions:

    def test_deposit(self):
        effect = apply_transaction(DepositCommand(Decimal("1000"), Currency.USD))
        assert effect.holding_change is None
        assert effect.cash_deltas == (CashDelta(Currency.USD, Decimal("1000")),)

    def test_withdraw(self):
        effect = apply_transaction(WithdrawCommand(Decimal("250"), Currency.ILS))
        assert effect.cash_deltas == (CashDelta(Currency.ILS, Decimal("-250")),)

    def test_dividend(self):
        effect = apply_transaction(DividendCommand(Decimal("12.34"), Currency.USD))
        assert effect.cash_deltas == (CashDelta(Currency.USD, Decimal("12.34")),)

    def test_convert_debits_source_then_credits_target(self):
        command = ConvertCommand(Decimal("100"), Currency.USD, Currency.ILS, Decimal("3.65"))

        effect = apply_transaction(command)

        assert effect.holding_change is None
        assert effect.cash_deltas == (
            CashDelta(Currency.USD, Decimal("-100")),
            CashDelta(Currency.ILS, Decimal("365")),
        )

    def test_holding_is_ignored_for_cash_types(self):
        effect = apply_transaction(DepositCommand(Decimal("1"), Currency.USD), held("AAPL", "1", "1"))
        assert effect.holding_change is None


# =============================================================================
# BUILD COMMAND
# =============================================================================

class TestBuildCommand:

    def test_buy_fields(self):
        command = build_command(
            "BUY",
            {"symbol": " aapl ", "quantity": "10", "price": "100", "currency": "USD", "fee": "5"},
        )
        assert command == BuyCommand("AAPL", Decimal("10"), Decimal("100"), Currency.USD, Decimal("5"))

    def test_fee_falls_back_to_portfolio_default(self):
        command = build_command(
            TransactionType.SELL,
            {"symbol": "AAPL", "quantity": 1, "price": 10, "currency": "USD"},
            default_fee=Decimal("7"),
        )
        assert command.fee == Decimal("7")

    def test_explicit_zero_fee_beats_default(self):
        command = build_command(
            "BUY",
            {"symbol": "AAPL", "quantity": 1, "price": 10, "currency": "USD", "fee": 0},
            default_fee=Decimal("7"),
        )
        assert command.fee == Decimal("0")

    def test_no_fee_anywhere_is_zero(self):
        command = build_command("BUY", {"symbol": "AAPL", "quantity": 1, "price": 10, "currency": "USD"})
        assert command.fee == Decimal("0")

    def test_convert_fields(self):
        command = build_command(
            "CONVERT",
            {"amount": "100", "from_currency": "USD", "to_currency": "ILS", "fx_rate": "3.65"},
        )
        assert command == ConvertCommand(Decimal("100"), Currency.USD, Currency.ILS, Decimal("3.65"))

    def test_deposit_fields(self):
        command = build_command("DEPOSIT", {"amount": 50, "currency": "ILS"})
        assert command == DepositCommand(Decimal("50"), Currency.ILS)

    @pytest.mark.parametrize(
        "kind,fields,field",
        [
            ("SPLIT", {}, "type"),
            ("BUY", {"quantity": 1, "price": 1, "currency": "USD"}, "symbol"),
            ("BUY", {"symbol": "AAPL", "price": 1, "currency": "USD"}, "quantity"),
            ("BUY", {"symbol": "AAPL", "quantity": 0, "price": 1, "currency": "USD"}, "quantity"),
            ("SELL", {"symbol": "AAPL", "quantity": 1, "price": -1, "currency": "USD"}, "price"),
            ("BUY", {"symbol": "AAPL", "quantity": 1, "price": 1, "currency": "USD", "fee": -1}, "fee"),
            ("BUY", {"symbol": "AAPL", "quantity": 1, "price": 1}, "currency"),
            ("BUY", {"symbol": "AAPL", "quantity": 1, "price": 1, "currency": "EUR"}, "currency"),
            ("BUY", {"symbol": "AAPL", "quantity": "ten", "price": 1, "currency": "USD"}, "quantity"),
            ("BUY", {"symbol": "AAPL", "quantity": "0.123456789", "price": 1, "currency": "USD"}, "quantity"),
            ("SELL", {"symbol": "AAPL", "quantity": 1, "price": "1.000000001", "currency": "USD"}, "price"),
            ("BUY", {"symbol": "AAPL", "quantity": "NaN", "price": 1, "currency": "USD"}, "quantity"),
            ("DEPOSIT", {"amount": "Infinity", "currency": "USD"}, "amount"),
            ("DEPOSIT", {"currency": "USD"}, "amount"),
            ("WITHDRAW", {"amount": 0, "currency": "USD"}, "amount"),
            ("DIVIDEND", {"amount": 5}, "currency"),
            ("CONVERT", {"amount": 1, "from_currency": "USD", "to_currency": "USD", "fx_rate": 1}, "to_currency"),
            ("CONVERT", {"amount": 1, "from_currency": "USD", "to_currency": "ILS"}, "fx_rate"),
        ],
    )
    def test_invalid_fields(self, kind, fields, field):
        with pytest.raises(ValidationError) as exc_info:
            build_command(kind, fields)
        assert exc_info.value.field == field

    def test_eight_decimal_places_are_accepted(self):
        command = build_command(
            "BUY",
            {"symbol": "BTC", "quantity": "0.12345678", "price": "100.50000000000", "currency": "USD"},
        )

        assert command.quantity == Decimal("0.12345678")
        assert command.price == Decimal("100.5")
