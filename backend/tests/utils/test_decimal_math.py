# backend/tests/utils/test_decimal_math.py
"""
Unit tests for Decimal helpers.

Test Coverage:
- to_decimal: None, float, str and int inputs
- round_to: ROUND_HALF_UP at 2 dp and custom precision
- safe_divide / percent_of: zero denominators degrade to 0
- money_context: precision is local to the block
"""

from decimal import Decimal, InvalidOperation, getcontext

import pytest

from tracker.utils.decimal_math import (
    MONEY_PRECISION,
    ZERO,
    money_context,
    percent_of,
    round_to,
    safe_divide,
    to_decimal,
)


class TestToDecimal:

    def test_none_is_zero(self):
        assert to_decimal(None) == ZERO

    def test_float_goes_through_str(self):
        assert to_decimal(0.1) == Decimal("0.1")

    def test_string_and_int(self):
        assert to_decimal("12.345") == Decimal("12.345")
        assert to_decimal(7) == Decimal("7")

    def test_decimal_is_returned_unchanged(self):
        value = Decimal("1.23")
        assert to_decimal(value) is value

    def test_invalid_string_raises(self):
        with pytest.raises(InvalidOperation):
            to_decimal("abc")


class TestRoundTo:

    def test_half_up_at_two_places(self):
        assert round_to(Decimal("1.005")) == Decimal("1.01")
        assert round_to(Decimal("2.675")) == Decimal("2.68")

    def test_negative_half_rounds_away_from_zero(self):
        assert round_to(Decimal("-1.005")) == Decimal("-1.01")

    def test_custom_precision(self):
        assert round_to(Decimal("3.14159"), 4) == Decimal("3.1416")

    def test_result_has_exact_places(self):
        assert str(round_to(Decimal("5"))) == "5.00"

    def test_none_rounds_to_zero(self):
        assert round_to(None) == Decimal("0.00")


class TestSafeDivide:

    def test_regular_division(self):
        assert safe_divide(Decimal("10"), Decimal("4")) == Decimal("2.5")

    def test_zero_denominator_returns_zero(self):
        assert safe_divide(Decimal("10"), ZERO) == ZERO

    def test_percent_of(self):
        assert percent_of(Decimal("25"), Decimal("200")) == Decimal("12.5")

    def test_percent_of_zero_whole_returns_zero(self):
        assert percent_of(Decimal("25"), ZERO) == ZERO


class TestMoneyContext:

    def test_precision_applies_inside_block_only(self):
        outer = getcontext().prec
        with money_context() as ctx:
            assert ctx.prec == MONEY_PRECISION
            assert getcontext().prec == MONEY_PRECISION
        assert getcontext().prec == outer

    def test_division_is_limited_to_money_precision(self):
        with money_context():
            third = Decimal(1) / Decimal(3)
        assert len(third.as_tuple().digits) == MONEY_PRECISION
