"""
Tests for the rate calculator.

Covers:
- Unit formulas (Hour, Day, Bag, Trip, Percent, Fixed)
- Rounding to 0.01 with ROUND_HALF_UP
- Unknown rate units (zero amount, warning logged)
- Numeric coercion of int/str/float inputs
"""

from decimal import Decimal

import pytest

from payroll_engines.rate_calculator import calculate_amount
from payroll_modules.payroll.models import DayType, RateUnit


# ===========================================================================
# Unit formulas
# ===========================================================================


class TestUnitFormulas:
    """Each rate unit maps to exactly one amount formula."""

    def test_hour_multiplies_rate_by_hours(self):
        assert calculate_amount(Decimal("10"), Decimal("8"), RateUnit.HOUR) == Decimal("80.00")

    @pytest.mark.parametrize("unit", ["Day", "Bag", "Trip"])
    def test_per_unit_rates(self, unit):
        assert calculate_amount(Decimal("2.50"), Decimal("12"), unit) == Decimal("30.00")

    def test_percent_applies_rate_to_base(self):
        # 5% of 1,234.00
        assert calculate_amount(Decimal("5"), Decimal("1234"), "Percent") == Decimal("61.70")

    def test_fixed_ignores_quantity(self):
        assert calculate_amount(Decimal("50"), Decimal("1"), "Fixed") == Decimal("50.00")
        assert calculate_amount(Decimal("50"), Decimal("7"), "Fixed") == Decimal("50.00")
        assert calculate_amount(Decimal("50"), Decimal("0"), "Fixed") == Decimal("50.00")

    def test_every_rate_unit_is_supported(self):
        for unit in RateUnit:
            amount = calculate_amount(Decimal("1"), Decimal("1"), unit)
            assert isinstance(amount, Decimal)


# ===========================================================================
# Rounding
# ===========================================================================


class TestRounding:
    """Amounts are rounded once, to 2 decimal places, half-up."""

    def test_half_up(self):
        assert calculate_amount(Decimal("0.125"), Decimal("1"), "Hour") == Decimal("0.13")

    def test_result_has_two_decimal_places(self):
        amount = calculate_amount(Decimal("3"), Decimal("1"), "Hour")
        assert amount.as_tuple().exponent == -2

    def test_percent_rounding(self):
        # 3% of 10.50 = 0.315 -> 0.32
        assert calculate_amount(Decimal("3"), Decimal("10.50"), "Percent") == Decimal("0.32")

    def test_rounding_is_idempotent(self):
        amount = calculate_amount(Decimal("7.333"), Decimal("3"), "Hour")
        assert calculate_amount(amount, Decimal("1"), "Hour") == amount


# ===========================================================================
# Unknown units and edge inputs
# ===========================================================================


class TestUnknownRateUnit:
    """An unrecognized unit yields zero instead of raising."""

    def test_unknown_unit_returns_zero(self):
        assert calculate_amount(Decimal("10"), Decimal("8"), "Kg") == Decimal("0.00")

    def test_unknown_unit_logs_warning(self, captured_logs):
        calculate_amount(Decimal("10"), Decimal("8"), "Kg")
        records = [r for r in captured_logs() if r["message"] == "rate_unit_unrecognized"]
        assert len(records) == 1
        assert records[0]["level"] == "WARNING"
        assert records[0]["rate_unit"] == "Kg"

    def test_unit_match_is_case_sensitive(self):
        assert calculate_amount(Decimal("10"), Decimal("8"), "hour") == Decimal("0.00")


class TestInputs:
    def test_int_and_str_inputs(self):
        assert calculate_amount(10, "8", "Hour") == Decimal("80.00")

    def test_float_inputs_use_decimal_text(self):
        # 0.1 * 3 would be 0.30000000000000004 in binary floating point
        assert calculate_amount(0.1, 3, "Hour") == Decimal("0.30")

    def test_zero_and_negative_computed_mechanically(self):
        assert calculate_amount(Decimal("0"), Decimal("8"), "Hour") == Decimal("0.00")
        assert calculate_amount(Decimal("-5"), Decimal("2"), "Trip") == Decimal("-10.00")

    def test_day_type_does_not_change_result(self):
        normal = calculate_amount(Decimal("10"), Decimal("8"), "Hour", DayType.BIASA)
        sunday = calculate_amount(Decimal("10"), Decimal("8"), "Hour", DayType.AHAD)
        holiday = calculate_amount(Decimal("10"), Decimal("8"), "Hour", DayType.UMUM)
        assert normal == sunday == holiday == Decimal("80.00")

    def test_non_numeric_rate_raises(self):
        with pytest.raises(ValueError):
            calculate_amount("ten", Decimal("8"), "Hour")
