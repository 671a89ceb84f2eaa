"""Tests for the shift derivation engine."""
from dataclasses import replace
from datetime import date

import pytest

from config import DEFAULT_GAS_PRICE, EngineConfig, TimeFormat
from domain import Break, ShiftInput
from services import ShiftCalculator, parse_decimal


def make_input(**overrides) -> ShiftInput:
    values = dict(
        date=date(2025, 3, 14),
        start="9:00 AM",
        end="5:00 PM",
        gross="150.00",
        miles_start="1,000",
        miles_end="1,100",
        price_per_gal="3.50",
        breaks=(Break("12:00 PM", "12:30 PM"),),
    )
    values.update(overrides)
    return ShiftInput(**values)


class TestParseDecimal:
    """Locale-free numeric parsing."""

    @pytest.mark.parametrize("value,expected", [
        ("12,345.60", 12345.6),
        (" 42 ", 42.0),
        ("-3.5", -3.5),
        (7, 7.0),
        (2.25, 2.25),
    ])
    def test_parses(self, value, expected):
        assert parse_decimal(value) == expected

    @pytest.mark.parametrize("value", [None, "", "   ", "abc", "nan", "inf", True])
    def test_falls_back_to_default(self, value):
        assert parse_decimal(value) == 0.0
        assert parse_decimal(value, 3.272) == 3.272


class TestDeriveShift:
    """Derived fields of a single shift."""

    def test_full_derivation(self):
        rec = ShiftCalculator().derive_shift(make_input())
        assert rec.shift_minutes == 480
        assert rec.break_minutes == 30
        assert rec.working_minutes == 450
        assert rec.miles_start == 1000.0
        assert rec.miles_end == 1100.0
        assert rec.miles_driven == 100.0
        assert rec.gallons == 100 / 26
        assert rec.gas_cost == rec.gallons * 3.5
        assert rec.net == 150.0 - rec.gas_cost
        assert rec.hourly == rec.net / (450 / 60)
        assert rec.id is None

    def test_gallons_not_rounded(self):
        rec = ShiftCalculator().derive_shift(make_input(price_per_gal=None))
        assert rec.gallons == 100 / 26
        assert rec.price_per_gal == DEFAULT_GAS_PRICE
        assert rec.gas_cost == (100 / 26) * DEFAULT_GAS_PRICE

    def test_mpg_comes_from_config(self):
        rec = ShiftCalculator(EngineConfig(mpg=30.9)).derive_shift(make_input())
        assert rec.gallons == 100 / 30.9

    def test_overnight_shift(self):
        rec = ShiftCalculator().derive_shift(make_input(start="10:00 PM", end="2:00 AM", breaks=()))
        assert rec.shift_minutes == 240
        assert rec.working_minutes == 240

    def test_breaks_longer_than_shift_clamp_to_zero(self):
        raw = make_input(start="9:00 AM", end="10:00 AM",
                         breaks=(Break("9:00 AM", "11:00 AM"),))
        rec = ShiftCalculator().derive_shift(raw)
        assert rec.break_minutes == 120
        assert rec.working_minutes == 0
        assert rec.working_minutes <= rec.shift_minutes

    @pytest.mark.parametrize("gross", ["0", "250", "-10"])
    def test_hourly_is_placeholder_without_working_time(self, gross):
        rec = ShiftCalculator().derive_shift(make_input(start="", end="", gross=gross))
        assert rec.working_minutes == 0
        assert rec.hourly is None

    def test_negative_miles_pass_through(self):
        rec = ShiftCalculator().derive_shift(make_input(miles_start="1,100", miles_end="1,000"))
        assert rec.miles_driven == -100.0
        assert rec.gas_cost < 0

    def test_bad_numbers_count_as_zero(self):
        rec = ShiftCalculator().derive_shift(make_input(gross="lots", miles_start="?", miles_end=""))
        assert rec.gross == 0.0
        assert rec.miles_driven == 0.0
        assert rec.net == 0.0

    def test_incomplete_breaks_are_dropped(self):
        raw = make_input(breaks=(Break("12:00 PM", "12:30 PM"), Break("2:00 PM", "")))
        rec = ShiftCalculator().derive_shift(raw)
        assert rec.breaks == (Break("12:00 PM", "12:30 PM"),)
        assert rec.break_minutes == 30

    def test_twenty_four_hour_config(self):
        calc = ShiftCalculator(EngineConfig(time_format=TimeFormat.TWENTY_FOUR_HOUR))
        rec = calc.derive_shift(make_input(start="09:00", end="17:00", breaks=()))
        assert rec.shift_minutes == 480
        # 12-hour strings are not accepted in 24-hour mode
        assert calc.derive_shift(make_input(breaks=())).shift_minutes == 0

    def test_rederive_is_identical(self):
        calc = ShiftCalculator()
        rec = calc.derive_shift(make_input())
        again = calc.derive_shift(rec.to_input())
        assert again == rec
        assert repr(again) == repr(rec)

    def test_recompute_keeps_id(self):
        calc = ShiftCalculator()
        rec = calc.derive_shift(make_input())
        saved = replace(rec, id=7)
        assert calc.recompute(saved) == saved


class TestInputWarnings:
    """Non-blocking validation messages."""

    def test_clean_input_has_no_warnings(self):
        assert ShiftCalculator().input_warnings(make_input()) == []

    def test_reports_each_problem(self):
        raw = make_input(start="13:00 PM", end="", gross="abc",
                         miles_start="200", miles_end="100",
                         breaks=(Break("1:00 PM", ""),))
        warnings = ShiftCalculator().input_warnings(raw)
        assert len(warnings) == 5
        assert any("Start time" in w for w in warnings)
        assert any("End time is missing" in w for w in warnings)
        assert any("Gross pay" in w for w in warnings)
        assert any("negative" in w for w in warnings)
        assert any("Break 1" in w for w in warnings)
