"""Tests for week bucketing and summaries."""
from datetime import date, timedelta

import pytest

from aggregation import summarize, week_bounds, week_key, weekly_totals
from config import WeekStart
from domain import DisplayMode, ShiftInput, SummaryView
from services import ShiftCalculator


def record(day: date, gross: float, start="9:00 AM", end="1:00 PM", miles=("0", "0")):
    return ShiftCalculator().derive_shift(ShiftInput(
        date=day, start=start, end=end, gross=gross,
        miles_start=miles[0], miles_end=miles[1],
    ))


class TestWeekKey:
    """Week numbering conventions."""

    @pytest.mark.parametrize("day", [
        date(2020, 12, 31), date(2021, 1, 3), date(2021, 1, 4),
        date(2024, 12, 30), date(2025, 6, 15), date(2026, 10, 19),
    ])
    def test_iso_matches_isocalendar(self, day):
        iso = day.isocalendar()
        assert week_key(day) == (iso[1], iso[0])

    def test_year_boundary_belongs_to_anchor_year(self):
        # Mon 2024-12-30 is in ISO week 1 of 2025
        assert week_key(date(2024, 12, 30)) == (1, 2025)
        # Sun 2021-01-03 is in ISO week 53 of 2020
        assert week_key(date(2021, 1, 3)) == (53, 2020)

    def test_same_week_number_different_years(self):
        a, b = date(2024, 3, 14), date(2025, 3, 13)
        assert week_key(a)[0] == week_key(b)[0]
        assert week_key(a) != week_key(b)

    def test_sunday_start(self):
        # 2025-03-09 is a Sunday: it opens a new week
        sat, sun = date(2025, 3, 8), date(2025, 3, 9)
        assert week_key(sat, WeekStart.SUNDAY) != week_key(sun, WeekStart.SUNDAY)
        for offset in range(7):
            assert week_key(sun + timedelta(days=offset), WeekStart.SUNDAY) == week_key(sun, WeekStart.SUNDAY)
        # ISO puts Sat and Sun together
        assert week_key(sat) == week_key(sun)

    @pytest.mark.parametrize("week_start", list(WeekStart))
    def test_bounds_contain_the_day(self, week_start):
        day = date(2025, 1, 1)
        for offset in range(0, 400, 11):
            d = day + timedelta(days=offset)
            first, last = week_bounds(week_key(d, week_start), week_start)
            assert first <= d <= last
            assert (last - first).days == 6


class TestSummarize:
    """Current-week, all-time and average hourly summaries."""

    def test_empty_is_placeholder(self):
        view = summarize([], date(2025, 3, 14))
        assert view == SummaryView.empty()
        assert view.is_empty
        assert view.week.net is None and view.overall.gross is None
        assert view.average_hourly.pick(DisplayMode.NET) is None

    def test_week_and_overall(self):
        ref = date(2025, 3, 14)  # Friday
        records = [
            record(date(2025, 3, 10), 100),
            record(date(2025, 3, 13), 80, miles=("1,000", "1,026")),
            record(date(2025, 3, 3), 60),
            record(date(2024, 3, 14), 40),  # same week number, last year
        ]
        view = summarize(records, ref)
        gas = records[1].gas_cost
        assert view.week.gross == 180
        assert view.week.net == pytest.approx(180 - gas)
        assert view.overall.gross == 280
        assert view.overall.net == pytest.approx(280 - gas)
        minutes = sum(r.working_minutes for r in records)
        assert view.average_hourly.gross == pytest.approx(280 / (minutes / 60))
        assert view.average_hourly.net == pytest.approx((280 - gas) / (minutes / 60))

    def test_no_current_week_records_sum_to_zero(self):
        view = summarize([record(date(2025, 1, 6), 50)], date(2025, 3, 14))
        assert view.week.net == 0.0
        assert view.week.gross == 0.0
        assert view.overall.gross == 50

    def test_average_hourly_placeholder_without_working_time(self):
        view = summarize([record(date(2025, 3, 14), 50, start="", end="")], date(2025, 3, 14))
        assert view.overall.gross == 50
        assert view.average_hourly.net is None
        assert view.average_hourly.gross is None

    def test_display_mode_picks_side(self):
        view = summarize([record(date(2025, 3, 14), 50, miles=("0", "26"))], date(2025, 3, 14))
        assert view.week.pick(DisplayMode.GROSS) == 50
        assert view.week.pick(DisplayMode.NET) == view.week.net

    def test_sunday_week_start_changes_bucket(self):
        ref = date(2025, 3, 9)  # Sunday
        records = [record(date(2025, 3, 8), 10), record(date(2025, 3, 9), 20)]
        assert summarize(records, ref).week.gross == 30
        assert summarize(records, ref, WeekStart.SUNDAY).week.gross == 20

    def test_accepts_generator(self):
        view = summarize((r for r in [record(date(2025, 3, 14), 5)]), date(2025, 3, 14))
        assert view.overall.gross == 5


def test_weekly_totals_newest_first():
    records = [
        record(date(2024, 12, 31), 10),
        record(date(2025, 3, 10), 20),
        record(date(2025, 3, 12), 30),
    ]
    weeks = weekly_totals(records)
    assert [w.key for w in weeks] == [week_key(date(2025, 3, 10)), (1, 2025)]
    assert weeks[0].gross == 50
    assert weeks[0].shifts == 2
    assert weeks[0].working_minutes == 480
    assert weeks[0].hourly.gross == pytest.approx(50 / 8)
    assert weeks[1].first_day == date(2024, 12, 30)


def test_weekly_totals_empty():
    assert weekly_totals([]) == []
