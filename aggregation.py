# aggregation.py
"""Week bucketing and earnings summaries over a record collection."""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, Iterable, List, Tuple

from config import WeekStart
from domain import ShiftRecord, SummaryPair, SummaryView

WeekKey = Tuple[int, int]  # (week number, year)


def week_key(day: date, week_start: WeekStart = WeekStart.ISO) -> WeekKey:
    """
    (week number, year) of `day`.

    The date is moved to its week's anchor day (Thursday for ISO weeks,
    Saturday for Sunday-start weeks) and the week is counted from January 1
    of the anchor's year, so weeks spanning New Year land in one year only.
    """
    if week_start is WeekStart.SUNDAY:
        days_since_sunday = (day.weekday() + 1) % 7
        anchor = day + timedelta(days=6 - days_since_sunday)
    else:
        anchor = day + timedelta(days=3 - day.weekday())
    week = (anchor.timetuple().tm_yday - 1) // 7 + 1
    return (week, anchor.year)


def week_bounds(key: WeekKey, week_start: WeekStart = WeekStart.ISO) -> tuple[date, date]:
    """First and last day of the week identified by `key`."""
    week, year = key
    jan1 = date(year, 1, 1)
    anchor_weekday = 5 if week_start is WeekStart.SUNDAY else 3
    first_anchor = jan1 + timedelta(days=(anchor_weekday - jan1.weekday()) % 7)
    anchor = first_anchor + timedelta(weeks=week - 1)
    first = anchor - timedelta(days=6 if week_start is WeekStart.SUNDAY else 3)
    return first, first + timedelta(days=6)


def _hourly(amount: float, minutes: int) -> float | None:
    if minutes <= 0:
        return None
    return amount / (minutes / 60)


def summarize(records: Iterable[ShiftRecord], reference_date: date,
              week_start: WeekStart = WeekStart.ISO) -> SummaryView:
    """
    Current-week totals, all-time totals and average hourly rate.

    Net and gross are summed independently. With no records at all every
    value is a placeholder (None); an average rate needs some working time.
    """
    records = tuple(records)
    if not records:
        return SummaryView.empty()

    current = week_key(reference_date, week_start)
    week_net = week_gross = 0.0
    total_net = total_gross = 0.0
    total_minutes = 0
    for r in records:
        total_net += r.net
        total_gross += r.gross
        total_minutes += r.working_minutes
        if week_key(r.date, week_start) == current:
            week_net += r.net
            week_gross += r.gross

    return SummaryView(
        week=SummaryPair(net=week_net, gross=week_gross),
        overall=SummaryPair(net=total_net, gross=total_gross),
        average_hourly=SummaryPair(
            net=_hourly(total_net, total_minutes),
            gross=_hourly(total_gross, total_minutes),
        ),
    )


@dataclass(frozen=True)
class WeekTotal:
    key: WeekKey
    first_day: date
    last_day: date
    net: float
    gross: float
    working_minutes: int
    shifts: int

    @property
    def hourly(self) -> SummaryPair:
        return SummaryPair(net=_hourly(self.net, self.working_minutes),
                           gross=_hourly(self.gross, self.working_minutes))


def weekly_totals(records: Iterable[ShiftRecord],
                  week_start: WeekStart = WeekStart.ISO) -> List[WeekTotal]:
    """Per-week totals, newest week first."""
    net: Dict[WeekKey, float] = defaultdict(float)
    gross: Dict[WeekKey, float] = defaultdict(float)
    minutes: Dict[WeekKey, int] = defaultdict(int)
    count: Dict[WeekKey, int] = defaultdict(int)
    for r in records:
        key = week_key(r.date, week_start)
        net[key] += r.net
        gross[key] += r.gross
        minutes[key] += r.working_minutes
        count[key] += 1

    result = []
    for key in sorted(count, key=lambda k: (k[1], k[0]), reverse=True):
        first, last = week_bounds(key, week_start)
        result.append(WeekTotal(key, first, last, net[key], gross[key], minutes[key], count[key]))
    return result


__all__ = ["WeekKey", "WeekTotal", "summarize", "week_bounds", "week_key", "weekly_totals"]
