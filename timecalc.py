# timecalc.py
"""Clock-time parsing and elapsed-minute arithmetic.

Times are entered as text ("9:05 PM"). Any interval whose end is earlier
than its start is taken to cross midnight exactly once, so no interval is
ever longer than 24 h.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Iterable, Mapping

from config import TimeFormat
from domain import Break

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60

_TWELVE_HOUR_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*([AaPp][Mm])\s*$", re.ASCII)
_TWENTY_FOUR_HOUR_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$", re.ASCII)


def parse_time_of_day(text: str | None, time_format: TimeFormat = TimeFormat.TWELVE_HOUR) -> int | None:
    """Minutes since midnight, or None if `text` is not a valid clock time."""
    if not text:
        return None
    if time_format is TimeFormat.TWENTY_FOUR_HOUR:
        m = _TWENTY_FOUR_HOUR_RE.match(text)
        if not m:
            return None
        hour, minute = int(m.group(1)), int(m.group(2))
        if hour > 23 or minute > 59:
            return None
        return hour * 60 + minute

    m = _TWELVE_HOUR_RE.match(text)
    if not m:
        return None
    hour, minute = int(m.group(1)), int(m.group(2))
    if not 1 <= hour <= 12 or minute > 59:
        return None
    hour %= 12
    if m.group(3).upper() == "PM":
        hour += 12
    return hour * 60 + minute


def format_time_of_day(minutes: int, time_format: TimeFormat = TimeFormat.TWELVE_HOUR) -> str:
    """Inverse of parse_time_of_day (canonical spelling)."""
    minutes %= MINUTES_PER_DAY
    h, m = divmod(minutes, 60)
    if time_format is TimeFormat.TWENTY_FOUR_HOUR:
        return f"{h:02d}:{m:02d}"
    suffix = "AM" if h < 12 else "PM"
    return f"{(h % 12) or 12}:{m:02d} {suffix}"


def elapsed_minutes(start: str | None, end: str | None,
                    time_format: TimeFormat = TimeFormat.TWELVE_HOUR) -> int:
    """Minutes from start to end, rolling over midnight. 0 if either side is unusable."""
    if not start or not end:
        return 0
    t0 = parse_time_of_day(start, time_format)
    t1 = parse_time_of_day(end, time_format)
    if t0 is None or t1 is None:
        logger.debug("Unparsable interval %r-%r (%s), counting 0 min", start, end, time_format.value)
        return 0
    delta = t1 - t0
    if delta < 0:
        delta += MINUTES_PER_DAY  # passed midnight
    return delta


def total_break_minutes(breaks: Iterable[Break | Mapping[str, Any]],
                        time_format: TimeFormat = TimeFormat.TWELVE_HOUR) -> int:
    total = 0
    for b in breaks:
        b = Break.coerce(b)
        total += elapsed_minutes(b.start, b.end, time_format)
    return total


def format_minutes(minutes: int) -> str:
    """HH:MM rendering of a duration."""
    minutes = max(0, int(minutes))
    h, m = divmod(minutes, 60)
    return f"{h:02d}:{m:02d}"


__all__ = [
    "MINUTES_PER_DAY",
    "elapsed_minutes",
    "format_minutes",
    "format_time_of_day",
    "parse_time_of_day",
    "total_break_minutes",
]
