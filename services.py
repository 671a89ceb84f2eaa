# services.py
from __future__ import annotations

import dataclasses
import logging
import math
from typing import Any

from config import EngineConfig, TimeFormat
from domain import Break, ShiftInput, ShiftRecord
from timecalc import elapsed_minutes, parse_time_of_day, total_break_minutes

logger = logging.getLogger(__name__)


def parse_decimal(value: Any, default: float | None = 0.0) -> float | None:
    """Locale-free number parsing: "12,345.60" -> 12345.6. Falls back to `default`."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).replace(",", "").strip()
        if not text:
            return default
        try:
            number = float(text)
        except ValueError:
            logger.debug("Unparsable number %r, using %s", value, default)
            return default
    if not math.isfinite(number):
        return default
    return number


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class ShiftCalculator:
    """Business rules for deriving a shift's durations, mileage, gas cost and pay."""
    def __init__(self, config: EngineConfig | None = None):
        self.config = config or EngineConfig()

    def derive_shift(self, raw: ShiftInput) -> ShiftRecord:
        """Builds a full record from raw inputs. Never raises on bad input."""
        fmt = self.config.time_format
        breaks = tuple(b for b in (Break.coerce(b) for b in raw.breaks) if b.is_complete)

        shift_minutes = elapsed_minutes(raw.start, raw.end, fmt)
        break_minutes = total_break_minutes(breaks, fmt)
        working_minutes = max(shift_minutes - break_minutes, 0)

        gross = parse_decimal(raw.gross)
        miles_start = parse_decimal(raw.miles_start)
        miles_end = parse_decimal(raw.miles_end)
        price_per_gal = parse_decimal(raw.price_per_gal, self.config.default_price_per_gal)

        miles_driven = miles_end - miles_start
        gallons = miles_driven / self.config.mpg
        gas_cost = gallons * price_per_gal
        net = gross - gas_cost
        # No rate for a zero-length shift; 0.0 would read as a real $0/hr
        hourly = net / (working_minutes / 60) if working_minutes > 0 else None

        return ShiftRecord(
            date=raw.date,
            start=raw.start,
            end=raw.end,
            shift_minutes=shift_minutes,
            break_minutes=break_minutes,
            working_minutes=working_minutes,
            gross=gross,
            gas_cost=gas_cost,
            net=net,
            miles_start=miles_start,
            miles_end=miles_end,
            miles_driven=miles_driven,
            gallons=gallons,
            price_per_gal=price_per_gal,
            hourly=hourly,
            breaks=breaks,
        )

    def recompute(self, record: ShiftRecord) -> ShiftRecord:
        """Re-derives every field from the record's own inputs, keeping its id."""
        return dataclasses.replace(self.derive_shift(record.to_input()), id=record.id)

    def input_warnings(self, raw: ShiftInput) -> list[str]:
        """Non-blocking problems with a form snapshot, for display next to the form."""
        fmt = self.config.time_format
        example = "9:00 AM" if fmt is TimeFormat.TWELVE_HOUR else "09:00"
        warnings = []
        for label, value in (("Start", raw.start), ("End", raw.end)):
            if not value:
                warnings.append(f"{label} time is missing.")
            elif parse_time_of_day(value, fmt) is None:
                warnings.append(f"{label} time {value!r} is not a valid time (e.g. {example}).")

        for label, value in (("Gross pay", raw.gross), ("Miles start", raw.miles_start),
                             ("Miles end", raw.miles_end), ("Price/gal", raw.price_per_gal)):
            if not _is_blank(value) and parse_decimal(value, None) is None:
                warnings.append(f"{label} {value!r} is not a number; counting it as default.")

        miles_start = parse_decimal(raw.miles_start)
        miles_end = parse_decimal(raw.miles_end)
        if miles_end < miles_start:
            warnings.append("Miles end is lower than miles start; miles driven will be negative.")

        for i, b in enumerate((Break.coerce(b) for b in raw.breaks), start=1):
            if bool(b.start) != bool(b.end):
                warnings.append(f"Break {i} needs both a start and an end; it is ignored.")
            elif b.is_complete and (parse_time_of_day(b.start, fmt) is None
                                    or parse_time_of_day(b.end, fmt) is None):
                warnings.append(f"Break {i} has an invalid time; it counts as 0 min.")
        return warnings


__all__ = ["ShiftCalculator", "parse_decimal"]
