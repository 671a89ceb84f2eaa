# utils.py
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping

import pandas as pd

from config import BACKUP_VERSION
from domain import Break, ShiftInput, ShiftRecord

PLACEHOLDER = "–"

EXPORT_COLUMNS = [
    "Date",
    "Start",
    "End",
    "Shift Duration (min)",
    "Break Duration (min)",
    "Working Duration (min)",
    "Gross Pay",
    "Net Profit",
    "Hourly Rate",
    "Miles Start",
    "Miles End",
    "Miles Driven",
    "Gallons Used",
    "Price/gal",
    "Gas Cost",
    "Breaks",
]


class BackupFormatError(ValueError):
    """The payload is not a DashTrack backup."""


def format_money(x: float | None, placeholder: str = PLACEHOLDER) -> str:
    if x is None:
        return placeholder
    return f"{x:.2f}"


def editable_number(x: float, thousands: bool = False) -> str:
    """Text for an edit field that parses back to exactly `x`."""
    if float(x).is_integer():
        x = int(x)
    return f"{x:,}" if thousands else str(x)


def format_breaks(breaks: Iterable[Break]) -> str:
    return "|".join(f"{b.start}-{b.end}" for b in breaks)


def parse_breaks(text: str) -> tuple[Break, ...]:
    """Inverse of format_breaks: "12:00 PM-12:30 PM|3:00 PM-3:10 PM"."""
    result = []
    for part in (text or "").split("|"):
        start, sep, end = part.partition("-")
        if part.strip():
            result.append(Break(start=start.strip(), end=end.strip() if sep else ""))
    return tuple(result)


def shifts_to_dataframe(shifts: Iterable[ShiftRecord]) -> pd.DataFrame:
    """One row per shift, decimals as 2-digit strings, in collection order."""
    rows = []
    for s in shifts:
        rows.append({
            "Date": s.date.isoformat(),
            "Start": s.start,
            "End": s.end,
            "Shift Duration (min)": s.shift_minutes,
            "Break Duration (min)": s.break_minutes,
            "Working Duration (min)": s.working_minutes,
            "Gross Pay": format_money(s.gross),
            "Net Profit": format_money(s.net),
            "Hourly Rate": format_money(s.hourly, placeholder=""),
            "Miles Start": format_money(s.miles_start),
            "Miles End": format_money(s.miles_end),
            "Miles Driven": format_money(s.miles_driven),
            "Gallons Used": format_money(s.gallons),
            "Price/gal": format_money(s.price_per_gal),
            "Gas Cost": format_money(s.gas_cost),
            "Breaks": format_breaks(s.breaks),
        })
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)


def shifts_to_csv(shifts: Iterable[ShiftRecord]) -> str:
    return shifts_to_dataframe(shifts).to_csv(index=False, lineterminator="\n")


def export_filename(day: date, ext: str) -> str:
    return f"dashtrack_data_{day.isoformat()}.{ext}"


# =========================
# Backup / restore
# =========================
def record_to_entry(r: ShiftRecord) -> Dict[str, Any]:
    entry = {
        "date": r.date.isoformat(),
        "start": r.start,
        "end": r.end,
        "shiftMinutes": r.shift_minutes,
        "breakMinutes": r.break_minutes,
        "workingMinutes": r.working_minutes,
        "net": r.net,
        "gross": r.gross,
        "milesStart": r.miles_start,
        "milesEnd": r.miles_end,
        "milesDriven": r.miles_driven,
        "gallons": r.gallons,
        "pricePerGal": r.price_per_gal,
        "gasCost": r.gas_cost,
        "hourly": r.hourly,
        "breaks": [{"start": b.start, "end": b.end} for b in r.breaks],
    }
    if r.id is not None:
        entry["id"] = r.id
    return entry


def build_backup(records: Iterable[ShiftRecord], export_date: datetime) -> Dict[str, Any]:
    return {
        "exportDate": export_date.isoformat(),
        "version": BACKUP_VERSION,
        "entries": [record_to_entry(r) for r in records],
    }


def entry_to_input(entry: Mapping[str, Any]) -> ShiftInput:
    """Raw inputs of a backup entry; derived fields in the file are ignored."""
    try:
        day = date.fromisoformat(str(entry["date"])[:10])
    except (KeyError, ValueError) as e:
        raise BackupFormatError(f"Entry without a valid date: {entry!r}") from e
    breaks = entry.get("breaks") or []
    if not isinstance(breaks, list):
        raise BackupFormatError(f"Breaks of {day} must be a list")
    try:
        parsed_breaks = tuple(Break.coerce(b) for b in breaks)
    except (TypeError, ValueError) as e:
        raise BackupFormatError(f"Malformed break in entry {day}: {e}") from e
    return ShiftInput(
        date=day,
        start=str(entry.get("start") or ""),
        end=str(entry.get("end") or ""),
        gross=entry.get("gross"),
        miles_start=entry.get("milesStart"),
        miles_end=entry.get("milesEnd"),
        price_per_gal=entry.get("pricePerGal"),
        breaks=parsed_breaks,
    )


def parse_backup(payload: Any) -> List[ShiftInput]:
    if not isinstance(payload, Mapping) or not isinstance(payload.get("entries"), list):
        raise BackupFormatError("Not a DashTrack backup: expected an object with an 'entries' list")
    result = []
    for entry in payload["entries"]:
        if not isinstance(entry, Mapping):
            raise BackupFormatError(f"Entry is not an object: {entry!r}")
        result.append(entry_to_input(entry))
    return result


__all__ = [
    "BackupFormatError",
    "EXPORT_COLUMNS",
    "PLACEHOLDER",
    "build_backup",
    "export_filename",
    "format_breaks",
    "format_money",
    "parse_backup",
    "record_to_entry",
    "shifts_to_csv",
    "shifts_to_dataframe",
]
