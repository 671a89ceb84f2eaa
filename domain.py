# domain.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Mapping, Sequence


@dataclass(frozen=True)
class Break:
    """A break interval inside a shift, as entered (time-of-day strings)."""
    start: str = ""
    end: str = ""

    @property
    def is_complete(self) -> bool:
        return bool(self.start and self.end)

    @classmethod
    def coerce(cls, value: "Break | Mapping[str, Any] | Sequence[str]") -> "Break":
        if isinstance(value, Break):
            return value
        if isinstance(value, Mapping):
            return cls(start=str(value.get("start") or ""), end=str(value.get("end") or ""))
        if isinstance(value, (str, bytes)):
            raise TypeError(f"break must be a start/end pair, not {value!r}")
        start, end = value
        return cls(start=str(start or ""), end=str(end or ""))


@dataclass(frozen=True)
class ShiftInput:
    """Raw form snapshot. Numeric fields may be text ("12,345.6") or numbers."""
    date: date
    start: str
    end: str
    gross: Any = None
    miles_start: Any = None
    miles_end: Any = None
    price_per_gal: Any = None
    breaks: tuple[Break, ...] = ()


@dataclass(frozen=True)
class ShiftRecord:
    """One derived shift. Never mutated; edits go through full replacement."""
    date: date
    start: str
    end: str
    shift_minutes: int
    break_minutes: int
    working_minutes: int
    gross: float
    gas_cost: float
    net: float
    miles_start: float
    miles_end: float
    miles_driven: float
    gallons: float
    price_per_gal: float
    hourly: float | None
    breaks: tuple[Break, ...] = ()
    id: int | None = None

    def to_input(self) -> ShiftInput:
        """The raw inputs this record was derived from."""
        return ShiftInput(
            date=self.date,
            start=self.start,
            end=self.end,
            gross=self.gross,
            miles_start=self.miles_start,
            miles_end=self.miles_end,
            price_per_gal=self.price_per_gal,
            breaks=self.breaks,
        )


class DisplayMode(str, Enum):
    NET = "net"
    GROSS = "gross"


@dataclass(frozen=True)
class SummaryPair:
    net: float | None = None
    gross: float | None = None

    def pick(self, mode: DisplayMode) -> float | None:
        return self.gross if mode is DisplayMode.GROSS else self.net


@dataclass(frozen=True)
class SummaryView:
    week: SummaryPair = field(default_factory=SummaryPair)
    overall: SummaryPair = field(default_factory=SummaryPair)
    average_hourly: SummaryPair = field(default_factory=SummaryPair)

    @classmethod
    def empty(cls) -> "SummaryView":
        return cls()

    @property
    def is_empty(self) -> bool:
        return self == SummaryView.empty()
