# store.py
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from datetime import date
from typing import Iterable, List, Tuple

from aggregation import WeekTotal, summarize, weekly_totals
from config import EngineConfig
from domain import ShiftInput, ShiftRecord, SummaryView
from repository import ShiftRepository
from services import ShiftCalculator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RestoreResult:
    added: int
    skipped: int


class ShiftStore:
    """
    The shift collection plus the backend it is persisted to.

    Every mutation goes to the repository first and only then to the
    in-memory list, so a StorageError leaves the list unchanged. Mutations
    hold a reentrant lock: one store is shared by every Streamlit session.
    """
    def __init__(self, repository: ShiftRepository, config: EngineConfig | None = None):
        self.repository = repository
        self.config = config or EngineConfig()
        self.calculator = ShiftCalculator(self.config)
        self._records: List[ShiftRecord] = []
        self._lock = threading.RLock()

    def load(self) -> "ShiftStore":
        with self._lock:
            self._records = list(self.repository.list_all())
            logger.info("Loaded %d shifts", len(self._records))
        return self

    @property
    def records(self) -> Tuple[ShiftRecord, ...]:
        with self._lock:
            return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def _index_of(self, record_id: int) -> int:
        for i, r in enumerate(self._records):
            if r.id == record_id:
                return i
        raise KeyError(record_id)

    def get(self, record_id: int) -> ShiftRecord:
        with self._lock:
            return self._records[self._index_of(record_id)]

    def add(self, raw: ShiftInput) -> ShiftRecord:
        record = self.calculator.derive_shift(raw)
        with self._lock:
            record = self.repository.add(record)
            self._records.append(record)
        logger.info("Added shift %s on %s", record.id, record.date)
        return record

    def edit(self, record_id: int, raw: ShiftInput) -> ShiftRecord:
        """Replaces a record in place; all derived fields are recomputed."""
        record = replace(self.calculator.derive_shift(raw), id=record_id)
        with self._lock:
            i = self._index_of(record_id)
            self.repository.update(record)
            self._records[i] = record
        logger.info("Updated shift %s on %s", record_id, record.date)
        return record

    def delete(self, record_id: int) -> None:
        with self._lock:
            i = self._index_of(record_id)
            self.repository.delete(record_id)
            del self._records[i]
        logger.info("Deleted shift %s", record_id)

    def delete_at(self, position: int) -> None:
        with self._lock:
            record = self._records[position]
            if record.id is None:
                del self._records[position]
            else:
                self.delete(record.id)

    def has_date(self, day: date) -> bool:
        return any(r.date == day for r in self.records)

    def restore(self, incoming: Iterable[ShiftInput]) -> RestoreResult:
        """
        Merges backup entries into the collection. An entry whose date is
        already present (including one merged earlier in this call) is skipped.
        """
        added = skipped = 0
        with self._lock:
            seen = {r.date for r in self._records}
            for raw in incoming:
                if raw.date in seen:
                    skipped += 1
                    continue
                self.add(raw)
                seen.add(raw.date)
                added += 1
        logger.info("Restore finished: %d added, %d skipped", added, skipped)
        return RestoreResult(added=added, skipped=skipped)

    def summary(self, reference_date: date) -> SummaryView:
        return summarize(self.records, reference_date, self.config.week_start)

    def weekly(self) -> List[WeekTotal]:
        return weekly_totals(self.records, self.config.week_start)


__all__ = ["RestoreResult", "ShiftStore"]
