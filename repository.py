# repository.py
from __future__ import annotations

import dataclasses
import datetime as dt
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, List, Protocol

from sqlalchemy import JSON, Column, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import NullPool
from sqlmodel import Field, Session, SQLModel, create_engine, select

from domain import Break, ShiftRecord

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """A storage backend could not complete an operation."""


class ShiftRepository(Protocol):
    """What the store needs from a backend."""

    def add(self, record: ShiftRecord) -> ShiftRecord:
        """Persists a new record and returns it with `id` set."""
        raise NotImplementedError

    def update(self, record: ShiftRecord) -> None:
        raise NotImplementedError

    def delete(self, record_id: int) -> None:
        raise NotImplementedError

    def list_all(self) -> List[ShiftRecord]:
        raise NotImplementedError


class ShiftDB(SQLModel, table=True):
    __tablename__ = "shifts"

    id: int | None = Field(default=None, primary_key=True)
    date: dt.date = Field(index=True)
    start_time: str
    end_time: str
    shift_minutes: int
    break_minutes: int = 0
    working_minutes: int
    gross: float
    net: float
    hourly: float | None = None
    miles_start: float
    miles_end: float
    miles_driven: float
    gallons: float = 0.0
    price_per_gal: float = 0.0
    gas_cost: float = 0.0
    breaks: List[Dict[str, str]] = Field(default_factory=list, sa_column=Column(JSON))
    created_at: dt.datetime = Field(default_factory=lambda: dt.datetime.now(dt.timezone.utc), index=True)


def _breaks_to_json(breaks) -> List[Dict[str, str]]:
    return [{"start": b.start, "end": b.end} for b in breaks]


def _row_values(r: ShiftRecord) -> Dict[str, Any]:
    return dict(
        date=r.date,
        start_time=r.start,
        end_time=r.end,
        shift_minutes=r.shift_minutes,
        break_minutes=r.break_minutes,
        working_minutes=r.working_minutes,
        gross=r.gross,
        net=r.net,
        hourly=r.hourly,
        miles_start=r.miles_start,
        miles_end=r.miles_end,
        miles_driven=r.miles_driven,
        gallons=r.gallons,
        price_per_gal=r.price_per_gal,
        gas_cost=r.gas_cost,
        breaks=_breaks_to_json(r.breaks),
    )


def _row_to_record(row) -> ShiftRecord:
    return ShiftRecord(
        id=row.id,
        date=row.date,
        start=row.start_time,
        end=row.end_time,
        shift_minutes=row.shift_minutes,
        break_minutes=row.break_minutes,
        working_minutes=row.working_minutes,
        gross=row.gross,
        gas_cost=row.gas_cost,
        net=row.net,
        miles_start=row.miles_start,
        miles_end=row.miles_end,
        miles_driven=row.miles_driven,
        gallons=row.gallons,
        price_per_gal=row.price_per_gal,
        hourly=row.hourly,
        breaks=tuple(Break.coerce(b) for b in (row.breaks or [])),
    )


def build_engine(db_url: str, echo: bool = False):
    is_sqlite = db_url.startswith("sqlite")
    kwargs = {
        "echo": echo,
        "pool_pre_ping": True,
        "connect_args": {},
    }
    if is_sqlite:
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        # Serverless Postgres (Supabase/Neon): no local pool, short connect timeout
        kwargs["poolclass"] = NullPool
        kwargs["connect_args"] = {"connect_timeout": 10}
        if "sslmode=" not in db_url:
            db_url += ("&" if "?" in db_url else "?") + "sslmode=require"
    return create_engine(db_url, **kwargs)


class SqlShiftRepository:
    """Shift CRUD on Postgres (cloud) or SQLite."""
    def __init__(self, url: str = "sqlite:///dashtrack.db", echo: bool = False):
        self.url = url
        try:
            self.engine = build_engine(url, echo=echo)
            # Fail fast on an unreachable server
            with self.engine.connect() as conn:
                conn.execute(text("select 1"))
            SQLModel.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            raise StorageError(f"Could not open database: {e}") from e

    def add(self, record: ShiftRecord) -> ShiftRecord:
        try:
            with Session(self.engine) as session:
                row = ShiftDB(**_row_values(record))
                session.add(row)
                session.commit()
                session.refresh(row)
                return dataclasses.replace(record, id=row.id)
        except SQLAlchemyError as e:
            raise StorageError(f"Could not save shift for {record.date}: {e}") from e

    def update(self, record: ShiftRecord) -> None:
        if record.id is None:
            raise StorageError("Cannot update a shift that was never saved")
        try:
            with Session(self.engine) as session:
                row = session.get(ShiftDB, record.id)
                if row is None:
                    raise StorageError(f"Shift {record.id} not found")
                for k, v in _row_values(record).items():
                    setattr(row, k, v)
                session.add(row)
                session.commit()
        except SQLAlchemyError as e:
            raise StorageError(f"Could not update shift {record.id}: {e}") from e

    def delete(self, record_id: int) -> None:
        try:
            with Session(self.engine) as session:
                row = session.get(ShiftDB, record_id)
                if row is not None:
                    session.delete(row)
                    session.commit()
        except SQLAlchemyError as e:
            raise StorageError(f"Could not delete shift {record_id}: {e}") from e

    def list_all(self) -> List[ShiftRecord]:
        try:
            with Session(self.engine) as session:
                rows = session.exec(select(ShiftDB).order_by(ShiftDB.id)).all()
                return [_row_to_record(r) for r in rows]
        except SQLAlchemyError as e:
            raise StorageError(f"Could not load shifts: {e}") from e


class JsonFileShiftRepository:
    """
    Local fallback: every record in one JSON file, rewritten on each change.

    One lock per instance serializes each read-modify-write; the Streamlit
    process shares a single instance across sessions.
    """
    def __init__(self, path: Path | str):
        self.path = Path(path)
        self._lock = threading.Lock()
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Could not create {self.path.parent}: {e}") from e

    def _read(self) -> List[Dict[str, Any]]:
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Could not read {self.path}: {e}") from e
        if not isinstance(data, list):
            raise StorageError(f"{self.path} does not hold a list of shifts")
        return data

    def _write(self, rows: List[Dict[str, Any]]) -> None:
        tmp_name = None
        try:
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=self.path.parent,
                prefix=self.path.name + ".", suffix=".tmp", delete=False,
            ) as tmp:
                tmp_name = tmp.name
                json.dump(rows, tmp, indent=2)
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageError(f"Could not write {self.path}: {e}") from e

    @staticmethod
    def _to_row(record_id: int, r: ShiftRecord) -> Dict[str, Any]:
        row = _row_values(r)
        row["id"] = record_id
        row["date"] = r.date.isoformat()
        return row

    @staticmethod
    def _from_row(row: Dict[str, Any]) -> ShiftRecord:
        try:
            values = dict(row, date=dt.date.fromisoformat(row["date"]))
            return _row_to_record(SimpleNamespace(**values))
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise StorageError(f"Malformed shift row {row!r}: {e}") from e

    def _next_id(self, rows: List[Dict[str, Any]]) -> int:
        try:
            return max((int(r["id"]) for r in rows), default=0) + 1
        except (KeyError, TypeError, ValueError) as e:
            raise StorageError(f"{self.path} holds a shift without a valid id: {e}") from e

    def add(self, record: ShiftRecord) -> ShiftRecord:
        with self._lock:
            rows = self._read()
            new_id = self._next_id(rows)
            rows.append(self._to_row(new_id, record))
            self._write(rows)
        return dataclasses.replace(record, id=new_id)

    def update(self, record: ShiftRecord) -> None:
        with self._lock:
            rows = self._read()
            for i, row in enumerate(rows):
                if row.get("id") == record.id:
                    rows[i] = self._to_row(record.id, record)
                    self._write(rows)
                    return
        raise StorageError(f"Shift {record.id} not found")

    def delete(self, record_id: int) -> None:
        with self._lock:
            rows = self._read()
            kept = [r for r in rows if r.get("id") != record_id]
            if len(kept) != len(rows):
                self._write(kept)

    def list_all(self) -> List[ShiftRecord]:
        with self._lock:
            rows = self._read()
        return [self._from_row(r) for r in rows]


def open_repository(url: str, fallback_path: Path | str,
                    echo: bool = False) -> ShiftRepository:
    """The database at `url`, or the local JSON file if it cannot be opened."""
    try:
        return SqlShiftRepository(url, echo=echo)
    except StorageError as e:
        logger.warning("Primary store unavailable (%s); falling back to %s", e, fallback_path)
        return JsonFileShiftRepository(fallback_path)


__all__ = [
    "JsonFileShiftRepository",
    "ShiftDB",
    "ShiftRepository",
    "SqlShiftRepository",
    "StorageError",
    "build_engine",
    "open_repository",
]
