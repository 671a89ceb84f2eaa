# config.py
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

APP_TITLE = "DashTrack"
BACKUP_VERSION = "1.0"

# Fixed MPG used to estimate gallons from miles driven
DEFAULT_MPG = 26.0
# AAA Provo-Orem metro average at the time the tool was first deployed
DEFAULT_GAS_PRICE = 3.272
DEFAULT_TZ = "America/Denver"


class WeekStart(str, Enum):
    """Week numbering convention used to bucket shifts."""
    ISO = "iso"          # Monday start, anchored on Thursday
    SUNDAY = "sunday"    # Sunday start, anchored on Saturday


class TimeFormat(str, Enum):
    TWELVE_HOUR = "12h"
    TWENTY_FOUR_HOUR = "24h"


@dataclass(frozen=True)
class EngineConfig:
    """Knobs that change calculation results; pass one explicitly to the engine."""
    mpg: float = DEFAULT_MPG
    week_start: WeekStart = WeekStart.ISO
    time_format: TimeFormat = TimeFormat.TWELVE_HOUR
    default_price_per_gal: float = DEFAULT_GAS_PRICE

    def __post_init__(self):
        if not self.mpg > 0:
            raise ValueError(f"mpg must be positive, got {self.mpg!r}")

    @classmethod
    def from_env(cls) -> "EngineConfig":
        return cls(
            mpg=_env_float("DASHTRACK_MPG", DEFAULT_MPG, positive=True),
            week_start=_env_enum("DASHTRACK_WEEK_START", WeekStart, WeekStart.ISO),
            time_format=_env_enum("DASHTRACK_TIME_FORMAT", TimeFormat, TimeFormat.TWELVE_HOUR),
            default_price_per_gal=_env_float("DASHTRACK_GAS_PRICE", DEFAULT_GAS_PRICE),
        )


def _env_float(name: str, default: float, positive: bool = False) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not a number, using %s", name, raw, default)
        return default
    if value != value or (positive and value <= 0):
        logger.warning("Ignoring %s=%r: out of range, using %s", name, raw, default)
        return default
    return value


def _env_enum(name: str, enum_cls, default):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return enum_cls(raw.strip().lower())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        logger.warning("Ignoring %s=%r: expected one of %s", name, raw, allowed)
        return default


# =========================
# Data directory / database URL
# =========================
def pick_data_dir() -> Path:
    """First writable directory among $DATA_DIR, /data and ./data."""
    candidates = []
    env = os.getenv("DATA_DIR")
    if env:
        candidates.append(Path(env))
    candidates += [Path("/data"), Path.cwd() / "data"]

    for p in candidates:
        try:
            p.mkdir(parents=True, exist_ok=True)
            t = p / ".rwtest"
            t.write_text("ok")
            t.unlink(missing_ok=True)
            return p
        except OSError:
            continue
    return Path.cwd()


def database_url(data_dir: Path) -> str:
    default_sqlite = f"sqlite:///{(data_dir / 'dashtrack.db').as_posix()}"
    return os.getenv("DATABASE_URL", default_sqlite)


def local_store_path(data_dir: Path) -> Path:
    return data_dir / "dashtrack_entries.json"


# =========================
# Time zone
# =========================
def local_tz() -> ZoneInfo:
    name = os.getenv("DASHTRACK_TZ", DEFAULT_TZ)
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown time zone %r, using %s", name, DEFAULT_TZ)
        return ZoneInfo(DEFAULT_TZ)


def today_local() -> date:
    return datetime.now(local_tz()).date()


# =========================
# Logging
# =========================
def configure_logging(level: str | None = None) -> None:
    level_name = (level or os.getenv("DASHTRACK_LOG_LEVEL", "INFO")).upper()
    log_level = getattr(logging, level_name, logging.INFO)
    root = logging.getLogger()
    if not any(getattr(h, "_dashtrack", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        handler._dashtrack = True
        root.addHandler(handler)
    root.setLevel(log_level)


__all__ = [
    "APP_TITLE",
    "BACKUP_VERSION",
    "DEFAULT_MPG",
    "DEFAULT_GAS_PRICE",
    "EngineConfig",
    "TimeFormat",
    "WeekStart",
    "configure_logging",
    "database_url",
    "local_store_path",
    "pick_data_dir",
    "today_local",
]
