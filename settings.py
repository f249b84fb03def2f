from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_DATA_PATH_ENV = "WASTE_DATA_PATH"
_TRENDS_MIN_PERIOD_ENV = "TRENDS_MIN_PERIOD"
_RECENT_PERIOD_ENV = "RECENT_PERIOD"
_ERROR_QUEUE_SIZE_ENV = "ERROR_QUEUE_SIZE"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    data_path: Optional[str]
    trends_min_period: int
    recent_period: int
    error_queue_size: int
    log_level: str


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        data_path=_read_optional_env(_DATA_PATH_ENV, "./data/waste_data.json"),
        trends_min_period=_read_positive_int(_TRENDS_MIN_PERIOD_ENV, 2020),
        recent_period=_read_positive_int(_RECENT_PERIOD_ENV, 2022),
        error_queue_size=_read_positive_int(_ERROR_QUEUE_SIZE_ENV, 100),
        log_level=_read_log_level("INFO"),
    )
