from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_HISTORY_LIMIT_ENV = "DIVELOG_HISTORY_LIMIT"
_HISTORY_PATH_ENV = "DIVELOG_HISTORY_PATH"
_DEPTH_INTERVAL_ENV = "DIVELOG_DEPTH_INTERVAL"
_DEPTH_DELTA_ENV = "DIVELOG_DEPTH_DELTA"
_HR_INTERVAL_ENV = "DIVELOG_HR_INTERVAL"
_HR_DELTA_ENV = "DIVELOG_HR_DELTA"
_WORKER_COUNT_ENV = "ENRICHMENT_WORKER_COUNT"
_WEATHER_ENABLED_ENV = "WEATHER_ENABLED"
_WEATHER_URL_ENV = "WEATHER_API_URL"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    history_limit: int
    history_path: Optional[str]
    depth_interval: float
    depth_delta: float
    heart_rate_interval: float
    heart_rate_delta: int
    enrichment_workers: int
    weather_enabled: bool
    weather_api_url: str
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


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


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if candidate in {"1", "true", "yes", "on"}:
        return True
    if candidate in {"0", "false", "no", "off"}:
        return False
    return default


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
        history_limit=_read_positive_int(_HISTORY_LIMIT_ENV, 50),
        history_path=_read_optional_env(_HISTORY_PATH_ENV, "./tmp/dive_history.json"),
        depth_interval=_read_positive_float(_DEPTH_INTERVAL_ENV, 1.5),
        depth_delta=_read_positive_float(_DEPTH_DELTA_ENV, 0.4),
        heart_rate_interval=_read_positive_float(_HR_INTERVAL_ENV, 5.0),
        heart_rate_delta=_read_positive_int(_HR_DELTA_ENV, 3),
        enrichment_workers=_read_positive_int(_WORKER_COUNT_ENV, 2),
        weather_enabled=_read_bool(_WEATHER_ENABLED_ENV, False),
        weather_api_url=_read_str_env(
            _WEATHER_URL_ENV, "https://api.open-meteo.com/v1/forecast"
        ),
        log_level=_read_log_level("INFO"),
    )
