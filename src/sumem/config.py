from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

DEFAULT_SOURCE = "psutil"
SOURCE_CHOICES = ("psutil", "ps")
DEFAULT_POLL_RATE = 2.0
DEFAULT_LOG_LEVEL = "WARNING"


@dataclass(frozen=True)
class Settings:
    source: str
    excludes: tuple[str, ...]
    poll_rate: float
    log_level: int


def reset_settings_cache() -> None:
    get_settings.cache_clear()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    source_value = _read_choice("SUMEM_SOURCE", SOURCE_CHOICES, default=DEFAULT_SOURCE)
    excludes_value = _read_list("SUMEM_EXCLUDE")
    poll_rate_value = _read_positive_float("SUMEM_POLL_RATE", default=DEFAULT_POLL_RATE)
    log_level_value = _read_log_level("SUMEM_LOG_LEVEL", default=DEFAULT_LOG_LEVEL)

    return Settings(
        source=source_value,
        excludes=excludes_value,
        poll_rate=poll_rate_value,
        log_level=log_level_value,
    )


def _read_non_empty_env(var_name: str) -> str | None:
    raw = os.getenv(var_name)
    if raw is None:
        return None
    stripped = raw.strip()
    return stripped if stripped else None


def _read_choice(var_name: str, choices: tuple[str, ...], *, default: str) -> str:
    raw = _read_non_empty_env(var_name)
    if raw is None:
        return default
    normalized = raw.lower()
    return normalized if normalized in choices else default


def _read_list(var_name: str) -> tuple[str, ...]:
    raw = _read_non_empty_env(var_name)
    if raw is None:
        return ()
    values = [value.strip() for value in raw.split(",") if value.strip() != ""]
    return tuple(values)


def _read_positive_float(var_name: str, *, default: float) -> float:
    raw = _read_non_empty_env(var_name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def _read_log_level(var_name: str, *, default: str) -> int:
    raw = _read_non_empty_env(var_name) or default
    level = logging.getLevelName(raw.upper())
    if isinstance(level, int):
        return level
    return logging.getLevelName(default)
