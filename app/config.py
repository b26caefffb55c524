"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


@dataclass(frozen=True)
class ImportSettings:
    """
    Runtime settings for the bulk import pipeline.
    """

    chunk_size: int = 100
    max_rows: int = 5000
    validation_ttl_minutes: int = 30
    job_retention_days: int = 30
    csv_retention_days: int = 7
    default_bag_weight_kg: float = 50.0
    log_row_errors: bool = True


@lru_cache(maxsize=1)
def get_import_settings() -> ImportSettings:
    """
    Return cached import settings from environment variables.
    """

    return ImportSettings(
        chunk_size=max(1, _get_int_env("IMPORT_CHUNK_SIZE", 100)),
        max_rows=max(1, _get_int_env("IMPORT_MAX_ROWS", 5000)),
        validation_ttl_minutes=max(1, _get_int_env("IMPORT_VALIDATION_TTL_MINUTES", 30)),
        job_retention_days=max(1, _get_int_env("IMPORT_JOB_RETENTION_DAYS", 30)),
        csv_retention_days=max(1, _get_int_env("IMPORT_JOB_CSV_RETENTION_DAYS", 7)),
        default_bag_weight_kg=_positive_or(
            _get_float_env("IMPORT_DEFAULT_BAG_WEIGHT_KG", 50.0),
            50.0,
        ),
        log_row_errors=_get_bool_env("IMPORT_LOG_ROW_ERRORS", True),
    )


def _positive_or(value: float, default: float) -> float:
    return value if value > 0 else default
