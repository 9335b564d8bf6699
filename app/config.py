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


def _get_optional_int_env(name: str) -> int | None:
    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None or not raw_value.strip():
        return None
    try:
        return int(raw_value)
    except ValueError:
        return None


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


@dataclass(frozen=True)
class SalesIngestionSettings:
    """
    Runtime settings for spreadsheet parsing and record ingestion.
    """

    batch_size: int = 500
    max_validation_errors: int = 500
    log_validation_errors: bool = True
    atomic_replace: bool = True
    allow_default_year: bool = False


@dataclass(frozen=True)
class FactSheetSettings:
    """
    Size budget of the fact sheet handed to the assistant.
    """

    max_chars: int = 10_000
    max_products_per_period: int | None = None


@dataclass(frozen=True)
class UploadSettings:
    """
    Object storage and upload limits.
    """

    storage_dir: str = "data/uploads"
    max_upload_bytes: int = 50 * 1024 * 1024


@lru_cache(maxsize=1)
def get_sales_ingestion_settings() -> SalesIngestionSettings:
    """
    Return cached ingestion settings from environment variables.
    """

    return SalesIngestionSettings(
        batch_size=max(1, _get_int_env("SALES_INGEST_BATCH_SIZE", 500)),
        max_validation_errors=max(1, _get_int_env("SALES_INGEST_MAX_VALIDATION_ERRORS", 500)),
        log_validation_errors=_get_bool_env("SALES_INGEST_LOG_VALIDATION_ERRORS", True),
        atomic_replace=_get_bool_env("SALES_INGEST_ATOMIC_REPLACE", True),
        allow_default_year=_get_bool_env("SALES_ALLOW_DEFAULT_YEAR", False),
    )


@lru_cache(maxsize=1)
def get_fact_sheet_settings() -> FactSheetSettings:
    """
    Return cached fact sheet budget settings.
    """

    max_products = _get_optional_int_env("FACT_SHEET_MAX_PRODUCTS_PER_PERIOD")
    return FactSheetSettings(
        max_chars=max(200, _get_int_env("FACT_SHEET_MAX_CHARS", 10_000)),
        max_products_per_period=max(1, max_products) if max_products is not None else None,
    )


@lru_cache(maxsize=1)
def get_upload_settings() -> UploadSettings:
    """
    Return cached upload/storage settings.
    """

    return UploadSettings(
        storage_dir=_get_str_env("UPLOAD_STORAGE_DIR", "data/uploads"),
        max_upload_bytes=max(1, _get_int_env("UPLOAD_MAX_BYTES", 50 * 1024 * 1024)),
    )
