from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


_BUCKET_NAME_ENV = "UPLOAD_BUCKET_NAME"
_TABLE_NAME_ENV = "RESULTS_TABLE_NAME"
_WORKER_COUNT_ENV = "PROCESSOR_WORKER_COUNT"
_CHUNK_ROWS_ENV = "NEM12_CHUNK_ROWS"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    bucket_name: str
    table_name: str
    processor_workers: int
    chunk_rows: int
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_positive_int_env(name: str, default: int) -> int:
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
        bucket_name=_read_str_env(_BUCKET_NAME_ENV, "uploads"),
        table_name=_read_str_env(_TABLE_NAME_ENV, "generation_results"),
        processor_workers=_read_positive_int_env(_WORKER_COUNT_ENV, 4),
        chunk_rows=_read_positive_int_env(_CHUNK_ROWS_ENV, 500),
        log_level=_read_log_level("INFO"),
    )
