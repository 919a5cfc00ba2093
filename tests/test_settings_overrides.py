from __future__ import annotations

from typing import Iterable

from datastore.results_table import build_default_table
from services.processor import build_default_processor
from settings import get_settings
from storage.uploads import build_default_bucket

_CACHES = (get_settings, build_default_bucket, build_default_table, build_default_processor)


def _clear_caches(caches: Iterable) -> None:
    for cache in caches:
        cache.cache_clear()


def test_environment_overrides_apply(monkeypatch) -> None:
    monkeypatch.setenv("UPLOAD_BUCKET_NAME", "custom-bucket")
    monkeypatch.setenv("RESULTS_TABLE_NAME", "custom-table")
    monkeypatch.setenv("PROCESSOR_WORKER_COUNT", "2")
    monkeypatch.setenv("NEM12_CHUNK_ROWS", "25")
    monkeypatch.setenv("LOG_LEVEL", " debug ")
    _clear_caches(_CACHES)

    processor = build_default_processor()
    try:
        assert processor.bucket.name == "custom-bucket"
        assert processor.table.name == "custom-table"
        assert processor.executor._max_workers == 2
        assert processor.chunk_rows == 25
        assert get_settings().log_level == "DEBUG"
    finally:
        processor.shutdown()
        _clear_caches(_CACHES)


def test_invalid_values_fall_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("PROCESSOR_WORKER_COUNT", "zero")
    monkeypatch.setenv("NEM12_CHUNK_ROWS", "-5")
    monkeypatch.setenv("RESULTS_TABLE_NAME", "   ")
    get_settings.cache_clear()

    try:
        settings = get_settings()
        assert settings.processor_workers == 4
        assert settings.chunk_rows == 500
        assert settings.table_name == "generation_results"
    finally:
        get_settings.cache_clear()
