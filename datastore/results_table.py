from __future__ import annotations
from functools import lru_cache
from threading import Lock
from typing import Any, Dict, Iterable, Optional

from app.schemas import MeterReadingRecord, ProcessingResult
from models.records import MeterReading
from settings import get_settings


def _copy(item: ProcessingResult, include_readings: bool) -> ProcessingResult:
    if include_readings:
        return item.model_copy(deep=True)
    # remaining fields are immutable, so a shallow copy is enough
    return item.model_copy(update={"readings": []})


class ResultsTable:
    """Process-local table of generation results keyed by ``file_id``.

    Readings are only ever appended, so whatever was emitted before a failure
    stays visible.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._items: Dict[str, ProcessingResult] = {}
        self._lock = Lock()

    def put_item(self, item: ProcessingResult) -> None:
        with self._lock:
            self._items[item.file_id] = item.model_copy(deep=True)

    def get_item(self, key: str, include_readings: bool = True) -> Optional[ProcessingResult]:
        with self._lock:
            item = self._items.get(key)
            if item is None:
                return None
            return _copy(item, include_readings)

    def update_item(self, key: str, **changes: Any) -> ProcessingResult:
        with self._lock:
            item = self._require(key)
            updated = item.model_copy(update=changes)
            self._items[key] = updated
            return updated.model_copy(deep=True)

    def append_readings(self, key: str, readings: Iterable[MeterReading]) -> int:
        """Append readings in order and return the new statement count."""
        records = [
            MeterReadingRecord(
                nmi=reading.nmi,
                timestamp=reading.timestamp,
                consumption=reading.consumption,
            )
            for reading in readings
        ]
        with self._lock:
            item = self._require(key)
            item.readings.extend(records)
            item.statement_count = len(item.readings)
            return item.statement_count

    def scan(self, include_readings: bool = True) -> list[ProcessingResult]:
        """Return copies of all stored results, optionally without their readings."""

        with self._lock:
            return [_copy(item, include_readings) for item in self._items.values()]

    def _require(self, key: str) -> ProcessingResult:
        item = self._items.get(key)
        if item is None:
            raise KeyError(f"Processing result for file {key!r} not found.")
        return item


@lru_cache
def build_default_table(name: Optional[str] = None) -> ResultsTable:
    table_name = get_settings().table_name if name is None else name
    return ResultsTable(name=table_name)
