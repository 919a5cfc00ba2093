"""Unit tests for the in-memory results table and upload bucket."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from app.schemas import ProcessingResult, ProcessingStatus
from datastore.results_table import ResultsTable
from models.records import MeterReading
from storage.uploads import UploadBucket


def _sample_result(file_id: str = "file-123") -> ProcessingResult:
    return ProcessingResult(
        file_id=file_id,
        filename="data.csv",
        status=ProcessingStatus.processing,
        uploaded_at=datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc),
    )


def test_put_and_get_round_trip_returns_deep_copy() -> None:
    table = ResultsTable(name="generation_results")
    original = _sample_result()
    table.put_item(original)
    table.append_readings(original.file_id, [MeterReading("NMI1", "2024-01-01 00:00:00", 1.0)])

    fetched = table.get_item(original.file_id)
    assert fetched is not None
    fetched.readings.clear()

    fetched_again = table.get_item(original.file_id)
    assert fetched_again is not None
    assert len(fetched_again.readings) == 1


def test_get_item_returns_none_when_missing() -> None:
    assert ResultsTable(name="generation_results").get_item("missing-id") is None


def test_append_readings_preserves_arrival_order() -> None:
    table = ResultsTable(name="generation_results")
    table.put_item(_sample_result())

    table.append_readings("file-123", [MeterReading("NMI1", "2024-01-01 00:00:00", 1.0)])
    count = table.append_readings(
        "file-123",
        [
            MeterReading("NMI1", "2024-01-01 00:30:00", 2.0),
            MeterReading("NMI2", "2024-01-01 00:00:00", 3.0),
        ],
    )

    stored = table.get_item("file-123")
    assert count == 3
    assert stored is not None
    assert stored.statement_count == 3
    assert [r.consumption for r in stored.readings] == [1.0, 2.0, 3.0]


def test_update_item_keeps_readings() -> None:
    table = ResultsTable(name="generation_results")
    table.put_item(_sample_result())
    table.append_readings("file-123", [MeterReading("NMI1", "2024-01-01 00:00:00", 1.0)])

    updated = table.update_item("file-123", status=ProcessingStatus.failed, error="Error parsing CSV file: x")

    assert updated.status is ProcessingStatus.failed
    assert updated.statement_count == 1
    assert table.get_item("file-123").error == "Error parsing CSV file: x"  # type: ignore[union-attr]


def test_updates_on_unknown_keys_raise() -> None:
    table = ResultsTable(name="generation_results")

    with pytest.raises(KeyError):
        table.update_item("missing", status=ProcessingStatus.completed)
    with pytest.raises(KeyError):
        table.append_readings("missing", [])


def test_scan_returns_all_items() -> None:
    table = ResultsTable(name="generation_results")
    table.put_item(_sample_result(file_id="file-1"))
    table.put_item(_sample_result(file_id="file-2"))

    assert sorted(item.file_id for item in table.scan()) == ["file-1", "file-2"]


def test_summary_reads_leave_out_readings() -> None:
    table = ResultsTable(name="generation_results")
    table.put_item(_sample_result())
    table.append_readings("file-123", [MeterReading("NMI1", "2024-01-01 00:00:00", 1.0)])

    summary = table.get_item("file-123", include_readings=False)
    [scanned] = table.scan(include_readings=False)

    assert summary is not None
    assert summary.readings == []
    assert summary.statement_count == 1
    assert scanned.readings == []
    assert scanned.statement_count == 1
    full = table.get_item("file-123")
    assert full is not None
    assert len(full.readings) == 1


def test_bucket_put_get_and_delete() -> None:
    bucket = UploadBucket(name="uploads")
    bucket.put_object("job/file.csv", b"200")

    assert "job/file.csv" in bucket
    assert bucket.get_object("job/file.csv") == b"200"
    with bucket.open_text_object("job/file.csv") as handle:
        assert handle.read() == "200"

    bucket.delete_object("job/file.csv")
    with pytest.raises(KeyError, match="job/file.csv"):
        bucket.get_object("job/file.csv")
