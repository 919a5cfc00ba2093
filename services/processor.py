"""Background generation of meter readings and SQL from uploaded NEM12 files."""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Callable, Dict, Iterable, List, Optional
from uuid import uuid4

from fastapi import BackgroundTasks, UploadFile

from app.schemas import ProcessingResult, ProcessingStatus
from datastore.results_table import ResultsTable, build_default_table
from services.chunk_source import Batch, ChunkSourceError, CsvChunkSource
from services.interpreter import RecordInterpreter, iter_readings
from services.sql_formatter import format_statements, join_statements
from settings import get_settings
from storage.uploads import UploadBucket, build_default_bucket

logger = logging.getLogger(__name__)

SourceFactory = Callable[[UploadBucket, str, int], Iterable[Batch]]


def _default_source(bucket: UploadBucket, key: str, chunk_rows: int) -> Iterable[Batch]:
    return CsvChunkSource.from_bucket(bucket, key, chunk_rows=chunk_rows).batches()


class ExportNotReadyError(RuntimeError):
    """Raised when SQL is requested for a job that has not completed."""


class ProcessorService:
    """Coordinates upload storage, background interpretation and result retrieval."""

    def __init__(
        self,
        bucket: UploadBucket,
        table: ResultsTable,
        interpreter: RecordInterpreter,
        workers: int = 4,
        chunk_rows: int = 500,
        source_factory: SourceFactory = _default_source,
    ) -> None:
        self.bucket = bucket
        self.table = table
        self.interpreter = interpreter
        self.workers = workers
        self.chunk_rows = chunk_rows
        self.source_factory = source_factory
        self.executor = ThreadPoolExecutor(max_workers=workers)
        self._futures: Dict[str, Future[None]] = {}
        self._futures_lock = Lock()

    def enqueue_file(self, background_tasks: BackgroundTasks, file: UploadFile) -> str:
        """Store the uploaded file and schedule its interpretation."""
        file.file.seek(0)
        contents = file.file.read()
        if isinstance(contents, str):
            contents = contents.encode("utf-8")
        background_tasks.add_task(file.close)
        return self.enqueue_bytes(file.filename or "upload.csv", contents)

    def enqueue_bytes(self, filename: str, contents: bytes) -> str:
        if not contents:
            raise ValueError("Uploaded file is empty.")

        file_id = str(uuid4())
        name = Path(filename).name or "upload.csv"
        key = f"{file_id}/{name}"
        self.bucket.put_object(key, contents)

        self.table.put_item(
            ProcessingResult(
                file_id=file_id,
                filename=name,
                status=ProcessingStatus.uploaded,
                uploaded_at=datetime.now(timezone.utc),
            )
        )

        future = self.executor.submit(self._process_file, file_id=file_id, key=key)
        with self._futures_lock:
            self._futures[file_id] = future
        future.add_done_callback(lambda _f, fid=file_id: self._clear_future(fid))
        return file_id

    def fetch_result(self, file_id: str) -> ProcessingResult:
        result = self.table.get_item(file_id)
        if result is None:
            raise KeyError(f"Processing result for file {file_id!r} not found.")
        return result

    def fetch_summary(self, file_id: str) -> ProcessingResult:
        """Like :meth:`fetch_result` but with ``readings`` left empty."""
        result = self.table.get_item(file_id, include_readings=False)
        if result is None:
            raise KeyError(f"Processing result for file {file_id!r} not found.")
        return result

    def list_results(self) -> List[ProcessingResult]:
        """Return summaries of all known jobs, newest upload first."""
        return sorted(self.table.scan(include_readings=False), key=lambda item: item.uploaded_at, reverse=True)

    def export_sql(self, file_id: str) -> str:
        """Return the newline-joined INSERT statements of a completed job."""
        result = self.fetch_result(file_id)
        if result.status is not ProcessingStatus.completed:
            raise ExportNotReadyError(
                f"File {file_id!r} is {result.status.value}; SQL is available once processing completes."
            )
        return join_statements(format_statements(result.readings))

    @property
    def pending_jobs(self) -> int:
        """Number of submitted jobs that have not finished yet."""
        with self._futures_lock:
            return len(self._futures)

    def shutdown(self) -> None:
        """Stop accepting work; jobs that already started run to completion."""
        self.executor.shutdown(wait=False, cancel_futures=True)

    def _clear_future(self, file_id: str) -> None:
        with self._futures_lock:
            self._futures.pop(file_id, None)

    def _process_file(self, file_id: str, key: str) -> None:
        start_time = time.perf_counter()
        log_extra = {"job_id": file_id, "object_key": key}
        self.table.update_item(file_id, status=ProcessingStatus.processing)
        logger.info("Started processing file", extra=log_extra)

        status = ProcessingStatus.completed
        error: Optional[str] = None
        record_count = 0

        try:
            batches = self.source_factory(self.bucket, key, self.chunk_rows)
            for batch_index, readings in enumerate(iter_readings(batches, self.interpreter)):
                if readings:
                    record_count = self.table.append_readings(file_id, readings)
                logger.debug(
                    "Interpreted batch",
                    extra={**log_extra, "batch_index": batch_index, "record_count": len(readings)},
                )
        except ChunkSourceError as exc:
            status = ProcessingStatus.failed
            error = exc.user_message
            logger.warning("CSV source failed", extra={**log_extra, "error": str(exc)})
        except Exception as exc:
            status = ProcessingStatus.failed
            error = f"Unexpected processing error: {exc}"
            logger.exception("Processing aborted", extra=log_extra)
        finally:
            self.bucket.delete_object(key)

        processing_ms = int((time.perf_counter() - start_time) * 1000)
        self.table.update_item(
            file_id,
            status=status,
            processed_at=datetime.now(timezone.utc),
            processing_ms=processing_ms,
            error=error,
        )
        logger.info(
            "Finished processing file",
            extra={
                **log_extra,
                "status": status.value,
                "record_count": record_count,
                "processing_ms": processing_ms,
            },
        )


@lru_cache
def build_default_processor(workers: Optional[int] = None) -> ProcessorService:
    """Factory that wires the processor with the default in-memory stores."""
    settings = get_settings()
    return ProcessorService(
        bucket=build_default_bucket(),
        table=build_default_table(),
        interpreter=RecordInterpreter(),
        workers=workers or settings.processor_workers,
        chunk_rows=settings.chunk_rows,
    )
