"""Incremental CSV readers that deliver NEM12 rows in fixed-size batches."""

from __future__ import annotations

import csv
from contextlib import AbstractContextManager
from pathlib import Path
from typing import Callable, Iterator, List, TextIO

from storage.uploads import UploadBucket

Row = List[str]
Batch = List[Row]

PARSE_ERROR_PREFIX = "Error parsing CSV file: "


class ChunkSourceError(Exception):
    """Raised once when the underlying CSV stream cannot be read or parsed."""

    @property
    def user_message(self) -> str:
        return f"{PARSE_ERROR_PREFIX}{self}"


def _describe(exc: BaseException) -> str:
    if isinstance(exc, KeyError) and exc.args:
        return str(exc.args[0])
    return str(exc)


class CsvChunkSource:
    """Reads a CSV stream row by row and yields lists of ``chunk_rows`` rows.

    Batches come out in file order. Any read, decode or CSV syntax failure is
    re-raised as :class:`ChunkSourceError`; batches already yielded stay valid.
    """

    def __init__(
        self,
        opener: Callable[[], AbstractContextManager[TextIO]],
        chunk_rows: int = 500,
    ) -> None:
        if chunk_rows <= 0:
            raise ValueError("chunk_rows must be positive.")
        self._opener = opener
        self.chunk_rows = chunk_rows

    @classmethod
    def from_bucket(
        cls, bucket: UploadBucket, key: str, chunk_rows: int = 500
    ) -> "CsvChunkSource":
        return cls(lambda: bucket.open_text_object(key), chunk_rows=chunk_rows)

    @classmethod
    def from_path(cls, path: Path, chunk_rows: int = 500) -> "CsvChunkSource":
        return cls(
            lambda: path.open("r", encoding="utf-8-sig", newline=""),
            chunk_rows=chunk_rows,
        )

    def batches(self) -> Iterator[Batch]:
        try:
            with self._opener() as handle:
                batch: Batch = []
                for row in csv.reader(handle):
                    batch.append(row)
                    if len(batch) >= self.chunk_rows:
                        yield batch
                        batch = []
                if batch:
                    yield batch
        except (csv.Error, UnicodeDecodeError, OSError, KeyError) as exc:
            raise ChunkSourceError(_describe(exc)) from exc
