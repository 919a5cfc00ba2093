from __future__ import annotations
import io
from contextlib import contextmanager
from functools import lru_cache
from threading import Lock
from typing import Dict, Iterator, Optional, TextIO

from settings import get_settings


class UploadBucket:
    """In-memory object store holding uploaded NEM12 files for the process lifetime."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._objects: Dict[str, bytes] = {}
        self._lock = Lock()

    def put_object(self, key: str, data: bytes) -> None:
        with self._lock:
            self._objects[key] = data

    def get_object(self, key: str) -> bytes:
        with self._lock:
            data = self._objects.get(key)
        if data is None:
            raise KeyError(f"Object with key {key!r} not found in bucket {self.name!r}.")
        return data

    def delete_object(self, key: str) -> None:
        with self._lock:
            self._objects.pop(key, None)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._objects

    @contextmanager
    def open_text_object(
        self, key: str, encoding: str = "utf-8-sig", newline: Optional[str] = ""
    ) -> Iterator[TextIO]:
        """Yield a text handle that decodes the stored bytes lazily."""

        data = self.get_object(key)
        handle = io.TextIOWrapper(io.BytesIO(data), encoding=encoding, newline=newline)
        try:
            yield handle
        finally:
            handle.close()


@lru_cache
def build_default_bucket(name: Optional[str] = None) -> UploadBucket:
    bucket_name = get_settings().bucket_name if name is None else name
    return UploadBucket(name=bucket_name)
