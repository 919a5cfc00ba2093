from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_POLL_INTERVAL = 0.5
DEFAULT_TIMEOUT = 120.0
DEFAULT_CHUNK_ROWS = 500

_BASE_URL_ENV = "API_BASE_URL"
_POLL_INTERVAL_ENV = "CLI_POLL_INTERVAL"
_TIMEOUT_ENV = "CLI_POLL_TIMEOUT"
_CHUNK_ROWS_ENV = "NEM12_CHUNK_ROWS"

_N = TypeVar("_N", int, float)


@dataclass(frozen=True)
class CLIConfig:
    base_url: str = DEFAULT_BASE_URL
    poll_interval: float = DEFAULT_POLL_INTERVAL
    poll_timeout: float = DEFAULT_TIMEOUT
    chunk_rows: int = DEFAULT_CHUNK_ROWS


def _read_positive(value: Optional[str], default: _N, cast: Callable[[str], _N]) -> _N:
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = cast(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def load_config(
    base_url: Optional[str] = None,
    poll_interval: Optional[float] = None,
    poll_timeout: Optional[float] = None,
) -> CLIConfig:
    url = base_url or os.getenv(_BASE_URL_ENV) or DEFAULT_BASE_URL
    if poll_interval is None:
        poll_interval = _read_positive(os.getenv(_POLL_INTERVAL_ENV), DEFAULT_POLL_INTERVAL, float)
    if poll_timeout is None:
        poll_timeout = _read_positive(os.getenv(_TIMEOUT_ENV), DEFAULT_TIMEOUT, float)
    return CLIConfig(
        base_url=url.rstrip("/"),
        poll_interval=poll_interval,
        poll_timeout=poll_timeout,
        chunk_rows=_read_positive(os.getenv(_CHUNK_ROWS_ENV), DEFAULT_CHUNK_ROWS, int),
    )
