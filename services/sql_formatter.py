"""Render meter readings as literal SQL INSERT statements."""

from __future__ import annotations

from typing import Iterable, List, Protocol


class ReadingLike(Protocol):
    nmi: str
    timestamp: str
    consumption: float


def format_consumption(value: float) -> str:
    """Render a consumption value as a plain numeric literal (``15``, ``10.5``)."""
    if value.is_integer() and abs(value) < 1e16:
        return str(int(value))
    return repr(value)


def format_display_consumption(value: float) -> str:
    return f"{value:.3f}"


def format_statement(reading: ReadingLike) -> str:
    # Values are quoted verbatim; embedded quotes are not escaped.
    return (
        'INSERT INTO meter_readings (nmi, "timestamp", consumption) '
        f"VALUES ('{reading.nmi}', '{reading.timestamp}', "
        f"{format_consumption(reading.consumption)});"
    )


def format_statements(readings: Iterable[ReadingLike]) -> List[str]:
    return [format_statement(reading) for reading in readings]


def join_statements(statements: Iterable[str]) -> str:
    return "\n".join(statements)
