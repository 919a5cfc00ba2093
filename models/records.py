"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class MeterReading:
    """One interval value expanded from a NEM12 300 record.

    ``timestamp`` is the rendered ``YYYY-MM-DD HH:MM:SS`` text; the date part
    comes straight from the source row and is not calendar-checked.
    """

    nmi: str
    timestamp: str
    consumption: float


@dataclass(slots=True)
class ParserContext:
    """Running state of a single parse run, carried from batch to batch."""

    current_nmi: str = ""
    interval_length: int = 0

    @property
    def accepts_interval_data(self) -> bool:
        return bool(self.current_nmi) and self.interval_length > 0
