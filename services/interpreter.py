"""Streaming interpreter for NEM12 interval-metering rows."""

from __future__ import annotations

import logging
import math
import re
from enum import Enum
from typing import Iterable, Iterator, List, Optional, Sequence

from models.records import MeterReading, ParserContext

logger = logging.getLogger(__name__)

NMI_FIELD = 1
INTERVAL_LENGTH_FIELD = 8
INTERVAL_DATE_FIELD = 1
FIRST_VALUE_FIELD = 2

_LEADING_INT = re.compile(r"\s*([+-]?\d+)", re.ASCII)
_LEADING_FLOAT = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)", re.ASCII)


class RecordType(str, Enum):
    """NEM12 record indicators found in the first field of each row."""

    header = "100"
    nmi_details = "200"
    interval_data = "300"
    interval_event = "400"
    b2b_details = "500"
    end_of_data = "900"

    @classmethod
    def of(cls, row: Sequence[str]) -> Optional["RecordType"]:
        if not row:
            return None
        try:
            return cls(row[0])
        except ValueError:
            return None


def parse_interval_length(raw: Optional[str]) -> int:
    """Return the leading base-10 integer of ``raw``, or 0 if there is none."""
    if raw is None:
        return 0
    match = _LEADING_INT.match(raw)
    if match is None:
        return 0
    try:
        return int(match.group(1))
    except ValueError:
        # longer than sys.get_int_max_str_digits()
        return 0


def parse_consumption(raw: str) -> Optional[float]:
    """Return the leading finite float literal of ``raw``, or ``None``."""
    match = _LEADING_FLOAT.match(raw)
    if match is None:
        return None
    value = float(match.group(1))
    if not math.isfinite(value):
        return None
    return value


def format_interval_date(raw: str) -> str:
    return f"{raw[0:4]}-{raw[4:6]}-{raw[6:8]}"


def format_interval_timestamp(date_prefix: str, offset_minutes: int) -> str:
    hours, minutes = divmod(offset_minutes, 60)
    return f"{date_prefix} {hours:02d}:{minutes:02d}:00"


def _field(row: Sequence[str], index: int) -> Optional[str]:
    return row[index] if len(row) > index else None


class RecordInterpreter:
    """Expands NEM12 rows into meter readings against a caller-owned context.

    The interpreter itself is stateless; everything that must survive a batch
    boundary lives in the ``ParserContext`` passed to :meth:`process`.
    Malformed data never raises: bad rows and fields are skipped.
    """

    def process(
        self, rows: Iterable[Sequence[str]], context: ParserContext
    ) -> List[MeterReading]:
        readings: List[MeterReading] = []
        for row in rows:
            record_type = RecordType.of(row)
            if record_type is RecordType.nmi_details:
                self._apply_nmi_details(row, context)
            elif record_type is RecordType.interval_data:
                readings.extend(self._expand_interval_data(row, context))
        return readings

    def _apply_nmi_details(self, row: Sequence[str], context: ParserContext) -> None:
        context.current_nmi = _field(row, NMI_FIELD) or ""
        context.interval_length = parse_interval_length(
            _field(row, INTERVAL_LENGTH_FIELD)
        )
        if not context.accepts_interval_data:
            logger.warning(
                "NMI block has no usable identifier or interval length; "
                "its interval data will be skipped",
                extra={
                    "nmi": context.current_nmi,
                    "interval_length": context.interval_length,
                },
            )

    def _expand_interval_data(
        self, row: Sequence[str], context: ParserContext
    ) -> Iterator[MeterReading]:
        if not context.accepts_interval_data:
            logger.debug(
                "Skipping interval data row",
                extra={
                    "record_type": RecordType.interval_data.value,
                    "reason": "no active NMI block",
                },
            )
            return

        date_prefix = format_interval_date(_field(row, INTERVAL_DATE_FIELD) or "")
        for index, raw in enumerate(row[FIRST_VALUE_FIELD:]):
            consumption = parse_consumption(raw)
            if consumption is None:
                logger.debug(
                    "Skipping non-numeric interval value",
                    extra={"nmi": context.current_nmi, "reason": f"value={raw!r}"},
                )
                continue
            yield MeterReading(
                nmi=context.current_nmi,
                timestamp=format_interval_timestamp(
                    date_prefix, index * context.interval_length
                ),
                consumption=consumption,
            )


def iter_readings(
    batches: Iterable[Sequence[Sequence[str]]],
    interpreter: Optional[RecordInterpreter] = None,
) -> Iterator[List[MeterReading]]:
    """Run one parse over ``batches`` in order, yielding each batch's readings.

    A fresh context is created for the run and dropped when it ends, so no
    state leaks between files. Errors raised by ``batches`` propagate.
    """
    interpreter = interpreter or RecordInterpreter()
    context = ParserContext()
    for batch in batches:
        yield interpreter.process(batch, context)
