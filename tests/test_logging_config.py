import logging

from logging_config import ContextualFormatter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("services.processor", logging.INFO, __file__, 1, "Finished", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_appends_known_context() -> None:
    formatter = ContextualFormatter(fmt="%(message)s")

    line = formatter.format(_record(job_id="abc", record_count=2, unrelated="x", error=None))

    assert line == "Finished | job_id=abc record_count=2"


def test_formatter_leaves_plain_messages_untouched() -> None:
    formatter = ContextualFormatter(fmt="%(levelname)s %(message)s", extra_keys=["nmi"])

    assert formatter.format(_record(job_id="abc")) == "INFO Finished"
