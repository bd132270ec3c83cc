from __future__ import annotations

import logging

from logging_config import ContextualFormatter


def _record(message: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord("services.reader", logging.ERROR, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_appends_known_context_keys() -> None:
    formatter = ContextualFormatter(fmt="%(levelname)s %(message)s")

    output = formatter.format(
        _record("Serial read failed: timeout", device="/dev/ttyACM0", suppressed=4, other="x")
    )

    assert output == "ERROR Serial read failed: timeout | device=/dev/ttyACM0 suppressed=4"


def test_formatter_skips_missing_and_none_values() -> None:
    formatter = ContextualFormatter(fmt="%(message)s", extra_keys=["device", "suppressed"])

    assert formatter.format(_record("plain", suppressed=None)) == "plain"
