"""Parsing of raw serial lines into sensor readings."""

from __future__ import annotations

from typing import Optional


def parse_reading(line: str) -> Optional[float]:
    """Parse a trimmed line as a decimal float.

    Devices interleave diagnostic text with readings, so anything that is not
    a plain ASCII number yields ``None`` instead of raising.
    """
    candidate = line.strip()
    if not candidate or not candidate.isascii():
        return None
    # float() accepts digit separators, which sensors never emit
    if "_" in candidate:
        return None
    try:
        return float(candidate)
    except ValueError:
        return None
