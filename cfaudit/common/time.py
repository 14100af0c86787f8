"""Common time utilities."""

from __future__ import annotations

import datetime as dt
import re

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_UNIT_SECONDS = {"h": 3600.0, "m": 60.0, "s": 1.0, "ms": 0.001}


def utcnow() -> dt.datetime:
    """Return an aware UTC timestamp."""
    return dt.datetime.now(dt.UTC)


def parse_duration(text: str) -> dt.timedelta:
    """Parse a compound duration such as ``15m``, ``1h30m`` or ``90s``.

    Raises
    ------
    ValueError
        If ``text`` is empty or contains anything other than
        ``<number><unit>`` groups with units ``h``, ``m``, ``s`` or ``ms``.

    """
    raw = text.strip()
    if not raw:
        msg = "duration must be non-empty"
        raise ValueError(msg)

    total = 0.0
    position = 0
    for match in _DURATION_PART.finditer(raw):
        if match.start() != position:
            break
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        position = match.end()

    if position != len(raw):
        msg = f"invalid duration: {text!r}"
        raise ValueError(msg)
    return dt.timedelta(seconds=total)
