"""Slot grid generation.

A salon day is discretised into fixed-width slots labelled by their start time
("HH:MM", zero-padded, 24-hour). Every other scheduling component works in these
labels.
"""

from __future__ import annotations

import re
from datetime import time
from typing import List

_CLOCK_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

MINUTES_PER_DAY = 24 * 60


def is_clock(value: object) -> bool:
    """Return True if ``value`` is a zero-padded 24-hour "HH:MM" string."""
    return isinstance(value, str) and _CLOCK_RE.match(value) is not None


def parse_clock(value: str) -> int:
    """Convert "HH:MM" to minutes since midnight."""
    match = _CLOCK_RE.match(value) if isinstance(value, str) else None
    if match is None:
        raise ValueError(f"Invalid clock value {value!r}; expected HH:MM")
    return int(match.group(1)) * 60 + int(match.group(2))


def format_clock(minutes: int) -> str:
    """Convert minutes since midnight to "HH:MM"."""
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f"Minute offset {minutes} is outside a single day")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def clock_to_time(value: str) -> time:
    """Convert "HH:MM" to a :class:`datetime.time`."""
    minutes = parse_clock(value)
    return time(minutes // 60, minutes % 60)


def generate(opening: str, closing: str, interval_minutes: int) -> List[str]:
    """Return the slot-start labels covering ``[opening, closing)``.

    Starts at ``opening`` and advances by ``interval_minutes`` while the label is
    strictly before ``closing``. Empty when ``opening >= closing``.
    """
    if interval_minutes <= 0:
        raise ValueError("interval_minutes must be positive")

    start = parse_clock(opening)
    end = parse_clock(closing)

    return [format_clock(minute) for minute in range(start, end, interval_minutes)]
