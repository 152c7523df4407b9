from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable

from .timezone import CLOCK_FORMAT, parse_clock


SLOT_MINUTES = 30


def _minutes_of_day(clock: str) -> int:
    value = parse_clock(clock)
    return value.hour * 60 + value.minute


def _label(minutes: int) -> str:
    return (datetime.min + timedelta(minutes=minutes)).strftime(CLOCK_FORMAT)


def derive_time_slots(ranges: Iterable[tuple[str, str]], *, step: int = SLOT_MINUTES) -> list[str]:
    """Return the ``HH:MM`` grid labels covering every ``(start, end)`` pair.

    The grid starts at the earliest time rounded down to ``step`` minutes and
    keeps adding labels while the current label is not later than the latest
    observed time, so a range ending exactly on a boundary includes that
    boundary.
    """

    observed: list[int] = []
    for start, end in ranges:
        if start:
            observed.append(_minutes_of_day(start))
        if end:
            observed.append(_minutes_of_day(end))
    if not observed:
        return []

    current = min(observed) - min(observed) % step
    latest = max(observed)
    slots: list[str] = []
    while current <= latest:
        slots.append(_label(current))
        current += step
    return slots


def earliest_slot(slots: list[str]) -> str | None:
    return slots[0] if slots else None
