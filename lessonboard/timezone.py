"""Single conversion boundary between wall-clock times and UTC instants.

Everything stored in the database is a naive ``datetime`` expressed in UTC.
Wall-clock values coming from the client (a ``YYYY-MM-DD`` date and an
``HH:MM`` time) are always interpreted in an explicit IANA zone before they
are compared or persisted, and display code converts back through
:func:`convert_from_utc`.
"""
from __future__ import annotations

from datetime import date, datetime, time
from typing import Any, Mapping

import pytz


DEFAULT_TIMEZONE = "Asia/Ho_Chi_Minh"
DATE_FORMAT = "%Y-%m-%d"
CLOCK_FORMAT = "%H:%M"


def is_valid_timezone(name: str | None) -> bool:
    if not name:
        return False
    try:
        pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        return False
    return True


def extract_timezone(payload: Mapping[str, Any] | None, default: str = DEFAULT_TIMEZONE) -> str:
    """Return the ``timezone`` of a request body, falling back to ``default``."""

    candidate = (payload or {}).get("timezone") or default
    return candidate if is_valid_timezone(candidate) else default


def parse_date(value: str | date) -> date:
    if isinstance(value, date):
        return value
    return datetime.strptime(value.strip(), DATE_FORMAT).date()


def parse_clock(value: str | time) -> time:
    if isinstance(value, time):
        return value
    text = value.strip()
    try:
        return datetime.strptime(text, CLOCK_FORMAT).time()
    except ValueError:
        return datetime.strptime(text, "%H:%M:%S").time()


def convert_to_utc(day: str | date, clock: str | time, tz_name: str = DEFAULT_TIMEZONE) -> datetime:
    """Convert a local date and wall-clock time to a naive UTC instant."""

    zone = pytz.timezone(tz_name)
    local = zone.localize(datetime.combine(parse_date(day), parse_clock(clock)))
    return local.astimezone(pytz.utc).replace(tzinfo=None)


def convert_from_utc(instant: datetime, tz_name: str = DEFAULT_TIMEZONE) -> datetime:
    """Convert a UTC instant (naive or aware) to an aware local datetime."""

    if instant.tzinfo is None:
        instant = pytz.utc.localize(instant)
    return instant.astimezone(pytz.timezone(tz_name))


def parse_instant(value: str) -> datetime:
    """Parse an ISO-8601 instant into a naive UTC ``datetime``.

    Values without an offset are taken to already be UTC.
    """

    text = value.strip()
    if text.endswith("Z"):
        text = f"{text[:-1]}+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(pytz.utc).replace(tzinfo=None)
    return parsed


def isoformat_utc(instant: datetime | None) -> str | None:
    if instant is None:
        return None
    if instant.tzinfo is None:
        instant = pytz.utc.localize(instant)
    return instant.astimezone(pytz.utc).isoformat()


def local_clock(instant: datetime, tz_name: str = DEFAULT_TIMEZONE) -> str:
    return convert_from_utc(instant, tz_name).strftime(CLOCK_FORMAT)


def local_date(instant: datetime, tz_name: str = DEFAULT_TIMEZONE) -> date:
    return convert_from_utc(instant, tz_name).date()


def format_local_range(start: datetime, end: datetime, tz_name: str = DEFAULT_TIMEZONE) -> str:
    return f"{local_clock(start, tz_name)} - {local_clock(end, tz_name)}"
