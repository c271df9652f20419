"""Time-of-day helpers converting between clinic-local wall clock and UTC."""

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from clinica.core.config import settings
from clinica.models import Clinic

TIME_OF_DAY_FORMAT = "%H:%M:%S"
_TIME_OF_DAY_PATTERN = re.compile(r"(?:[01]\d|2[0-3]):[0-5]\d:[0-5]\d")


def is_time_of_day(value: str) -> bool:
    """Return whether ``value`` is a zero-padded 24-hour ``HH:MM:SS`` string."""

    return bool(_TIME_OF_DAY_PATTERN.fullmatch(value))


def parse_time_of_day(value: str) -> time:
    """Parse a ``HH:MM:SS`` string into a naive ``time``."""

    if not is_time_of_day(value):
        raise ValueError(f"Invalid time of day: {value!r}")
    hour, minute, second = (int(part) for part in value.split(":"))
    return time(hour, minute, second)


def format_time_of_day(value: time) -> str:
    return value.strftime(TIME_OF_DAY_FORMAT)


def is_valid_timezone(name: str) -> bool:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def clinic_timezone(clinic: Clinic | None) -> ZoneInfo:
    """Return the clinic reference timezone, falling back to application default."""

    tz_name = (clinic.timezone if clinic else None) or settings.timezone
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):  # pragma: no cover - bad data fallback
        return ZoneInfo("UTC")


def local_time_to_utc(
    value: str | time, tz: ZoneInfo, reference_date: date | None = None
) -> str:
    """Convert a clinic-local time of day into its UTC ``HH:MM:SS`` rendering.

    The wall-clock time is anchored on ``reference_date`` (today in ``tz`` by
    default) so the offset in force on that day is used. Only the time of day
    survives; a shift into the neighbouring UTC day is dropped.
    """

    wall_clock = parse_time_of_day(value) if isinstance(value, str) else value
    day = reference_date or datetime.now(tz).date()
    local_instant = datetime.combine(day, wall_clock, tzinfo=tz)
    return format_time_of_day(local_instant.astimezone(timezone.utc).time())


def utc_time_to_local(
    value: str | time, tz: ZoneInfo, reference_date: date | None = None
) -> str:
    """Render a stored UTC time of day in the clinic timezone.

    Inverse of ``local_time_to_utc`` for the same ``reference_date`` (today in
    ``tz`` by default): the UTC instant is the one that falls on that local day.
    """

    wall_clock = parse_time_of_day(value) if isinstance(value, str) else value
    day = reference_date or datetime.now(tz).date()
    for shift in (0, -1, 1):
        utc_instant = datetime.combine(
            day + timedelta(days=shift), wall_clock, tzinfo=timezone.utc
        )
        local_instant = utc_instant.astimezone(tz)
        if local_instant.date() == day:
            return format_time_of_day(local_instant.time())
    utc_instant = datetime.combine(day, wall_clock, tzinfo=timezone.utc)
    return format_time_of_day(utc_instant.astimezone(tz).time())
