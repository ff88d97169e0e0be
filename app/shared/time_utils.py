"""
Time utilities shared by the scheduling domain.

All instants handled by the application are timezone-aware UTC datetimes.
Civil (wall-clock) times only appear when converting to or from a named
IANA zone, which always goes through this module.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

import pytz

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "UTC"


def ensure_utc(dt: datetime) -> datetime:
    """Return dt as an aware UTC datetime. Naive values are taken to be UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def is_valid_timezone(tz_name: Optional[str]) -> bool:
    if not tz_name or not tz_name.strip():
        return False
    try:
        pytz.timezone(tz_name)
        return True
    except pytz.UnknownTimeZoneError:
        return False


def sanitize_timezone(requested: Optional[str], fallback: Optional[str] = None) -> str:
    """First valid zone out of (requested, fallback), else UTC"""
    if is_valid_timezone(requested):
        return requested
    if is_valid_timezone(fallback):
        return fallback
    if requested or fallback:
        logger.debug(f"Invalid timezone(s) {requested!r}/{fallback!r}, falling back to UTC")
    return DEFAULT_TIMEZONE


def to_local(instant: datetime, tz_name: str) -> datetime:
    """Convert an instant to civil time in tz_name (aware, in that zone)"""
    return ensure_utc(instant).astimezone(pytz.timezone(tz_name))


def to_utc(local_dt: datetime, tz_name: str) -> datetime:
    """Interpret a naive wall-clock datetime in tz_name and return the UTC instant"""
    if local_dt.tzinfo is not None:
        return ensure_utc(local_dt)
    zone = pytz.timezone(tz_name)
    return zone.localize(local_dt).astimezone(timezone.utc)


def start_of_day(day: date, tz_name: str) -> datetime:
    return to_utc(datetime.combine(day, time.min), tz_name)


def end_of_day(day: date, tz_name: str) -> datetime:
    """Exclusive end: the UTC instant of the following local midnight"""
    return to_utc(datetime.combine(day + timedelta(days=1), time.min), tz_name)


def week_boundaries(day: date, tz_name: str) -> tuple[datetime, datetime]:
    """Monday 00:00 to the following Monday 00:00 (exclusive) in tz_name, as UTC"""
    monday = day - timedelta(days=day.weekday())
    return start_of_day(monday, tz_name), start_of_day(monday + timedelta(days=7), tz_name)


def intervals_overlap(
    start1: datetime, end1: datetime, start2: datetime, end2: datetime
) -> bool:
    """Half-open overlap test; back-to-back intervals do not overlap"""
    return start1 < end2 and end1 > start2


def format_iso8601(instant: datetime, tz_name: str) -> str:
    """ISO-8601 with the zone's offset, e.g. 2025-03-03T09:00:00-05:00"""
    return to_local(instant, tz_name).isoformat()


def format_human(instant: datetime, tz_name: str) -> str:
    """Readable form used in e-mails: Monday, March 3, 2025 at 09:00 AM EST"""
    local = to_local(instant, tz_name)
    return f"{local:%A, %B} {local.day}, {local:%Y at %I:%M %p %Z}"
