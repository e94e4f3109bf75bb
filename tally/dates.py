"""Local calendar-day helpers.

Every date string in Tally is a local YYYY-MM-DD, never a UTC
serialization.

"Local" means TIMEZONE_OFFSET_HOURS when configured, otherwise the system
zone of the running process.
"""

import re
import logging
from datetime import date, datetime, timedelta, timezone, tzinfo

log = logging.getLogger(__name__)

_DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2}", re.ASCII)


class ValidationError(ValueError):
    """Raised for a malformed, impossible or out-of-range date."""


def local_tz() -> tzinfo | None:
    """Configured fixed-offset zone, or None for the system zone."""
    from tally.config import TIMEZONE_OFFSET_HOURS
    if not TIMEZONE_OFFSET_HOURS:
        return None
    try:
        hours = float(TIMEZONE_OFFSET_HOURS)
    except ValueError:
        log.warning("Ignoring bad TIMEZONE_OFFSET_HOURS=%r", TIMEZONE_OFFSET_HOURS)
        return None
    return timezone(timedelta(hours=hours))


def to_local_date_string(instant: datetime | date) -> str:
    """Format an instant as the local calendar day it falls on.

    Aware datetimes are converted into the local zone first. Naive datetimes
    and plain dates are taken as already local.
    """
    if isinstance(instant, datetime):
        if instant.tzinfo is not None:
            tz = local_tz()
            instant = instant.astimezone(tz) if tz else instant.astimezone()
    elif not isinstance(instant, date):
        raise TypeError(f"expected datetime or date, got {type(instant).__name__}")
    return f"{instant.year:04d}-{instant.month:02d}-{instant.day:02d}"


def _parse_date(value: str) -> date:
    if not isinstance(value, str) or not _DATE_RE.fullmatch(value):
        raise ValidationError(f"Invalid date {value!r}, expected YYYY-MM-DD")
    year, month, day = (int(p) for p in value.split("-"))
    try:
        return date(year, month, day)
    except ValueError as e:
        raise ValidationError(f"Invalid date {value!r}: {e}") from e


def parse_local_date_string(value: str) -> datetime:
    """Return local midnight of a YYYY-MM-DD string as an aware datetime.

    Built from the three integer fields, never through a generic parser.
    Raises ValidationError for wrong shape, non-numeric parts or dates that
    do not exist on the calendar (month 13, February 30th).
    """
    d = _parse_date(value)
    tz = local_tz()
    if tz:
        return datetime(d.year, d.month, d.day, tzinfo=tz)
    instant = datetime(d.year, d.month, d.day).astimezone()
    # Where DST starts at 00:00 local midnight does not exist and the
    # conversion lands on the previous evening. Walk forward to the first
    # instant that exists on the requested day.
    while instant.date() < d:
        instant = (instant + timedelta(minutes=15)).astimezone()
    return instant


def days_between(a: str, b: str) -> int:
    """Whole calendar days from a to b (negative when b is earlier).

    Compares calendar dates, not elapsed seconds, so a DST switch between
    the two midnights cannot produce an off-by-one.
    """
    return (_parse_date(b) - _parse_date(a)).days


def shift_date_string(value: str, days: int) -> str:
    """Move a YYYY-MM-DD string by a number of calendar days."""
    return to_local_date_string(_parse_date(value) + timedelta(days=days))


def today_string(now: datetime | None = None) -> str:
    """Local "today" as YYYY-MM-DD."""
    if now is None:
        tz = local_tz()
        now = datetime.now(tz) if tz else datetime.now().astimezone()
    return to_local_date_string(now)


def validate_user_date(value: str, today: str | None = None) -> str:
    """Check a date typed by the user before it reaches storage.

    Must be a real YYYY-MM-DD and must not be after today.
    """
    value = value.strip() if isinstance(value, str) else value
    _parse_date(value)
    today = today or today_string()
    if days_between(today, value) > 0:
        raise ValidationError(f"{value} is in the future")
    return value
