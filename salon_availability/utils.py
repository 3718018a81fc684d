"""Shared time and calendar utilities used across the availability engine."""

import logging
import re
from datetime import date, datetime, tzinfo

import pytz

logger = logging.getLogger(__name__)

_TIME_PATTERN = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")
MINUTES_PER_DAY = 24 * 60


def parse_hhmm(value: str) -> int:
    """Convert an ``HH:MM`` string to minutes from midnight.

    Examples:
        >>> parse_hhmm("09:30")
        570
        >>> parse_hhmm("9:05")
        545
    """
    match = _TIME_PATTERN.match(value or "")
    if not match:
        raise ValueError(f"Invalid time {value!r}, expected HH:MM")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 24 or minutes > 59 or (hours == 24 and minutes):
        raise ValueError(f"Invalid time {value!r}, out of range")
    return hours * 60 + minutes


def format_minutes(total: int) -> str:
    """Format minutes from midnight as a zero-padded ``HH:MM`` string.

    Examples:
        >>> format_minutes(570)
        '09:30'
    """
    if not 0 <= total <= MINUTES_PER_DAY:
        raise ValueError(f"Minutes out of range for one day: {total}")
    hours, minutes = divmod(total, 60)
    return f"{hours:02d}:{minutes:02d}"


def normalize_hhmm(value: str) -> str:
    """Normalize ``9:00`` style input to ``09:00``."""
    return format_minutes(parse_hhmm(value))


def date_key(value: date) -> str:
    """Build a ``YYYY-MM-DD`` key from the value's own year/month/day.

    For datetimes the components are read as-is (salon-local); the value
    is never converted to UTC first, which would shift late-evening
    bookings onto the next or previous calendar day.
    """
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def parse_date_key(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` salon-local date string."""
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except (ValueError, AttributeError):
        raise ValueError(f"Invalid date {value!r}, expected YYYY-MM-DD") from None


def weekday_name(value: date) -> str:
    """Lowercase English weekday name of a calendar date."""
    return value.strftime("%A").lower()


def intervals_overlap(start_a, end_a, start_b, end_b) -> bool:
    """Half-open interval overlap: [start_a, end_a) intersects [start_b, end_b)."""
    return start_a < end_b and end_a > start_b


def get_timezone(name: str) -> tzinfo:
    """Resolve an IANA timezone name, falling back to UTC when unknown."""
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        logger.warning("Unknown timezone '%s', using UTC", name)
        return pytz.UTC


def local_now(tz: tzinfo) -> datetime:
    """Current instant expressed in the given timezone."""
    return datetime.now(pytz.UTC).astimezone(tz)


def to_local(value: datetime, tz: tzinfo) -> datetime:
    """Express an instant in the salon timezone.

    Naive datetimes are taken to already be salon-local wall time.
    """
    if value.tzinfo is None:
        return tz.localize(value)  # type: ignore[attr-defined]
    return value.astimezone(tz)


def minutes_of_day(value: datetime) -> int:
    """Minutes from midnight of a (salon-local) datetime."""
    return value.hour * 60 + value.minute
