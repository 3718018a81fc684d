"""
Operating hours resolution.

Salon settings store business hours in several shapes, depending on which
client wrote them:

1. a per-weekday object ``{"monday": {"isOpen": true, "startTime": "09:00",
   "endTime": "18:00"}, ...}``
2. the same object as a JSON string, sometimes double-encoded or with
   escaped quotes
3. a single ``"08:00-20:00"`` range applied to every day of the week

The resolver turns any of these into one canonical ``OperatingHours``.
When nothing parses, ``resolve_or_default`` falls back to the configured
default window so the booking flow degrades instead of failing.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import ValidationError

from salon_availability.config import settings
from salon_availability.errors import MalformedConfig
from salon_availability.schemas.hours_schema import WEEKDAYS, DayHours, OperatingHours

logger = logging.getLogger(__name__)

_RANGE_PATTERN = re.compile(r"(\d{1,2}):(\d{2})\s*-\s*(\d{1,2}):(\d{2})")
_CAMEL_KEYS = ("isOpen", "startTime", "endTime")
_SNAKE_KEYS = ("is_open", "start_time", "end_time")
MAX_DECODE_DEPTH = 3

STRUCTURED_KEY = "operatingHours"
RANGE_KEY = "openingHours"


@dataclass(frozen=True)
class ResolvedHours:
    """Resolver output: the hours to use and whether they are a fallback."""

    hours: OperatingHours
    degraded: bool = False
    error: Optional[MalformedConfig] = None


def _decode_json(raw: str) -> Any:
    """Decode a JSON string that may be double-encoded or carry escaped quotes."""
    value: Any = raw
    for _ in range(MAX_DECODE_DEPTH):
        if not isinstance(value, str):
            break
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            unescaped = value.replace('\\"', '"')
            if unescaped == value:
                return None
            try:
                value = json.loads(unescaped)
            except json.JSONDecodeError:
                return None
    return None if isinstance(value, str) else value


def _entry_fields(entry: Any) -> Optional[tuple[Any, Any, Any]]:
    if not isinstance(entry, dict):
        return None
    for keys in (_CAMEL_KEYS, _SNAKE_KEYS):
        if all(k in entry for k in keys):
            return tuple(entry[k] for k in keys)  # type: ignore[return-value]
    return None


def parse_structured(raw: Any) -> Optional[OperatingHours]:
    """Parse the per-weekday shape (object or JSON string). None if unusable."""
    if isinstance(raw, OperatingHours):
        return raw
    value = _decode_json(raw) if isinstance(raw, str) else raw
    if not isinstance(value, dict) or not value:
        return None

    if not any(_entry_fields(entry) is not None for entry in value.values()):
        return None

    days: dict[str, DayHours] = {}
    for key, entry in value.items():
        day = str(key).strip().lower()
        fields = _entry_fields(entry)
        if day not in WEEKDAYS or fields is None:
            logger.warning("Ignoring operating-hours entry %r", key)
            continue
        is_open, start_time, end_time = fields
        if isinstance(is_open, str):
            is_open = is_open.strip().lower() == "true"
        try:
            days[day] = DayHours(
                is_open=bool(is_open), start_time=str(start_time), end_time=str(end_time)
            )
        except (ValidationError, ValueError) as exc:
            logger.warning("Invalid hours for %s, treating as closed: %s", day, exc)
            days[day] = DayHours(is_open=False)

    if not days:
        return None
    return OperatingHours(days=days)


def parse_range(raw: Any) -> Optional[OperatingHours]:
    """Parse an ``HH:MM-HH:MM`` string into identical hours for all seven days."""
    if not isinstance(raw, str):
        return None
    match = _RANGE_PATTERN.search(raw)
    if not match:
        return None
    start = f"{int(match.group(1)):02d}:{match.group(2)}"
    end = f"{int(match.group(3)):02d}:{match.group(4)}"
    try:
        return OperatingHours.uniform(start, end)
    except (ValidationError, ValueError) as exc:
        logger.warning("Invalid opening-hours range %r: %s", raw, exc)
        return None


def default_operating_hours() -> OperatingHours:
    """The fallback business window from configuration, all days open."""
    return OperatingHours.uniform(
        settings.salon.default_open_time, settings.salon.default_close_time
    )


class OperatingHoursResolver:
    """Normalizes a salon settings blob into canonical OperatingHours."""

    def resolve(self, raw: Any) -> Optional[OperatingHours]:
        """Return canonical hours, or None if no supported format matched.

        ``raw`` may be the whole settings dict (with ``operatingHours`` and/or
        ``openingHours`` keys) or the hours value itself.
        """
        if isinstance(raw, dict) and (STRUCTURED_KEY in raw or RANGE_KEY in raw):
            structured = raw.get(STRUCTURED_KEY)
            return (
                parse_structured(structured)
                or parse_range(structured)
                or parse_range(raw.get(RANGE_KEY))
            )
        return parse_structured(raw) or parse_range(raw)

    def resolve_or_default(self, raw: Any, salon_id: Optional[str] = None) -> ResolvedHours:
        """Resolve hours, degrading to the default window on malformed config."""
        hours = self.resolve(raw)
        if hours is not None:
            return ResolvedHours(hours=hours)

        error = MalformedConfig(
            f"Unparseable operating hours for salon {salon_id or '?'}; "
            f"using default {settings.salon.default_open_time}-{settings.salon.default_close_time}"
        )
        logger.warning("%s", error)
        return ResolvedHours(hours=default_operating_hours(), degraded=True, error=error)
