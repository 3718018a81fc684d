"""
Absolute appointment instants from a salon-local date and slot.

The instant is composed from the date's own year/month/day and the slot's
hour/minute in the salon timezone. The date is never serialized to a UTC
string first; that round trip moves late-evening bookings to the wrong
calendar day for salons east of UTC.
"""

import logging
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Optional, Union

from salon_availability.config import settings
from salon_availability.schemas.booking_schema import TimeSlot
from salon_availability.utils import get_timezone, parse_date_key, parse_hhmm

logger = logging.getLogger(__name__)


class AppointmentTimeBuilder:
    """Builds timezone-aware scheduled_start / scheduled_end pairs."""

    def __init__(self, tz: Optional[tzinfo] = None) -> None:
        self.tz = tz or get_timezone(settings.salon.timezone)

    def build(
        self,
        selected_date: Union[date, str],
        slot: Union[TimeSlot, str],
        duration_minutes: int,
    ) -> tuple[datetime, datetime]:
        """Return (scheduled_start, scheduled_end) as aware salon-local datetimes."""
        if duration_minutes <= 0:
            raise ValueError(f"duration_minutes must be > 0, got {duration_minutes}")
        if isinstance(selected_date, str):
            selected_date = parse_date_key(selected_date)
        elif isinstance(selected_date, datetime):
            selected_date = selected_date.date()

        start_text = slot.start_time if isinstance(slot, TimeSlot) else slot
        hour, minute = divmod(parse_hhmm(start_text), 60)
        if hour >= 24:
            raise ValueError(f"Slot start {start_text!r} is not within the day")

        naive = datetime.combine(
            date(selected_date.year, selected_date.month, selected_date.day),
            time(hour, minute),
        )
        start = self.tz.localize(naive)  # type: ignore[attr-defined]
        end = self.tz.normalize(start + timedelta(minutes=duration_minutes))  # type: ignore[attr-defined]
        return start, end

    def build_wire(
        self,
        selected_date: Union[date, str],
        slot: Union[TimeSlot, str],
        duration_minutes: int,
    ) -> dict[str, str]:
        """Same as ``build`` serialized as ISO-8601 with explicit offset."""
        start, end = self.build(selected_date, slot, duration_minutes)
        return {"scheduledStart": start.isoformat(), "scheduledEnd": end.isoformat()}
