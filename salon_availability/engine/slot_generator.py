"""
Slot generation for a single employee on a single salon-local date.

Slots sit on a fixed grid (``SLOT_INTERVAL_MINUTES``, 30 by default) that is
independent of the service duration. A start time ``t`` is a candidate only
when ``t + duration <= close``. Each candidate is then checked, in order,
against lead time, breaks, existing appointments and buffer time; the
first failing check becomes the slot's ``reason``.

The working window is the salon's hours for the weekday, narrowed by the
employee's own weekday schedule when one is configured.

Usage:
    generator = SlotGenerator()
    slots = generator.generate(hours, date(2026, 10, 19), 30, appointments, now=now)
    reason = generator.check(hours, start, 30, appointments, now=now, rules=rules)
"""

import logging
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Iterable, Optional

from salon_availability.config import settings
from salon_availability.schemas.booking_schema import Appointment, TimeSlot
from salon_availability.schemas.hours_schema import AvailabilityRules, DayHours, OperatingHours
from salon_availability.utils import (
    date_key,
    format_minutes,
    get_timezone,
    intervals_overlap,
    local_now,
    minutes_of_day,
    parse_hhmm,
    to_local,
    weekday_name,
)

logger = logging.getLogger(__name__)

REASON_PAST = "Past time slot"
REASON_BREAK = "Break time"
REASON_BOOKED = "Already booked"
REASON_BUFFER = "Buffer time required"
REASON_NOT_WORKING = "Employee is not working on this day"
REASON_OUTSIDE_HOURS = "Outside working hours"


def working_hours_for(
    hours: OperatingHours, target_date: date, rules: Optional[AvailabilityRules] = None
) -> Optional[DayHours]:
    """The employee's bookable window on ``target_date``.

    Salon hours narrowed by the employee's own weekday schedule. A weekday
    missing from that schedule follows the salon. None when either side is
    closed or the two windows do not intersect.
    """
    salon_day = hours.for_date(target_date)
    if salon_day is None or rules is None:
        return salon_day
    own = rules.working_hours.get(weekday_name(target_date))
    if own is None:
        return salon_day
    if not own.is_open:
        return None
    # Normalized HH:MM strings sort like the times they spell.
    start_time = max(salon_day.start_time, own.start_time)
    end_time = min(salon_day.end_time, own.end_time)
    if start_time >= end_time:
        return None
    return DayHours(is_open=True, start_time=start_time, end_time=end_time)


def count_slots(
    hours: OperatingHours,
    target_date: date,
    duration_minutes: int,
    interval_minutes: Optional[int] = None,
) -> int:
    """Closed-form number of grid slots that fit the day's operating window.

    Ignores appointments, breaks and lead time. Used only when no
    per-employee appointment data is available.
    """
    interval = interval_minutes or settings.slots.interval_minutes
    day_hours = hours.for_date(target_date)
    if day_hours is None:
        return 0
    open_min = parse_hhmm(day_hours.start_time)
    last_start = parse_hhmm(day_hours.end_time) - duration_minutes
    if last_start < open_min:
        return 0
    return (last_start - open_min) // interval + 1


class _DayConstraints:
    """Per-day inputs shared by every candidate start time."""

    def __init__(
        self,
        now: datetime,
        rules: Optional[AvailabilityRules],
        appointments: Iterable[Appointment],
    ) -> None:
        lead = timedelta(hours=rules.min_lead_time_hours) if rules else timedelta(0)
        self.earliest = now + lead
        self.breaks = (
            [(parse_hhmm(b.start_time), parse_hhmm(b.end_time)) for b in rules.breaks]
            if rules
            else []
        )
        self.buffer = timedelta(minutes=rules.buffer_minutes) if rules else timedelta(0)
        self.booked = [a for a in appointments if a.is_blocking]

    def reason(
        self, start_dt: datetime, end_dt: datetime, start_min: int, end_min: int
    ) -> Optional[str]:
        if start_dt < self.earliest:
            return REASON_PAST
        if any(intervals_overlap(start_min, end_min, bs, be) for bs, be in self.breaks):
            return REASON_BREAK
        if any(a.overlaps(start_dt, end_dt) for a in self.booked):
            return REASON_BOOKED
        if self.buffer and any(
            a.overlaps(start_dt - self.buffer, end_dt + self.buffer) for a in self.booked
        ):
            return REASON_BUFFER
        return None


class SlotGenerator:
    """Enumerates candidate slots and marks each available or unavailable."""

    def __init__(
        self, interval_minutes: Optional[int] = None, tz: Optional[tzinfo] = None
    ) -> None:
        self.interval_minutes = interval_minutes or settings.slots.interval_minutes
        self.tz = tz or get_timezone(settings.salon.timezone)

    def _local_instant(self, target_date: date, minutes: int) -> datetime:
        hour, minute = divmod(minutes, 60)
        naive = datetime.combine(target_date, time(hour % 24, minute))
        if hour >= 24:
            naive += timedelta(days=1)
        return self.tz.localize(naive)  # type: ignore[attr-defined]

    def _now(self, now: Optional[datetime]) -> datetime:
        return to_local(now, self.tz) if now is not None else local_now(self.tz)

    def is_bookable_date(
        self, target_date: date, now: datetime, rules: Optional[AvailabilityRules]
    ) -> bool:
        """Date-level rules: blackout dates and the advance-booking window."""
        if rules is None:
            return True
        if date_key(target_date) in rules.blackout_dates:
            logger.debug("%s is a blackout date", target_date)
            return False
        if rules.advance_booking_days is not None:
            horizon = now.date() + timedelta(days=rules.advance_booking_days)
            if target_date > horizon:
                logger.debug("%s is beyond the advance booking window", target_date)
                return False
        return True

    def generate(
        self,
        hours: OperatingHours,
        target_date: date,
        duration_minutes: int,
        appointments: Iterable[Appointment] = (),
        now: Optional[datetime] = None,
        rules: Optional[AvailabilityRules] = None,
        price: Optional[float] = None,
        employee_id: Optional[str] = None,
    ) -> list[TimeSlot]:
        """Build the ordered slot list for one employee and one date.

        Returns an empty list for closed days, days off, blackout dates,
        dates beyond the advance-booking window, and days too short for
        the service.
        """
        if duration_minutes <= 0:
            raise ValueError(f"duration_minutes must be > 0, got {duration_minutes}")

        now_local = self._now(now)

        day_hours = working_hours_for(hours, target_date, rules)
        if day_hours is None:
            logger.debug("Closed or day off on %s", target_date)
            return []
        if not self.is_bookable_date(target_date, now_local, rules):
            return []

        open_min = parse_hhmm(day_hours.start_time)
        close_min = parse_hhmm(day_hours.end_time)
        last_start = close_min - duration_minutes
        if last_start < open_min:
            logger.debug(
                "Service of %d min does not fit %s-%s on %s",
                duration_minutes, day_hours.start_time, day_hours.end_time, target_date,
            )
            return []

        constraints = _DayConstraints(now_local, rules, appointments)
        slots: list[TimeSlot] = []
        for start_min in range(open_min, last_start + 1, self.interval_minutes):
            end_min = start_min + duration_minutes
            start_dt = self._local_instant(target_date, start_min)
            end_dt = start_dt + timedelta(minutes=duration_minutes)

            reason = constraints.reason(start_dt, end_dt, start_min, end_min)
            available = reason is None
            slots.append(
                TimeSlot(
                    start_time=format_minutes(start_min),
                    end_time=format_minutes(end_min),
                    available=available,
                    reason=reason,
                    price=price,
                    employee_ids=[employee_id] if available and employee_id else [],
                )
            )

        logger.debug(
            "Generated %d slots (%d free) for %s on %s",
            len(slots), sum(1 for s in slots if s.available), employee_id or "-", target_date,
        )
        return slots

    def check(
        self,
        hours: OperatingHours,
        start: datetime,
        duration_minutes: int,
        appointments: Iterable[Appointment] = (),
        now: Optional[datetime] = None,
        rules: Optional[AvailabilityRules] = None,
    ) -> Optional[str]:
        """Why ``start`` cannot be booked for one employee, or None if it can.

        Applies the same rules as ``generate`` to a single start time,
        which need not lie on the grid. The interval must fall inside the
        working window of its own local day.
        """
        if duration_minutes <= 0:
            raise ValueError(f"duration_minutes must be > 0, got {duration_minutes}")

        now_local = self._now(now)
        start_local = to_local(start, self.tz)
        target_date = start_local.date()

        day_hours = working_hours_for(hours, target_date, rules)
        if day_hours is None or not self.is_bookable_date(target_date, now_local, rules):
            return REASON_NOT_WORKING

        start_min = minutes_of_day(start_local)
        end_min = start_min + duration_minutes
        if start_min < parse_hhmm(day_hours.start_time) or end_min > parse_hhmm(day_hours.end_time):
            return REASON_OUTSIDE_HOURS

        end_local = self.tz.normalize(start_local + timedelta(minutes=duration_minutes))  # type: ignore[attr-defined]
        constraints = _DayConstraints(now_local, rules, appointments)
        return constraints.reason(start_local, end_local, start_min, end_min)
