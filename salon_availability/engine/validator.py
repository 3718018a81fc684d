"""
Pre-commit booking validation.

Availability is never locked between browse and commit, so a cached slot
list goes stale the moment another customer books. The validator only
accepts a ``SlotSnapshot`` fetched within ``SLOT_FRESHNESS_SECONDS`` and
re-checks the chosen slot against it. A conflict means: drop the
selection, regenerate the day's slots and show them again. It never means
retry the same slot.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Optional

from salon_availability.config import settings
from salon_availability.errors import PastDateSelected, StaleSlotData
from salon_availability.schemas.booking_schema import BookingRequest, TimeSlot, ValidationResult
from salon_availability.utils import (
    date_key,
    format_minutes,
    get_timezone,
    local_now,
    minutes_of_day,
    parse_hhmm,
    to_local,
)

logger = logging.getLogger(__name__)

REASON_NOT_OFFERED = "Selected time is not offered on this date"
REASON_TAKEN = "Time slot is already booked"
REASON_EMPLOYEE_TAKEN = "Selected staff member is no longer free at this time"
REASON_DURATION = "Appointment length does not match the selected slot"
REASON_PAST = "Selected time is in the past"


@dataclass
class SlotSnapshot:
    """A slot list together with the instant it was fetched."""

    date: date
    employee_id: str
    slots: list[TimeSlot]
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def age_seconds(self, now: Optional[datetime] = None) -> float:
        current = now or datetime.now(timezone.utc)
        return (current - self.fetched_at).total_seconds()


def suggest_alternatives(slots: list[TimeSlot], limit: Optional[int] = None) -> list[TimeSlot]:
    """First few available slots, offered after a conflict."""
    cap = settings.commit.max_suggestions if limit is None else limit
    return [s for s in slots if s.available][:cap]


class BookingValidator:
    """Checks a BookingRequest against freshly fetched slot data."""

    def __init__(self, tz=None, freshness_seconds: Optional[float] = None) -> None:
        self.tz = tz or get_timezone(settings.salon.timezone)
        self.freshness_seconds = (
            freshness_seconds
            if freshness_seconds is not None
            else settings.commit.slot_freshness_seconds
        )

    def ensure_not_past(self, selected_date: date, now: Optional[datetime] = None) -> None:
        """Reject a date before today (salon-local) without touching any backend.

        Raises:
            PastDateSelected: If ``selected_date`` is before today.
        """
        current = to_local(now, self.tz) if now else local_now(self.tz)
        if selected_date < current.date():
            raise PastDateSelected(f"{date_key(selected_date)} is in the past")

    def validate(
        self,
        request: BookingRequest,
        snapshot: SlotSnapshot,
        now: Optional[datetime] = None,
    ) -> ValidationResult:
        """Return ``valid`` or a conflict with a reason and alternatives.

        Raises:
            StaleSlotData: If the snapshot is older than the freshness window.
            PastDateSelected: If the requested date is before today.
        """
        age = snapshot.age_seconds(to_local(now, self.tz).astimezone(timezone.utc) if now else None)
        if age > self.freshness_seconds:
            raise StaleSlotData(
                f"Slot data is {age:.1f}s old (limit {self.freshness_seconds:.1f}s)"
            )

        start = to_local(request.scheduled_start, self.tz)
        end = to_local(request.scheduled_end, self.tz)
        self.ensure_not_past(start.date(), now)

        current = to_local(now, self.tz) if now else local_now(self.tz)
        if start < current:
            return ValidationResult.conflict(REASON_PAST, suggest_alternatives(snapshot.slots))

        if start.date() != snapshot.date:
            return ValidationResult.conflict(REASON_NOT_OFFERED)

        start_text = format_minutes(minutes_of_day(start))
        slot = next((s for s in snapshot.slots if s.start_time == start_text), None)
        if slot is None:
            logger.info("Requested %s not in slot list for %s", start_text, snapshot.date)
            return ValidationResult.conflict(
                REASON_NOT_OFFERED, suggest_alternatives(snapshot.slots)
            )

        duration = int((end - start).total_seconds() // 60)
        slot_duration = _slot_minutes(slot)
        if duration != slot_duration:
            return ValidationResult.conflict(REASON_DURATION)

        if not slot.available:
            logger.info("Slot %s on %s unavailable: %s", start_text, snapshot.date, slot.reason)
            return ValidationResult.conflict(
                slot.reason or REASON_TAKEN, suggest_alternatives(snapshot.slots)
            )

        if not request.is_any_employee and request.employee_id not in slot.employee_ids:
            return ValidationResult.conflict(
                REASON_EMPLOYEE_TAKEN, suggest_alternatives(snapshot.slots)
            )

        return ValidationResult.ok()


def _slot_minutes(slot: TimeSlot) -> int:
    return parse_hhmm(slot.end_time) - parse_hhmm(slot.start_time)
