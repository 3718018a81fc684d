"""
Day-level availability aggregation for calendar display.

For each date in a window the aggregator runs the SlotGenerator for one
employee, or for every active employee in the pool ("any available"),
and sums ``total_slots`` / ``available_slots``. The day status is a pure
function of those two counts (see ``day_status``).

Pool fetches are issued concurrently and joined. A failing employee fetch
is logged and contributes no slots; it never aborts the aggregation.
"""

import asyncio
import logging
from datetime import date, datetime, time, timedelta
from typing import Callable, Iterable, Optional

from salon_availability.config import settings
from salon_availability.engine.slot_generator import SlotGenerator, count_slots
from salon_availability.engine.slot_merger import merge_slots
from salon_availability.errors import EmployeeUnavailable
from salon_availability.schemas.booking_schema import (
    Appointment,
    DayAvailability,
    DayStatus,
    Employee,
    Service,
    TimeSlot,
)
from salon_availability.schemas.hours_schema import AvailabilityRules, OperatingHours
from salon_availability.utils import date_key, local_now, to_local

logger = logging.getLogger(__name__)

AppointmentReader = Callable[[str, datetime, datetime], list[Appointment]]
RulesReader = Callable[[str], Optional[AvailabilityRules]]


def day_status(total_slots: int, available_slots: int) -> DayStatus:
    """Four-way status rule shared by every calendar view."""
    if total_slots < 0 or available_slots < 0 or available_slots > total_slots:
        raise ValueError(
            f"Invalid slot counts: total={total_slots}, available={available_slots}"
        )
    if total_slots == 0:
        return DayStatus.UNAVAILABLE
    if available_slots == total_slots:
        return DayStatus.AVAILABLE
    if available_slots == 0:
        return DayStatus.FULLY_BOOKED
    return DayStatus.PARTIALLY_BOOKED


def summarize_day(target_date: date, total_slots: int, available_slots: int) -> DayAvailability:
    return DayAvailability(
        date=date_key(target_date),
        status=day_status(total_slots, available_slots),
        total_slots=total_slots,
        available_slots=available_slots,
    )


def _no_rules(_employee_id: str) -> Optional[AvailabilityRules]:
    return None


class AvailabilityAggregator:
    """Computes slot lists and day summaries for one employee or a staff pool."""

    def __init__(
        self,
        read_appointments: AppointmentReader,
        read_rules: Optional[RulesReader] = None,
        generator: Optional[SlotGenerator] = None,
    ) -> None:
        self._read_appointments = read_appointments
        self._read_rules = read_rules or _no_rules
        self.generator = generator or SlotGenerator()

    @property
    def tz(self):
        return self.generator.tz

    def _rules(self, employee_id: str) -> Optional[AvailabilityRules]:
        try:
            return self._read_rules(employee_id)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Could not fetch availability rules for employee %s: %s", employee_id, exc)
            return None

    # ------------------------------------------------------------------ #
    # Window helpers
    # ------------------------------------------------------------------ #

    def _day_bounds(self, first: date, last: date) -> tuple[datetime, datetime]:
        start = self.tz.localize(datetime.combine(first, time.min))
        end = self.tz.localize(datetime.combine(last + timedelta(days=1), time.min))
        return start, end

    def _window(self, start_date: Optional[date], days: Optional[int], now: datetime) -> list[date]:
        first = start_date or now.date()
        count = days or settings.slots.availability_window_days
        return [first + timedelta(days=i) for i in range(count)]

    def _now(self, now: Optional[datetime]) -> datetime:
        return to_local(now, self.tz) if now is not None else local_now(self.tz)

    def _generate(
        self,
        hours: OperatingHours,
        employee_id: str,
        target_date: date,
        service: Service,
        appointments: Iterable[Appointment],
        rules: Optional[AvailabilityRules],
        now: datetime,
    ) -> list[TimeSlot]:
        day_start, day_end = self._day_bounds(target_date, target_date)
        same_day = [a for a in appointments if a.overlaps(day_start, day_end)]
        return self.generator.generate(
            hours,
            target_date,
            service.duration_minutes,
            same_day,
            now=now,
            rules=rules,
            price=service.base_price,
            employee_id=employee_id,
        )

    # ------------------------------------------------------------------ #
    # Slot lists
    # ------------------------------------------------------------------ #

    def employee_slots(
        self,
        hours: OperatingHours,
        employee_id: str,
        target_date: date,
        service: Service,
        now: Optional[datetime] = None,
    ) -> list[TimeSlot]:
        """Fresh slot list for one employee on one date."""
        current = self._now(now)
        day_start, day_end = self._day_bounds(target_date, target_date)
        appointments = self._read_appointments(employee_id, day_start, day_end)
        rules = self._rules(employee_id)
        return self._generate(hours, employee_id, target_date, service, appointments, rules, current)

    async def pool_slots(
        self,
        hours: OperatingHours,
        employees: Iterable[Employee],
        target_date: date,
        service: Service,
        now: Optional[datetime] = None,
    ) -> list[TimeSlot]:
        """Merged "any available" slot list across active employees."""
        active = self._active(employees)
        current = self._now(now)
        results = await asyncio.gather(
            *(
                asyncio.to_thread(
                    self.employee_slots, hours, e.id, target_date, service, current
                )
                for e in active
            ),
            return_exceptions=True,
        )
        per_employee: dict[str, list[TimeSlot]] = {}
        for employee, result in zip(active, results):
            if isinstance(result, BaseException):
                logger.warning(
                    "Slot fetch failed for employee %s on %s: %s",
                    employee.id, target_date, result,
                )
                continue
            per_employee[employee.id] = result
        return merge_slots(per_employee)

    # ------------------------------------------------------------------ #
    # Calendars
    # ------------------------------------------------------------------ #

    def _employee_day_counts(
        self,
        hours: OperatingHours,
        employee_id: str,
        service: Service,
        window: list[date],
        now: datetime,
    ) -> dict[date, tuple[int, int]]:
        range_start, range_end = self._day_bounds(window[0], window[-1])
        appointments = self._read_appointments(employee_id, range_start, range_end)
        rules = self._rules(employee_id)
        counts: dict[date, tuple[int, int]] = {}
        for day in window:
            if day < now.date():
                counts[day] = (0, 0)
                continue
            slots = self._generate(hours, employee_id, day, service, appointments, rules, now)
            counts[day] = (len(slots), sum(1 for s in slots if s.available))
        return counts

    def employee_calendar(
        self,
        hours: OperatingHours,
        employee_id: str,
        service: Service,
        start_date: Optional[date] = None,
        days: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> list[DayAvailability]:
        """Per-day availability for a specific employee."""
        current = self._now(now)
        window = self._window(start_date, days, current)
        counts = self._employee_day_counts(hours, employee_id, service, window, current)
        return [summarize_day(day, *counts[day]) for day in window]

    async def pool_calendar(
        self,
        hours: OperatingHours,
        employees: Iterable[Employee],
        service: Service,
        start_date: Optional[date] = None,
        days: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> list[DayAvailability]:
        """Per-day availability summed across all active employees."""
        active = self._active(employees)
        current = self._now(now)
        window = self._window(start_date, days, current)

        results = await asyncio.gather(
            *(
                asyncio.to_thread(
                    self._employee_day_counts, hours, e.id, service, window, current
                )
                for e in active
            ),
            return_exceptions=True,
        )

        totals = {day: [0, 0] for day in window}
        for employee, result in zip(active, results):
            if isinstance(result, BaseException):
                logger.warning("Availability fetch failed for employee %s: %s", employee.id, result)
                continue
            for day, (total, available) in result.items():
                totals[day][0] += total
                totals[day][1] += available

        return [summarize_day(day, *totals[day]) for day in window]

    def closed_form_calendar(
        self,
        hours: OperatingHours,
        service: Service,
        start_date: Optional[date] = None,
        days: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> list[DayAvailability]:
        """Approximate calendar from operating hours alone.

        Every fitting slot counts as free. Only meant for when no
        per-employee appointment data can be fetched.
        """
        current = self._now(now)
        window = self._window(start_date, days, current)
        result = []
        for day in window:
            total = 0 if day < current.date() else count_slots(
                hours, day, service.duration_minutes, self.generator.interval_minutes
            )
            result.append(summarize_day(day, total, total))
        return result

    @staticmethod
    def _active(employees: Iterable[Employee]) -> list[Employee]:
        active = [e for e in employees if e.is_active]
        if not active:
            raise EmployeeUnavailable("No active employees available for booking")
        return active
