"""
Server-side appointment commit authority.

This is where double-booking is actually prevented. Every reservation
runs as one atomic unit under the locks of the (employee, salon-local day)
pairs it touches:

    1. re-read the employee's appointments for that day
    2. re-check the start against the employee's working window, breaks,
       buffer, lead time and booking window, and verify nothing overlaps
       the requested [start, end)
    3. insert the new appointment

"any available" requests are assigned inside the same unit to the first
active employee, in directory order, for whom that check passes. A
request token makes the call idempotent: replaying it returns the
appointment created first.

The client-visible validate-then-create sequence is not race-free on its
own; only this service's lock makes it so.
"""

import uuid
from datetime import datetime, time, timedelta
from typing import Callable, Optional

from salon_availability.config import settings
from salon_availability.engine.operating_hours import OperatingHoursResolver
from salon_availability.engine.slot_generator import REASON_NOT_WORKING, SlotGenerator, working_hours_for
from salon_availability.engine.validator import suggest_alternatives
from salon_availability.errors import (
    AppointmentNotFound,
    EmployeeUnavailable,
    PastDateSelected,
    SlotNoLongerAvailable,
)
from salon_availability.logging_context import booking_scope, get_session_logger
from salon_availability.schemas.booking_schema import (
    Appointment,
    AppointmentStatus,
    BookingRequest,
    Employee,
    Service,
    ValidationResult,
)
from salon_availability.schemas.hours_schema import AvailabilityRules, OperatingHours
from salon_availability.tools.appointments import AppointmentStore
from salon_availability.utils import date_key, get_timezone, local_now, minutes_of_day, parse_hhmm, to_local

logger = get_session_logger(__name__)

EmployeeLister = Callable[[str], list[Employee]]
EmployeeGetter = Callable[[str], Optional[Employee]]
ServiceGetter = Callable[[str], Optional[Service]]
SettingsGetter = Callable[[str], Optional[dict]]
RulesGetter = Callable[[str], Optional[AvailabilityRules]]


class AppointmentCommitService:
    """Atomically reserves, cancels and reschedules appointments."""

    def __init__(
        self,
        store: AppointmentStore,
        list_employees: EmployeeLister,
        get_employee: EmployeeGetter,
        get_service: ServiceGetter,
        get_settings: SettingsGetter,
        get_rules: Optional[RulesGetter] = None,
        tz=None,
    ) -> None:
        self.store = store
        self._list_employees = list_employees
        self._get_employee = get_employee
        self._get_service = get_service
        self._get_settings = get_settings
        self._get_rules = get_rules or (lambda _employee_id: None)
        self.tz = tz or get_timezone(settings.salon.timezone)
        self._resolver = OperatingHoursResolver()
        self._generator = SlotGenerator(tz=self.tz)

    # ------------------------------------------------------------------ #
    # Commit
    # ------------------------------------------------------------------ #

    def commit(self, request: BookingRequest, now: Optional[datetime] = None) -> Appointment:
        """Reserve the requested time and return the created appointment.

        Raises:
            SlotNoLongerAvailable: The requested employee, or every candidate
                when "any", is booked, on a break, off work or otherwise
                cannot take this start time.
            EmployeeUnavailable: The employee is unknown or inactive, or the
                salon has no active employees.
            PastDateSelected: The requested start is already in the past.
            ValueError: The service does not exist.
        """
        if request.request_token:
            with self.store.locked(("token", request.request_token)):
                existing = self.store.find_by_token(request.request_token)
                if existing is not None:
                    logger.info(
                        "Replayed request token %s -> %s", request.request_token, existing.id
                    )
                    return existing
                return self._commit(request, now)
        return self._commit(request, now)

    def _commit(self, request: BookingRequest, now: Optional[datetime]) -> Appointment:
        service = self._require_service(request.service_id)
        start = to_local(request.scheduled_start, self.tz)
        end = self.tz.normalize(start + timedelta(minutes=service.duration_minutes))
        if to_local(request.scheduled_end, self.tz) != end:
            logger.warning(
                "Client end %s differs from derived end %s; using derived",
                request.scheduled_end.isoformat(), end.isoformat(),
            )

        current = to_local(now, self.tz) if now else local_now(self.tz)
        if start < current:
            raise PastDateSelected(f"Requested start {start.isoformat()} is in the past")

        hours = self.hours_for(request.salon_id)
        reason: Optional[str] = None
        for employee in self._candidates(request):
            appointment, reason = self._try_reserve(
                employee, request, hours, start, service.duration_minutes, current
            )
            if appointment is not None:
                return appointment

        target = "any available staff" if request.is_any_employee else request.employee_id
        logger.info("Slot %s no longer available for %s", start.isoformat(), target)
        detail = "" if request.is_any_employee or reason is None else f" ({reason})"
        raise SlotNoLongerAvailable(
            f"{start.strftime('%Y-%m-%d %H:%M')} is no longer available for {target}{detail}",
            employee_id=None if request.is_any_employee else request.employee_id,
        )

    def _candidates(self, request: BookingRequest) -> list[Employee]:
        if request.is_any_employee:
            candidates = [e for e in self._list_employees(request.salon_id) if e.is_active]
            if not candidates:
                raise EmployeeUnavailable(f"Salon {request.salon_id} has no active employees")
            return candidates

        employee = self._get_employee(request.employee_id)
        if employee is None or not employee.is_active:
            raise EmployeeUnavailable(f"Employee {request.employee_id} not found or inactive")
        return [employee]

    def _day_keys(self, employee_id: str, start: datetime, end: datetime) -> list[tuple]:
        """Lock keys of every salon-local day that ``[start, end)`` touches."""
        keys = []
        day = start.date()
        last = (end - timedelta(microseconds=1)).date()
        while day <= last:
            keys.append(("employee-day", employee_id, date_key(day)))
            day += timedelta(days=1)
        return keys

    def _day_appointments(self, employee_id: str, start: datetime, end: datetime) -> list[Appointment]:
        day_start = self.tz.localize(datetime.combine(start.date(), time.min))
        day_end = self.tz.localize(datetime.combine(start.date() + timedelta(days=1), time.min))
        return self.store.list_for_employee(employee_id, day_start, max(day_end, end))

    def _try_reserve(
        self,
        employee: Employee,
        request: BookingRequest,
        hours: OperatingHours,
        start: datetime,
        duration_minutes: int,
        now: datetime,
    ) -> tuple[Optional[Appointment], Optional[str]]:
        end = self.tz.normalize(start + timedelta(minutes=duration_minutes))
        with booking_scope(employee_id=employee.id, request_token=request.request_token):
            with self.store.locked(*self._day_keys(employee.id, start, end)):
                booked = self._day_appointments(employee.id, start, end)
                reason = self._generator.check(
                    hours, start, duration_minutes, booked, now=now,
                    rules=self._get_rules(employee.id),
                )
                if reason is not None:
                    logger.debug("Employee %s cannot take %s: %s", employee.id, start.isoformat(), reason)
                    return None, reason
                appointment = Appointment(
                    id=f"APT-{uuid.uuid4().hex[:8].upper()}",
                    salon_id=request.salon_id,
                    service_id=request.service_id,
                    customer_id=request.customer_id,
                    employee_id=employee.id,
                    scheduled_start=start,
                    scheduled_end=end,
                    status=AppointmentStatus.CONFIRMED,
                    notes=request.notes,
                    request_token=request.request_token,
                )
                self.store.save(appointment)

            logger.info(
                "Appointment %s committed: %s with %s at %s",
                appointment.id, request.service_id, employee.id, start.isoformat(),
            )
        return appointment, None

    # ------------------------------------------------------------------ #
    # Cancel / reschedule
    # ------------------------------------------------------------------ #

    def cancel(self, appointment_id: str) -> Appointment:
        """Cancel an appointment, freeing its slot."""
        updated = self.store.set_status(appointment_id, AppointmentStatus.CANCELLED)
        if updated is None:
            raise AppointmentNotFound(appointment_id)
        return updated

    def reschedule(
        self, appointment_id: str, new_start: datetime, now: Optional[datetime] = None
    ) -> Appointment:
        """Move an appointment to a new start time for the same employee.

        The overlap check ignores the appointment being moved.

        Raises:
            AppointmentNotFound: Unknown appointment id.
            SlotNoLongerAvailable: The new time overlaps another booking or
                falls outside the employee's bookable window.
            PastDateSelected: ``new_start`` is in the past.
        """
        existing = self.store.get(appointment_id)
        if existing is None:
            raise AppointmentNotFound(appointment_id)
        service = self._require_service(existing.service_id)

        start = to_local(new_start, self.tz)
        end = self.tz.normalize(start + timedelta(minutes=service.duration_minutes))
        current = to_local(now, self.tz) if now else local_now(self.tz)
        if start < current:
            raise PastDateSelected(f"Requested start {start.isoformat()} is in the past")

        old_start = to_local(existing.scheduled_start, self.tz)
        old_end = to_local(existing.scheduled_end, self.tz)
        keys = self._day_keys(existing.employee_id, old_start, old_end) + self._day_keys(
            existing.employee_id, start, end
        )
        hours = self.hours_for(existing.salon_id)
        with self.store.locked(*keys):
            booked = [
                a for a in self._day_appointments(existing.employee_id, start, end)
                if a.id != appointment_id
            ]
            reason = self._generator.check(
                hours, start, service.duration_minutes, booked, now=current,
                rules=self._get_rules(existing.employee_id),
            )
            if reason is not None:
                raise SlotNoLongerAvailable(
                    f"{start.strftime('%Y-%m-%d %H:%M')} is no longer available ({reason})",
                    employee_id=existing.employee_id,
                )
            updated = existing.model_copy(update={"scheduled_start": start, "scheduled_end": end})
            self.store.save(updated)

        logger.info("Appointment %s rescheduled to %s", appointment_id, start.isoformat())
        return updated

    # ------------------------------------------------------------------ #
    # Validation endpoint
    # ------------------------------------------------------------------ #

    def validate(
        self,
        employee_id: str,
        service_id: str,
        scheduled_start: datetime,
        scheduled_end: datetime,
        exclude_appointment_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ValidationResult:
        """Advisory check used by clients before commit. Not a reservation."""
        try:
            return self._validate(
                employee_id, service_id, scheduled_start, scheduled_end,
                exclude_appointment_id, now,
            )
        except Exception:
            logger.exception("Error validating booking for employee %s", employee_id)
            return ValidationResult.conflict("Unable to validate booking at this time")

    def _validate(
        self,
        employee_id: str,
        service_id: str,
        scheduled_start: datetime,
        scheduled_end: datetime,
        exclude_appointment_id: Optional[str],
        now: Optional[datetime],
    ) -> ValidationResult:
        employee = self._get_employee(employee_id)
        if employee is None or not employee.is_active:
            return ValidationResult.conflict("Employee not found or inactive")

        start = to_local(scheduled_start, self.tz)
        end = to_local(scheduled_end, self.tz)
        hours = self.hours_for(employee.salon_id or "")
        if hours.for_date(start.date()) is None:
            return ValidationResult.conflict("Salon is closed on this day")
        rules = self._get_rules(employee_id)
        day_hours = working_hours_for(hours, start.date(), rules)
        if day_hours is None:
            return ValidationResult.conflict(REASON_NOT_WORKING)
        end_minutes = minutes_of_day(end) if end.date() == start.date() else 24 * 60
        if (
            minutes_of_day(start) < parse_hhmm(day_hours.start_time)
            or end_minutes > parse_hhmm(day_hours.end_time)
        ):
            return ValidationResult.conflict("Time is outside working hours")

        conflicts = [
            a for a in self.store.list_for_employee(employee_id, start, end)
            if a.id != exclude_appointment_id
        ]
        if conflicts:
            service = self._get_service(service_id)
            duration = service.duration_minutes if service else int((end - start).total_seconds() // 60)
            booked = self._day_appointments(employee_id, start, end)
            slots = self._generator.generate(
                hours, start.date(), duration, booked, now=now,
                rules=rules, employee_id=employee_id,
            )
            return ValidationResult.conflict(
                "Time slot is already booked", suggest_alternatives(slots)
            )

        current = to_local(now, self.tz) if now else local_now(self.tz)
        if rules is not None:
            if date_key(start) in rules.blackout_dates:
                return ValidationResult.conflict("Employee is unavailable on this date")
            if rules.advance_booking_days is not None:
                horizon = current.date() + timedelta(days=rules.advance_booking_days)
                if start.date() > horizon:
                    return ValidationResult.conflict(
                        f"Bookings can only be made {rules.advance_booking_days} days in advance"
                    )
        lead_hours = rules.min_lead_time_hours if rules else 0
        if start < current + timedelta(hours=lead_hours):
            return ValidationResult.conflict(
                f"Bookings require at least {lead_hours:g} hour(s) advance notice"
            )

        return ValidationResult.ok()

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def hours_for(self, salon_id: str) -> OperatingHours:
        """Salon operating hours, degraded to the default window if malformed."""
        raw = self._get_settings(salon_id) or {}
        return self._resolver.resolve_or_default(raw, salon_id=salon_id).hours

    def _require_service(self, service_id: str) -> Service:
        service = self._get_service(service_id)
        if service is None:
            raise ValueError(f"Unknown service: {service_id}")
        return service
