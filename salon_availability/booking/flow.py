"""
Per-session booking flow: browse -> select -> build times -> validate -> commit.

Each ``BookingFlow`` owns its own slot cache. The cache is discarded
after a commit or when the session is abandoned and never shared between
sessions. A commit conflict drops the current selection and reloads the
day's slots; a commit timeout is resolved by re-reading the customer's
appointments before anything is reported.

Usage:
    flow = create_booking_flow("salon-001", "cust-42")
    flow.choose_service("haircut")
    flow.choose_employee("any")
    calendar = await flow.load_calendar()
    slots = await flow.choose_date(date(2026, 10, 20))
    flow.choose_time("10:00")
    outcome = await flow.confirm()
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Callable, Optional, Union

from salon_availability.booking.commit_service import (
    AppointmentCommitService,
    EmployeeLister,
    ServiceGetter,
    SettingsGetter,
)
from salon_availability.booking.state_machine import BookingStateMachine, BookingStep, BookingTrigger
from salon_availability.config import settings
from salon_availability.engine.aggregator import AvailabilityAggregator
from salon_availability.engine.operating_hours import OperatingHoursResolver, ResolvedHours
from salon_availability.engine.slot_generator import SlotGenerator
from salon_availability.engine.time_builder import AppointmentTimeBuilder
from salon_availability.engine.validator import BookingValidator, SlotSnapshot
from salon_availability.errors import (
    EmployeeUnavailable,
    NetworkOrTimeout,
    SlotNoLongerAvailable,
    StaleSlotData,
)
from salon_availability.logging_context import get_session_logger, set_session_id
from salon_availability.schemas.booking_schema import (
    ANY_EMPLOYEE,
    Appointment,
    BookingRequest,
    DayAvailability,
    Service,
    TimeSlot,
)
from salon_availability.tools import appointments, employees, salons, services
from salon_availability.utils import get_timezone, parse_date_key, to_local

logger = get_session_logger(__name__)


@dataclass
class BookingOutcome:
    """Result of a confirm attempt."""

    booked: bool
    appointment: Optional[Appointment] = None
    reason: Optional[str] = None
    suggestions: list[TimeSlot] = field(default_factory=list)


class BookingFlow:
    """Client-side orchestration of one customer's booking session."""

    def __init__(
        self,
        salon_id: str,
        customer_id: str,
        aggregator: AvailabilityAggregator,
        commit_service: AppointmentCommitService,
        list_employees: EmployeeLister,
        get_service: ServiceGetter,
        get_settings: SettingsGetter,
        validator: Optional[BookingValidator] = None,
        time_builder: Optional[AppointmentTimeBuilder] = None,
        session_id: Optional[str] = None,
        commit_timeout: Optional[float] = None,
    ) -> None:
        self.salon_id = salon_id
        self.customer_id = customer_id
        self.aggregator = aggregator
        self.commit_service = commit_service
        self._list_employees = list_employees
        self._get_service = get_service
        self._get_settings = get_settings
        self.validator = validator or BookingValidator(tz=aggregator.tz)
        self.time_builder = time_builder or AppointmentTimeBuilder(tz=aggregator.tz)
        self.commit_timeout = commit_timeout or settings.commit.timeout_seconds
        self.session_id = session_id or f"BKS-{uuid.uuid4().hex[:8]}"
        set_session_id(self.session_id)

        self.state = BookingStateMachine()
        self.service: Optional[Service] = None
        self.employee_id: Optional[str] = None
        self.selected_date: Optional[date] = None
        self.selected_slot: Optional[TimeSlot] = None
        self._snapshot: Optional[SlotSnapshot] = None
        self._hours: Optional[ResolvedHours] = None
        self._request_token: Optional[str] = None

    # ------------------------------------------------------------------ #
    # Properties
    # ------------------------------------------------------------------ #

    @property
    def slots(self) -> list[TimeSlot]:
        """Cached slots of the selected date (empty before a date is chosen)."""
        return list(self._snapshot.slots) if self._snapshot else []

    @property
    def hours(self) -> ResolvedHours:
        if self._hours is None:
            raw = self._get_settings(self.salon_id) or {}
            self._hours = OperatingHoursResolver().resolve_or_default(raw, salon_id=self.salon_id)
        return self._hours

    # ------------------------------------------------------------------ #
    # Selection steps
    # ------------------------------------------------------------------ #

    def choose_service(self, service_id: str) -> Service:
        service = self._get_service(service_id)
        if service is None:
            raise ValueError(f"Unknown service: {service_id}")
        self.state.transition(BookingTrigger.SERVICE_CHOSEN)
        self.service = service
        logger.info("Service chosen: %s (%d min)", service.id, service.duration_minutes)
        return service

    def choose_employee(self, employee_id: str = ANY_EMPLOYEE) -> None:
        if self.state.current_step == BookingStep.DATE:
            self.state.transition(BookingTrigger.CHANGE_EMPLOYEE)
        self.state.transition(BookingTrigger.EMPLOYEE_CHOSEN)
        self.employee_id = employee_id
        self._discard_selection()

    async def load_calendar(
        self,
        start_date: Optional[date] = None,
        days: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> list[DayAvailability]:
        """Day summaries for the chosen employee, or the pool for "any".

        An empty pool yields an empty calendar. If appointment data for a
        specific employee cannot be read, the operating-hours-only
        approximation is returned instead.
        """
        service = self._require_service()
        hours = self.hours.hours
        if self.employee_id in (None, ANY_EMPLOYEE):
            try:
                return await self.aggregator.pool_calendar(
                    hours, self._list_employees(self.salon_id), service, start_date, days, now
                )
            except EmployeeUnavailable as exc:
                logger.info("Empty staff pool for salon %s: %s", self.salon_id, exc)
                return []

        try:
            return await asyncio.to_thread(
                self.aggregator.employee_calendar,
                hours, self.employee_id, service, start_date, days, now,
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Appointment data unavailable for %s (%s); using operating hours only",
                self.employee_id, exc,
            )
            return self.aggregator.closed_form_calendar(hours, service, start_date, days, now)

    async def choose_date(
        self, selected_date: Union[date, str], now: Optional[datetime] = None
    ) -> list[TimeSlot]:
        """Select a date and load its slots.

        Raises:
            PastDateSelected: Before any backend is contacted.
        """
        if isinstance(selected_date, str):
            selected_date = parse_date_key(selected_date)
        self.validator.ensure_not_past(selected_date, now)
        if self.state.current_step in (BookingStep.TIME, BookingStep.CONFIRM):
            if self.state.current_step == BookingStep.CONFIRM:
                self.state.transition(BookingTrigger.CHANGE_TIME)
            self.state.transition(BookingTrigger.CHANGE_DATE)
        self.state.transition(BookingTrigger.DATE_CHOSEN)

        self.selected_date = selected_date
        self._discard_selection()
        await self.refresh_slots(now)
        if not any(s.available for s in self.slots):
            logger.info("No open slots on %s", selected_date)
        return self.slots

    async def refresh_slots(self, now: Optional[datetime] = None) -> list[TimeSlot]:
        """Re-fetch the selected date's slots into the session cache."""
        service = self._require_service()
        if self.selected_date is None:
            raise ValueError("No date selected")
        hours = self.hours.hours
        if self.employee_id in (None, ANY_EMPLOYEE):
            try:
                slots = await self.aggregator.pool_slots(
                    hours, self._list_employees(self.salon_id), self.selected_date, service, now
                )
            except EmployeeUnavailable as exc:
                logger.info("Empty staff pool for salon %s: %s", self.salon_id, exc)
                slots = []
        else:
            slots = await asyncio.to_thread(
                self.aggregator.employee_slots,
                hours, self.employee_id, self.selected_date, service, now,
            )

        fetched_at = (
            to_local(now, self.aggregator.tz).astimezone(timezone.utc)
            if now
            else datetime.now(timezone.utc)
        )
        self._snapshot = SlotSnapshot(
            date=self.selected_date,
            employee_id=self.employee_id or ANY_EMPLOYEE,
            slots=slots,
            fetched_at=fetched_at,
        )
        return self.slots

    def choose_time(self, start_time: str) -> TimeSlot:
        """Select one of the cached available slots by its ``HH:MM`` start."""
        slot = next((s for s in self.slots if s.start_time == start_time), None)
        if slot is None or not slot.available:
            raise ValueError(f"{start_time} is not an available slot")
        if self.state.current_step == BookingStep.CONFIRM:
            self.state.transition(BookingTrigger.CHANGE_TIME)
        self.state.transition(BookingTrigger.TIME_CHOSEN)
        self.selected_slot = slot
        self._request_token = None
        return slot

    # ------------------------------------------------------------------ #
    # Confirm / commit
    # ------------------------------------------------------------------ #

    async def confirm(
        self, notes: Optional[str] = None, now: Optional[datetime] = None
    ) -> BookingOutcome:
        """Build, validate and commit the selected slot.

        Returns a conflict outcome (with refreshed slots cached) when the
        slot was taken in the meantime.

        Raises:
            NetworkOrTimeout: The commit timed out and no appointment for
                this request could be found afterwards. Calling ``confirm``
                again retries with the same request token.
        """
        service = self._require_service()
        if self.selected_slot is None or self.selected_date is None:
            raise ValueError("No time slot selected")

        start, end = self.time_builder.build(
            self.selected_date, self.selected_slot, service.duration_minutes
        )
        if self._request_token is None:
            self._request_token = f"REQ-{uuid.uuid4().hex}"
        else:
            previous = self._reconcile(self._request_token)
            if previous is not None:
                self.state.transition(BookingTrigger.SUBMIT)
                return self._booked(previous)
        request = BookingRequest(
            salon_id=self.salon_id,
            service_id=service.id,
            customer_id=self.customer_id,
            scheduled_start=start,
            scheduled_end=end,
            employee_id=self.employee_id or ANY_EMPLOYEE,
            request_token=self._request_token,
            notes=notes,
        )

        self.state.transition(BookingTrigger.SUBMIT)
        try:
            await self.refresh_slots(now)
            result = self.validator.validate(request, self._snapshot, now)
        except StaleSlotData as exc:
            logger.warning("Slot data went stale before validation: %s", exc)
            return await self._conflict(str(exc), now)
        except Exception:
            self.state.transition(BookingTrigger.COMMIT_FAILED)
            raise
        if not result.valid:
            logger.info("Validation conflict for %s: %s", self.selected_slot.start_time, result.reason)
            return await self._conflict(result.reason, now)

        try:
            appointment = await asyncio.wait_for(
                asyncio.to_thread(self.commit_service.commit, request, now),
                timeout=self.commit_timeout,
            )
        except SlotNoLongerAvailable as exc:
            logger.info("Commit conflict: %s", exc)
            return await self._conflict(str(exc), now)
        except asyncio.TimeoutError:
            appointment = self._reconcile(request.request_token)
            if appointment is None:
                self.state.transition(BookingTrigger.COMMIT_FAILED)
                raise NetworkOrTimeout(
                    f"Commit timed out after {self.commit_timeout:.1f}s; booking state unknown"
                ) from None
        except Exception:
            self.state.transition(BookingTrigger.COMMIT_FAILED)
            raise

        return self._booked(appointment)

    def abandon(self) -> None:
        self.state.transition(BookingTrigger.ABANDON)
        self._snapshot = None
        self._discard_selection()

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _reconcile(self, request_token: str) -> Optional[Appointment]:
        """Look for the appointment a timed-out commit may have created."""
        for appointment in self.commit_service.store.list_for_customer(self.customer_id):
            if appointment.request_token == request_token:
                logger.info("Timed-out commit did succeed: %s", appointment.id)
                return appointment
        logger.warning("Timed-out commit left no appointment for token %s", request_token)
        return None

    async def _conflict(self, reason: Optional[str], now: Optional[datetime]) -> BookingOutcome:
        self.state.transition(BookingTrigger.COMMIT_CONFLICT)
        self._discard_selection()
        slots = await self.refresh_slots(now)
        self.state.transition(BookingTrigger.SLOTS_REFRESHED)
        return BookingOutcome(
            booked=False,
            reason=reason,
            suggestions=[s for s in slots if s.available][: settings.commit.max_suggestions],
        )

    def _booked(self, appointment: Appointment) -> BookingOutcome:
        self.state.transition(BookingTrigger.COMMIT_SUCCEEDED)
        self._snapshot = None
        self._request_token = None
        logger.info(
            "Booked %s with %s at %s",
            appointment.id, appointment.employee_id, appointment.scheduled_start.isoformat(),
        )
        return BookingOutcome(booked=True, appointment=appointment)

    def _discard_selection(self) -> None:
        self.selected_slot = None
        self._request_token = None

    def _require_service(self) -> Service:
        if self.service is None:
            raise ValueError("No service selected")
        return self.service


def create_commit_service(tz=None) -> AppointmentCommitService:
    """Commit service wired to the in-memory collaborators."""
    return AppointmentCommitService(
        store=appointments.appointment_store,
        list_employees=employees.list_active_employees,
        get_employee=employees.get_employee,
        get_service=services.get_service,
        get_settings=salons.get_salon_settings,
        get_rules=employees.get_availability_rules,
        tz=tz,
    )


def create_booking_flow(
    salon_id: str,
    customer_id: str,
    timezone_name: Optional[str] = None,
    commit_service: Optional[AppointmentCommitService] = None,
    read_appointments: Optional[Callable] = None,
) -> BookingFlow:
    """Booking flow wired to the in-memory collaborators."""
    tz = get_timezone(timezone_name or settings.salon.timezone)
    aggregator = AvailabilityAggregator(
        read_appointments=read_appointments or appointments.list_employee_appointments,
        read_rules=employees.get_availability_rules,
        generator=SlotGenerator(tz=tz),
    )
    return BookingFlow(
        salon_id=salon_id,
        customer_id=customer_id,
        aggregator=aggregator,
        commit_service=commit_service or create_commit_service(tz),
        list_employees=employees.list_active_employees,
        get_service=services.get_service,
        get_settings=salons.get_salon_settings,
    )
