"""Shared test fixtures and helpers."""

from datetime import date, datetime, timedelta
from typing import Optional

import pytest
import pytz

from salon_availability.booking.commit_service import AppointmentCommitService
from salon_availability.booking.state_machine import BookingStateMachine
from salon_availability.engine.slot_generator import SlotGenerator
from salon_availability.schemas.booking_schema import (
    Appointment,
    AppointmentStatus,
    BookingRequest,
    Service,
)
from salon_availability.schemas.hours_schema import OperatingHours
from salon_availability.tools import appointments, employees, salons, services

KIGALI = pytz.timezone("Africa/Kigali")

# Monday 19 October 2026, 08:00 salon-local. Fixed so tests never depend on the clock.
MONDAY = date(2026, 10, 19)
TUESDAY = date(2026, 10, 20)
SATURDAY = date(2026, 10, 24)
SUNDAY = date(2026, 10, 25)


def local_dt(day: date, hour: int, minute: int = 0) -> datetime:
    """Aware salon-local datetime on ``day``."""
    return KIGALI.localize(datetime(day.year, day.month, day.day, hour, minute))


NOW = local_dt(MONDAY, 8, 0)


def make_appointment(
    employee_id: str,
    start: datetime,
    end: datetime,
    status: AppointmentStatus = AppointmentStatus.CONFIRMED,
    appointment_id: Optional[str] = None,
    customer_id: str = "cust-1",
    service_id: str = "haircut",
) -> Appointment:
    return Appointment(
        id=appointment_id or f"APT-{employee_id}-{start:%m%d%H%M}",
        salon_id="salon-001",
        service_id=service_id,
        customer_id=customer_id,
        employee_id=employee_id,
        scheduled_start=start,
        scheduled_end=end,
        status=status,
    )


def make_request(
    start: datetime,
    duration_minutes: int = 30,
    employee_id: str = "emp-aline",
    service_id: str = "haircut",
    customer_id: str = "cust-1",
    request_token: Optional[str] = None,
) -> BookingRequest:
    return BookingRequest(
        salon_id="salon-001",
        service_id=service_id,
        customer_id=customer_id,
        scheduled_start=start,
        scheduled_end=start + timedelta(minutes=duration_minutes),
        employee_id=employee_id,
        request_token=request_token,
    )


@pytest.fixture(autouse=True)
def reset_collaborators():
    """Restore the seeded in-memory backends around every test."""
    salons.reset()
    employees.reset()
    appointments.reset()
    yield
    appointments.reset()


@pytest.fixture
def tz():
    return KIGALI


@pytest.fixture
def hours_9_to_18():
    return OperatingHours.uniform("09:00", "18:00")


@pytest.fixture
def generator():
    return SlotGenerator(interval_minutes=30, tz=KIGALI)


@pytest.fixture
def haircut() -> Service:
    return services.get_service("haircut")


@pytest.fixture
def store():
    return appointments.appointment_store


@pytest.fixture
def commit_service(store) -> AppointmentCommitService:
    return AppointmentCommitService(
        store=store,
        list_employees=employees.list_active_employees,
        get_employee=employees.get_employee,
        get_service=services.get_service,
        get_settings=salons.get_salon_settings,
        get_rules=employees.get_availability_rules,
        tz=KIGALI,
    )


@pytest.fixture
def booking_state_machine():
    return BookingStateMachine()
