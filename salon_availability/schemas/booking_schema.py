"""Booking, slot and appointment data models."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from salon_availability.utils import intervals_overlap

ANY_EMPLOYEE = "any"


class DayStatus(str, Enum):
    AVAILABLE = "available"
    PARTIALLY_BOOKED = "partially_booked"
    FULLY_BOOKED = "fully_booked"
    UNAVAILABLE = "unavailable"


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    NO_SHOW = "no_show"


# Cancelled and no-show appointments free their slot.
BLOCKING_STATUSES: frozenset[AppointmentStatus] = frozenset(
    {AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED, AppointmentStatus.COMPLETED}
)


class Service(BaseModel):
    """Salon service offered for booking."""
    id: str
    name: str = ""
    duration_minutes: int = Field(gt=0)
    base_price: Optional[float] = None


class Employee(BaseModel):
    """Salon staff member."""
    id: str
    name: str = ""
    salon_id: Optional[str] = None
    is_active: bool = True


class TimeSlot(BaseModel):
    """Candidate appointment slot on the salon-local clock.

    ``employee_ids`` lists the employees for whom the slot is free.
    """
    start_time: str
    end_time: str
    available: bool = True
    reason: Optional[str] = None
    price: Optional[float] = None
    employee_ids: list[str] = Field(default_factory=list)


class DayAvailability(BaseModel):
    """Day-level availability summary for calendar display."""
    date: str
    status: DayStatus
    total_slots: int = Field(ge=0)
    available_slots: int = Field(ge=0)

    @model_validator(mode="after")
    def _check_counts(self) -> "DayAvailability":
        if self.available_slots > self.total_slots:
            raise ValueError(
                f"available_slots ({self.available_slots}) exceeds total_slots ({self.total_slots})"
            )
        return self


class BookingRequest(BaseModel):
    """Booking payload sent to the commit service.

    ``scheduled_end`` is always derived from the service duration by
    AppointmentTimeBuilder, never taken from user input.
    """
    salon_id: str
    service_id: str
    customer_id: str
    scheduled_start: datetime
    scheduled_end: datetime
    employee_id: str = ANY_EMPLOYEE
    request_token: Optional[str] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def _check_range(self) -> "BookingRequest":
        if self.scheduled_end <= self.scheduled_start:
            raise ValueError("scheduled_end must be after scheduled_start")
        return self

    @property
    def is_any_employee(self) -> bool:
        return self.employee_id == ANY_EMPLOYEE


class Appointment(BaseModel):
    """Persisted appointment record."""
    id: str
    salon_id: str
    service_id: str
    customer_id: str
    scheduled_start: datetime
    scheduled_end: datetime
    employee_id: Optional[str] = None
    status: AppointmentStatus = AppointmentStatus.PENDING
    notes: Optional[str] = None
    request_token: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_blocking(self) -> bool:
        return self.status in BLOCKING_STATUSES

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return intervals_overlap(self.scheduled_start, self.scheduled_end, start, end)


class ValidationResult(BaseModel):
    """Outcome of a pre-commit booking check."""
    valid: bool
    reason: Optional[str] = None
    suggestions: list[TimeSlot] = Field(default_factory=list)

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(valid=True)

    @classmethod
    def conflict(
        cls, reason: str, suggestions: Optional[list[TimeSlot]] = None
    ) -> "ValidationResult":
        return cls(valid=False, reason=reason, suggestions=suggestions or [])
