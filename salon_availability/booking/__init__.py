from salon_availability.booking.commit_service import AppointmentCommitService
from salon_availability.booking.flow import (
    BookingFlow,
    BookingOutcome,
    create_booking_flow,
    create_commit_service,
)
from salon_availability.booking.state_machine import (
    BookingStateMachine,
    BookingStep,
    BookingTrigger,
)

__all__ = [
    "AppointmentCommitService",
    "BookingFlow",
    "BookingOutcome",
    "create_booking_flow",
    "create_commit_service",
    "BookingStateMachine",
    "BookingStep",
    "BookingTrigger",
]
