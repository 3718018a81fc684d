"""Booking error taxonomy.

Only ``SlotNoLongerAvailable`` and ``NetworkOrTimeout`` are meant to reach
the customer-facing layer; the rest are absorbed and logged where they
occur so that one bad record degrades availability instead of blanking it.
"""

from typing import Optional


class BookingError(Exception):
    """Base class for availability and booking failures."""

    retryable: bool = False


class MalformedConfig(BookingError):
    """Salon operating-hours configuration could not be parsed.

    Non-fatal: callers fall back to the default business window.
    """


class NoSlotsForDay(BookingError):
    """A day produced zero candidate slots. A valid empty result."""


class PastDateSelected(BookingError):
    """The selected date or time is already in the past."""


class EmployeeUnavailable(BookingError):
    """No active employee can take the booking."""


class SlotNoLongerAvailable(BookingError):
    """The slot was taken between browse and commit."""

    retryable = True

    def __init__(self, message: str, employee_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.employee_id = employee_id


class NetworkOrTimeout(BookingError):
    """The commit outcome is unknown; appointment state must be re-read."""

    retryable = True


class StaleSlotData(BookingError):
    """Slot data is older than the freshness window and must be re-fetched."""

    retryable = True


class AppointmentNotFound(BookingError):
    """No appointment exists with the given id."""
