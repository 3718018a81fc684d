"""Booking-context logging for tracing one flow across modules.

Every record from a booking logger carries the booking session ID, plus
the employee and request token of the reservation being attempted, so a
single customer's browse -> validate -> commit journey (and which
candidate the commit service was trying for an "any" request) can be
followed through the logs.

Usage:
    from salon_availability.logging_context import booking_scope, get_session_logger, set_session_id

    set_session_id("BKS-abc123")
    logger = get_session_logger(__name__)
    with booking_scope(employee_id="emp-aline", request_token="REQ-1"):
        logger.info("Reserving")  # record.employee_id == "emp-aline"
"""

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, replace
from typing import Iterator, Optional

UNSET = "-"


@dataclass(frozen=True)
class BookingContext:
    session_id: str = "NO_SESSION"
    employee_id: str = UNSET
    request_token: str = UNSET


_context: ContextVar[BookingContext] = ContextVar("booking_context", default=BookingContext())


def set_session_id(session_id: str) -> None:
    """Start a new booking session in the current async context."""
    _context.set(BookingContext(session_id=session_id))


def get_session_id() -> str:
    return _context.get().session_id


def get_booking_context() -> BookingContext:
    return _context.get()


@contextmanager
def booking_scope(
    employee_id: Optional[str] = None, request_token: Optional[str] = None
) -> Iterator[BookingContext]:
    """Stamp an employee and request token on records logged inside the block."""
    current = _context.get()
    scoped = replace(
        current,
        employee_id=employee_id or current.employee_id,
        request_token=request_token or current.request_token,
    )
    token = _context.set(scoped)
    try:
        yield scoped
    finally:
        _context.reset(token)


class BookingContextFilter(logging.Filter):
    """Copies the current booking context onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        context = _context.get()
        record.session_id = context.session_id  # type: ignore[attr-defined]
        record.employee_id = context.employee_id  # type: ignore[attr-defined]
        record.request_token = context.request_token  # type: ignore[attr-defined]
        return True


def get_session_logger(name: str) -> logging.Logger:
    """Return a logger that stamps ``session_id``, ``employee_id`` and ``request_token``."""
    logger = logging.getLogger(name)
    if not any(isinstance(f, BookingContextFilter) for f in logger.filters):
        logger.addFilter(BookingContextFilter())
    return logger
