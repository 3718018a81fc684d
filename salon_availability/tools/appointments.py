"""
In-memory appointment store.

In production this is the appointments table. The store exposes
per-key locks (one per employee and salon-local day) so the commit
service can run check-overlap-then-insert as a single atomic unit,
the same guarantee a row lock or exclusion constraint gives in SQL.
"""

import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Optional

from salon_availability.schemas.booking_schema import Appointment, AppointmentStatus

logger = logging.getLogger(__name__)


class AppointmentStore:
    """Thread-safe appointment records with keyed locks."""

    def __init__(self) -> None:
        self._appointments: dict[str, Appointment] = {}
        self._by_token: dict[str, str] = {}
        self._guard = threading.Lock()
        self._locks: dict[tuple, threading.Lock] = {}
        self._holders: dict[tuple, int] = {}

    @property
    def lock_count(self) -> int:
        """Keyed locks currently held or waited on."""
        with self._guard:
            return len(self._locks)

    @contextmanager
    def locked(self, *keys: tuple) -> Iterator[None]:
        """Hold the locks for all ``keys`` at once, acquired in sorted order.

        A key's lock lives only while some caller holds or waits for it.
        """
        ordered = sorted(set(keys))
        with self._guard:
            locks = [self._locks.setdefault(k, threading.Lock()) for k in ordered]
            for k in ordered:
                self._holders[k] = self._holders.get(k, 0) + 1
        acquired: list[threading.Lock] = []
        try:
            for lock in locks:
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
            with self._guard:
                for k in ordered:
                    remaining = self._holders.get(k, 1) - 1
                    if remaining:
                        self._holders[k] = remaining
                    else:
                        self._holders.pop(k, None)
                        self._locks.pop(k, None)

    def list_for_employee(
        self,
        employee_id: str,
        start: datetime,
        end: datetime,
        include_inactive: bool = False,
    ) -> list[Appointment]:
        """Appointments of an employee overlapping ``[start, end)``, by start time.

        Cancelled and no-show appointments are skipped unless
        ``include_inactive`` is set.
        """
        with self._guard:
            found = [
                a.model_copy()
                for a in self._appointments.values()
                if a.employee_id == employee_id
                and a.overlaps(start, end)
                and (include_inactive or a.is_blocking)
            ]
        return sorted(found, key=lambda a: a.scheduled_start)

    def list_for_customer(self, customer_id: str) -> list[Appointment]:
        with self._guard:
            found = [a.model_copy() for a in self._appointments.values() if a.customer_id == customer_id]
        return sorted(found, key=lambda a: a.scheduled_start)

    def get(self, appointment_id: str) -> Optional[Appointment]:
        with self._guard:
            found = self._appointments.get(appointment_id)
        return found.model_copy() if found else None

    def find_by_token(self, request_token: str) -> Optional[Appointment]:
        with self._guard:
            appointment_id = self._by_token.get(request_token)
            found = self._appointments.get(appointment_id) if appointment_id else None
        return found.model_copy() if found else None

    def save(self, appointment: Appointment) -> Appointment:
        """Insert or replace an appointment record."""
        with self._guard:
            self._appointments[appointment.id] = appointment.model_copy()
            if appointment.request_token:
                self._by_token[appointment.request_token] = appointment.id
        logger.debug("Appointment saved: %s (%s)", appointment.id, appointment.status.value)
        return appointment

    def set_status(self, appointment_id: str, status: AppointmentStatus) -> Optional[Appointment]:
        with self._guard:
            found = self._appointments.get(appointment_id)
            if found is None:
                return None
            updated = found.model_copy(update={"status": status})
            self._appointments[appointment_id] = updated
        logger.info("Appointment %s -> %s", appointment_id, status.value)
        return updated.model_copy()

    def reset(self) -> None:
        """Clear all appointments. Used by test fixtures for isolation."""
        with self._guard:
            self._appointments.clear()
            self._by_token.clear()
            self._locks.clear()
            self._holders.clear()


appointment_store = AppointmentStore()


def list_employee_appointments(employee_id: str, start: datetime, end: datetime) -> list[Appointment]:
    """Blocking appointments of an employee within ``[start, end)``."""
    return appointment_store.list_for_employee(employee_id, start, end)


def reset() -> None:
    appointment_store.reset()
