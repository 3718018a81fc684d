"""
Finite state machine for the customer booking flow.

A booking session walks service -> employee -> date -> time -> confirm ->
committing -> booked. A commit conflict sends the session to
``conflict_refresh``, where the day's slots are reloaded and the customer
picks again. Nothing else can skip a step.

Usage:
    sm = BookingStateMachine()
    sm.transition(BookingTrigger.SERVICE_CHOSEN)
    assert sm.current_step == BookingStep.EMPLOYEE
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class BookingStep(str, Enum):
    """Steps of a booking session."""
    SERVICE = "service"
    EMPLOYEE = "employee"
    DATE = "date"
    TIME = "time"
    CONFIRM = "confirm"
    COMMITTING = "committing"
    CONFLICT_REFRESH = "conflict_refresh"
    BOOKED = "booked"
    ABANDONED = "abandoned"


class BookingTrigger(str, Enum):
    """Events that move a session between steps."""
    SERVICE_CHOSEN = "service_chosen"
    EMPLOYEE_CHOSEN = "employee_chosen"
    DATE_CHOSEN = "date_chosen"
    TIME_CHOSEN = "time_chosen"
    CHANGE_DATE = "change_date"
    CHANGE_TIME = "change_time"
    CHANGE_EMPLOYEE = "change_employee"
    SUBMIT = "submit"
    COMMIT_SUCCEEDED = "commit_succeeded"
    COMMIT_CONFLICT = "commit_conflict"
    COMMIT_FAILED = "commit_failed"
    SLOTS_REFRESHED = "slots_refreshed"
    ABANDON = "abandon"


@dataclass
class Transition:
    """A single valid step transition."""
    from_step: BookingStep
    to_step: BookingStep
    trigger: BookingTrigger


@dataclass
class StepEntry:
    """Recorded history entry for a step visit."""
    step: BookingStep
    entered_at: datetime
    trigger: Optional[BookingTrigger] = None


class InvalidTransitionError(Exception):
    """Raised when a trigger is not valid from the current step."""


_OPEN_STEPS = (
    BookingStep.SERVICE,
    BookingStep.EMPLOYEE,
    BookingStep.DATE,
    BookingStep.TIME,
    BookingStep.CONFIRM,
    BookingStep.CONFLICT_REFRESH,
)


class BookingStateMachine:
    """Deterministic step control for one booking session."""

    TRANSITIONS: list[Transition] = [
        # --- Browse ---
        Transition(BookingStep.SERVICE, BookingStep.EMPLOYEE, BookingTrigger.SERVICE_CHOSEN),
        Transition(BookingStep.EMPLOYEE, BookingStep.DATE, BookingTrigger.EMPLOYEE_CHOSEN),
        Transition(BookingStep.DATE, BookingStep.TIME, BookingTrigger.DATE_CHOSEN),
        Transition(BookingStep.DATE, BookingStep.EMPLOYEE, BookingTrigger.CHANGE_EMPLOYEE),
        Transition(BookingStep.TIME, BookingStep.CONFIRM, BookingTrigger.TIME_CHOSEN),
        Transition(BookingStep.TIME, BookingStep.DATE, BookingTrigger.CHANGE_DATE),
        Transition(BookingStep.CONFIRM, BookingStep.TIME, BookingTrigger.CHANGE_TIME),

        # --- Commit ---
        Transition(BookingStep.CONFIRM, BookingStep.COMMITTING, BookingTrigger.SUBMIT),
        Transition(BookingStep.COMMITTING, BookingStep.BOOKED, BookingTrigger.COMMIT_SUCCEEDED),
        Transition(BookingStep.COMMITTING, BookingStep.CONFLICT_REFRESH, BookingTrigger.COMMIT_CONFLICT),
        Transition(BookingStep.COMMITTING, BookingStep.CONFIRM, BookingTrigger.COMMIT_FAILED),

        # --- Conflict recovery ---
        Transition(BookingStep.CONFLICT_REFRESH, BookingStep.TIME, BookingTrigger.SLOTS_REFRESHED),
    ] + [
        Transition(step, BookingStep.ABANDONED, BookingTrigger.ABANDON) for step in _OPEN_STEPS
    ]

    def __init__(self) -> None:
        self._current_step = BookingStep.SERVICE
        self._history: list[StepEntry] = [
            StepEntry(step=BookingStep.SERVICE, entered_at=datetime.now(timezone.utc))
        ]
        self._conflict_count: int = 0

    @property
    def current_step(self) -> BookingStep:
        return self._current_step

    @property
    def conflict_count(self) -> int:
        return self._conflict_count

    def transition(self, trigger: BookingTrigger) -> BookingStep:
        """
        Execute a step transition.

        Raises:
            InvalidTransitionError: If no valid transition exists.
        """
        for t in self.TRANSITIONS:
            if t.from_step == self._current_step and t.trigger == trigger:
                old_step = self._current_step
                self._current_step = t.to_step
                self._history.append(StepEntry(
                    step=self._current_step,
                    entered_at=datetime.now(timezone.utc),
                    trigger=trigger,
                ))
                if t.to_step == BookingStep.CONFLICT_REFRESH:
                    self._conflict_count += 1

                logger.debug(
                    "Booking step: %s -> %s (trigger: %s)",
                    old_step.value, self._current_step.value, trigger.value,
                )
                return self._current_step

        valid = [t.value for t in self.get_valid_triggers()]
        raise InvalidTransitionError(
            f"No valid transition from '{self._current_step.value}' "
            f"with trigger '{trigger.value}'. Valid triggers: {valid}"
        )

    def can(self, trigger: BookingTrigger) -> bool:
        return trigger in self.get_valid_triggers()

    def get_valid_triggers(self) -> list[BookingTrigger]:
        """Return all triggers valid from the current step."""
        return [t.trigger for t in self.TRANSITIONS if t.from_step == self._current_step]

    def get_step_trace(self) -> list[str]:
        """Return ordered list of step names visited."""
        return [entry.step.value for entry in self._history]

    def is_terminal(self) -> bool:
        return self._current_step in (BookingStep.BOOKED, BookingStep.ABANDONED)
