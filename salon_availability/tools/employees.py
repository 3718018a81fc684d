"""
Mock employee directory.

In production this is the salon employee read endpoint plus the
per-employee availability rules table.
"""

import logging
from typing import Optional

from salon_availability.schemas.booking_schema import Employee
from salon_availability.schemas.hours_schema import AvailabilityRules, DayHours, TimeRange

logger = logging.getLogger(__name__)

_DEFAULT_EMPLOYEES: list[Employee] = [
    Employee(id="emp-aline", name="Aline U.", salon_id="salon-001"),
    Employee(id="emp-eric", name="Eric M.", salon_id="salon-001"),
    Employee(id="emp-grace", name="Grace K.", salon_id="salon-001", is_active=False),
    Employee(id="emp-diane", name="Diane N.", salon_id="salon-002"),
]

_DEFAULT_RULES: dict[str, AvailabilityRules] = {
    "emp-aline": AvailabilityRules(
        breaks=[TimeRange(start_time="13:00", end_time="14:00")],
    ),
}

_employees: dict[str, Employee] = {}
_rules: dict[str, AvailabilityRules] = {}


def list_active_employees(salon_id: str) -> list[Employee]:
    """Active employees of a salon, in directory order."""
    return [e for e in _employees.values() if e.salon_id == salon_id and e.is_active]


def get_employee(employee_id: str) -> Optional[Employee]:
    return _employees.get(employee_id)


def add_employee(employee: Employee) -> Employee:
    """Add or replace an employee record."""
    _employees[employee.id] = employee
    logger.info("Employee saved: %s (%s)", employee.id, employee.salon_id)
    return employee


def get_availability_rules(employee_id: str) -> Optional[AvailabilityRules]:
    """Booking rules for an employee, or None when none are configured."""
    return _rules.get(employee_id)


def set_availability_rules(employee_id: str, rules: AvailabilityRules) -> None:
    _rules[employee_id] = rules


def _with_schedule(employee_id: str, schedule: dict[str, DayHours]) -> AvailabilityRules:
    current = _rules.get(employee_id) or AvailabilityRules()
    data = current.model_dump()
    data["working_hours"] = schedule
    _rules[employee_id] = AvailabilityRules.model_validate(data)
    return _rules[employee_id]


def set_working_hours(employee_id: str, weekday: str, hours: DayHours) -> AvailabilityRules:
    """Set one weekday of an employee's own schedule, keeping the other rules."""
    current = _rules.get(employee_id) or AvailabilityRules()
    rules = _with_schedule(employee_id, {**current.working_hours, weekday.strip().lower(): hours})
    logger.info("Working hours for %s on %s: %s", employee_id, weekday, hours)
    return rules


def set_weekly_schedule(employee_id: str, schedule: dict[str, DayHours]) -> AvailabilityRules:
    """Replace an employee's whole weekly schedule."""
    rules = _with_schedule(employee_id, dict(schedule))
    logger.info("Weekly schedule for %s: %s", employee_id, sorted(rules.working_hours))
    return rules


def reset() -> None:
    """Restore the seeded directory. Used by test fixtures for isolation."""
    _employees.clear()
    _employees.update({e.id: e.model_copy() for e in _DEFAULT_EMPLOYEES})
    _rules.clear()
    _rules.update({k: v.model_copy(deep=True) for k, v in _DEFAULT_RULES.items()})


reset()
