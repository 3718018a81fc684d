"""Tests for day-level availability aggregation."""

import itertools
from datetime import timedelta

import pytest

from salon_availability.engine.aggregator import AvailabilityAggregator, day_status
from salon_availability.engine.slot_generator import REASON_BREAK
from salon_availability.errors import EmployeeUnavailable
from salon_availability.schemas.booking_schema import DayStatus, Employee, Service
from salon_availability.schemas.hours_schema import AvailabilityRules, DayHours, OperatingHours, TimeRange
from tests.conftest import MONDAY, NOW, SUNDAY, TUESDAY, local_dt, make_appointment

ONE_HOUR_WEEKDAYS = OperatingHours(
    days={
        day: DayHours(is_open=True, start_time="09:00", end_time="10:00")
        for day in ("monday", "tuesday", "wednesday", "thursday", "friday")
    }
)
HALF_HOUR = Service(id="haircut", name="Haircut", duration_minutes=30, base_price=8000.0)
EMPLOYEES = [Employee(id="emp-a"), Employee(id="emp-b")]


class FakeAppointments:
    """Appointment reader backed by a list, optionally failing for some employees."""

    def __init__(self, appointments=(), failing=()):
        self.appointments = list(appointments)
        self.failing = set(failing)
        self.calls = []

    def __call__(self, employee_id, start, end):
        self.calls.append(employee_id)
        if employee_id in self.failing:
            raise ConnectionError(f"backend down for {employee_id}")
        return [a for a in self.appointments if a.employee_id == employee_id and a.overlaps(start, end)]


def _aggregator(generator, appointments=(), failing=(), rules=None):
    reader = FakeAppointments(appointments, failing)
    return AvailabilityAggregator(reader, read_rules=rules, generator=generator), reader


class TestDayStatus:
    def test_zero_total_is_unavailable(self):
        assert day_status(0, 0) == DayStatus.UNAVAILABLE

    def test_all_free_is_available(self):
        assert day_status(4, 4) == DayStatus.AVAILABLE

    def test_none_free_is_fully_booked(self):
        assert day_status(4, 0) == DayStatus.FULLY_BOOKED

    def test_some_free_is_partially_booked(self):
        assert day_status(4, 1) == DayStatus.PARTIALLY_BOOKED

    def test_pure_function_over_range(self):
        for total, available in itertools.product(range(6), repeat=2):
            if available > total:
                continue
            expected = (
                DayStatus.UNAVAILABLE if total == 0
                else DayStatus.AVAILABLE if available == total
                else DayStatus.FULLY_BOOKED if available == 0
                else DayStatus.PARTIALLY_BOOKED
            )
            assert day_status(total, available) == expected

    def test_available_above_total_rejected(self):
        with pytest.raises(ValueError):
            day_status(2, 3)

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            day_status(-1, 0)


class TestEmployeeSlots:
    def test_reads_only_that_employee(self, generator):
        booked = [
            make_appointment("emp-a", local_dt(TUESDAY, 9, 0), local_dt(TUESDAY, 9, 30)),
            make_appointment("emp-b", local_dt(TUESDAY, 9, 30), local_dt(TUESDAY, 10, 0)),
        ]
        aggregator, reader = _aggregator(generator, booked)
        slots = aggregator.employee_slots(ONE_HOUR_WEEKDAYS, "emp-a", TUESDAY, HALF_HOUR, now=NOW)
        assert [s.available for s in slots] == [False, True]
        assert reader.calls == ["emp-a"]

    def test_carries_service_price(self, generator):
        aggregator, _ = _aggregator(generator)
        slots = aggregator.employee_slots(ONE_HOUR_WEEKDAYS, "emp-a", TUESDAY, HALF_HOUR, now=NOW)
        assert all(s.price == 8000.0 for s in slots)

    def test_rules_applied(self, generator):
        rules = {"emp-a": AvailabilityRules(breaks=[TimeRange(start_time="09:00", end_time="09:30")])}
        aggregator, _ = _aggregator(generator, rules=rules.get)
        slots = aggregator.employee_slots(ONE_HOUR_WEEKDAYS, "emp-a", TUESDAY, HALF_HOUR, now=NOW)
        assert slots[0].reason == REASON_BREAK

    def test_rules_failure_is_ignored(self, generator):
        def broken_rules(_employee_id):
            raise ConnectionError("rules table unavailable")

        aggregator, _ = _aggregator(generator, rules=broken_rules)
        slots = aggregator.employee_slots(ONE_HOUR_WEEKDAYS, "emp-a", TUESDAY, HALF_HOUR, now=NOW)
        assert all(s.available for s in slots)


class TestPoolSlots:
    @pytest.mark.asyncio
    async def test_merges_complementary_employees(self, generator):
        booked = [
            make_appointment("emp-a", local_dt(TUESDAY, 9, 30), local_dt(TUESDAY, 10, 0)),
            make_appointment("emp-b", local_dt(TUESDAY, 9, 0), local_dt(TUESDAY, 9, 30)),
        ]
        aggregator, _ = _aggregator(generator, booked)
        slots = await aggregator.pool_slots(ONE_HOUR_WEEKDAYS, EMPLOYEES, TUESDAY, HALF_HOUR, now=NOW)
        assert [(s.start_time, s.available) for s in slots] == [("09:00", True), ("09:30", True)]
        assert slots[0].employee_ids == ["emp-a"]
        assert slots[1].employee_ids == ["emp-b"]

    @pytest.mark.asyncio
    async def test_failed_employee_contributes_nothing(self, generator):
        booked = [make_appointment("emp-a", local_dt(TUESDAY, 9, 0), local_dt(TUESDAY, 9, 30))]
        aggregator, _ = _aggregator(generator, booked, failing={"emp-b"})
        slots = await aggregator.pool_slots(ONE_HOUR_WEEKDAYS, EMPLOYEES, TUESDAY, HALF_HOUR, now=NOW)
        assert [s.available for s in slots] == [False, True]

    @pytest.mark.asyncio
    async def test_inactive_employees_skipped(self, generator):
        aggregator, reader = _aggregator(generator)
        staff = [Employee(id="emp-a"), Employee(id="emp-z", is_active=False)]
        await aggregator.pool_slots(ONE_HOUR_WEEKDAYS, staff, TUESDAY, HALF_HOUR, now=NOW)
        assert reader.calls == ["emp-a"]

    @pytest.mark.asyncio
    async def test_empty_pool_raises(self, generator):
        aggregator, _ = _aggregator(generator)
        with pytest.raises(EmployeeUnavailable):
            await aggregator.pool_slots(ONE_HOUR_WEEKDAYS, [], TUESDAY, HALF_HOUR, now=NOW)


class TestCalendars:
    def test_employee_calendar_statuses(self, generator):
        booked = [
            make_appointment("emp-a", local_dt(TUESDAY, 9, 0), local_dt(TUESDAY, 9, 30)),
            make_appointment("emp-a", local_dt(TUESDAY + timedelta(days=1), 9, 0),
                             local_dt(TUESDAY + timedelta(days=1), 10, 0)),
        ]
        aggregator, _ = _aggregator(generator, booked)
        calendar = aggregator.employee_calendar(
            ONE_HOUR_WEEKDAYS, "emp-a", HALF_HOUR, start_date=MONDAY, days=7, now=NOW
        )
        by_date = {d.date: d for d in calendar}
        assert by_date["2026-10-19"].status == DayStatus.AVAILABLE
        assert by_date["2026-10-20"].status == DayStatus.PARTIALLY_BOOKED
        assert by_date["2026-10-21"].status == DayStatus.FULLY_BOOKED
        assert by_date["2026-10-25"].status == DayStatus.UNAVAILABLE
        assert by_date["2026-10-20"].total_slots == 2
        assert by_date["2026-10-20"].available_slots == 1

    def test_calendar_reads_appointments_once(self, generator):
        aggregator, reader = _aggregator(generator)
        aggregator.employee_calendar(ONE_HOUR_WEEKDAYS, "emp-a", HALF_HOUR, start_date=MONDAY, days=14, now=NOW)
        assert reader.calls == ["emp-a"]

    def test_past_days_are_unavailable(self, generator):
        aggregator, _ = _aggregator(generator)
        calendar = aggregator.employee_calendar(
            ONE_HOUR_WEEKDAYS, "emp-a", HALF_HOUR, start_date=MONDAY - timedelta(days=1), days=2, now=NOW
        )
        assert calendar[0].status == DayStatus.UNAVAILABLE
        assert calendar[1].status == DayStatus.AVAILABLE

    def test_window_defaults_to_today(self, generator):
        aggregator, _ = _aggregator(generator)
        calendar = aggregator.employee_calendar(ONE_HOUR_WEEKDAYS, "emp-a", HALF_HOUR, days=3, now=NOW)
        assert [d.date for d in calendar] == ["2026-10-19", "2026-10-20", "2026-10-21"]

    @pytest.mark.asyncio
    async def test_pool_calendar_sums_employees(self, generator):
        booked = [
            make_appointment("emp-a", local_dt(TUESDAY, 9, 0), local_dt(TUESDAY, 10, 0)),
            make_appointment("emp-b", local_dt(TUESDAY, 9, 0), local_dt(TUESDAY, 9, 30)),
        ]
        aggregator, _ = _aggregator(generator, booked)
        calendar = await aggregator.pool_calendar(
            ONE_HOUR_WEEKDAYS, EMPLOYEES, HALF_HOUR, start_date=TUESDAY, days=1, now=NOW
        )
        day = calendar[0]
        assert (day.total_slots, day.available_slots) == (4, 1)
        assert day.status == DayStatus.PARTIALLY_BOOKED

    @pytest.mark.asyncio
    async def test_pool_calendar_counts_employee_days_off(self, generator):
        rules = {"emp-a": AvailabilityRules(working_hours={"tuesday": DayHours(is_open=False)})}
        aggregator, _ = _aggregator(generator, rules=rules.get)
        calendar = await aggregator.pool_calendar(
            ONE_HOUR_WEEKDAYS, EMPLOYEES, HALF_HOUR, start_date=MONDAY, days=2, now=NOW
        )
        by_date = {d.date: d for d in calendar}
        assert (by_date["2026-10-19"].total_slots, by_date["2026-10-19"].available_slots) == (4, 4)
        assert (by_date["2026-10-20"].total_slots, by_date["2026-10-20"].available_slots) == (2, 2)

    @pytest.mark.asyncio
    async def test_pool_calendar_tolerates_failures(self, generator):
        aggregator, _ = _aggregator(generator, failing={"emp-a"})
        calendar = await aggregator.pool_calendar(
            ONE_HOUR_WEEKDAYS, EMPLOYEES, HALF_HOUR, start_date=TUESDAY, days=1, now=NOW
        )
        assert (calendar[0].total_slots, calendar[0].available_slots) == (2, 2)

    def test_closed_form_calendar(self, generator):
        aggregator, reader = _aggregator(generator)
        calendar = aggregator.closed_form_calendar(
            ONE_HOUR_WEEKDAYS, HALF_HOUR, start_date=SUNDAY - timedelta(days=1), days=3, now=NOW
        )
        assert [d.status for d in calendar] == [
            DayStatus.UNAVAILABLE, DayStatus.UNAVAILABLE, DayStatus.AVAILABLE,
        ]
        assert calendar[2].total_slots == 2
        assert reader.calls == []

    def test_closed_form_respects_duration(self, generator):
        aggregator, _ = _aggregator(generator)
        long_service = Service(id="braids", duration_minutes=90)
        calendar = aggregator.closed_form_calendar(
            ONE_HOUR_WEEKDAYS, long_service, start_date=TUESDAY, days=1, now=NOW
        )
        assert calendar[0].status == DayStatus.UNAVAILABLE
