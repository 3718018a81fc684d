"""Tests for the "any available staff" slot merge."""

import itertools

from salon_availability.engine.slot_merger import merge_slots
from salon_availability.schemas.booking_schema import TimeSlot


def _slot(start: str, end: str, available: bool, employee_id: str, reason: str = "Already booked"):
    return TimeSlot(
        start_time=start,
        end_time=end,
        available=available,
        reason=None if available else reason,
        employee_ids=[employee_id] if available else [],
    )


class TestMergeSlots:
    def test_complementary_availability_yields_both(self):
        merged = merge_slots({
            "emp-a": [_slot("09:00", "09:30", True, "emp-a"), _slot("09:30", "10:00", False, "emp-a")],
            "emp-b": [_slot("09:00", "09:30", False, "emp-b"), _slot("09:30", "10:00", True, "emp-b")],
        })
        assert [(s.start_time, s.available) for s in merged] == [("09:00", True), ("09:30", True)]
        assert merged[0].employee_ids == ["emp-a"]
        assert merged[1].employee_ids == ["emp-b"]

    def test_reason_cleared_when_any_contributor_free(self):
        merged = merge_slots({
            "emp-a": [_slot("10:00", "10:30", False, "emp-a")],
            "emp-b": [_slot("10:00", "10:30", True, "emp-b")],
        })
        assert merged[0].available
        assert merged[0].reason is None

    def test_all_unavailable_keeps_first_reason(self):
        merged = merge_slots({
            "emp-a": [_slot("10:00", "10:30", False, "emp-a", reason="Break time")],
            "emp-b": [_slot("10:00", "10:30", False, "emp-b")],
        })
        assert not merged[0].available
        assert merged[0].reason == "Break time"
        assert merged[0].employee_ids == []

    def test_collects_every_free_employee(self):
        merged = merge_slots({
            "emp-a": [_slot("11:00", "11:30", True, "emp-a")],
            "emp-b": [_slot("11:00", "11:30", False, "emp-b")],
            "emp-c": [_slot("11:00", "11:30", True, "emp-c")],
        })
        assert merged[0].employee_ids == ["emp-a", "emp-c"]

    def test_slot_offered_by_one_employee_only(self):
        merged = merge_slots({
            "emp-a": [_slot("09:00", "09:30", True, "emp-a")],
            "emp-b": [_slot("09:00", "09:30", True, "emp-b"), _slot("17:30", "18:00", True, "emp-b")],
        })
        assert [s.start_time for s in merged] == ["09:00", "17:30"]
        assert merged[1].employee_ids == ["emp-b"]

    def test_sorted_by_start(self):
        merged = merge_slots({
            "emp-a": [_slot("14:00", "14:30", True, "emp-a")],
            "emp-b": [_slot("08:30", "09:00", True, "emp-b")],
        })
        assert [s.start_time for s in merged] == ["08:30", "14:00"]

    def test_empty_input(self):
        assert merge_slots({}) == []

    def test_availability_is_logical_or(self):
        for a_free, b_free, c_free in itertools.product([True, False], repeat=3):
            merged = merge_slots({
                "emp-a": [_slot("09:00", "09:30", a_free, "emp-a")],
                "emp-b": [_slot("09:00", "09:30", b_free, "emp-b")],
                "emp-c": [_slot("09:00", "09:30", c_free, "emp-c")],
            })
            assert merged[0].available == (a_free or b_free or c_free)

    def test_inputs_not_mutated(self):
        slot = _slot("09:00", "09:30", False, "emp-a")
        merge_slots({"emp-a": [slot], "emp-b": [_slot("09:00", "09:30", True, "emp-b")]})
        assert not slot.available
        assert slot.reason == "Already booked"
