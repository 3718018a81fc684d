"""Tests for booking-context log stamping."""

import logging

from salon_availability.logging_context import (
    BookingContextFilter,
    booking_scope,
    get_booking_context,
    get_session_logger,
    set_session_id,
)


def _record():
    return logging.LogRecord("test", logging.INFO, __file__, 1, "message", None, None)


class TestBookingScope:
    def test_scope_stamps_and_restores(self):
        set_session_id("BKS-1")
        with booking_scope(employee_id="emp-eric", request_token="tok-9") as scoped:
            assert scoped.employee_id == "emp-eric"
            assert get_booking_context().request_token == "tok-9"
        context = get_booking_context()
        assert (context.session_id, context.employee_id, context.request_token) == ("BKS-1", "-", "-")

    def test_nested_scope_keeps_outer_token(self):
        set_session_id("BKS-2")
        with booking_scope(request_token="tok-outer"):
            with booking_scope(employee_id="emp-aline"):
                assert get_booking_context().request_token == "tok-outer"
            assert get_booking_context().employee_id == "-"

    def test_new_session_clears_scope(self):
        with booking_scope(employee_id="emp-aline"):
            set_session_id("BKS-3")
            assert get_booking_context().employee_id == "-"


class TestFilter:
    def test_filter_copies_context(self):
        set_session_id("BKS-4")
        record = _record()
        with booking_scope(employee_id="emp-diane"):
            assert BookingContextFilter().filter(record)
        assert (record.session_id, record.employee_id, record.request_token) == ("BKS-4", "emp-diane", "-")

    def test_filter_attached_once(self):
        logger = get_session_logger("salon_availability.tests.once")
        get_session_logger("salon_availability.tests.once")
        assert sum(isinstance(f, BookingContextFilter) for f in logger.filters) == 1
