"""Tests for import chains and module integrity.

Ensures all public modules can be imported without errors and
that re-exports from __init__.py files work correctly.
"""


class TestSchemaImports:
    def test_import_booking_schema(self):
        from salon_availability.schemas.booking_schema import (
            ANY_EMPLOYEE, Appointment, AppointmentStatus, BookingRequest, DayStatus,
        )
        assert ANY_EMPLOYEE == "any"
        assert DayStatus.PARTIALLY_BOOKED == "partially_booked"
        assert AppointmentStatus.CANCELLED == "cancelled"
        assert BookingRequest is not None and Appointment is not None

    def test_import_hours_schema(self):
        from salon_availability.schemas.hours_schema import AvailabilityRules, OperatingHours
        hours = OperatingHours.uniform("09:00", "17:00")
        assert len(hours.days) == 7
        assert AvailabilityRules().blackout_dates == []


class TestEngineImports:
    def test_engine_package_reexports(self):
        from salon_availability.engine import (
            AppointmentTimeBuilder,
            AvailabilityAggregator,
            BookingValidator,
            OperatingHoursResolver,
            SlotGenerator,
            day_status,
            merge_slots,
        )
        assert callable(merge_slots)
        assert callable(day_status)
        assert SlotGenerator().interval_minutes == 30
        assert OperatingHoursResolver is not None
        assert AvailabilityAggregator is not None
        assert BookingValidator is not None
        assert AppointmentTimeBuilder is not None


class TestBookingImports:
    def test_booking_package_reexports(self):
        from salon_availability.booking import (
            BookingStateMachine,
            BookingStep,
            create_booking_flow,
            create_commit_service,
        )
        assert BookingStateMachine().current_step == BookingStep.SERVICE
        assert callable(create_booking_flow)
        assert create_commit_service().store is not None


class TestToolImports:
    def test_import_services(self):
        from salon_availability.tools.services import SERVICE_CATALOG, get_service
        assert len(SERVICE_CATALOG) >= 6
        assert get_service(" Manicure ").duration_minutes == 45

    def test_import_collaborators(self):
        from salon_availability.tools.appointments import appointment_store
        from salon_availability.tools.employees import list_active_employees
        from salon_availability.tools.salons import get_salon_settings
        assert appointment_store is not None
        assert [e.id for e in list_active_employees("salon-001")] == ["emp-aline", "emp-eric"]
        assert get_salon_settings("salon-002")["openingHours"] == "08:00-20:00"


class TestConfigImport:
    def test_import_config(self):
        from salon_availability.config import settings
        assert settings.salon.timezone
        assert settings.slots.interval_minutes >= 1
        assert settings.commit.timeout_seconds > 0


class TestEntryPoint:
    def test_main_imports(self):
        import main
        assert callable(main.main)

    def test_package_version(self):
        import salon_availability
        assert salon_availability.__version__ == "1.0.0"
