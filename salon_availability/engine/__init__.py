from salon_availability.engine.aggregator import AvailabilityAggregator, day_status
from salon_availability.engine.operating_hours import OperatingHoursResolver, ResolvedHours
from salon_availability.engine.slot_generator import SlotGenerator, count_slots
from salon_availability.engine.slot_merger import merge_slots
from salon_availability.engine.time_builder import AppointmentTimeBuilder
from salon_availability.engine.validator import BookingValidator, SlotSnapshot

__all__ = [
    "OperatingHoursResolver",
    "ResolvedHours",
    "SlotGenerator",
    "count_slots",
    "merge_slots",
    "AvailabilityAggregator",
    "day_status",
    "BookingValidator",
    "SlotSnapshot",
    "AppointmentTimeBuilder",
]
