"""
Merge per-employee slot lists into one "any available staff" list.

A merged slot is available when at least one contributing employee has it
free (logical OR). Slots offered by only some employees still appear. The
merged slot carries the ids of every employee free at that start time so
the commit service can pick one at reservation time.
"""

import logging
from typing import Mapping

from salon_availability.schemas.booking_schema import TimeSlot

logger = logging.getLogger(__name__)


def merge_slots(per_employee: Mapping[str, list[TimeSlot]]) -> list[TimeSlot]:
    """OR-merge slot lists keyed by ``start_time``; result sorted by start."""
    merged: dict[str, TimeSlot] = {}

    for employee_id, slots in per_employee.items():
        for slot in slots:
            current = merged.get(slot.start_time)
            free_here = [employee_id] if slot.available else []

            if current is None:
                merged[slot.start_time] = slot.model_copy(
                    update={"employee_ids": free_here}
                )
                continue

            if slot.available:
                if current.available:
                    employee_ids = current.employee_ids + free_here
                    end_time = current.end_time
                    price = current.price
                else:
                    employee_ids = free_here
                    end_time = slot.end_time
                    price = slot.price
                merged[slot.start_time] = current.model_copy(
                    update={
                        "available": True,
                        "reason": None,
                        "end_time": end_time,
                        "price": price,
                        "employee_ids": employee_ids,
                    }
                )

    result = sorted(merged.values(), key=lambda s: s.start_time)
    logger.debug(
        "Merged %d employee slot lists into %d slots (%d free)",
        len(per_employee), len(result), sum(1 for s in result if s.available),
    )
    return result
