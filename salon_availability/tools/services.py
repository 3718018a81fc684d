"""Salon service catalog: bookable services with durations and prices."""

import logging
from typing import Optional

from salon_availability.schemas.booking_schema import Service

logger = logging.getLogger(__name__)

SERVICE_CATALOG: dict[str, dict] = {
    "haircut": {"name": "Haircut & Style", "duration_minutes": 30, "base_price": 8000.0},
    "braids": {"name": "Box Braids", "duration_minutes": 180, "base_price": 35000.0},
    "manicure": {"name": "Manicure", "duration_minutes": 45, "base_price": 10000.0},
    "pedicure": {"name": "Pedicure", "duration_minutes": 60, "base_price": 12000.0},
    "beard trim": {"name": "Beard Trim", "duration_minutes": 15, "base_price": 4000.0},
    "coloring": {"name": "Hair Coloring", "duration_minutes": 90, "base_price": 25000.0},
}


def get_service(service_id: str) -> Optional[Service]:
    """Look up a service by exact catalog ID."""
    key = service_id.lower().strip()
    info = SERVICE_CATALOG.get(key)
    if info is None:
        logger.debug("Unknown service id: %s", service_id)
        return None
    return Service(
        id=key,
        name=info["name"],
        duration_minutes=info["duration_minutes"],
        base_price=info.get("base_price"),
    )
