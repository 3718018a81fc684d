"""
Mock salon settings store.

In production this is the salon settings read endpoint. Settings are kept
exactly as clients wrote them, so operating hours show up in every shape
the resolver has to cope with.
"""

import json
import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)

_WEEKDAY_HOURS = {"isOpen": True, "startTime": "09:00", "endTime": "19:00"}

_DEFAULT_SETTINGS: dict[str, dict[str, Any]] = {
    "salon-001": {
        "name": "Kigali Cuts & Color",
        "operatingHours": json.dumps(
            {
                "monday": _WEEKDAY_HOURS,
                "tuesday": _WEEKDAY_HOURS,
                "wednesday": _WEEKDAY_HOURS,
                "thursday": _WEEKDAY_HOURS,
                "friday": _WEEKDAY_HOURS,
                "saturday": {"isOpen": True, "startTime": "08:00", "endTime": "16:00"},
                "sunday": {"isOpen": False, "startTime": "00:00", "endTime": "00:00"},
            }
        ),
    },
    "salon-002": {
        "name": "Nyamirambo Nails",
        "openingHours": "08:00-20:00",
    },
}

_settings: dict[str, dict[str, Any]] = {}


def get_salon_settings(salon_id: str) -> Optional[dict[str, Any]]:
    """Return the raw settings blob for a salon, or None if unknown."""
    result = _settings.get(salon_id)
    if result is None:
        logger.debug("No settings for salon %s", salon_id)
    return result


def update_salon_settings(salon_id: str, **values: Any) -> dict[str, Any]:
    """Merge values into a salon's settings blob."""
    current = _settings.setdefault(salon_id, {})
    current.update(values)
    logger.info("Settings updated for salon %s: %s", salon_id, sorted(values))
    return current


def reset() -> None:
    """Restore the seeded settings. Used by test fixtures for isolation."""
    _settings.clear()
    _settings.update(json.loads(json.dumps(_DEFAULT_SETTINGS)))


reset()
