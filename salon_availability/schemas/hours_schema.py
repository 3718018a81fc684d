"""Operating hours and per-employee availability rule models."""

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from salon_availability.utils import normalize_hhmm, parse_date_key, weekday_name

WEEKDAYS: tuple[str, ...] = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


class DayHours(BaseModel):
    """Open/close window for one weekday."""

    is_open: bool
    start_time: str = "09:00"
    end_time: str = "18:00"

    @field_validator("start_time", "end_time")
    @classmethod
    def _normalize_time(cls, value: str) -> str:
        return normalize_hhmm(value)

    @model_validator(mode="after")
    def _check_window(self) -> "DayHours":
        if self.is_open and self.start_time >= self.end_time:
            raise ValueError(
                f"start_time {self.start_time} must be before end_time {self.end_time}"
            )
        return self


class OperatingHours(BaseModel):
    """Canonical per-weekday schedule keyed by lowercase English day name.

    A weekday with no entry is treated as closed.
    """

    days: dict[str, DayHours] = Field(default_factory=dict)

    @field_validator("days")
    @classmethod
    def _check_weekday_keys(cls, value: dict[str, DayHours]) -> dict[str, DayHours]:
        unknown = [k for k in value if k not in WEEKDAYS]
        if unknown:
            raise ValueError(f"Unknown weekday keys: {unknown}")
        return value

    @classmethod
    def uniform(cls, start_time: str, end_time: str) -> "OperatingHours":
        """Same open window on all seven days."""
        return cls(
            days={
                day: DayHours(is_open=True, start_time=start_time, end_time=end_time)
                for day in WEEKDAYS
            }
        )

    def for_date(self, target: date) -> Optional[DayHours]:
        """Hours for the weekday of ``target``, or None when the salon is closed."""
        hours = self.days.get(weekday_name(target))
        if hours is None or not hours.is_open:
            return None
        return hours

    def to_wire(self) -> dict[str, dict]:
        """Serialize to the camelCase shape stored in salon settings."""
        return {
            day: {"isOpen": h.is_open, "startTime": h.start_time, "endTime": h.end_time}
            for day, h in self.days.items()
        }


class TimeRange(BaseModel):
    """A local ``HH:MM`` range, e.g. a lunch break."""

    start_time: str
    end_time: str

    @field_validator("start_time", "end_time")
    @classmethod
    def _normalize_time(cls, value: str) -> str:
        return normalize_hhmm(value)


class AvailabilityRules(BaseModel):
    """Optional per-employee booking constraints.

    ``working_hours`` is the employee's own weekly schedule. Weekdays it
    does not mention follow the salon's hours; an entry with
    ``is_open=False`` is a day off.
    """

    working_hours: dict[str, DayHours] = Field(default_factory=dict)
    breaks: list[TimeRange] = Field(default_factory=list)
    buffer_minutes: int = Field(default=0, ge=0)
    min_lead_time_hours: float = Field(default=0.0, ge=0)
    advance_booking_days: Optional[int] = Field(default=None, ge=0)
    blackout_dates: list[str] = Field(default_factory=list)

    @field_validator("working_hours")
    @classmethod
    def _check_weekday_keys(cls, value: dict[str, DayHours]) -> dict[str, DayHours]:
        normalized = {str(k).strip().lower(): v for k, v in value.items()}
        unknown = [k for k in normalized if k not in WEEKDAYS]
        if unknown:
            raise ValueError(f"Unknown weekday keys: {unknown}")
        return normalized

    @field_validator("blackout_dates")
    @classmethod
    def _check_dates(cls, value: list[str]) -> list[str]:
        for item in value:
            parse_date_key(item)
        return value
