"""
Centralized configuration with environment variable overrides.

Scheduling constants (slot granularity, fallback business hours, booking
window, freshness and commit timeouts) live here. Nothing is hardcoded in the
availability engine or the commit service.
"""

import logging
import os
import re
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

_HHMM_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class SalonConfig:
    """Salon-wide scheduling defaults."""

    timezone: str = os.getenv("SALON_TIMEZONE", "Africa/Kigali")
    default_open_time: str = os.getenv("DEFAULT_OPEN_TIME", "09:00")
    default_close_time: str = os.getenv("DEFAULT_CLOSE_TIME", "18:00")


@dataclass(frozen=True)
class SlotConfig:
    """Slot grid and calendar window settings."""

    interval_minutes: int = _safe_int("SLOT_INTERVAL_MINUTES", "30")
    availability_window_days: int = _safe_int("AVAILABILITY_WINDOW_DAYS", "30")
    default_service_minutes: int = _safe_int("DEFAULT_SERVICE_MINUTES", "30")


@dataclass(frozen=True)
class CommitConfig:
    """Validation freshness and commit timeout thresholds."""

    slot_freshness_seconds: float = _safe_float("SLOT_FRESHNESS_SECONDS", "10.0")
    timeout_seconds: float = _safe_float("COMMIT_TIMEOUT_SECONDS", "5.0")
    max_suggestions: int = _safe_int("MAX_SUGGESTIONS", "5")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    salon: SalonConfig = field(default_factory=SalonConfig)
    slots: SlotConfig = field(default_factory=SlotConfig)
    commit: CommitConfig = field(default_factory=CommitConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    for name, value in [
        ("DEFAULT_OPEN_TIME", config.salon.default_open_time),
        ("DEFAULT_CLOSE_TIME", config.salon.default_close_time),
    ]:
        if not _HHMM_PATTERN.match(value):
            raise ValueError(f"{name} must be HH:MM, got {value!r}")
    if config.salon.default_open_time >= config.salon.default_close_time:
        raise ValueError(
            "DEFAULT_OPEN_TIME must be before DEFAULT_CLOSE_TIME, "
            f"got {config.salon.default_open_time}-{config.salon.default_close_time}"
        )
    if not 1 <= config.slots.interval_minutes <= 240:
        raise ValueError(
            f"SLOT_INTERVAL_MINUTES must be between 1 and 240, got {config.slots.interval_minutes}"
        )
    if config.slots.availability_window_days < 1:
        raise ValueError(
            "AVAILABILITY_WINDOW_DAYS must be >= 1, "
            f"got {config.slots.availability_window_days}"
        )
    if config.slots.default_service_minutes < 1:
        raise ValueError(
            "DEFAULT_SERVICE_MINUTES must be >= 1, "
            f"got {config.slots.default_service_minutes}"
        )
    if config.commit.slot_freshness_seconds <= 0:
        raise ValueError(
            "SLOT_FRESHNESS_SECONDS must be > 0, "
            f"got {config.commit.slot_freshness_seconds}"
        )
    if config.commit.timeout_seconds <= 0:
        raise ValueError(
            f"COMMIT_TIMEOUT_SECONDS must be > 0, got {config.commit.timeout_seconds}"
        )
    if config.commit.max_suggestions < 0:
        raise ValueError(
            f"MAX_SUGGESTIONS must be >= 0, got {config.commit.max_suggestions}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger.info("Configuration loaded (timezone=%s)", config.salon.timezone)
    return config


# Singleton instance
settings = load_config()
