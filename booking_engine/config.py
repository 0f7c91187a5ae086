"""
Centralized configuration with environment variable overrides.

All scheduling limits (advance window, minimum duration, slot width and
default buffers) are configurable here. Nothing is hardcoded in the
engine; components receive a ``BookingConfig`` through their constructor.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class BookingConfig:
    """Scheduling limits applied by the booking engine."""

    max_advance_days: int = _safe_int("MAX_ADVANCE_DAYS", "90")
    min_booking_minutes: int = _safe_int("MIN_BOOKING_MINUTES", "15")
    slot_interval_minutes: int = _safe_int("SLOT_INTERVAL_MINUTES", "30")
    default_buffer_minutes: int = _safe_int("DEFAULT_BUFFER_MINUTES", "15")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    booking: BookingConfig = field(default_factory=BookingConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    engine_name: str = os.getenv("ENGINE_NAME", "booking-engine")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    booking = config.booking
    if booking.max_advance_days < 1:
        raise ValueError(
            f"MAX_ADVANCE_DAYS must be >= 1, got {booking.max_advance_days}"
        )
    if booking.min_booking_minutes < 1:
        raise ValueError(
            f"MIN_BOOKING_MINUTES must be >= 1, got {booking.min_booking_minutes}"
        )
    if not 1 <= booking.slot_interval_minutes <= MINUTES_PER_DAY:
        raise ValueError(
            f"SLOT_INTERVAL_MINUTES must be between 1 and {MINUTES_PER_DAY}, "
            f"got {booking.slot_interval_minutes}"
        )
    if booking.default_buffer_minutes < 0:
        raise ValueError(
            f"DEFAULT_BUFFER_MINUTES must be >= 0, got {booking.default_buffer_minutes}"
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
    logger.info(
        "Configuration loaded for '%s' (advance=%dd, slot=%dmin)",
        config.engine_name,
        config.booking.max_advance_days,
        config.booking.slot_interval_minutes,
    )
    return config
