"""
Centralized configuration module for application-wide settings.

Every knob is read from the environment once at import time and exposed
both as a getter (re-reads the environment, used by tests) and as a module
constant (used by the running application).
"""

import logging
import os
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

_TRUTHY = ("true", "1", "yes")


def _get_int(name: str, default: int, minimum: int = 1) -> int:
    raw = os.getenv(name, str(default))
    try:
        value = int(raw)
    except (TypeError, ValueError):
        logger.warning(
            f"Invalid integer '{raw}' for {name}. Falling back to {default}.",
            extra={"context": {"env_var": name, "value": raw}},
        )
        return default
    if value < minimum:
        logger.warning(
            f"{name}={value} is below the minimum {minimum}. "
            f"Falling back to {default}.",
            extra={"context": {"env_var": name, "value": value}},
        )
        return default
    return value


def _get_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY


# ===========================
# Database Configuration
# ===========================


def get_database_url() -> str:
    """
    Get the SQLAlchemy database URL.

    Environment Variables:
        DATABASE_URL: any SQLAlchemy URL. Default: a SQLite file next to the
            working directory, matching the embedded database the booking
            site has always used.
    """
    return os.getenv("DATABASE_URL", "sqlite:///./booking.db")


# ===========================
# Timezone Configuration
# ===========================


def get_app_timezone() -> ZoneInfo:
    """
    Business timezone from TZ. Appointment dates and "HH:MM" times are
    wall-clock values in this zone; an unknown name falls back to UTC.
    """
    tz_name = os.getenv("TZ", "UTC")

    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(
            f"Unknown timezone '{tz_name}' in TZ, using UTC for bookings",
            extra={"context": {"env_var": "TZ", "value": tz_name}},
        )
        return ZoneInfo("UTC")


APP_TZ = get_app_timezone()


def log_timezone_config():
    logger.info(
        "Business timezone configured",
        extra={"context": {"timezone": str(APP_TZ)}},
    )


# ===========================
# Booking Policy Configuration
# ===========================


def get_slot_step_minutes() -> int:
    """
    Get the granularity used to step candidate slots inside a free window.

    Environment Variables:
        SLOT_STEP_MINUTES: positive integer. Default: 30
    """
    return _get_int("SLOT_STEP_MINUTES", 30)


def get_require_confirmation_default() -> bool:
    """
    Get whether new bookings wait for admin confirmation.

    This is only the fallback; admins can override it at runtime through
    the appointments settings endpoint, which persists an AppSetting row.

    Environment Variables:
        BOOKING_REQUIRE_CONFIRMATION: "true" -> pending, "false" -> confirmed.
            Default: true
    """
    return _get_bool("BOOKING_REQUIRE_CONFIRMATION", True)


def get_max_availability_range_days() -> int:
    """Longest date range accepted by the available-dates query."""
    return _get_int("MAX_AVAILABILITY_RANGE_DAYS", 92)


SLOT_STEP_MINUTES = get_slot_step_minutes()
BOOKING_REQUIRE_CONFIRMATION = get_require_confirmation_default()
MAX_AVAILABILITY_RANGE_DAYS = get_max_availability_range_days()


def log_booking_config():
    """Log the active booking policy configuration."""
    logger.info(
        "Booking policy configuration initialized",
        extra={
            "context": {
                "slot_step_minutes": SLOT_STEP_MINUTES,
                "require_confirmation": BOOKING_REQUIRE_CONFIRMATION,
                "max_range_days": MAX_AVAILABILITY_RANGE_DAYS,
            }
        },
    )


# ===========================
# Auto-complete Job Configuration
# ===========================


def get_auto_complete_interval_minutes() -> int:
    """
    Get how often the auto-complete job runs.

    Environment Variables:
        AUTO_COMPLETE_INTERVAL_MINUTES: positive integer. Default: 15
    """
    return _get_int("AUTO_COMPLETE_INTERVAL_MINUTES", 15)


def get_auto_complete_job_enabled() -> bool:
    """
    Environment Variables:
        ENABLE_AUTO_COMPLETE_JOB: Default: true
    """
    return _get_bool("ENABLE_AUTO_COMPLETE_JOB", True)


AUTO_COMPLETE_INTERVAL_MINUTES = get_auto_complete_interval_minutes()
ENABLE_AUTO_COMPLETE_JOB = get_auto_complete_job_enabled()


# ===========================
# Cron Hook Configuration
# ===========================


def get_cron_api_key() -> str | None:
    """
    Get the key expected in the X-API-Key header of the cron endpoint.

    Environment Variables:
        CRON_API_KEY: shared secret. Default: None (endpoint left open, a
            warning is logged at startup)
    """
    return os.getenv("CRON_API_KEY") or None


CRON_API_KEY = get_cron_api_key()


def log_cron_config():
    """Log whether the cron endpoint is protected (never the key itself)."""
    if CRON_API_KEY:
        logger.info(
            "Cron endpoint protected by API key",
            extra={
                "context": {"auto_complete_interval": AUTO_COMPLETE_INTERVAL_MINUTES}
            },
        )
    else:
        logger.warning(
            "CRON_API_KEY is not configured - cron endpoint accepts any caller",
            extra={"context": {"environment": os.getenv("FLASK_ENV", "unknown")}},
        )


def is_testing() -> bool:
    return os.getenv("TESTING", "").strip().lower() in _TRUTHY
