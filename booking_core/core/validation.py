"""
Common validation utilities for booking inputs.

Request payloads and query strings carry dates as ISO ``YYYY-MM-DD`` and
times as ``HH:MM``. These helpers convert them to ``date``/``time`` objects
and raise ValidationError (with the offending field) otherwise.
"""

import logging
from datetime import date, datetime, time
from typing import Any, Optional

from booking_core.core.exceptions import ValidationError
from booking_core.domain.entities import AppointmentStatus

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"


def parse_date(value: Any, field_name: str = "date") -> date:
    """Validate and convert a date field."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{field_name} is required", field_name)
    if isinstance(value, str):
        try:
            return datetime.strptime(value.strip(), DATE_FORMAT).date()
        except ValueError:
            pass
    logger.warning(f"Validation error: {field_name}={value!r} is not a date")
    raise ValidationError(f"Invalid {field_name}. Use format YYYY-MM-DD", field_name)


def parse_time(value: Any, field_name: str = "start_time") -> time:
    """Validate and convert an ``HH:MM`` time field.

    Seconds are accepted (``HH:MM:SS``) but must be zero.
    """
    if isinstance(value, time):
        return value.replace(microsecond=0)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{field_name} is required", field_name)
    if isinstance(value, str):
        text = value.strip()
        for fmt in (TIME_FORMAT, "%H:%M:%S"):
            try:
                parsed = datetime.strptime(text, fmt).time()
            except ValueError:
                continue
            if parsed.second:
                break
            return parsed
    logger.warning(f"Validation error: {field_name}={value!r} is not a time")
    raise ValidationError(f"Invalid {field_name}. Use format HH:MM", field_name)


def parse_positive_int(value: Any, field_name: str) -> int:
    """Validate an identifier or duration that must be a positive integer."""
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a positive integer", field_name)
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(
            f"{field_name} must be a positive integer", field_name
        ) from None
    if isinstance(value, float) and value != number:
        raise ValidationError(f"{field_name} must be a positive integer", field_name)
    if number <= 0:
        raise ValidationError(f"{field_name} must be a positive integer", field_name)
    return number


def parse_optional_text(
    value: Any, field_name: str, max_length: int = 500
) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string", field_name)
    text = value.strip()
    if len(text) > max_length:
        raise ValidationError(
            f"{field_name} must be at most {max_length} characters", field_name
        )
    return text or None


def format_date(value: date) -> str:
    return value.strftime(DATE_FORMAT)


def format_time(value: time) -> str:
    return value.strftime(TIME_FORMAT)


def parse_status(value: Any, field_name: str = "status") -> AppointmentStatus:
    """Convert a status string into the AppointmentStatus enumeration."""
    try:
        return AppointmentStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in AppointmentStatus)
        raise ValidationError(
            f"Invalid {field_name}. Use one of: {allowed}", field_name
        ) from None
