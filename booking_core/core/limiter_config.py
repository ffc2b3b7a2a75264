"""
Rate limiting for the booking API.

Writes are keyed by the authenticated client when a bearer token is
present, so one client cannot exhaust the slot pool from many addresses;
anonymous reads are keyed by remote address.
"""

import os
import sys

from flask import request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from booking_core.core.security import get_user_from_token

BOOKING_WRITE_LIMIT = "20 per minute"
AVAILABILITY_READ_LIMIT = "120 per minute"
DEFAULT_LIMITS = ["200 per hour", "50 per minute"]


def _running_under_tests() -> bool:
    if os.getenv("TESTING", "").strip().lower() in ("true", "1", "yes"):
        return True
    return "pytest" in sys.modules or bool(os.getenv("PYTEST_CURRENT_TEST"))


def rate_limit_enabled() -> bool:
    """RATE_LIMIT_ENABLED when set, otherwise on everywhere but test runs."""
    raw = os.getenv("RATE_LIMIT_ENABLED")
    if raw is not None:
        return raw.strip().lower() in ("true", "1", "yes")
    return not _running_under_tests()


def client_or_address() -> str:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        user = get_user_from_token(auth_header[7:].strip())
        if user is not None:
            return f"user:{user['user_id']}"
    return f"addr:{get_remote_address()}"


# Imported by controllers; create_app applies RATELIMIT_ENABLED
limiter = Limiter(
    key_func=client_or_address,
    default_limits=DEFAULT_LIMITS,
    storage_uri=os.getenv("LIMITER_STORAGE_URI", "memory://"),
)
