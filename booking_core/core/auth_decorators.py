"""
Authentication helpers for the booking API.

Two flows protect the endpoints:

1. **Clients and admins (frontend):**
   - Authentication: JWT Bearer token (``sub`` = user id, ``role``)
   - Decorators: @jwt_required, @admin_required
   - The session/cookie login that issues these tokens lives outside
     this package.

2. **Schedulers (external cron, uptime robots):**
   - Authentication: ``X-API-Key`` header compared with CRON_API_KEY
   - Decorator: @cron_key_required

Examples:
    @appointments_bp.route("/<int:appointment_id>/cancel", methods=["POST"])
    @jwt_required
    def cancel_appointment(appointment_id):
        user = g.current_user  # SimpleNamespace(id, role, is_admin)
        ...
"""

import hmac
from functools import wraps
from types import SimpleNamespace

from flask import current_app, g, request

from booking_core.core.api_utils import api_response
from booking_core.core.security import ROLE_ADMIN, get_user_from_token


def _authenticate():
    """Resolve the bearer token into ``g.current_user``.

    Returns an error response tuple when authentication fails, else None.
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return api_response(False, "Missing or invalid Authorization header", None, 401)

    token = auth_header.split(" ", 1)[1].strip()
    user_data = get_user_from_token(token)
    if not user_data:
        return api_response(False, "Invalid or expired token", None, 401)

    g.current_user = SimpleNamespace(
        id=user_data["user_id"],
        role=user_data["role"],
        is_admin=user_data["role"] == ROLE_ADMIN,
    )
    return None


def jwt_required(f):
    """401 unless the request carries a valid client or admin bearer token."""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        error = _authenticate()
        if error is not None:
            return error
        return f(*args, **kwargs)

    return decorated_function


def admin_required(f):
    """Like @jwt_required, but the token must carry the admin role (403 otherwise)."""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        error = _authenticate()
        if error is not None:
            return error
        if not g.current_user.is_admin:
            return api_response(False, "Admin privileges required", None, 403)
        return f(*args, **kwargs)

    return decorated_function


def cron_key_required(f):
    """Check ``X-API-Key`` against the configured cron key.

    When no key is configured the endpoint stays open; create_app logs a
    warning at startup in that case.
    """

    @wraps(f)
    def decorated_function(*args, **kwargs):
        expected = current_app.config.get("CRON_API_KEY")
        if expected:
            provided = request.headers.get("X-API-Key", "")
            if not hmac.compare_digest(provided.encode(), expected.encode()):
                return api_response(False, "Unauthorized", None, 401)
        return f(*args, **kwargs)

    return decorated_function
