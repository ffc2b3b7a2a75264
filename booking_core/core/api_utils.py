"""
Common API utilities for consistent response formatting across all controllers.
"""

from typing import Any, Optional

from flask import jsonify, request

from booking_core.core.exceptions import BookingError, ValidationError


def api_response(
    success: bool,
    message: str,
    data: Optional[Any] = None,
    status_code: int = 200,
    error: Optional[str] = None,
) -> tuple:
    """
    Standardized API response format for all endpoints.

    Args:
        success: Whether the operation was successful
        message: Human-readable message about the operation
        data: Optional data payload
        status_code: HTTP status code
        error: Stable error code for failures (e.g. "slot_unavailable")

    Returns:
        Tuple of (json_response, status_code)
    """
    response = {"success": success, "message": message}

    if data is not None:
        response["data"] = data
    if error is not None:
        response["error"] = error

    return jsonify(response), status_code


def error_response(exc: BookingError) -> tuple:
    """Render a typed booking failure with its code and HTTP status."""
    return api_response(
        False,
        exc.message,
        exc.context or None,
        exc.status_code,
        error=exc.code,
    )


def get_json_body() -> dict:
    """Return the request JSON object, raising ValidationError when absent."""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload
