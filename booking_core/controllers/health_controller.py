"""
Health controller - health check endpoint for monitoring.
"""

import logging

from flask import Blueprint, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from booking_core.controllers.dependencies import DATABASE_EXTENSION
from booking_core.core.api_utils import api_response
from booking_core.core.limiter_config import limiter

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/health")


@health_bp.route("", methods=["GET"])
@limiter.exempt
def health_check():
    """
    Liveness plus a database round trip.

    Status codes:
        200: database reachable
        503: database query failed
    """
    database = current_app.extensions[DATABASE_EXTENSION]
    try:
        with database.session() as db:
            db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(
            "Health check failed",
            extra={"context": {"error": str(e), "dialect": database.dialect_name}},
        )
        return api_response(
            False,
            "Database unavailable",
            {"status": "unhealthy"},
            503,
            error="storage_failure",
        )

    return api_response(
        True, "OK", {"status": "healthy", "database": database.dialect_name}
    )
