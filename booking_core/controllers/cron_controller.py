"""
Cron controller - HTTP hook for external schedulers.

Runs the same auto-complete batch as the in-process APScheduler job, for
deployments where background threads are not available.
"""

import logging

from flask import Blueprint

from booking_core.controllers.dependencies import booking_services
from booking_core.core.api_utils import api_response
from booking_core.core.auth_decorators import cron_key_required
from booking_core.schemas.dtos import AutoCompleteResponse

logger = logging.getLogger(__name__)

cron_bp = Blueprint("cron", __name__, url_prefix="/api/cron")


@cron_bp.route("/update-appointment-statuses", methods=["GET", "POST"])
@cron_key_required
def update_appointment_statuses():
    """Complete confirmed appointments that have already ended.

    Header: X-API-Key (checked when CRON_API_KEY is configured)
    """
    with booking_services() as services:
        result = services.appointments.auto_complete_past()

    message = f"Updated {result.updated_count} appointment(s)"
    if result.failed_ids:
        message += f", {len(result.failed_ids)} failed"
    return api_response(
        True, message, AutoCompleteResponse.from_result(result).to_dict()
    )
