"""
Admin controller - administrative overrides on appointments and the
booking-flow setting. All routes require an admin JWT.
"""

import logging

from flask import Blueprint, g

from booking_core.controllers.dependencies import booking_services
from booking_core.core.api_utils import api_response, get_json_body
from booking_core.core.auth_decorators import admin_required
from booking_core.core.exceptions import AppointmentNotFoundError, ValidationError
from booking_core.schemas.dtos import AppointmentResponse

logger = logging.getLogger(__name__)

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.route("/appointments/<int:appointment_id>/status", methods=["PATCH"])
@admin_required
def change_appointment_status(appointment_id: int):
    """Body: {"status": "confirmed" | "completed" | "cancelled" | "pending"}"""
    payload = get_json_body()
    with booking_services() as services:
        appointment = services.appointments.change_status(
            appointment_id, payload.get("status")
        )
    logger.info(
        "Admin status override",
        extra={
            "context": {
                "admin_id": g.current_user.id,
                "appointment_id": appointment_id,
                "status": appointment.status.value,
            }
        },
    )
    return api_response(
        True,
        "Appointment status updated",
        AppointmentResponse.from_domain(appointment).to_dict(),
    )


@admin_bp.route("/appointments/<int:appointment_id>", methods=["DELETE"])
@admin_required
def delete_appointment(appointment_id: int):
    with booking_services() as services:
        deleted = services.appointments.delete(appointment_id)
    if not deleted:
        raise AppointmentNotFoundError(appointment_id)
    return api_response(True, "Appointment deleted", {"id": appointment_id})


@admin_bp.route("/settings/appointments", methods=["GET"])
@admin_required
def get_appointment_settings():
    with booking_services() as services:
        required = services.appointments.requires_confirmation()
    return api_response(
        True, "Appointment settings", {"require_confirmation": required}
    )


@admin_bp.route("/settings/appointments", methods=["PUT"])
@admin_required
def update_appointment_settings():
    """Body: {"require_confirmation": true | false}"""
    payload = get_json_body()
    if "require_confirmation" not in payload:
        raise ValidationError(
            "require_confirmation is required", "require_confirmation"
        )
    with booking_services() as services:
        required = services.appointments.set_requires_confirmation(
            payload["require_confirmation"]
        )
    return api_response(
        True, "Appointment settings updated", {"require_confirmation": required}
    )
