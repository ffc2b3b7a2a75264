"""
Appointment controller - client-facing booking endpoints.

Every route requires a Bearer JWT; the client id is the token subject.
Typed booking failures bubble up to the app-level error handler, which
renders them with their error code (e.g. ``slot_unavailable``).
"""

from flask import Blueprint, g

from booking_core.controllers.dependencies import booking_services
from booking_core.core.api_utils import api_response, get_json_body
from booking_core.core.auth_decorators import jwt_required
from booking_core.core.limiter_config import BOOKING_WRITE_LIMIT, limiter
from booking_core.schemas.dtos import (
    AppointmentResponse,
    BookingRequest,
    RescheduleRequest,
)

appointments_bp = Blueprint("appointments", __name__, url_prefix="/api/appointments")


@appointments_bp.route("", methods=["POST"])
@limiter.limit(BOOKING_WRITE_LIMIT)
@jwt_required
def book_appointment():
    """Book a slot for the authenticated client."""
    booking = BookingRequest.from_json(get_json_body())
    with booking_services() as services:
        appointment = services.appointments.book(
            booking.specialist_id,
            booking.service_id,
            g.current_user.id,
            booking.date,
            booking.start_time,
            comment=booking.comment,
        )
    return api_response(
        True,
        "Appointment booked",
        AppointmentResponse.from_domain(appointment).to_dict(),
        201,
    )


@appointments_bp.route("", methods=["GET"])
@jwt_required
def list_my_appointments():
    with booking_services() as services:
        appointments = services.appointments.list_for_client(g.current_user.id)
    return api_response(
        True,
        f"{len(appointments)} appointment(s)",
        [AppointmentResponse.from_domain(a).to_dict() for a in appointments],
    )


@appointments_bp.route("/<int:appointment_id>", methods=["GET"])
@jwt_required
def get_appointment(appointment_id: int):
    user = g.current_user
    with booking_services() as services:
        appointment = services.appointments.get_appointment(
            appointment_id, user.id, is_admin=user.is_admin
        )
    return api_response(
        True,
        "Appointment found",
        AppointmentResponse.from_domain(appointment).to_dict(),
    )


@appointments_bp.route("/<int:appointment_id>/cancel", methods=["POST"])
@limiter.limit(BOOKING_WRITE_LIMIT)
@jwt_required
def cancel_appointment(appointment_id: int):
    user = g.current_user
    with booking_services() as services:
        appointment = services.appointments.cancel(
            appointment_id, user.id, is_admin=user.is_admin
        )
    return api_response(
        True,
        "Appointment cancelled",
        AppointmentResponse.from_domain(appointment).to_dict(),
    )


@appointments_bp.route("/<int:appointment_id>/reschedule", methods=["POST"])
@limiter.limit(BOOKING_WRITE_LIMIT)
@jwt_required
def reschedule_appointment(appointment_id: int):
    """Move an appointment to another free slot. Body: date, start_time."""
    user = g.current_user
    move = RescheduleRequest.from_json(get_json_body())
    with booking_services() as services:
        appointment = services.appointments.reschedule(
            appointment_id,
            user.id,
            move.date,
            move.start_time,
            is_admin=user.is_admin,
        )
    return api_response(
        True,
        "Appointment rescheduled",
        AppointmentResponse.from_domain(appointment).to_dict(),
    )
