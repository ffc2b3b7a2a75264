"""
Availability controller - public, read-only slot and date queries.
"""

import logging

from flask import Blueprint, request

from booking_core.controllers.dependencies import booking_services
from booking_core.core.api_utils import api_response
from booking_core.core.limiter_config import AVAILABILITY_READ_LIMIT, limiter
from booking_core.core.validation import format_date
from booking_core.schemas.dtos import (
    AvailableDatesQuery,
    AvailableSlotsQuery,
    TimeSlotResponse,
)

logger = logging.getLogger(__name__)

availability_bp = Blueprint("availability", __name__, url_prefix="/api/availability")


@availability_bp.route("/dates", methods=["GET"])
@limiter.limit(AVAILABILITY_READ_LIMIT)
def available_dates():
    """Dates with at least one free slot.

    Query: specialist_id, service_id, start, end (YYYY-MM-DD, inclusive)
    """
    query = AvailableDatesQuery.from_args(request.args)
    with booking_services() as services:
        dates = services.availability.get_available_dates(
            query.specialist_id, query.service_id, query.start, query.end
        )
    return api_response(
        True,
        f"{len(dates)} available date(s)",
        {"dates": [format_date(d) for d in dates]},
    )


@availability_bp.route("/slots", methods=["GET"])
@limiter.limit(AVAILABILITY_READ_LIMIT)
def available_slots():
    """Free slots on one date, ordered by start.

    Query: specialist_id, service_id, date (YYYY-MM-DD)
    """
    query = AvailableSlotsQuery.from_args(request.args)
    with booking_services() as services:
        slots = services.availability.get_available_slots(
            query.specialist_id, query.service_id, query.date
        )
    return api_response(
        True,
        f"{len(slots)} available slot(s)",
        {
            "date": format_date(query.date),
            "slots": [TimeSlotResponse.from_domain(s).to_dict() for s in slots],
        },
    )
