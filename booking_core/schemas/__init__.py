"""
Schemas package - Data Transfer Objects and validation.

This package contains DTOs that define the API contracts.
"""

from .dtos import (
    AppointmentResponse,
    AutoCompleteResponse,
    AvailableDatesQuery,
    AvailableSlotsQuery,
    BookingRequest,
    RescheduleRequest,
    TimeSlotResponse,
)

__all__ = [
    "AppointmentResponse",
    "AutoCompleteResponse",
    "AvailableDatesQuery",
    "AvailableSlotsQuery",
    "BookingRequest",
    "RescheduleRequest",
    "TimeSlotResponse",
]
