"""
Custom exceptions for the booking core.

Every failure a caller can act on is a BookingError subclass carrying a
stable ``code`` and the HTTP status the API layer answers with.
"""

from typing import Optional


class BookingError(Exception):
    """Base class for typed booking failures."""

    code = "booking_error"
    status_code = 400

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict:
        payload = {"error": self.code, "message": self.message}
        if self.context:
            payload["details"] = self.context
        return payload


class NotFoundError(BookingError):
    code = "not_found"
    status_code = 404


class SpecialistNotFoundError(NotFoundError):
    def __init__(self, specialist_id):
        super().__init__(
            f"Specialist {specialist_id} not found", specialist_id=specialist_id
        )


class ServiceNotFoundError(NotFoundError):
    def __init__(self, service_id):
        super().__init__(f"Service {service_id} not found", service_id=service_id)


class AppointmentNotFoundError(NotFoundError):
    def __init__(self, appointment_id):
        super().__init__(
            f"Appointment {appointment_id} not found", appointment_id=appointment_id
        )


class ServiceArchivedError(BookingError):
    """Raised when a booking targets a service that has been archived."""

    code = "service_archived"
    status_code = 409

    def __init__(self, service_id):
        super().__init__(
            f"Service {service_id} is archived and cannot be booked",
            service_id=service_id,
        )


class ConflictError(BookingError):
    """Raised by the store when an insert would overlap an active appointment."""

    code = "conflict"
    status_code = 409


class SlotUnavailableError(ConflictError):
    """The requested slot is taken or outside availability.

    Clients should prompt the user to pick another time.
    """

    code = "slot_unavailable"


class InvalidTransitionError(BookingError):
    code = "invalid_transition"
    status_code = 409

    def __init__(self, current_status, new_status, message: Optional[str] = None):
        current = getattr(current_status, "value", current_status)
        new = getattr(new_status, "value", new_status)
        super().__init__(
            message or f"Cannot change appointment status from '{current}' to '{new}'",
            current_status=current,
            new_status=new,
        )


class ValidationError(BookingError):
    """Malformed date, time, duration or identifier input."""

    code = "validation_error"
    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        if field:
            super().__init__(message, field=field)
        else:
            super().__init__(message)
        self.field = field


class PermissionDeniedError(BookingError):
    code = "forbidden"
    status_code = 403


class StorageError(BookingError):
    """Underlying persistence failure, surfaced as-is."""

    code = "storage_failure"
    status_code = 500
