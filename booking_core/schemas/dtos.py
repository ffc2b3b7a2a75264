"""
Data Transfer Objects (DTOs) for the booking API.

Request DTOs parse raw JSON/query values into typed fields and raise
ValidationError; response DTOs turn domain entities into JSON-ready dicts
with ISO dates and ``HH:MM`` times.
"""

from dataclasses import asdict, dataclass
from datetime import date, time
from typing import Any, Mapping, Optional

from booking_core.core.validation import (
    format_date,
    format_time,
    parse_date,
    parse_optional_text,
    parse_positive_int,
    parse_time,
)
from booking_core.domain.entities import TimeSlot


@dataclass
class AvailableDatesQuery:
    """Query string of GET /api/availability/dates."""

    specialist_id: int
    service_id: int
    start: date
    end: date

    @classmethod
    def from_args(cls, args: Mapping[str, Any]) -> "AvailableDatesQuery":
        return cls(
            specialist_id=parse_positive_int(
                args.get("specialist_id"), "specialist_id"
            ),
            service_id=parse_positive_int(args.get("service_id"), "service_id"),
            start=parse_date(args.get("start"), "start"),
            end=parse_date(args.get("end"), "end"),
        )


@dataclass
class AvailableSlotsQuery:
    """Query string of GET /api/availability/slots."""

    specialist_id: int
    service_id: int
    date: date

    @classmethod
    def from_args(cls, args: Mapping[str, Any]) -> "AvailableSlotsQuery":
        return cls(
            specialist_id=parse_positive_int(
                args.get("specialist_id"), "specialist_id"
            ),
            service_id=parse_positive_int(args.get("service_id"), "service_id"),
            date=parse_date(args.get("date"), "date"),
        )


@dataclass
class BookingRequest:
    """DTO for appointment creation requests; the client comes from the token."""

    specialist_id: int
    service_id: int
    date: date
    start_time: time
    comment: Optional[str] = None

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "BookingRequest":
        return cls(
            specialist_id=parse_positive_int(
                data.get("specialist_id"), "specialist_id"
            ),
            service_id=parse_positive_int(data.get("service_id"), "service_id"),
            date=parse_date(data.get("date"), "date"),
            start_time=parse_time(data.get("start_time"), "start_time"),
            comment=parse_optional_text(data.get("comment"), "comment"),
        )


@dataclass
class RescheduleRequest:
    date: date
    start_time: time

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "RescheduleRequest":
        return cls(
            date=parse_date(data.get("date"), "date"),
            start_time=parse_time(data.get("start_time"), "start_time"),
        )


@dataclass
class TimeSlotResponse:
    start: str
    end: str

    @classmethod
    def from_domain(cls, slot: TimeSlot) -> "TimeSlotResponse":
        return cls(start=format_time(slot.start), end=format_time(slot.end))

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class AppointmentResponse:
    """DTO for appointment API responses."""

    id: int
    specialist_id: int
    service_id: int
    client_id: int
    date: str
    start_time: str
    end_time: str
    status: str
    comment: Optional[str]
    created_at: Optional[str]
    updated_at: Optional[str]

    @classmethod
    def from_domain(cls, appointment) -> "AppointmentResponse":
        """Create response from domain entity."""
        return cls(
            id=appointment.id,
            specialist_id=appointment.specialist_id,
            service_id=appointment.service_id,
            client_id=appointment.client_id,
            date=format_date(appointment.date),
            start_time=format_time(appointment.start_time),
            end_time=format_time(appointment.end_time),
            status=appointment.status.value,
            comment=appointment.comment,
            created_at=(
                appointment.created_at.isoformat() if appointment.created_at else None
            ),
            updated_at=(
                appointment.updated_at.isoformat() if appointment.updated_at else None
            ),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class AutoCompleteResponse:
    updated_count: int
    updated_ids: list
    failed_ids: list

    @classmethod
    def from_result(cls, result) -> "AutoCompleteResponse":
        return cls(
            updated_count=result.updated_count,
            updated_ids=list(result.updated_ids),
            failed_ids=list(result.failed_ids),
        )

    def to_dict(self) -> dict:
        return asdict(self)
