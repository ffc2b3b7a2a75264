"""
Appointment lifecycle: book, cancel, reschedule, administrative overrides
and periodic auto-completion.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Any, List, Optional

from booking_core.core.exceptions import (
    AppointmentNotFoundError,
    ConflictError,
    InvalidTransitionError,
    PermissionDeniedError,
    SlotUnavailableError,
    ValidationError,
)
from booking_core.core.validation import (
    format_time,
    parse_date,
    parse_optional_text,
    parse_positive_int,
    parse_status,
    parse_time,
)
from booking_core.domain.entities import (
    Appointment,
    AppointmentStatus,
    AutoCompleteResult,
    BookingPolicy,
)
from booking_core.domain.interfaces import IAppointmentRepository, ISettingsRepository
from booking_core.services.availability_service import AvailabilityService

logger = logging.getLogger(__name__)

REQUIRE_CONFIRMATION_KEY = "appointments.require_confirmation"


def compute_end_time(start_time: time, duration_minutes: int) -> time:
    """``start_time + duration``; an appointment may not cross midnight."""
    start = datetime.combine(date.min, start_time)
    end = start + timedelta(minutes=duration_minutes)
    if end.date() != start.date():
        raise ValidationError("Appointment cannot extend past midnight", "start_time")
    return end.time()


class AppointmentService:
    """Application service for appointment use-cases.

    Availability reads are lock-free; the repository's atomic insert is
    authoritative, so a conflict it reports becomes SlotUnavailableError
    for the caller to pick another time.
    """

    def __init__(
        self,
        appointment_repo: IAppointmentRepository,
        availability: AvailabilityService,
        settings_repo: Optional[ISettingsRepository] = None,
        policy: Optional[BookingPolicy] = None,
    ):
        self.appointment_repo = appointment_repo
        self.availability = availability
        self.settings_repo = settings_repo
        self.policy = policy or availability.policy

    # ------------------------------------------------------------------
    # Booking flow settings
    # ------------------------------------------------------------------

    def requires_confirmation(self) -> bool:
        """Stored setting if present, else the configured default."""
        if self.settings_repo is None:
            return self.policy.require_confirmation
        stored = self.settings_repo.get_value(REQUIRE_CONFIRMATION_KEY)
        if stored is None:
            return self.policy.require_confirmation
        return stored.strip().lower() in ("true", "1", "yes")

    def set_requires_confirmation(self, value: bool) -> bool:
        if self.settings_repo is None:
            raise RuntimeError("No settings repository configured")
        if not isinstance(value, bool):
            raise ValidationError(
                "require_confirmation must be a boolean", "require_confirmation"
            )
        self.settings_repo.set_value(
            REQUIRE_CONFIRMATION_KEY, "true" if value else "false"
        )
        logger.info(
            "Booking confirmation policy changed",
            extra={"context": {"require_confirmation": value}},
        )
        return value

    # ------------------------------------------------------------------
    # Client operations
    # ------------------------------------------------------------------

    def book(
        self,
        specialist_id: Any,
        service_id: Any,
        client_id: Any,
        day: Any,
        start_time: Any,
        comment: Optional[str] = None,
    ) -> Appointment:
        """Book ``start_time`` on ``day`` if it is one of the free slots.

        Raises:
            ValidationError: malformed ids, date, time or comment
            ServiceNotFoundError / ServiceArchivedError: service not bookable
            SpecialistNotFoundError: unknown specialist
            SlotUnavailableError: slot taken, in the past or outside hours
        """
        specialist_id = parse_positive_int(specialist_id, "specialist_id")
        service_id = parse_positive_int(service_id, "service_id")
        client_id = parse_positive_int(client_id, "client_id")
        day = parse_date(day, "date")
        start_time = parse_time(start_time, "start_time")
        comment = parse_optional_text(comment, "comment")

        # Reload: the service may have been archived since slots were quoted
        service = self.availability.get_bookable_service(service_id)
        end_time = compute_end_time(start_time, service.duration_minutes)

        slots = self.availability.slots_for_service(specialist_id, service, day)
        if not any(slot.start == start_time for slot in slots):
            logger.info(
                "Requested slot is not available",
                extra={
                    "context": {
                        "specialist_id": specialist_id,
                        "date": day.isoformat(),
                        "start_time": format_time(start_time),
                    }
                },
            )
            raise SlotUnavailableError(
                "The selected time is no longer available, please choose another time",
                specialist_id=specialist_id,
                date=day.isoformat(),
                start_time=format_time(start_time),
            )

        appointment = Appointment(
            specialist_id=specialist_id,
            service_id=service_id,
            client_id=client_id,
            date=day,
            start_time=start_time,
            end_time=end_time,
            status=self.policy.initial_status(self.requires_confirmation()),
            comment=comment,
        )
        try:
            created = self.appointment_repo.create(appointment)
        except ConflictError as e:
            raise SlotUnavailableError(
                "The selected time was just booked, please choose another time",
                **e.context,
            ) from e

        logger.info(
            "Appointment booked",
            extra={
                "context": {
                    "appointment_id": created.id,
                    "specialist_id": specialist_id,
                    "client_id": client_id,
                    "date": day.isoformat(),
                    "start_time": format_time(start_time),
                    "status": created.status.value,
                }
            },
        )
        return created

    def cancel(
        self, appointment_id: int, acting_user_id: int, is_admin: bool = False
    ) -> Appointment:
        """Cancel a pending or confirmed appointment of the acting user."""
        appointment = self._get_owned(appointment_id, acting_user_id, is_admin)
        if not appointment.status.can_transition_to(AppointmentStatus.CANCELLED):
            raise InvalidTransitionError(
                appointment.status, AppointmentStatus.CANCELLED
            )

        cancelled = self.appointment_repo.update_status(
            appointment_id, AppointmentStatus.CANCELLED
        )
        logger.info(
            "Appointment cancelled",
            extra={
                "context": {
                    "appointment_id": appointment_id,
                    "acting_user_id": acting_user_id,
                    "is_admin": is_admin,
                }
            },
        )
        return cancelled

    def reschedule(
        self,
        appointment_id: int,
        acting_user_id: int,
        day: Any,
        start_time: Any,
        is_admin: bool = False,
    ) -> Appointment:
        """Move an active appointment to another free slot; status is kept."""
        day = parse_date(day, "date")
        start_time = parse_time(start_time, "start_time")

        appointment = self._get_owned(appointment_id, acting_user_id, is_admin)
        if not appointment.is_active:
            raise InvalidTransitionError(
                appointment.status,
                appointment.status,
                message=f"Cannot reschedule a {appointment.status.value} appointment",
            )

        service = self.availability.get_service(appointment.service_id)
        end_time = compute_end_time(start_time, service.duration_minutes)

        slots = self.availability.slots_for_service(
            appointment.specialist_id,
            service,
            day,
            exclude_appointment_id=appointment_id,
        )
        if not any(slot.start == start_time for slot in slots):
            raise SlotUnavailableError(
                "The selected time is not available, please choose another time",
                specialist_id=appointment.specialist_id,
                date=day.isoformat(),
                start_time=format_time(start_time),
            )

        try:
            moved = self.appointment_repo.reschedule(
                appointment_id, day, start_time, end_time
            )
        except ConflictError as e:
            raise SlotUnavailableError(
                "The selected time was just booked, please choose another time",
                **e.context,
            ) from e

        logger.info(
            "Appointment rescheduled",
            extra={
                "context": {
                    "appointment_id": appointment_id,
                    "from_date": appointment.date.isoformat(),
                    "from_start_time": format_time(appointment.start_time),
                    "to_date": day.isoformat(),
                    "to_start_time": format_time(start_time),
                }
            },
        )
        return moved

    def get_appointment(
        self, appointment_id: int, acting_user_id: int, is_admin: bool = False
    ) -> Appointment:
        return self._get_owned(appointment_id, acting_user_id, is_admin)

    def list_for_client(self, client_id: int) -> List[Appointment]:
        return self.appointment_repo.list_by_client(client_id)

    # ------------------------------------------------------------------
    # Administrative operations
    # ------------------------------------------------------------------

    def change_status(self, appointment_id: int, new_status: Any) -> Appointment:
        """Administrative override: no ownership check, same transition table."""
        status = parse_status(new_status)
        updated = self.appointment_repo.update_status(appointment_id, status)
        logger.info(
            "Appointment status changed by admin",
            extra={
                "context": {"appointment_id": appointment_id, "status": status.value}
            },
        )
        return updated

    def delete(self, appointment_id: int) -> bool:
        deleted = self.appointment_repo.delete(appointment_id)
        if deleted:
            logger.warning(
                "Appointment deleted by admin",
                extra={"context": {"appointment_id": appointment_id}},
            )
        return deleted

    def auto_complete_past(self) -> AutoCompleteResult:
        """Mark confirmed appointments that have fully ended as completed.

        Each appointment is updated on its own; a failure is logged,
        recorded in ``failed_ids`` and the batch goes on. Running it again
        finds nothing new to update.
        """
        now = self.availability.now()
        candidates = self.appointment_repo.list_confirmed_ended_before(now)
        result = AutoCompleteResult()

        for appointment in candidates:
            try:
                self.appointment_repo.update_status(
                    appointment.id, AppointmentStatus.COMPLETED
                )
                result.updated_ids.append(appointment.id)
            except Exception as e:
                logger.error(
                    f"Failed to auto-complete appointment {appointment.id}: {e}",
                    extra={"context": {"appointment_id": appointment.id}},
                    exc_info=True,
                )
                result.failed_ids.append(appointment.id)

        logger.info(
            "Auto-complete batch finished",
            extra={
                "context": {
                    "cutoff": now.isoformat(),
                    "candidates": len(candidates),
                    "updated": len(result.updated_ids),
                    "failed": len(result.failed_ids),
                }
            },
        )
        return result

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_owned(
        self, appointment_id: int, acting_user_id: int, is_admin: bool
    ) -> Appointment:
        appointment = self.appointment_repo.get_by_id(appointment_id)
        if appointment is None:
            raise AppointmentNotFoundError(appointment_id)
        if not is_admin and not appointment.belongs_to(acting_user_id):
            raise PermissionDeniedError(
                "You can only manage your own appointments",
                appointment_id=appointment_id,
            )
        return appointment
