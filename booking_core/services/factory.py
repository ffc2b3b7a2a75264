"""Wiring of repositories and services over one database session."""

from dataclasses import dataclass
from typing import Optional

from booking_core.core import config
from booking_core.domain.entities import BookingPolicy
from booking_core.repositories.appointment_repo import AppointmentRepository
from booking_core.repositories.schedule_repo import ScheduleRepository
from booking_core.repositories.service_repo import ServiceRepository
from booking_core.repositories.settings_repo import SettingsRepository
from booking_core.services.appointment_service import AppointmentService
from booking_core.services.availability_service import AvailabilityService, Clock
from booking_core.services.schedule_calendar import ScheduleCalendar


def policy_from_config() -> BookingPolicy:
    return BookingPolicy(
        slot_step_minutes=config.SLOT_STEP_MINUTES,
        require_confirmation=config.BOOKING_REQUIRE_CONFIRMATION,
        max_range_days=config.MAX_AVAILABILITY_RANGE_DAYS,
    )


@dataclass
class BookingServices:
    calendar: ScheduleCalendar
    availability: AvailabilityService
    appointments: AppointmentService


def build_services(
    db_session,
    policy: Optional[BookingPolicy] = None,
    clock: Optional[Clock] = None,
) -> BookingServices:
    """Build the service graph for one unit of work."""
    policy = policy or policy_from_config()
    appointment_repo = AppointmentRepository(db_session)
    calendar = ScheduleCalendar(ScheduleRepository(db_session))
    availability = AvailabilityService(
        calendar,
        appointment_repo,
        ServiceRepository(db_session),
        policy=policy,
        clock=clock,
    )
    appointments = AppointmentService(
        appointment_repo,
        availability,
        settings_repo=SettingsRepository(db_session),
        policy=policy,
    )
    return BookingServices(
        calendar=calendar, availability=availability, appointments=appointments
    )
