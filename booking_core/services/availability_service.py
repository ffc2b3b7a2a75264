"""
Availability engine: free dates and slots for a specialist and service.

Reads run outside any lock and may be slightly stale; booking re-checks
against the store, which is authoritative.
"""

import logging
import time as timer
from datetime import date, datetime
from typing import Callable, List, Optional, Sequence

from booking_core.core.config import APP_TZ
from booking_core.core.exceptions import (
    ServiceArchivedError,
    ServiceNotFoundError,
    ValidationError,
)
from booking_core.core.logging_config import log_performance
from booking_core.domain.entities import Appointment, BookingPolicy, Service, TimeSlot
from booking_core.domain.interfaces import IAppointmentReader, IServiceCatalog
from booking_core.domain.intervals import (
    from_minutes,
    step_starts,
    subtract_intervals,
    to_minutes,
)
from booking_core.services.schedule_calendar import ScheduleCalendar

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def system_clock() -> datetime:
    return datetime.now(APP_TZ)


def local_now(clock: Clock) -> datetime:
    """Current moment as a naive datetime in the business timezone.

    Naive values returned by a clock are taken as already local.
    """
    now = clock()
    if now.tzinfo is not None:
        now = now.astimezone(APP_TZ).replace(tzinfo=None)
    return now


def compute_free_slots(
    windows: Sequence[TimeSlot],
    appointments: Sequence[Appointment],
    duration_minutes: int,
    step_minutes: int,
    not_before: Optional[datetime] = None,
    day: Optional[date] = None,
) -> List[TimeSlot]:
    """Slots of ``duration_minutes`` inside ``windows`` minus ``appointments``.

    Candidates step every ``step_minutes`` from the start of each free
    sub-window. When ``not_before`` falls on ``day``, only slots starting
    strictly after it are kept.
    """
    free = subtract_intervals(
        [(to_minutes(w.start), to_minutes(w.end)) for w in windows],
        [(to_minutes(a.start_time), to_minutes(a.end_time)) for a in appointments],
    )

    cutoff_seconds = None
    if not_before is not None and day is not None and not_before.date() == day:
        moment = not_before.time()
        cutoff_seconds = moment.hour * 3600 + moment.minute * 60 + moment.second
        if moment.microsecond:
            cutoff_seconds += 1

    slots = []
    for window in free:
        for start in step_starts(window, duration_minutes, step_minutes):
            if cutoff_seconds is not None and start * 60 <= cutoff_seconds:
                continue
            slots.append(
                TimeSlot(from_minutes(start), from_minutes(start + duration_minutes))
            )
    return slots


class AvailabilityService:
    """Computes open dates and time slots.

    This service demonstrates:
    - Dependency Inversion: reads schedules, services and appointments
      through interfaces
    - Single Responsibility: never writes
    """

    def __init__(
        self,
        calendar: ScheduleCalendar,
        appointment_repo: IAppointmentReader,
        service_catalog: IServiceCatalog,
        policy: Optional[BookingPolicy] = None,
        clock: Optional[Clock] = None,
    ):
        self.calendar = calendar
        self.appointment_repo = appointment_repo
        self.service_catalog = service_catalog
        self.policy = policy or BookingPolicy()
        self.clock = clock or system_clock

    def now(self) -> datetime:
        return local_now(self.clock)

    def get_service(self, service_id: int) -> Service:
        service = self.service_catalog.get_service(service_id)
        if service is None:
            raise ServiceNotFoundError(service_id)
        return service

    def get_bookable_service(self, service_id: int) -> Service:
        """Service lookup that also rejects archived services."""
        service = self.get_service(service_id)
        if service.is_archived:
            raise ServiceArchivedError(service_id)
        return service

    def get_available_slots(
        self, specialist_id: int, service_id: int, day: date
    ) -> List[TimeSlot]:
        """Free slots for a service on ``day``, ordered by start ascending."""
        service = self.get_bookable_service(service_id)
        return self.slots_for_service(specialist_id, service, day)

    def slots_for_service(
        self,
        specialist_id: int,
        service: Service,
        day: date,
        exclude_appointment_id: Optional[int] = None,
    ) -> List[TimeSlot]:
        """Free slots for an already loaded service.

        ``exclude_appointment_id`` drops one appointment from the occupied
        intervals, so an appointment can be moved within its own time.
        """
        windows = self.calendar.get_working_windows(specialist_id, day)
        now = self.now()
        if not windows or day < now.date():
            return []

        occupied = [
            a
            for a in self.appointment_repo.list_active_by_date(specialist_id, day)
            if a.id != exclude_appointment_id
        ]
        slots = compute_free_slots(
            windows,
            occupied,
            service.duration_minutes,
            self.policy.slot_step_minutes,
            not_before=now,
            day=day,
        )
        logger.debug(
            "Computed available slots",
            extra={
                "context": {
                    "specialist_id": specialist_id,
                    "service_id": service.id,
                    "date": day.isoformat(),
                    "windows": len(windows),
                    "occupied": len(occupied),
                    "slots": len(slots),
                }
            },
        )
        return slots

    def get_available_dates(
        self, specialist_id: int, service_id: int, range_start: date, range_end: date
    ) -> List[date]:
        """Dates of the inclusive range with at least one free slot, sorted.

        Raises:
            ValidationError: reversed range or longer than the policy allows
        """
        if range_end < range_start:
            raise ValidationError("end must not be before start", "end")
        span = (range_end - range_start).days + 1
        if span > self.policy.max_range_days:
            raise ValidationError(
                f"Date range cannot exceed {self.policy.max_range_days} days", "end"
            )

        service = self.get_bookable_service(service_id)
        started = timer.perf_counter()

        now = self.now()
        first_day = max(range_start, now.date())
        # Empty for an all-past range, but an unknown specialist still raises
        windows_by_day = self.calendar.get_working_windows_between(
            specialist_id, first_day, range_end
        )

        available = []
        for day in sorted(windows_by_day):
            windows = windows_by_day[day]
            if not windows:
                continue
            occupied = self.appointment_repo.list_active_by_date(specialist_id, day)
            slots = compute_free_slots(
                windows,
                occupied,
                service.duration_minutes,
                self.policy.slot_step_minutes,
                not_before=now,
                day=day,
            )
            if slots:
                available.append(day)

        log_performance(
            "get_available_dates",
            (timer.perf_counter() - started) * 1000,
            specialist_id=specialist_id,
            service_id=service_id,
            days_checked=len(windows_by_day),
            days_available=len(available),
        )
        return available
