"""
Domain entities - Pure business logic, no framework dependencies.

Times of day are ``datetime.time`` values in the business timezone and
calendar days are ``datetime.date`` values; nothing here knows about
SQLAlchemy or Flask.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from typing import FrozenSet, List, Optional


class AppointmentStatus(str, Enum):
    """Closed set of appointment states.

    Transition table::

        pending    -> confirmed | cancelled
        confirmed  -> completed | cancelled
        completed  -> (terminal)
        cancelled  -> (terminal)
    """

    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def active(cls) -> FrozenSet["AppointmentStatus"]:
        """Statuses that occupy the specialist's time."""
        return frozenset({cls.PENDING, cls.CONFIRMED})

    @property
    def is_active(self) -> bool:
        return self in AppointmentStatus.active()

    @property
    def is_terminal(self) -> bool:
        return not _TRANSITIONS[self]

    def can_transition_to(self, new_status: "AppointmentStatus") -> bool:
        return AppointmentStatus(new_status) in _TRANSITIONS[self]


_TRANSITIONS = {
    AppointmentStatus.PENDING: frozenset(
        {AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED}
    ),
    AppointmentStatus.CONFIRMED: frozenset(
        {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED}
    ),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
}


@dataclass(frozen=True)
class TimeSlot:
    """Half-open interval ``[start, end)`` within one day. Never persisted."""

    start: time
    end: time

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError("Slot start must be before its end")


@dataclass
class LunchBreak:
    start: time
    end: time

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError("Lunch break start must be before its end")


@dataclass
class ScheduleEntry:
    """Weekly working hours of a specialist for one ISO weekday (1 = Monday)."""

    day_of_week: int
    start: time
    end: time
    active: bool = True
    lunch_breaks: List[LunchBreak] = field(default_factory=list)
    specialist_id: Optional[int] = None
    id: Optional[int] = None

    def __post_init__(self):
        """Validate domain rules."""
        if not 1 <= self.day_of_week <= 7:
            raise ValueError("day_of_week must be between 1 (Monday) and 7 (Sunday)")
        if self.start >= self.end:
            raise ValueError("Working hours must start before they end")


@dataclass
class Vacation:
    """Inclusive range of days during which the specialist does not work."""

    start_date: date
    end_date: date
    specialist_id: Optional[int] = None
    id: Optional[int] = None

    def __post_init__(self):
        if self.end_date < self.start_date:
            raise ValueError("Vacation end_date cannot be before start_date")

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


@dataclass
class Specialist:
    id: Optional[int] = None
    name: str = ""
    schedule_enabled: bool = True
    schedule: List[ScheduleEntry] = field(default_factory=list)

    def __post_init__(self):
        if not self.name:
            raise ValueError("Name is required")


@dataclass
class Service:
    """Bookable service from the catalogue."""

    id: Optional[int] = None
    name: str = ""
    duration_minutes: int = 0
    is_archived: bool = False

    def __post_init__(self):
        """Validate business rules."""
        if self.duration_minutes <= 0:
            raise ValueError("Duration must be positive")


@dataclass
class Appointment:
    """Domain entity for a booked visit of a client to a specialist."""

    specialist_id: int
    service_id: int
    client_id: int
    date: date
    start_time: time
    end_time: time
    status: AppointmentStatus = AppointmentStatus.PENDING
    comment: Optional[str] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        """Validate business rules."""
        for name in ("specialist_id", "service_id", "client_id"):
            if getattr(self, name) <= 0:
                raise ValueError(f"Valid {name} is required")
        if self.start_time >= self.end_time:
            raise ValueError("Appointment must start before it ends")
        self.status = AppointmentStatus(self.status)

    @property
    def is_active(self) -> bool:
        return self.status.is_active

    def belongs_to(self, user_id: int) -> bool:
        return self.client_id == user_id

    def overlaps(self, start: time, end: time) -> bool:
        return self.start_time < end and start < self.end_time


@dataclass
class AutoCompleteResult:
    """Outcome of one auto-complete batch."""

    updated_ids: List[int] = field(default_factory=list)
    failed_ids: List[int] = field(default_factory=list)

    @property
    def updated_count(self) -> int:
        return len(self.updated_ids)


@dataclass(frozen=True)
class BookingPolicy:
    """Knobs the availability engine and lifecycle manager are built with.

    ``require_confirmation`` is the fallback when no stored setting exists.
    """

    slot_step_minutes: int = 30
    require_confirmation: bool = True
    max_range_days: int = 92

    def __post_init__(self):
        if self.slot_step_minutes <= 0:
            raise ValueError("slot_step_minutes must be positive")
        if self.max_range_days <= 0:
            raise ValueError("max_range_days must be positive")

    def initial_status(
        self, require_confirmation: Optional[bool] = None
    ) -> AppointmentStatus:
        required = (
            self.require_confirmation
            if require_confirmation is None
            else require_confirmation
        )
        return AppointmentStatus.PENDING if required else AppointmentStatus.CONFIRMED
