"""
Repository contracts used by the booking services.

Services depend on these ABCs only; the SQLAlchemy repositories and the
in-memory fakes in the tests both implement them.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, time
from typing import List, Optional

from .entities import (
    Appointment,
    AppointmentStatus,
    ScheduleEntry,
    Service,
    Specialist,
    Vacation,
)


class ISpecialistScheduleProvider(ABC):
    """Read-only access to specialists' weekly schedules and vacations."""

    @abstractmethod
    def get_specialist(self, specialist_id: int) -> Optional[Specialist]:
        """Get a specialist with its schedule, or None."""
        pass

    @abstractmethod
    def get_specialist_schedule(self, specialist_id: int) -> List[ScheduleEntry]:
        """Get the weekly schedule entries.

        Empty when the specialist's schedule is disabled. Raises
        SpecialistNotFoundError for an unknown specialist.
        """
        pass

    @abstractmethod
    def get_vacations(self, specialist_id: int) -> List[Vacation]:
        """Get all vacation ranges of a specialist."""
        pass


class IServiceCatalog(ABC):
    """Read-only access to the bookable services."""

    @abstractmethod
    def get_service(self, service_id: int) -> Optional[Service]:
        """Get service by ID, archived ones included."""
        pass


class IAppointmentReader(ABC):
    """Interface for appointment read operations."""

    @abstractmethod
    def get_by_id(self, appointment_id: int) -> Optional[Appointment]:
        """Get appointment by ID."""
        pass

    @abstractmethod
    def list_active_by_date(self, specialist_id: int, day: date) -> List[Appointment]:
        """Pending and confirmed appointments of a specialist on a day, by start."""
        pass

    @abstractmethod
    def list_by_client(self, client_id: int) -> List[Appointment]:
        """All appointments of a client, newest date first."""
        pass

    @abstractmethod
    def list_confirmed_ended_before(self, moment: datetime) -> List[Appointment]:
        """Confirmed appointments whose date + end_time is strictly before moment."""
        pass


class IAppointmentWriter(ABC):
    """Interface for appointment write operations."""

    @abstractmethod
    def create(self, appointment: Appointment) -> Appointment:
        """Insert unless an active appointment overlaps (ConflictError)."""
        pass

    @abstractmethod
    def update_status(
        self, appointment_id: int, new_status: AppointmentStatus
    ) -> Appointment:
        """Apply a status transition allowed by the transition table."""
        pass

    @abstractmethod
    def reschedule(
        self, appointment_id: int, day: date, start_time: time, end_time: time
    ) -> Appointment:
        """Move an active appointment to a free interval."""
        pass

    @abstractmethod
    def delete(self, appointment_id: int) -> bool:
        """Administrative hard delete."""
        pass


class IAppointmentRepository(IAppointmentReader, IAppointmentWriter):
    """Complete appointment repository interface combining read/write operations."""

    pass


class ISettingsRepository(ABC):
    """Key/value application settings."""

    @abstractmethod
    def get_value(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set_value(self, key: str, value: str) -> None:
        pass
