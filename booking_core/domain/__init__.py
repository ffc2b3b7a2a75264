"""
Domain package - Pure business logic layer.

This package contains:
- entities.py: Domain entities and the appointment status machine
- intervals.py: Interval arithmetic on minutes since midnight
- interfaces.py: Repository and provider contracts
"""

from .entities import (
    Appointment,
    AppointmentStatus,
    AutoCompleteResult,
    BookingPolicy,
    LunchBreak,
    ScheduleEntry,
    Service,
    Specialist,
    TimeSlot,
    Vacation,
)
from .interfaces import (
    IAppointmentReader,
    IAppointmentRepository,
    IAppointmentWriter,
    IServiceCatalog,
    ISettingsRepository,
    ISpecialistScheduleProvider,
)

__all__ = [
    # Domain entities
    "Appointment",
    "AppointmentStatus",
    "AutoCompleteResult",
    "BookingPolicy",
    "LunchBreak",
    "ScheduleEntry",
    "Service",
    "Specialist",
    "TimeSlot",
    "Vacation",
    # Interfaces
    "IAppointmentReader",
    "IAppointmentRepository",
    "IAppointmentWriter",
    "IServiceCatalog",
    "ISettingsRepository",
    "ISpecialistScheduleProvider",
]
