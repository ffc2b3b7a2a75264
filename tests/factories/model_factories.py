"""
Helpers that insert catalogue rows (specialists, schedules, services) for
integration tests. Appointments are always created through the
repository or services under test.
"""

from datetime import time

from booking_core.db.base import (
    LunchBreak,
    Service,
    Specialist,
    VacationPeriod,
    WorkDay,
    WorkSchedule,
)


def _t(value: str) -> time:
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def create_specialist(
    db,
    name="Test Specialist",
    hours=None,
    lunch=None,
    vacations=(),
    enabled=True,
):
    """Insert a specialist with a weekly schedule.

    Args:
        hours: ``{iso_weekday: ("HH:MM", "HH:MM")}``; Monday 09:00-12:00
            when omitted
        lunch: optional ``("HH:MM", "HH:MM")`` break added to every day
        vacations: iterable of ``(start_date, end_date)``
        enabled: value of the schedule's enabled flag
    """
    hours = hours if hours is not None else {1: ("09:00", "12:00")}
    work_days = []
    for day_of_week, (start, end) in hours.items():
        work_day = WorkDay(
            day_of_week=day_of_week, active=True, start_time=_t(start), end_time=_t(end)
        )
        if lunch:
            work_day.lunch_breaks.append(
                LunchBreak(enabled=True, start_time=_t(lunch[0]), end_time=_t(lunch[1]))
            )
        work_days.append(work_day)

    specialist = Specialist(name=name)
    specialist.work_schedule = WorkSchedule(
        enabled=enabled,
        work_days=work_days,
        vacations=[
            VacationPeriod(enabled=True, start_date=start, end_date=end)
            for start, end in vacations
        ],
    )
    db.add(specialist)
    db.commit()
    return specialist


def create_service(db, name="Consultation", duration_minutes=60, is_archived=False):
    service = Service(
        name=name, duration_minutes=duration_minutes, is_archived=is_archived
    )
    db.add(service)
    db.commit()
    return service
