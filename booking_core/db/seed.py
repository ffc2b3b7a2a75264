"""
Demo data for local development: two specialists with weekly schedules,
a lunch break, a vacation and a few services.

Usage:
    flask --app booking_core.main:create_app init-db
"""

import logging
from datetime import date, time, timedelta

from sqlalchemy.orm import Session

from booking_core.db.base import (
    LunchBreak,
    Service,
    Specialist,
    VacationPeriod,
    WorkDay,
    WorkSchedule,
)

logger = logging.getLogger(__name__)

DEMO_SERVICES = [
    ("Consultation", 30),
    ("Massage", 60),
    ("Full treatment", 90),
]


def _week(start: time, end: time, days=range(1, 6), lunch=None):
    work_days = []
    for day in days:
        work_day = WorkDay(day_of_week=day, active=True, start_time=start, end_time=end)
        if lunch:
            work_day.lunch_breaks.append(
                LunchBreak(enabled=True, start_time=lunch[0], end_time=lunch[1])
            )
        work_days.append(work_day)
    return work_days


def seed_demo_data(db: Session) -> None:
    """Insert demo rows unless specialists already exist."""
    if db.query(Specialist).first() is not None:
        logger.info("Seed skipped: specialists already present")
        return

    for name, duration in DEMO_SERVICES:
        db.add(Service(name=name, duration_minutes=duration, is_archived=False))

    anna = Specialist(name="Anna Petrova")
    anna.work_schedule = WorkSchedule(
        enabled=True,
        work_days=_week(time(9, 0), time(18, 0), lunch=(time(13, 0), time(14, 0))),
    )

    next_month = date.today() + timedelta(days=30)
    ivan = Specialist(name="Ivan Sokolov")
    ivan.work_schedule = WorkSchedule(
        enabled=True,
        work_days=_week(time(12, 0), time(20, 0), days=(2, 4, 6)),
        vacations=[
            VacationPeriod(
                enabled=True,
                start_date=next_month,
                end_date=next_month + timedelta(days=6),
            )
        ],
    )

    db.add_all([anna, ivan])
    db.commit()
    logger.info(
        "Demo data seeded",
        extra={"context": {"specialists": 2, "services": len(DEMO_SERVICES)}},
    )
