"""
SQLAlchemy implementation of the specialist schedule provider.

Reads the ``specialists``, ``work_schedules``, ``work_days``,
``lunch_breaks`` and ``vacations`` tables owned by the admin catalogue.
"""

from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload

from booking_core.core.exceptions import SpecialistNotFoundError, StorageError
from booking_core.db.base import Specialist as DbSpecialist
from booking_core.db.base import WorkDay, WorkSchedule
from booking_core.domain.entities import LunchBreak, ScheduleEntry, Specialist, Vacation
from booking_core.domain.interfaces import ISpecialistScheduleProvider


class ScheduleRepository(ISpecialistScheduleProvider):
    def __init__(self, db_session) -> None:
        self.db = db_session

    def get_specialist(self, specialist_id: int) -> Optional[Specialist]:
        """Get specialist with its full weekly schedule, or None."""
        try:
            db_specialist = (
                self.db.query(DbSpecialist)
                .options(
                    selectinload(DbSpecialist.work_schedule)
                    .selectinload(WorkSchedule.work_days)
                    .selectinload(WorkDay.lunch_breaks)
                )
                .filter_by(id=specialist_id)
                .first()
            )
        except SQLAlchemyError as e:
            raise StorageError("Failed to load specialist schedule") from e
        return self._to_domain(db_specialist) if db_specialist else None

    def get_specialist_schedule(self, specialist_id: int) -> List[ScheduleEntry]:
        specialist = self.get_specialist(specialist_id)
        if specialist is None:
            raise SpecialistNotFoundError(specialist_id)
        if not specialist.schedule_enabled:
            return []
        return specialist.schedule

    def get_vacations(self, specialist_id: int) -> List[Vacation]:
        try:
            schedule = (
                self.db.query(WorkSchedule)
                .options(selectinload(WorkSchedule.vacations))
                .filter_by(specialist_id=specialist_id)
                .first()
            )
        except SQLAlchemyError as e:
            raise StorageError("Failed to load vacations") from e
        if schedule is None:
            return []
        return [
            Vacation(
                id=v.id,
                specialist_id=specialist_id,
                start_date=v.start_date,
                end_date=v.end_date,
            )
            for v in schedule.vacations
            if v.enabled
        ]

    def _to_domain(self, db_specialist: DbSpecialist) -> Specialist:
        schedule = db_specialist.work_schedule
        entries = []
        if schedule is not None:
            for day in schedule.work_days:
                entries.append(
                    ScheduleEntry(
                        id=day.id,
                        specialist_id=db_specialist.id,
                        day_of_week=day.day_of_week,
                        start=day.start_time,
                        end=day.end_time,
                        active=day.active,
                        lunch_breaks=[
                            LunchBreak(start=b.start_time, end=b.end_time)
                            for b in day.lunch_breaks
                            if b.enabled
                        ],
                    )
                )
        return Specialist(
            id=db_specialist.id,
            name=db_specialist.name,
            # No schedule row means nothing to book, same as a disabled one
            schedule_enabled=schedule is not None and schedule.enabled,
            schedule=entries,
        )
