"""
Appointment repository: system of record for appointments.

Writes that can create an overlap (``create`` and ``reschedule``) run
under a two-level lock on (specialist_id, date):

1. ``KeyedLock`` serializes threads of this process;
2. inside the write transaction the ``slot_locks`` row for the key is
   upserted and updated before the overlap query, which holds a row lock
   on PostgreSQL and the database write lock on SQLite until commit.

The overlap check and the insert/update happen after both locks are taken
and commit together, so two overlapping bookings cannot both succeed.
"""

import logging
from datetime import date, datetime, time
from typing import List, Optional

from sqlalchemy import and_, or_, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError

from booking_core.core.exceptions import (
    AppointmentNotFoundError,
    ConflictError,
    InvalidTransitionError,
    StorageError,
)
from booking_core.core.locks import KeyedLock
from booking_core.db.base import Appointment as DbAppointment
from booking_core.db.base import SlotLock
from booking_core.domain.entities import Appointment, AppointmentStatus
from booking_core.domain.interfaces import IAppointmentRepository

logger = logging.getLogger(__name__)

# Shared by every repository instance of the process
booking_locks = KeyedLock()

_ACTIVE_VALUES = tuple(s.value for s in AppointmentStatus.active())


class AppointmentRepository(IAppointmentRepository):
    """Repository for Appointment persistence operations."""

    def __init__(self, db_session, locks: Optional[KeyedLock] = None) -> None:
        self.db = db_session
        self.locks = locks or booking_locks

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_by_id(self, appointment_id: int) -> Optional[Appointment]:
        """Get appointment by ID."""
        try:
            db_appointment = self.db.get(DbAppointment, appointment_id)
        except SQLAlchemyError as e:
            raise StorageError("Failed to load appointment") from e
        return self._to_domain(db_appointment) if db_appointment else None

    def list_active_by_date(self, specialist_id: int, day: date) -> List[Appointment]:
        try:
            rows = (
                self.db.query(DbAppointment)
                .filter(
                    DbAppointment.specialist_id == specialist_id,
                    DbAppointment.date == day,
                    DbAppointment.status.in_(_ACTIVE_VALUES),
                )
                .order_by(DbAppointment.start_time.asc())
                .all()
            )
        except SQLAlchemyError as e:
            raise StorageError("Failed to list appointments") from e
        return [self._to_domain(row) for row in rows]

    def list_by_client(self, client_id: int) -> List[Appointment]:
        try:
            rows = (
                self.db.query(DbAppointment)
                .filter(DbAppointment.client_id == client_id)
                .order_by(DbAppointment.date.desc(), DbAppointment.start_time.desc())
                .all()
            )
        except SQLAlchemyError as e:
            raise StorageError("Failed to list client appointments") from e
        return [self._to_domain(row) for row in rows]

    def list_confirmed_ended_before(self, moment: datetime) -> List[Appointment]:
        """Confirmed appointments whose ``date + end_time`` is before ``moment``.

        ``moment`` is a naive datetime in the business timezone.
        """
        day, clock = moment.date(), moment.time()
        try:
            rows = (
                self.db.query(DbAppointment)
                .filter(
                    DbAppointment.status == AppointmentStatus.CONFIRMED.value,
                    or_(
                        DbAppointment.date < day,
                        and_(DbAppointment.date == day, DbAppointment.end_time < clock),
                    ),
                )
                .order_by(DbAppointment.date.asc(), DbAppointment.end_time.asc())
                .all()
            )
        except SQLAlchemyError as e:
            raise StorageError("Failed to list finished appointments") from e
        return [self._to_domain(row) for row in rows]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, appointment: Appointment) -> Appointment:
        """Insert ``appointment`` unless an active one overlaps it.

        Raises:
            ConflictError: an active appointment of the same specialist on
                the same date overlaps ``[start_time, end_time)``.
        """
        key = (appointment.specialist_id, appointment.date)
        with self.locks.hold(key):
            try:
                self._lock_slot(*key)
                clash = self._find_overlap(
                    appointment.specialist_id,
                    appointment.date,
                    appointment.start_time,
                    appointment.end_time,
                )
                if clash is not None:
                    self.db.rollback()
                    raise self._conflict(appointment.specialist_id, clash)

                db_appointment = DbAppointment(
                    specialist_id=appointment.specialist_id,
                    service_id=appointment.service_id,
                    client_id=appointment.client_id,
                    date=appointment.date,
                    start_time=appointment.start_time,
                    end_time=appointment.end_time,
                    status=AppointmentStatus(appointment.status).value,
                    comment=appointment.comment,
                )
                self.db.add(db_appointment)
                self.db.commit()
                self.db.refresh(db_appointment)
            except SQLAlchemyError as e:
                self.db.rollback()
                raise StorageError("Failed to create appointment") from e

        return self._to_domain(db_appointment)

    def update_status(
        self, appointment_id: int, new_status: AppointmentStatus
    ) -> Appointment:
        """Apply a status change allowed by the transition table.

        The UPDATE is conditional on the status read, so two concurrent
        callers cannot both apply a transition from the same state.
        """
        new_status = AppointmentStatus(new_status)
        try:
            db_appointment = self.db.get(DbAppointment, appointment_id)
            if db_appointment is None:
                raise AppointmentNotFoundError(appointment_id)

            current = AppointmentStatus(db_appointment.status)
            if not current.can_transition_to(new_status):
                raise InvalidTransitionError(current, new_status)

            result = self.db.execute(
                update(DbAppointment)
                .where(
                    DbAppointment.id == appointment_id,
                    DbAppointment.status == current.value,
                )
                .values(status=new_status.value)
            )
            if result.rowcount != 1:
                self.db.rollback()
                self.db.expire(db_appointment)
                raise InvalidTransitionError(db_appointment.status, new_status)

            self.db.commit()
            self.db.refresh(db_appointment)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError("Failed to update appointment status") from e

        return self._to_domain(db_appointment)

    def reschedule(
        self, appointment_id: int, day: date, start_time: time, end_time: time
    ) -> Appointment:
        """Move an active appointment; its own interval does not conflict."""
        try:
            db_appointment = self.db.get(DbAppointment, appointment_id)
        except SQLAlchemyError as e:
            raise StorageError("Failed to load appointment") from e
        if db_appointment is None:
            raise AppointmentNotFoundError(appointment_id)

        key = (db_appointment.specialist_id, day)
        with self.locks.hold(key):
            try:
                self._lock_slot(*key)
                self.db.refresh(db_appointment)
                status = AppointmentStatus(db_appointment.status)
                if not status.is_active:
                    self.db.rollback()
                    raise InvalidTransitionError(
                        status,
                        status,
                        message=f"Cannot reschedule a {status.value} appointment",
                    )

                clash = self._find_overlap(
                    db_appointment.specialist_id,
                    day,
                    start_time,
                    end_time,
                    exclude_id=appointment_id,
                )
                if clash is not None:
                    self.db.rollback()
                    raise self._conflict(db_appointment.specialist_id, clash)

                db_appointment.date = day
                db_appointment.start_time = start_time
                db_appointment.end_time = end_time
                self.db.commit()
                self.db.refresh(db_appointment)
            except SQLAlchemyError as e:
                self.db.rollback()
                raise StorageError("Failed to reschedule appointment") from e

        return self._to_domain(db_appointment)

    def delete(self, appointment_id: int) -> bool:
        """Administrative hard delete; False when the row does not exist."""
        try:
            db_appointment = self.db.get(DbAppointment, appointment_id)
            if db_appointment is None:
                return False
            self.db.delete(db_appointment)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError("Failed to delete appointment") from e
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _lock_slot(self, specialist_id: int, day: date) -> None:
        """Take the database-level lock for (specialist_id, day)."""
        dialect = self.db.get_bind().dialect.name
        values = {"specialist_id": specialist_id, "date": day, "version": 0}
        if dialect == "postgresql":
            self.db.execute(
                postgresql.insert(SlotLock).values(**values).on_conflict_do_nothing()
            )
        elif dialect == "sqlite":
            self.db.execute(
                sqlite.insert(SlotLock).values(**values).on_conflict_do_nothing()
            )
        elif self.db.get(SlotLock, (specialist_id, day)) is None:
            self.db.add(SlotLock(**values))
            self.db.flush()

        self.db.execute(
            update(SlotLock)
            .where(SlotLock.specialist_id == specialist_id, SlotLock.date == day)
            .values(version=SlotLock.version + 1)
        )

    def _find_overlap(
        self,
        specialist_id: int,
        day: date,
        start_time: time,
        end_time: time,
        exclude_id: Optional[int] = None,
    ) -> Optional[DbAppointment]:
        query = self.db.query(DbAppointment).filter(
            DbAppointment.specialist_id == specialist_id,
            DbAppointment.date == day,
            DbAppointment.status.in_(_ACTIVE_VALUES),
            DbAppointment.start_time < end_time,
            DbAppointment.end_time > start_time,
        )
        if exclude_id is not None:
            query = query.filter(DbAppointment.id != exclude_id)
        return query.first()

    def _conflict(self, specialist_id: int, clash: DbAppointment) -> ConflictError:
        logger.info(
            "Booking conflict",
            extra={
                "context": {
                    "specialist_id": specialist_id,
                    "date": clash.date.isoformat(),
                    "existing_appointment_id": clash.id,
                }
            },
        )
        return ConflictError(
            "Time slot overlaps an existing appointment",
            specialist_id=specialist_id,
            date=clash.date.isoformat(),
            start_time=clash.start_time.strftime("%H:%M"),
            end_time=clash.end_time.strftime("%H:%M"),
        )

    def _to_domain(self, db_appointment: DbAppointment) -> Appointment:
        """Convert database model to domain entity."""
        return Appointment(
            id=db_appointment.id,
            specialist_id=db_appointment.specialist_id,
            service_id=db_appointment.service_id,
            client_id=db_appointment.client_id,
            date=db_appointment.date,
            start_time=db_appointment.start_time,
            end_time=db_appointment.end_time,
            status=AppointmentStatus(db_appointment.status),
            comment=db_appointment.comment,
            created_at=db_appointment.created_at,
            updated_at=db_appointment.updated_at,
        )
