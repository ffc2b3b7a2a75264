from __future__ import annotations

import datetime as dt
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .session import Base


class Specialist(Base):
    """Specialist owned by the admin catalogue; read-only for booking."""

    __tablename__ = "specialists"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    created_at: Mapped[Optional[dt.datetime]] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    work_schedule: Mapped[Optional["WorkSchedule"]] = relationship(
        back_populates="specialist", uselist=False, cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Specialist(id={self.id}, name='{self.name}')>"


class WorkSchedule(Base):
    """Per-specialist schedule switch; the week lives in ``work_days``."""

    __tablename__ = "work_schedules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    specialist_id: Mapped[int] = mapped_column(
        ForeignKey("specialists.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    specialist: Mapped[Specialist] = relationship(back_populates="work_schedule")
    work_days: Mapped[List["WorkDay"]] = relationship(
        back_populates="schedule",
        cascade="all, delete-orphan",
        order_by="WorkDay.day_of_week, WorkDay.start_time",
    )
    vacations: Mapped[List["VacationPeriod"]] = relationship(
        back_populates="schedule",
        cascade="all, delete-orphan",
        order_by="VacationPeriod.start_date",
    )


class WorkDay(Base):
    __tablename__ = "work_days"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    schedule_id: Mapped[int] = mapped_column(
        ForeignKey("work_schedules.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # ISO weekday: 1 = Monday ... 7 = Sunday
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    start_time: Mapped[dt.time] = mapped_column(Time, nullable=False)
    end_time: Mapped[dt.time] = mapped_column(Time, nullable=False)

    schedule: Mapped[WorkSchedule] = relationship(back_populates="work_days")
    lunch_breaks: Mapped[List["LunchBreak"]] = relationship(
        back_populates="work_day",
        cascade="all, delete-orphan",
        order_by="LunchBreak.start_time",
    )


class LunchBreak(Base):
    __tablename__ = "lunch_breaks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    work_day_id: Mapped[int] = mapped_column(
        ForeignKey("work_days.id", ondelete="CASCADE"), nullable=False, index=True
    )
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    start_time: Mapped[dt.time] = mapped_column(Time, nullable=False)
    end_time: Mapped[dt.time] = mapped_column(Time, nullable=False)

    work_day: Mapped[WorkDay] = relationship(back_populates="lunch_breaks")


class VacationPeriod(Base):
    __tablename__ = "vacations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    schedule_id: Mapped[int] = mapped_column(
        ForeignKey("work_schedules.id", ondelete="CASCADE"), nullable=False, index=True
    )
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    start_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    end_date: Mapped[dt.date] = mapped_column(Date, nullable=False)

    schedule: Mapped[WorkSchedule] = relationship(back_populates="vacations")


class Service(Base):
    """Bookable service from the catalogue."""

    __tablename__ = "services"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=60)
    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[Optional[dt.datetime]] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[Optional[dt.datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=func.now()
    )

    def __repr__(self):
        return f"<Service(id={self.id}, name='{self.name}')>"


class Appointment(Base):
    __tablename__ = "appointments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    specialist_id: Mapped[int] = mapped_column(
        ForeignKey("specialists.id", ondelete="CASCADE"), nullable=False
    )
    service_id: Mapped[int] = mapped_column(
        ForeignKey("services.id", ondelete="CASCADE"), nullable=False
    )
    # Users live in the external auth system; no foreign key
    client_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    start_time: Mapped[dt.time] = mapped_column(Time, nullable=False)
    end_time: Mapped[dt.time] = mapped_column(Time, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[Optional[dt.datetime]] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[Optional[dt.datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=func.now()
    )

    __table_args__ = (
        Index("ix_appointments_specialist_date", "specialist_id", "date"),
        Index("ix_appointments_status_date", "status", "date"),
    )

    def __repr__(self):
        return (
            f"<Appointment(id={self.id}, specialist_id={self.specialist_id}, "
            f"date={self.date}, start_time={self.start_time}, status='{self.status}')>"
        )


class SlotLock(Base):
    """One row per (specialist, date) touched by booking writes.

    Writers upsert and update this row before checking for overlaps, which
    serializes them on the row (PostgreSQL) or the database (SQLite).
    """

    __tablename__ = "slot_locks"

    specialist_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    date: Mapped[dt.date] = mapped_column(Date, primary_key=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class AppSetting(Base):
    __tablename__ = "app_settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    updated_at: Mapped[Optional[dt.datetime]] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
