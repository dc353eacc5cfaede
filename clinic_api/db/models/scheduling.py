"""SQLAlchemy ORM models for availability, appointments and recurring series."""

from __future__ import annotations

from typing import TYPE_CHECKING

import uuid
from datetime import date, datetime, time
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Time,
    UniqueConstraint,
    Uuid,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinic_api.db.base import Base
from clinic_api.db.enums import (
    AppointmentStatus,
    DEFAULT_APPOINTMENT_STATUS,
)

if TYPE_CHECKING:
    from clinic_api.db.models.patients import Patient
    from clinic_api.db.models.payments import Payment


class AvailabilityWindow(Base):
    """
    Weekly open-hours window (e.g., "Monday 08:00-12:00").

    Multiple windows per day are allowed; they may overlap.
    """

    __tablename__ = "availability_windows"
    __table_args__ = (
        Index("idx_availability_windows_day", "day_of_week", "is_active"),
        CheckConstraint("start_time < end_time", name="ck_availability_window_range"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    day_of_week: Mapped[str] = mapped_column(String(10), nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, server_default=text("true"), default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )


class Block(Base):
    """
    Absolute time range that is never bookable (vacation, holiday, break).

    Applies regardless of the weekly availability windows.
    """

    __tablename__ = "blocks"
    __table_args__ = (
        Index("idx_blocks_range", "start_datetime", "end_datetime"),
        CheckConstraint("start_datetime < end_datetime", name="ck_block_range"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    start_datetime: Mapped[datetime] = mapped_column(nullable=False)
    end_datetime: Mapped[datetime] = mapped_column(nullable=False)
    block_type: Mapped[str] = mapped_column(String(20), nullable=False)
    reason: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )


class SessionType(Base):
    """
    Bookable session template (e.g., "Individual therapy - 50 min").

    Duration drives slot granularity. Inactive types are hidden from
    public booking; deleting a type only deactivates it.
    """

    __tablename__ = "session_types"
    __table_args__ = (
        Index("idx_session_types_active", "is_active", "display_order"),
        CheckConstraint("duration_minutes > 0", name="ck_session_type_duration"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    duration_minutes: Mapped[int] = mapped_column(Integer, default=50, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    display_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, server_default=text("true"), default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )


class RecurringSeries(Base):
    """
    Weekly or biweekly repeating booking rule for one patient.

    Owns the generation rule only; generated appointments live their own
    lifecycle once created.
    """

    __tablename__ = "recurring_series"
    __table_args__ = (
        Index("idx_recurring_series_patient", "patient_id"),
        Index("idx_recurring_series_active", "is_active"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    patient_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("patients.id", ondelete="CASCADE"), nullable=False
    )
    session_type_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("session_types.id", ondelete="RESTRICT"), nullable=False
    )

    day_of_week: Mapped[str] = mapped_column(String(10), nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    frequency: Mapped[str] = mapped_column(String(10), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, server_default=text("true"), default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # Relationships
    patient: Mapped["Patient"] = relationship()
    session_type: Mapped["SessionType"] = relationship()
    appointments: Mapped[list["Appointment"]] = relationship(
        back_populates="recurring_series",
        order_by="Appointment.start_datetime",
    )


class Appointment(Base):
    """
    Booked session.

    Lifecycle: scheduled/confirmed → attended / no_show / cancelled / cancelled_late.
    Duration is copied from the session type at booking and on reschedule.
    The cancellation token lets the patient cancel or reschedule without login.
    """

    __tablename__ = "appointments"
    __table_args__ = (
        Index("idx_appointments_start", "start_datetime"),
        Index("idx_appointments_range_status", "start_datetime", "end_datetime", "status"),
        Index("idx_appointments_patient", "patient_id"),
        Index("idx_appointments_series", "recurring_series_id"),
        UniqueConstraint("cancellation_token", name="uq_appointment_cancellation_token"),
        CheckConstraint("start_datetime < end_datetime", name="ck_appointment_range"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    patient_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("patients.id", ondelete="CASCADE"), nullable=False
    )
    session_type_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("session_types.id", ondelete="RESTRICT"), nullable=False
    )
    recurring_series_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("recurring_series.id", ondelete="SET NULL"), nullable=True
    )

    # Scheduling (clinic-local wall clock)
    start_datetime: Mapped[datetime] = mapped_column(nullable=False)
    end_datetime: Mapped[datetime] = mapped_column(nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        default=DEFAULT_APPOINTMENT_STATUS.value,
        nullable=False,
    )

    session_link: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Self-service token (cancel / reschedule)
    cancellation_token: Mapped[str] = mapped_column(String(64), nullable=False)

    # Cancellation tracking
    cancelled_at: Mapped[datetime | None] = mapped_column(nullable=True)
    cancelled_by: Mapped[str | None] = mapped_column(String(20), nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # Relationships
    patient: Mapped["Patient"] = relationship()
    session_type: Mapped["SessionType"] = relationship()
    recurring_series: Mapped["RecurringSeries | None"] = relationship(back_populates="appointments")
    payment: Mapped["Payment | None"] = relationship(
        back_populates="appointment", cascade="all, delete-orphan", uselist=False
    )

    @property
    def is_occupying(self) -> bool:
        return AppointmentStatus(self.status).is_occupying


class ScheduleDayLock(Base):
    """
    One row per calendar day, bumped by every booking write for that day.

    Writers upsert the row before re-validating availability, which serialises
    concurrent bookings touching the same day.
    """

    __tablename__ = "schedule_day_locks"

    day: Mapped[date] = mapped_column(Date, primary_key=True)
    version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
