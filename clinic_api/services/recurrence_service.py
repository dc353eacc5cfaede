"""Recurring series - expansion, dry-run conflict check, all-or-nothing commit.

A series is created only if every occurrence inside the horizon is free.
The conflict check and the inserts run in one transaction under the day locks
of every occurrence, so either the series and all of its appointments are
committed or nothing is.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import NamedTuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clinic_api.core.clock import resolve_now
from clinic_api.core.config import settings
from clinic_api.core.exceptions import (
    AlreadyTerminal,
    NotFound,
    SeriesConflict,
    SlotUnavailable,
    ValidationError,
)
from clinic_api.core.structured_logging import build_log_context
from clinic_api.db.enums import (
    OCCUPYING_STATUSES,
    AppointmentStatus,
    CancelledBy,
    DayOfWeek,
    RecurrenceFrequency,
)
from clinic_api.db.models import Appointment, RecurringSeries, SessionType
from clinic_api.services import (
    appointment_service,
    availability_service,
    conflict_service,
    patient_service,
    schedule_lock,
    session_type_service,
)

logger = logging.getLogger(__name__)

SERIES_CANCELLED_REASON = "Series cancelled"


# =============================================================================
# Types
# =============================================================================

class SeriesRule(NamedTuple):
    """Generation rule of a series (also satisfied by a RecurringSeries row)."""
    day_of_week: DayOfWeek
    start_time: time
    frequency: RecurrenceFrequency
    start_date: date
    end_date: date | None = None


class SeriesConflictReport(NamedTuple):
    """Result of a series dry run."""
    occurrences: list[datetime]
    conflicts: list[conflict_service.RangeConflict]

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)

    @property
    def conflicting_dates(self) -> list[date]:
        return sorted({c.date for c in self.conflicts})


# =============================================================================
# Expansion
# =============================================================================

def first_occurrence_date(start_date: date, day_of_week: DayOfWeek) -> date:
    """First date on or after start_date falling on day_of_week."""
    offset = (DayOfWeek(day_of_week).weekday - start_date.weekday()) % 7
    return start_date + timedelta(days=offset)


def expand(rule: SeriesRule, horizon_end: datetime) -> list[datetime]:
    """
    Occurrence start datetimes of a rule, in order.

    Stops past the rule's end_date or past horizon_end, whichever comes first.
    """
    step = timedelta(days=RecurrenceFrequency(rule.frequency).interval_days)
    current = first_occurrence_date(rule.start_date, rule.day_of_week)
    occurrences: list[datetime] = []
    while True:
        if rule.end_date is not None and current > rule.end_date:
            break
        start = datetime.combine(current, rule.start_time)
        if start > horizon_end:
            break
        occurrences.append(start)
        current += step
    return occurrences


def series_horizon(now: datetime) -> datetime:
    return now + timedelta(days=settings.BOOKING_HORIZON_DAYS)


# =============================================================================
# Validation and dry run
# =============================================================================

def _validate_rule(
    db: Session,
    rule: SeriesRule,
    session_type: SessionType,
    now: datetime,
) -> list[datetime]:
    """Validate a rule and return its occurrences within the horizon."""
    if rule.start_date < now.date():
        raise ValidationError("Series start_date cannot be in the past")
    if rule.end_date is not None and rule.end_date < rule.start_date:
        raise ValidationError("Series end_date must not be before start_date")

    first_start = datetime.combine(
        first_occurrence_date(rule.start_date, rule.day_of_week), rule.start_time
    )
    first_end = first_start + timedelta(minutes=session_type.duration_minutes)
    if not availability_service.is_within_window(db, first_start, first_end):
        raise ValidationError("Series time is outside the availability windows for that day")

    occurrences = expand(rule, series_horizon(now))
    if not occurrences:
        raise ValidationError("Series has no occurrences within the booking horizon")
    return occurrences


def _ranges(occurrences: list[datetime], duration_minutes: int) -> list[tuple[datetime, datetime]]:
    duration = timedelta(minutes=duration_minutes)
    return [(start, start + duration) for start in occurrences]


def check_series_conflicts(
    db: Session,
    rule: SeriesRule,
    session_type_id: UUID,
    now: datetime | None = None,
) -> SeriesConflictReport:
    """Dry run: expand the rule and check every occurrence. Never writes."""
    now = resolve_now(now)
    session_type = session_type_service.get_session_type(db, session_type_id)
    occurrences = _validate_rule(db, rule, session_type, now)
    conflicts = conflict_service.check_many(
        db, _ranges(occurrences, session_type.duration_minutes)
    )
    return SeriesConflictReport(occurrences=occurrences, conflicts=conflicts)


# =============================================================================
# Create / cancel
# =============================================================================

def create_series(
    db: Session,
    patient_id: UUID | None,
    session_type_id: UUID,
    rule: SeriesRule,
    now: datetime | None = None,
    *,
    patient_name: str | None = None,
    patient_phone: str | None = None,
    patient_email: str | None = None,
) -> RecurringSeries:
    """
    Create a series and every occurrence, or nothing.

    The patient is either an existing one (patient_id) or found/created by
    phone from name and phone, inside the same transaction.
    Raises SeriesConflict listing every conflicting date when any occurrence
    collides with an appointment or block.
    """
    now = resolve_now(now)
    session_type = session_type_service.get_session_type(db, session_type_id)
    if patient_id is not None:
        patient_service.get_patient(db, patient_id)
    elif not (patient_name and patient_phone):
        raise ValidationError("Provide patient_id or patient name and phone")
    occurrences = _validate_rule(db, rule, session_type, now)
    ranges = _ranges(occurrences, session_type.duration_minutes)

    try:
        schedule_lock.lock_days(db, [start.date() for start in occurrences])
        conflicts = conflict_service.check_many(db, ranges)
        if conflicts:
            report = SeriesConflictReport(occurrences=occurrences, conflicts=conflicts)
            raise SeriesConflict(
                f"{len(report.conflicting_dates)} occurrence(s) conflict with existing bookings",
                report.conflicting_dates,
            )

        patient = patient_service.resolve_patient(
            db, patient_id, full_name=patient_name, phone=patient_phone, email=patient_email
        )

        series = RecurringSeries(
            patient=patient,
            session_type=session_type,
            day_of_week=DayOfWeek(rule.day_of_week).value,
            start_time=rule.start_time,
            frequency=RecurrenceFrequency(rule.frequency).value,
            start_date=rule.start_date,
            end_date=rule.end_date,
            is_active=True,
        )
        db.add(series)
        for start in occurrences:
            appointment_service.build_appointment(
                db,
                patient,
                session_type,
                start,
                AppointmentStatus.CONFIRMED,
                recurring_series=series,
            )
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise SlotUnavailable("Series could not be stored; try again") from exc
    except Exception:
        db.rollback()
        raise

    db.refresh(series)
    logger.info(
        "Created series %s with %d occurrences",
        series.id,
        len(occurrences),
        extra=build_log_context(series_id=str(series.id)),
    )
    return series


def delete_series(
    db: Session,
    series_id: UUID,
    reason: str | None = None,
    now: datetime | None = None,
) -> int:
    """
    Deactivate a series and cancel its future occupying occurrences.

    Past, attended, no-show and already cancelled occurrences are untouched.
    Returns the number of occurrences cancelled.
    """
    now = resolve_now(now)
    series = get_series(db, series_id)
    future = db.query(Appointment).filter(
        Appointment.recurring_series_id == series.id,
        Appointment.start_datetime > now,
        Appointment.status.in_([s.value for s in OCCUPYING_STATUSES]),
    ).with_for_update().all()

    for appointment in future:
        appointment_service.mark_cancelled(
            appointment,
            AppointmentStatus.CANCELLED,
            CancelledBy.ADMIN,
            reason or SERIES_CANCELLED_REASON,
            now,
        )
    series.is_active = False
    db.commit()

    logger.info(
        "Deactivated series %s, cancelled %d future occurrences",
        series.id,
        len(future),
        extra=build_log_context(series_id=str(series.id)),
    )
    return len(future)


def cancel_occurrence(
    db: Session,
    appointment_id: UUID,
    reason: str | None = None,
    now: datetime | None = None,
) -> Appointment:
    """Cancel one occurrence of a series; the rest of the series is kept."""
    now = resolve_now(now)
    appointment = db.query(Appointment).filter(
        Appointment.id == appointment_id
    ).with_for_update().first()
    if not appointment:
        raise NotFound("Appointment not found")
    if appointment.recurring_series_id is None:
        raise ValidationError("Appointment is not part of a recurring series")
    if not AppointmentStatus(appointment.status).is_occupying:
        raise AlreadyTerminal(
            f"Appointment is already {appointment.status}",
            status=appointment.status,
        )

    appointment_service.mark_cancelled(
        appointment, AppointmentStatus.CANCELLED, CancelledBy.ADMIN, reason, now
    )
    db.commit()
    db.refresh(appointment)
    return appointment


# =============================================================================
# Reads
# =============================================================================

def get_series(db: Session, series_id: UUID) -> RecurringSeries:
    series = db.query(RecurringSeries).filter(RecurringSeries.id == series_id).first()
    if not series:
        raise NotFound("Recurring series not found")
    return series


def list_active_series(db: Session) -> list[RecurringSeries]:
    return db.query(RecurringSeries).filter(
        RecurringSeries.is_active == True,  # noqa: E712
    ).order_by(RecurringSeries.start_date, RecurringSeries.start_time).all()
