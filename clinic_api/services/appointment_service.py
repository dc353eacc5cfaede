"""Appointment service - booking transaction engine.

Handles:
- Public booking with server-side slot re-validation
- Staff booking
- Cancellation (on time vs late) by token or by staff
- Reschedule in place (id and token preserved)
- Staff status overrides
"""

import logging
import secrets
from datetime import date, datetime, time, timedelta
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clinic_api.core.clock import resolve_now, to_clinic_time
from clinic_api.core.config import settings
from clinic_api.core.exceptions import (
    AlreadyTerminal,
    NotFound,
    SlotUnavailable,
    ValidationError,
)
from clinic_api.core.structured_logging import build_log_context
from clinic_api.db.enums import (
    ADMIN_SETTABLE_STATUSES,
    CANCELLED_STATUSES,
    AppointmentStatus,
    CancelledBy,
)
from clinic_api.db.models import Appointment, Patient, RecurringSeries, SessionType
from clinic_api.services import (
    conflict_service,
    patient_service,
    payment_service,
    schedule_lock,
    session_type_service,
    slot_service,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Tokens and helpers
# =============================================================================

def generate_token(length: int = 32) -> str:
    """Generate cryptographically secure token."""
    return secrets.token_urlsafe(length)


def _default_booking_status() -> AppointmentStatus:
    return AppointmentStatus(settings.DEFAULT_BOOKING_STATUS)


def _slot_unavailable(
    db: Session,
    start: datetime,
    end: datetime,
    exclude_appointment_id: UUID | None = None,
) -> SlotUnavailable:
    """Build SlotUnavailable carrying the conflicting range when there is one."""
    conflict = conflict_service.find_conflict(db, start, end, exclude_appointment_id)
    if conflict:
        return SlotUnavailable(
            f"Selected time conflicts with an existing {conflict.kind}",
            start=conflict.start,
            end=conflict.end,
        )
    return SlotUnavailable("Selected time is not an available slot", start=start, end=end)


def build_appointment(
    db: Session,
    patient: Patient,
    session_type: SessionType,
    start: datetime,
    status: AppointmentStatus,
    recurring_series: RecurringSeries | None = None,
    session_link: str | None = None,
) -> Appointment:
    """
    Stage an appointment plus its unpaid payment.

    Duration and end are copied from the session type now; a later change to
    the type only reaches this appointment through a reschedule.
    """
    appointment = Appointment(
        patient=patient,
        session_type=session_type,
        recurring_series=recurring_series,
        start_datetime=start,
        end_datetime=start + timedelta(minutes=session_type.duration_minutes),
        duration_minutes=session_type.duration_minutes,
        status=status.value,
        session_link=session_link,
        cancellation_token=generate_token(),
    )
    db.add(appointment)
    payment_service.attach_unpaid_payment(db, appointment)
    return appointment


def _load_for_update(db: Session, *criteria) -> Appointment | None:
    return db.query(Appointment).filter(*criteria).with_for_update().first()


def _require_occupying(appointment: Appointment) -> None:
    if not AppointmentStatus(appointment.status).is_occupying:
        raise AlreadyTerminal(
            f"Appointment is already {appointment.status}",
            status=appointment.status,
        )


def _commit_or_unavailable(db: Session, start: datetime, end: datetime) -> None:
    """Commit; store-level collisions surface as SlotUnavailable."""
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.warning("Integrity error while booking %s", start.isoformat())
        raise SlotUnavailable(
            "Selected time is no longer available", start=start, end=end
        ) from exc


# =============================================================================
# Create
# =============================================================================

def create_booking(
    db: Session,
    session_type_id: UUID,
    start_datetime: datetime,
    patient_name: str,
    patient_phone: str,
    patient_email: str | None = None,
    now: datetime | None = None,
) -> Appointment:
    """
    Public booking.

    The requested start must be a slot the generator produces right now under
    the public booking window; the check runs under the day lock in the same
    transaction as the insert.
    """
    now = resolve_now(now)
    session_type = session_type_service.get_bookable_session_type(db, session_type_id)
    start = to_clinic_time(start_datetime)
    end = start + timedelta(minutes=session_type.duration_minutes)

    try:
        schedule_lock.lock_range(db, start, end)
        slots = slot_service.get_available_slots(db, start.date(), session_type, now=now)
        if not any(slot.start == start for slot in slots):
            raise _slot_unavailable(db, start, end)

        patient = patient_service.find_or_create_patient(
            db, full_name=patient_name, phone=patient_phone, email=patient_email
        )
        appointment = build_appointment(
            db, patient, session_type, start, _default_booking_status()
        )
        _commit_or_unavailable(db, start, end)
    except Exception:
        db.rollback()
        raise

    db.refresh(appointment)
    logger.info(
        "Booked appointment %s",
        appointment.id,
        extra=build_log_context(
            appointment_id=str(appointment.id),
            session_type_id=str(session_type.id),
            status=appointment.status,
        ),
    )
    return appointment


def create_admin_appointment(
    db: Session,
    session_type_id: UUID,
    start_datetime: datetime,
    patient_id: UUID | None = None,
    patient_name: str | None = None,
    patient_phone: str | None = None,
    patient_email: str | None = None,
    status: AppointmentStatus = AppointmentStatus.CONFIRMED,
    session_link: str | None = None,
) -> Appointment:
    """
    Staff booking.

    Skips the advance window and slot alignment but still refuses overlaps
    with appointments and blocks.
    """
    status = AppointmentStatus(status)
    if not status.is_occupying:
        raise ValidationError("New appointments must be scheduled or confirmed")
    if patient_id is None and not (patient_name and patient_phone):
        raise ValidationError("Provide patient_id or patient name and phone")

    session_type = session_type_service.get_session_type(db, session_type_id)
    start = to_clinic_time(start_datetime)
    end = start + timedelta(minutes=session_type.duration_minutes)

    try:
        schedule_lock.lock_range(db, start, end)
        if conflict_service.has_conflict(db, start, end):
            raise _slot_unavailable(db, start, end)

        patient = patient_service.resolve_patient(
            db, patient_id, full_name=patient_name, phone=patient_phone, email=patient_email
        )
        appointment = build_appointment(
            db, patient, session_type, start, status, session_link=session_link
        )
        _commit_or_unavailable(db, start, end)
    except Exception:
        db.rollback()
        raise

    db.refresh(appointment)
    logger.info(
        "Staff booked appointment %s",
        appointment.id,
        extra=build_log_context(appointment_id=str(appointment.id), status=appointment.status),
    )
    return appointment


# =============================================================================
# Cancel
# =============================================================================

def is_late_cancellation(appointment: Appointment, now: datetime) -> bool:
    """Inside the late window when less than LATE_CANCELLATION_HOURS remain."""
    return appointment.start_datetime - now < timedelta(hours=settings.LATE_CANCELLATION_HOURS)


def mark_cancelled(
    appointment: Appointment,
    status: AppointmentStatus,
    cancelled_by: CancelledBy,
    reason: str | None,
    now: datetime,
) -> None:
    appointment.status = status.value
    appointment.cancelled_at = now
    appointment.cancelled_by = cancelled_by.value
    appointment.cancellation_reason = reason


def _cancel(
    db: Session,
    appointment: Appointment,
    cancelled_by: CancelledBy,
    reason: str | None,
    now: datetime,
) -> Appointment:
    _require_occupying(appointment)
    status = (
        AppointmentStatus.CANCELLED_LATE
        if is_late_cancellation(appointment, now)
        else AppointmentStatus.CANCELLED
    )
    mark_cancelled(appointment, status, cancelled_by, reason, now)
    db.commit()
    db.refresh(appointment)
    logger.info(
        "Cancelled appointment %s",
        appointment.id,
        extra=build_log_context(appointment_id=str(appointment.id), status=status.value),
    )
    return appointment


def cancel_by_token(
    db: Session,
    token: str,
    reason: str | None = None,
    now: datetime | None = None,
) -> Appointment:
    """Patient cancellation through the self-service token."""
    appointment = _load_for_update(db, Appointment.cancellation_token == token)
    if not appointment:
        raise NotFound("Appointment not found")
    return _cancel(db, appointment, CancelledBy.PATIENT, reason, resolve_now(now))


def cancel_appointment(
    db: Session,
    appointment_id: UUID,
    reason: str | None = None,
    now: datetime | None = None,
) -> Appointment:
    """Staff cancellation; same on-time/late policy as the patient flow."""
    appointment = _load_for_update(db, Appointment.id == appointment_id)
    if not appointment:
        raise NotFound("Appointment not found")
    return _cancel(db, appointment, CancelledBy.ADMIN, reason, resolve_now(now))


# =============================================================================
# Reschedule
# =============================================================================

def reschedule_by_token(
    db: Session,
    token: str,
    new_start: datetime,
    now: datetime | None = None,
) -> Appointment:
    """
    Move an appointment to another generator slot.

    Keeps id and token. The new end follows the session type's current
    duration, the same grid the public slot listing uses, and the stored
    duration is updated to match. The appointment's own current occupancy is
    ignored when checking the new slot. On failure nothing changes.
    """
    now = resolve_now(now)
    appointment = _load_for_update(db, Appointment.cancellation_token == token)
    if not appointment:
        raise NotFound("Appointment not found")
    _require_occupying(appointment)
    if is_late_cancellation(appointment, now):
        raise ValidationError(
            f"Appointments can only be rescheduled more than "
            f"{settings.LATE_CANCELLATION_HOURS} hours in advance"
        )

    new_start = to_clinic_time(new_start)
    duration = appointment.session_type.duration_minutes
    new_end = new_start + timedelta(minutes=duration)
    min_start, max_start = slot_service.booking_window(now)
    old_start = appointment.start_datetime

    try:
        schedule_lock.lock_range(db, new_start, new_end)
        slots = slot_service.generate_slots(
            db,
            new_start.date(),
            appointment.session_type,
            min_start=min_start,
            max_start=max_start,
            exclude_appointment_id=appointment.id,
        )
        if not any(slot.start == new_start for slot in slots):
            raise _slot_unavailable(db, new_start, new_end, exclude_appointment_id=appointment.id)

        appointment.start_datetime = new_start
        appointment.end_datetime = new_end
        appointment.duration_minutes = duration
        _commit_or_unavailable(db, new_start, new_end)
    except Exception:
        db.rollback()
        raise

    db.refresh(appointment)
    logger.info(
        "Rescheduled appointment %s from %s to %s",
        appointment.id,
        old_start.isoformat(),
        new_start.isoformat(),
    )
    return appointment


# =============================================================================
# Staff status override
# =============================================================================

def update_status(
    db: Session,
    appointment_id: UUID,
    status: AppointmentStatus,
    reason: str | None = None,
    session_link: str | None = None,
    now: datetime | None = None,
) -> Appointment:
    """
    Set any staff-settable status directly.

    Moving a terminal appointment back to confirmed re-occupies its slot, so
    the range is re-checked under the day lock first.
    """
    now = resolve_now(now)
    status = AppointmentStatus(status)
    if status not in ADMIN_SETTABLE_STATUSES:
        raise ValidationError(f"Status {status.value} cannot be set by staff")

    appointment = _load_for_update(db, Appointment.id == appointment_id)
    if not appointment:
        raise NotFound("Appointment not found")
    current = AppointmentStatus(appointment.status)

    try:
        if status.is_occupying and not current.is_occupying:
            start, end = appointment.start_datetime, appointment.end_datetime
            schedule_lock.lock_range(db, start, end)
            if conflict_service.has_conflict(db, start, end, exclude_appointment_id=appointment.id):
                raise _slot_unavailable(db, start, end, exclude_appointment_id=appointment.id)

        if status in CANCELLED_STATUSES:
            if current not in CANCELLED_STATUSES:
                mark_cancelled(appointment, status, CancelledBy.ADMIN, reason, now)
            else:
                appointment.status = status.value
        else:
            appointment.status = status.value
            appointment.cancelled_at = None
            appointment.cancelled_by = None
            appointment.cancellation_reason = None

        if session_link is not None:
            appointment.session_link = session_link
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(appointment)
    logger.info(
        "Appointment %s status %s -> %s",
        appointment.id,
        current.value,
        status.value,
    )
    return appointment


# =============================================================================
# Reads
# =============================================================================

def get_appointment(db: Session, appointment_id: UUID) -> Appointment:
    """Get appointment by ID."""
    appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
    if not appointment:
        raise NotFound("Appointment not found")
    return appointment


def get_appointment_by_token(db: Session, token: str) -> Appointment:
    """Get appointment by self-service token."""
    appointment = db.query(Appointment).filter(
        Appointment.cancellation_token == token
    ).first()
    if not appointment:
        raise NotFound("Appointment not found")
    return appointment


def list_appointments(
    db: Session,
    date_from: date | None = None,
    date_to: date | None = None,
    status: AppointmentStatus | None = None,
    patient_id: UUID | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Appointment], int]:
    """List appointments with pagination, earliest first."""
    query = db.query(Appointment)

    if status:
        query = query.filter(Appointment.status == AppointmentStatus(status).value)

    if date_from:
        query = query.filter(Appointment.start_datetime >= datetime.combine(date_from, time.min))

    if date_to:
        query = query.filter(
            Appointment.start_datetime < datetime.combine(date_to + timedelta(days=1), time.min)
        )

    if patient_id:
        query = query.filter(Appointment.patient_id == patient_id)

    total = query.count()
    appointments = query.order_by(
        Appointment.start_datetime
    ).offset(offset).limit(limit).all()

    return appointments, total
