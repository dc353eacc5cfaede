"""Payment tracking for appointments."""

import logging
from datetime import date, datetime, time, timedelta
from uuid import UUID

from sqlalchemy.orm import Session

from clinic_api.core.clock import resolve_now
from clinic_api.core.exceptions import NotFound
from clinic_api.db.enums import DEFAULT_PAYMENT_STATUS, PaymentStatus
from clinic_api.db.models import Appointment, Payment

logger = logging.getLogger(__name__)


def attach_unpaid_payment(db: Session, appointment: Appointment) -> Payment:
    """Stage an unpaid payment for the appointment's session price."""
    payment = Payment(
        appointment=appointment,
        amount=appointment.session_type.price,
        status=DEFAULT_PAYMENT_STATUS.value,
    )
    db.add(payment)
    return payment


def get_payment_for_appointment(db: Session, appointment_id: UUID) -> Payment:
    payment = db.query(Payment).filter(Payment.appointment_id == appointment_id).first()
    if not payment:
        raise NotFound("Payment not found")
    return payment


def update_payment(
    db: Session,
    appointment_id: UUID,
    status: PaymentStatus,
    method: str | None = None,
    notes: str | None = None,
    now: datetime | None = None,
) -> Payment:
    """Set payment status; paid_at is stamped when marked paid and cleared otherwise."""
    payment = get_payment_for_appointment(db, appointment_id)
    status = PaymentStatus(status)
    payment.status = status.value
    if status == PaymentStatus.PAID:
        payment.paid_at = payment.paid_at or resolve_now(now)
    elif status == PaymentStatus.UNPAID:
        payment.paid_at = None
    if method is not None:
        payment.method = method
    if notes is not None:
        payment.notes = notes

    db.commit()
    db.refresh(payment)
    logger.info("Payment for appointment %s set to %s", appointment_id, status.value)
    return payment


def get_payment(db: Session, payment_id: UUID) -> Payment:
    payment = db.query(Payment).filter(Payment.id == payment_id).first()
    if not payment:
        raise NotFound("Payment not found")
    return payment


def mark_paid(
    db: Session,
    appointment_id: UUID,
    method: str | None = None,
    now: datetime | None = None,
) -> Payment:
    return update_payment(db, appointment_id, PaymentStatus.PAID, method=method, now=now)


def waive_payment(db: Session, appointment_id: UUID, reason: str | None = None) -> Payment:
    """Waive the charge; the reason is kept in the payment notes."""
    return update_payment(db, appointment_id, PaymentStatus.WAIVED, notes=reason)


# =============================================================================
# Listing
# =============================================================================

def list_payments(
    db: Session,
    status: PaymentStatus | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Payment], int]:
    """
    List payments by their appointment's start, earliest first.

    date_from/date_to are inclusive calendar days of the appointment start.
    Returns (items, total_count).
    """
    query = db.query(Payment).join(Payment.appointment)

    if status:
        query = query.filter(Payment.status == PaymentStatus(status).value)

    if date_from:
        query = query.filter(Appointment.start_datetime >= datetime.combine(date_from, time.min))

    if date_to:
        query = query.filter(
            Appointment.start_datetime < datetime.combine(date_to + timedelta(days=1), time.min)
        )

    total = query.count()
    payments = query.order_by(
        Appointment.start_datetime, Payment.id
    ).offset(offset).limit(limit).all()

    return payments, total


def list_pending_payments(
    db: Session,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Payment], int]:
    return list_payments(db, status=PaymentStatus.UNPAID, limit=limit, offset=offset)
