"""Payments router - staff payment tracking.

Endpoints for:
- Listing payments (all, pending, by status, by appointment date range)
- Reading a payment by id or by appointment
- Setting status, marking paid and waiving
"""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from clinic_api.core.clock import Clock
from clinic_api.core.deps import get_clock, get_db, require_admin_key
from clinic_api.db.enums import PaymentStatus
from clinic_api.schemas.payment import (
    PaymentListItem,
    PaymentListResponse,
    PaymentMarkPaid,
    PaymentRead,
    PaymentUpdate,
    PaymentWaive,
)
from clinic_api.services import payment_service
from clinic_api.utils.pagination import PaginationParams, get_pagination

router = APIRouter(dependencies=[Depends(require_admin_key)])


# =============================================================================
# Helper Functions
# =============================================================================

def _payment_to_read(payment) -> PaymentRead:
    return PaymentRead.model_validate(payment, from_attributes=True)


def _payment_to_list_item(payment) -> PaymentListItem:
    appt = payment.appointment
    return PaymentListItem(
        **_payment_to_read(payment).model_dump(),
        patient_name=appt.patient.full_name,
        appointment_start=appt.start_datetime,
        appointment_status=appt.status,
    )


def _list_response(payments, total, pagination: PaginationParams) -> PaymentListResponse:
    return PaymentListResponse(
        items=[_payment_to_list_item(p) for p in payments],
        **pagination.page_fields(total),
    )


# =============================================================================
# Listing
# =============================================================================

@router.get("/payments", response_model=PaymentListResponse)
def list_payments(
    status: PaymentStatus | None = Query(None),
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    pagination: PaginationParams = Depends(get_pagination),
    db: Session = Depends(get_db),
):
    """Payments ordered by appointment start; dates filter the appointment day."""
    payments, total = payment_service.list_payments(
        db,
        status=status,
        date_from=date_from,
        date_to=date_to,
        limit=pagination.limit,
        offset=pagination.offset,
    )
    return _list_response(payments, total, pagination)


@router.get("/payments/pending", response_model=PaymentListResponse)
def list_pending_payments(
    pagination: PaginationParams = Depends(get_pagination),
    db: Session = Depends(get_db),
):
    payments, total = payment_service.list_pending_payments(
        db, limit=pagination.limit, offset=pagination.offset
    )
    return _list_response(payments, total, pagination)


@router.get("/payments/{payment_id}", response_model=PaymentRead)
def get_payment(
    payment_id: UUID,
    db: Session = Depends(get_db),
):
    return _payment_to_read(payment_service.get_payment(db, payment_id))


# =============================================================================
# Per appointment
# =============================================================================

@router.get("/appointments/{appointment_id}/payment", response_model=PaymentRead)
def get_appointment_payment(
    appointment_id: UUID,
    db: Session = Depends(get_db),
):
    return _payment_to_read(payment_service.get_payment_for_appointment(db, appointment_id))


@router.put("/appointments/{appointment_id}/payment", response_model=PaymentRead)
def update_payment(
    appointment_id: UUID,
    data: PaymentUpdate,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    payment = payment_service.update_payment(
        db,
        appointment_id,
        status=data.status,
        method=data.method,
        notes=data.notes,
        now=clock.now(),
    )
    return _payment_to_read(payment)


@router.post("/appointments/{appointment_id}/payment/mark-paid", response_model=PaymentRead)
def mark_paid(
    appointment_id: UUID,
    data: PaymentMarkPaid,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    payment = payment_service.mark_paid(db, appointment_id, method=data.method, now=clock.now())
    return _payment_to_read(payment)


@router.post("/appointments/{appointment_id}/payment/waive", response_model=PaymentRead)
def waive_payment(
    appointment_id: UUID,
    data: PaymentWaive,
    db: Session = Depends(get_db),
):
    return _payment_to_read(payment_service.waive_payment(db, appointment_id, reason=data.reason))
