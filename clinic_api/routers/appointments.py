"""Appointments router - staff endpoints for appointment management.

Endpoints for:
- Listing and viewing appointments
- Staff bookings
- Status overrides and cancellation
"""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from clinic_api.core.clock import Clock
from clinic_api.core.deps import get_clock, get_db, require_admin_key
from clinic_api.db.enums import AppointmentStatus
from clinic_api.schemas.appointment import (
    AppointmentAdminCreate,
    AppointmentCancel,
    AppointmentListItem,
    AppointmentListResponse,
    AppointmentRead,
    AppointmentStatusUpdate,
)
from clinic_api.services import appointment_service
from clinic_api.utils.pagination import PaginationParams, get_pagination

router = APIRouter(dependencies=[Depends(require_admin_key)])


# =============================================================================
# Helper Functions
# =============================================================================

def appointment_to_read(appt) -> AppointmentRead:
    """Convert Appointment model to read schema."""
    payment = appt.payment
    return AppointmentRead(
        id=appt.id,
        patient_id=appt.patient_id,
        patient_name=appt.patient.full_name,
        patient_phone=appt.patient.phone,
        patient_email=appt.patient.email,
        session_type_id=appt.session_type_id,
        session_type_name=appt.session_type.name,
        recurring_series_id=appt.recurring_series_id,
        start_datetime=appt.start_datetime,
        end_datetime=appt.end_datetime,
        duration_minutes=appt.duration_minutes,
        status=appt.status,
        session_link=appt.session_link,
        cancelled_at=appt.cancelled_at,
        cancelled_by=appt.cancelled_by,
        cancellation_reason=appt.cancellation_reason,
        payment_status=payment.status if payment else None,
        payment_amount=payment.amount if payment else None,
        created_at=appt.created_at,
        updated_at=appt.updated_at,
    )


def appointment_to_list_item(appt) -> AppointmentListItem:
    """Convert Appointment model to list item schema."""
    return AppointmentListItem(
        id=appt.id,
        patient_name=appt.patient.full_name,
        session_type_name=appt.session_type.name,
        start_datetime=appt.start_datetime,
        end_datetime=appt.end_datetime,
        status=appt.status,
        recurring_series_id=appt.recurring_series_id,
    )


# =============================================================================
# Appointments
# =============================================================================

@router.get("/appointments", response_model=AppointmentListResponse)
def list_appointments(
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    status: AppointmentStatus | None = Query(None),
    patient_id: UUID | None = Query(None),
    pagination: PaginationParams = Depends(get_pagination),
    db: Session = Depends(get_db),
):
    """List appointments, earliest first."""
    appointments, total = appointment_service.list_appointments(
        db,
        date_from=date_from,
        date_to=date_to,
        status=status,
        patient_id=patient_id,
        limit=pagination.limit,
        offset=pagination.offset,
    )
    return AppointmentListResponse(
        items=[appointment_to_list_item(a) for a in appointments],
        **pagination.page_fields(total),
    )


@router.post("/appointments", response_model=AppointmentRead, status_code=201)
def create_appointment(
    data: AppointmentAdminCreate,
    db: Session = Depends(get_db),
):
    """Staff booking. Ignores slot alignment and advance limits, never overlaps."""
    appt = appointment_service.create_admin_appointment(
        db,
        session_type_id=data.session_type_id,
        start_datetime=data.start_datetime,
        patient_id=data.patient_id,
        patient_name=data.patient_name,
        patient_phone=data.patient_phone,
        patient_email=data.patient_email,
        status=data.status,
        session_link=data.session_link,
    )
    return appointment_to_read(appt)


@router.get("/appointments/{appointment_id}", response_model=AppointmentRead)
def get_appointment(
    appointment_id: UUID,
    db: Session = Depends(get_db),
):
    return appointment_to_read(appointment_service.get_appointment(db, appointment_id))


@router.patch("/appointments/{appointment_id}/status", response_model=AppointmentRead)
def update_status(
    appointment_id: UUID,
    data: AppointmentStatusUpdate,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Set status directly (attended, no-show, corrections)."""
    appt = appointment_service.update_status(
        db,
        appointment_id,
        data.status,
        reason=data.reason,
        session_link=data.session_link,
        now=clock.now(),
    )
    return appointment_to_read(appt)


@router.post("/appointments/{appointment_id}/cancel", response_model=AppointmentRead)
def cancel_appointment(
    appointment_id: UUID,
    data: AppointmentCancel,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Cancel on behalf of the clinic; late policy applies as for patients."""
    appt = appointment_service.cancel_appointment(
        db, appointment_id, reason=data.reason, now=clock.now()
    )
    return appointment_to_read(appt)
