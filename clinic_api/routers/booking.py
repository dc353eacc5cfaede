"""Public booking router - API endpoints for patient self-booking.

Unauthenticated endpoints for patients to:
- View bookable session types
- View available time slots
- Book a slot
- View, cancel or reschedule via the self-service token
"""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from clinic_api.core.clock import Clock
from clinic_api.core.config import settings
from clinic_api.core.deps import get_clock, get_db
from clinic_api.core.rate_limit import limiter
from clinic_api.db.enums import AppointmentStatus
from clinic_api.schemas.appointment import (
    AvailableSlotsResponse,
    BookingCancel,
    BookingConfirmation,
    BookingCreate,
    BookingReschedule,
    PublicAppointmentRead,
    SlotRangeResponse,
    TimeSlotRead,
)
from clinic_api.schemas.session_type import SessionTypePublicRead
from clinic_api.services import appointment_service, session_type_service, slot_service

router = APIRouter()


# =============================================================================
# Helper Functions
# =============================================================================

def _slots_to_read(slot_date: date, session_type, slots) -> AvailableSlotsResponse:
    return AvailableSlotsResponse(
        date=slot_date,
        session_type_id=session_type.id,
        duration_minutes=session_type.duration_minutes,
        slots=[
            TimeSlotRead(time=s.time, datetime=s.start, end=s.end, available=s.available)
            for s in slots
        ],
    )


def _confirmation(appt) -> BookingConfirmation:
    return BookingConfirmation(
        appointment_id=appt.id,
        session_type_name=appt.session_type.name,
        start_datetime=appt.start_datetime,
        end_datetime=appt.end_datetime,
        status=appt.status,
        cancellation_token=appt.cancellation_token,
    )


def _appointment_to_public_read(appt, now) -> PublicAppointmentRead:
    """Patient-safe view of an appointment."""
    occupying = AppointmentStatus(appt.status).is_occupying
    return PublicAppointmentRead(
        appointment_id=appt.id,
        session_type_id=appt.session_type_id,
        session_type_name=appt.session_type.name,
        start_datetime=appt.start_datetime,
        end_datetime=appt.end_datetime,
        duration_minutes=appt.duration_minutes,
        status=appt.status,
        can_cancel=occupying,
        can_reschedule=occupying and not appointment_service.is_late_cancellation(appt, now),
    )


# =============================================================================
# Session types and slots
# =============================================================================

@router.get("/session-types", response_model=list[SessionTypePublicRead])
def list_session_types(db: Session = Depends(get_db)):
    """Active session types, in display order."""
    types = session_type_service.list_session_types(db, active_only=True)
    return [
        SessionTypePublicRead(
            id=t.id,
            name=t.name,
            description=t.description,
            duration_minutes=t.duration_minutes,
            price=t.price,
        )
        for t in types
    ]


@router.get("/slots", response_model=AvailableSlotsResponse)
def get_available_slots(
    session_type_id: UUID,
    slot_date: date = Query(..., alias="date", description="Date (YYYY-MM-DD)"),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Bookable slots for one date."""
    session_type = session_type_service.get_bookable_session_type(db, session_type_id)
    slots = slot_service.get_available_slots(db, slot_date, session_type, now=clock.now())
    return _slots_to_read(slot_date, session_type, slots)


@router.get("/slots/range", response_model=SlotRangeResponse)
def get_available_slots_for_range(
    session_type_id: UUID,
    start_date: date = Query(..., description="Start date (YYYY-MM-DD)"),
    end_date: date = Query(..., description="End date, inclusive"),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Bookable slots per day for a date range. Days without slots are omitted."""
    session_type = session_type_service.get_bookable_session_type(db, session_type_id)
    days = slot_service.get_available_slots_for_range(
        db, start_date, end_date, session_type, now=clock.now()
    )
    return SlotRangeResponse(
        session_type_id=session_type.id,
        days=[_slots_to_read(day.date, session_type, day.slots) for day in days],
    )


# =============================================================================
# Booking
# =============================================================================

@router.post("/book", response_model=BookingConfirmation, status_code=201)
@limiter.limit(settings.RATE_LIMIT_PUBLIC)
def create_booking(
    data: BookingCreate,
    request: Request,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """
    Book a slot.

    The start time is re-validated server-side. Rate limited to prevent spam.
    """
    appt = appointment_service.create_booking(
        db=db,
        session_type_id=data.session_type_id,
        start_datetime=data.start_datetime,
        patient_name=data.patient_name,
        patient_phone=data.patient_phone,
        patient_email=data.patient_email,
        now=clock.now(),
    )
    return _confirmation(appt)


# =============================================================================
# Self-Service (Token-based)
# =============================================================================

@router.get("/appointment", response_model=PublicAppointmentRead)
def get_appointment_by_token(
    token: str = Query(..., min_length=1, max_length=64),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Appointment details for the cancel / reschedule pages."""
    appt = appointment_service.get_appointment_by_token(db, token)
    return _appointment_to_public_read(appt, clock.now())


@router.post("/cancel", response_model=PublicAppointmentRead)
@limiter.limit(settings.RATE_LIMIT_PUBLIC)
def cancel_by_token(
    data: BookingCancel,
    request: Request,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Cancel an appointment using the self-service token."""
    now = clock.now()
    appt = appointment_service.cancel_by_token(db, data.token, reason=data.reason, now=now)
    return _appointment_to_public_read(appt, now)


@router.post("/reschedule", response_model=BookingConfirmation)
@limiter.limit(settings.RATE_LIMIT_PUBLIC)
def reschedule_by_token(
    data: BookingReschedule,
    request: Request,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Move an appointment to another slot; the token stays valid."""
    appt = appointment_service.reschedule_by_token(
        db, data.token, data.new_start_datetime, now=clock.now()
    )
    return _confirmation(appt)
