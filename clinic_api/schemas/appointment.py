"""Appointment schemas - Pydantic models for booking and appointments API."""

from datetime import date, datetime, time
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from clinic_api.db.enums import AppointmentStatus, CancelledBy, PaymentStatus


# =============================================================================
# Public booking
# =============================================================================

class BookingCreate(BaseModel):
    """Schema for a public booking."""
    session_type_id: UUID
    start_datetime: datetime
    patient_name: str = Field(..., min_length=1, max_length=255)
    patient_phone: str = Field(..., min_length=8, max_length=32)
    patient_email: EmailStr | None = None


class BookingCancel(BaseModel):
    """Schema for cancelling through the self-service token."""
    token: str = Field(..., min_length=1, max_length=64)
    reason: str | None = Field(None, max_length=500)


class BookingReschedule(BaseModel):
    """Schema for rescheduling through the self-service token."""
    token: str = Field(..., min_length=1, max_length=64)
    new_start_datetime: datetime


class BookingConfirmation(BaseModel):
    """Returned after a booking or reschedule; carries the self-service token."""
    appointment_id: UUID
    session_type_name: str
    start_datetime: datetime
    end_datetime: datetime
    status: AppointmentStatus
    cancellation_token: str


class PublicAppointmentRead(BaseModel):
    """What a patient sees when opening their token link."""
    appointment_id: UUID
    session_type_id: UUID
    session_type_name: str
    start_datetime: datetime
    end_datetime: datetime
    duration_minutes: int
    status: AppointmentStatus
    can_cancel: bool
    can_reschedule: bool


# =============================================================================
# Staff
# =============================================================================

class AppointmentAdminCreate(BaseModel):
    """Staff booking; either patient_id or name and phone."""
    session_type_id: UUID
    start_datetime: datetime
    patient_id: UUID | None = None
    patient_name: str | None = Field(None, min_length=1, max_length=255)
    patient_phone: str | None = Field(None, min_length=8, max_length=32)
    patient_email: EmailStr | None = None
    status: AppointmentStatus = AppointmentStatus.CONFIRMED
    session_link: str | None = Field(None, max_length=500)


class AppointmentStatusUpdate(BaseModel):
    """Staff status override."""
    status: AppointmentStatus
    reason: str | None = Field(None, max_length=500)
    session_link: str | None = Field(None, max_length=500)


class AppointmentCancel(BaseModel):
    """Schema for cancelling an appointment."""
    reason: str | None = Field(None, max_length=500)


class AppointmentRead(BaseModel):
    """Schema for reading an appointment."""
    id: UUID
    patient_id: UUID
    patient_name: str
    patient_phone: str
    patient_email: str | None
    session_type_id: UUID
    session_type_name: str
    recurring_series_id: UUID | None
    start_datetime: datetime
    end_datetime: datetime
    duration_minutes: int
    status: AppointmentStatus
    session_link: str | None
    cancelled_at: datetime | None
    cancelled_by: CancelledBy | None
    cancellation_reason: str | None
    payment_status: PaymentStatus | None
    payment_amount: Decimal | None
    created_at: datetime
    updated_at: datetime


class AppointmentListItem(BaseModel):
    """Schema for appointment list item."""
    id: UUID
    patient_name: str
    session_type_name: str
    start_datetime: datetime
    end_datetime: datetime
    status: AppointmentStatus
    recurring_series_id: UUID | None


class AppointmentListResponse(BaseModel):
    """Schema for appointment list response."""
    items: list[AppointmentListItem]
    total: int
    page: int
    per_page: int
    pages: int


# =============================================================================
# Time Slots
# =============================================================================

class TimeSlotRead(BaseModel):
    """Schema for an available time slot."""
    model_config = ConfigDict(populate_by_name=True)

    slot_time: time = Field(..., alias="time")
    start: datetime = Field(..., alias="datetime")
    end: datetime
    available: bool = True


class AvailableSlotsResponse(BaseModel):
    """Slots for one date."""
    model_config = ConfigDict(populate_by_name=True)

    slot_date: date = Field(..., alias="date")
    session_type_id: UUID
    duration_minutes: int
    slots: list[TimeSlotRead]


class SlotRangeResponse(BaseModel):
    """Non-empty days of a date range query."""
    session_type_id: UUID
    days: list[AvailableSlotsResponse]
