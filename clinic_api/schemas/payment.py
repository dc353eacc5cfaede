"""Payment schemas."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from clinic_api.db.enums import PaymentStatus


class PaymentUpdate(BaseModel):
    """Schema for updating an appointment's payment."""
    status: PaymentStatus
    method: str | None = Field(None, max_length=30)
    notes: str | None = Field(None, max_length=500)


class PaymentRead(BaseModel):
    """Schema for reading a payment."""
    id: UUID
    appointment_id: UUID
    amount: Decimal
    status: PaymentStatus
    method: str | None
    paid_at: datetime | None
    notes: str | None


class PaymentMarkPaid(BaseModel):
    method: str | None = Field(None, max_length=30)


class PaymentWaive(BaseModel):
    reason: str | None = Field(None, max_length=500)


class PaymentListItem(PaymentRead):
    """Payment with the appointment it belongs to."""
    patient_name: str
    appointment_start: datetime
    appointment_status: str


class PaymentListResponse(BaseModel):
    items: list[PaymentListItem]
    total: int
    page: int
    per_page: int
    pages: int
