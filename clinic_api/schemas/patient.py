"""Patient schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class PatientUpdate(BaseModel):
    """Partial update of contact details."""
    full_name: str | None = Field(None, min_length=1, max_length=255)
    phone: str | None = Field(None, min_length=8, max_length=32)
    email: EmailStr | None = None


class PatientRead(BaseModel):
    id: UUID
    full_name: str
    phone: str
    email: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class PatientListResponse(BaseModel):
    items: list[PatientRead]
    total: int
    page: int
    per_page: int
    pages: int
