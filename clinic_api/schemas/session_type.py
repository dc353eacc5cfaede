"""Session type schemas."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field


class SessionTypeCreate(BaseModel):
    """Schema for creating a session type."""
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None
    duration_minutes: int = Field(50, ge=5, le=480)
    price: Decimal = Field(Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    display_order: int = 0
    is_active: bool = True


class SessionTypeUpdate(BaseModel):
    """Schema for updating a session type."""
    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = None
    duration_minutes: int | None = Field(None, ge=5, le=480)
    price: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=2)
    display_order: int | None = None
    is_active: bool | None = None


class SessionTypeRead(BaseModel):
    """Schema for reading a session type."""
    id: UUID
    name: str
    description: str | None
    duration_minutes: int
    price: Decimal
    display_order: int
    is_active: bool
    created_at: datetime
    updated_at: datetime


class SessionTypePublicRead(BaseModel):
    """Session type as shown on the public booking page."""
    id: UUID
    name: str
    description: str | None
    duration_minutes: int
    price: Decimal
