"""Availability schemas - Pydantic models for windows and blocks."""

from datetime import datetime, time
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from clinic_api.db.enums import BlockType, DayOfWeek


# =============================================================================
# Availability Windows
# =============================================================================

class AvailabilityWindowCreate(BaseModel):
    """Schema for creating a weekly availability window."""
    day_of_week: DayOfWeek
    start_time: time
    end_time: time
    is_active: bool = True

    @model_validator(mode="after")
    def check_range(self) -> "AvailabilityWindowCreate":
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self


class AvailabilityWindowUpdate(BaseModel):
    """Schema for updating an availability window."""
    day_of_week: DayOfWeek | None = None
    start_time: time | None = None
    end_time: time | None = None
    is_active: bool | None = None


class AvailabilityWindowRead(BaseModel):
    """Schema for reading an availability window."""
    id: UUID
    day_of_week: DayOfWeek
    start_time: time
    end_time: time
    is_active: bool
    created_at: datetime
    updated_at: datetime


# =============================================================================
# Blocks
# =============================================================================

class BlockCreate(BaseModel):
    """Schema for creating a block."""
    start_datetime: datetime
    end_datetime: datetime
    block_type: BlockType
    reason: str | None = Field(None, max_length=255)


class BlockUpdate(BaseModel):
    """Schema for updating a block."""
    start_datetime: datetime | None = None
    end_datetime: datetime | None = None
    block_type: BlockType | None = None
    reason: str | None = Field(None, max_length=255)


class BlockRead(BaseModel):
    """Schema for reading a block."""
    id: UUID
    start_datetime: datetime
    end_datetime: datetime
    block_type: BlockType
    reason: str | None
    created_at: datetime
