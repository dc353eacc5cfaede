"""Recurring series schemas."""

from datetime import date, datetime, time
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, model_validator

from clinic_api.db.enums import DayOfWeek, RecurrenceFrequency
from clinic_api.schemas.appointment import AppointmentListItem


class SeriesCreate(BaseModel):
    """Schema for creating (or dry-running) a recurring series; either patient_id or name and phone."""
    patient_id: UUID | None = None
    patient_name: str | None = Field(None, min_length=1, max_length=255)
    patient_phone: str | None = Field(None, min_length=8, max_length=32)
    patient_email: EmailStr | None = None
    session_type_id: UUID
    day_of_week: DayOfWeek
    start_time: time
    frequency: RecurrenceFrequency = RecurrenceFrequency.WEEKLY
    start_date: date
    end_date: date | None = None

    @model_validator(mode="after")
    def check_dates(self) -> "SeriesCreate":
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class SeriesConflictItem(BaseModel):
    """One conflicting occurrence of a dry run."""
    date: date
    start_datetime: datetime
    end_datetime: datetime
    reason: str


class SeriesCheckResponse(BaseModel):
    """Dry-run result: all occurrences and the conflicting ones."""
    occurrences: list[datetime]
    has_conflicts: bool
    conflicting_dates: list[date]
    conflicts: list[SeriesConflictItem]


class SeriesRead(BaseModel):
    """Schema for reading a recurring series."""
    id: UUID
    patient_id: UUID
    patient_name: str
    session_type_id: UUID
    session_type_name: str
    day_of_week: DayOfWeek
    start_time: time
    frequency: RecurrenceFrequency
    start_date: date
    end_date: date | None
    is_active: bool
    occurrence_count: int
    created_at: datetime


class SeriesDetailRead(SeriesRead):
    """Series with its occurrences."""
    appointments: list[AppointmentListItem] = Field(default_factory=list)


class SeriesCancelResponse(BaseModel):
    series_id: UUID
    cancelled_count: int
