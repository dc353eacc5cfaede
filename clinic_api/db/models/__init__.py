"""SQLAlchemy ORM models."""

from clinic_api.db.models.patients import Patient
from clinic_api.db.models.payments import Payment
from clinic_api.db.models.scheduling import (
    Appointment,
    AvailabilityWindow,
    Block,
    RecurringSeries,
    ScheduleDayLock,
    SessionType,
)

__all__ = [
    "Appointment",
    "AvailabilityWindow",
    "Block",
    "Patient",
    "Payment",
    "RecurringSeries",
    "ScheduleDayLock",
    "SessionType",
]
