"""Enum definitions for application constants."""

from clinic_api.db.enums.scheduling import (
    ADMIN_SETTABLE_STATUSES,
    CANCELLED_STATUSES,
    DEFAULT_APPOINTMENT_STATUS,
    DEFAULT_PAYMENT_STATUS,
    OCCUPYING_STATUSES,
    AppointmentStatus,
    BlockType,
    CancelledBy,
    DayOfWeek,
    PaymentStatus,
    RecurrenceFrequency,
)

__all__ = [
    "ADMIN_SETTABLE_STATUSES",
    "CANCELLED_STATUSES",
    "DEFAULT_APPOINTMENT_STATUS",
    "DEFAULT_PAYMENT_STATUS",
    "OCCUPYING_STATUSES",
    "AppointmentStatus",
    "BlockType",
    "CancelledBy",
    "DayOfWeek",
    "PaymentStatus",
    "RecurrenceFrequency",
]
