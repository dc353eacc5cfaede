"""Scheduling enums."""

from datetime import date
from enum import Enum


class DayOfWeek(str, Enum):
    """Day of week, ordered like `date.weekday()` (Monday=0)."""

    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @property
    def weekday(self) -> int:
        return list(DayOfWeek).index(self)

    @classmethod
    def from_date(cls, value: date) -> "DayOfWeek":
        return list(cls)[value.weekday()]


class BlockType(str, Enum):
    """Reason a stretch of time is unbookable."""

    VACATION = "vacation"
    HOLIDAY = "holiday"
    BREAK = "break"


class AppointmentStatus(str, Enum):
    """
    Appointment lifecycle status.

    Flow: scheduled/confirmed → attended
                         ↘ cancelled / cancelled_late
                         ↘ no_show
    """

    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"  # Cancelled ahead of the late-cancellation window
    CANCELLED_LATE = "cancelled_late"  # Cancelled inside the window
    ATTENDED = "attended"
    NO_SHOW = "no_show"

    @property
    def is_occupying(self) -> bool:
        return self in OCCUPYING_STATUSES


OCCUPYING_STATUSES = frozenset({AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED})
CANCELLED_STATUSES = frozenset({AppointmentStatus.CANCELLED, AppointmentStatus.CANCELLED_LATE})

# Statuses staff may set directly
ADMIN_SETTABLE_STATUSES = frozenset({
    AppointmentStatus.CONFIRMED,
    AppointmentStatus.ATTENDED,
    AppointmentStatus.NO_SHOW,
    AppointmentStatus.CANCELLED,
    AppointmentStatus.CANCELLED_LATE,
})


class CancelledBy(str, Enum):
    PATIENT = "patient"
    ADMIN = "admin"


class RecurrenceFrequency(str, Enum):
    """Repeat interval of a recurring series."""

    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"

    @property
    def interval_days(self) -> int:
        return 7 if self is RecurrenceFrequency.WEEKLY else 14


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PAID = "paid"
    REFUNDED = "refunded"
    WAIVED = "waived"


# Default statuses
DEFAULT_APPOINTMENT_STATUS = AppointmentStatus.CONFIRMED
DEFAULT_PAYMENT_STATUS = PaymentStatus.UNPAID
