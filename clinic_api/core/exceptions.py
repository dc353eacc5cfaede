"""Typed scheduling failures.

Services raise these; the API layer renders them through a single exception
handler so store-level errors never reach clients.
"""

from datetime import date, datetime
from typing import Any


class SchedulingError(Exception):
    """Base exception for scheduling service errors."""

    status_code = 400
    code = "scheduling_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.message, "code": self.code}


class ValidationError(SchedulingError):
    """Malformed input (end before start, inactive session type, ...)."""

    status_code = 422
    code = "validation_error"


class NotFound(SchedulingError):
    """Token or id does not resolve."""

    status_code = 404
    code = "not_found"


class SlotUnavailable(SchedulingError):
    """Requested range conflicts with an appointment or block."""

    status_code = 409
    code = "slot_unavailable"

    def __init__(
        self,
        message: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ):
        super().__init__(message)
        self.start = start
        self.end = end

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.start is not None and self.end is not None:
            data["conflict"] = {
                "start": self.start.isoformat(),
                "end": self.end.isoformat(),
            }
        return data


class AlreadyTerminal(SchedulingError):
    """Appointment is cancelled, attended or no-show."""

    status_code = 409
    code = "already_terminal"

    def __init__(self, message: str, status: str | None = None):
        super().__init__(message)
        self.status = status

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.status:
            data["status"] = self.status
        return data


class SeriesConflict(SchedulingError):
    """Recurring series rejected; lists every conflicting occurrence date."""

    status_code = 409
    code = "series_conflict"

    def __init__(self, message: str, conflicting_dates: list[date]):
        super().__init__(message)
        self.conflicting_dates = sorted(conflicting_dates)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["conflicting_dates"] = [d.isoformat() for d in self.conflicting_dates]
        return data
