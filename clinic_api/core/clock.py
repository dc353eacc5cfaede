"""Wall-clock source for scheduling decisions.

Scheduling times are naive clinic-local datetimes, so "now" is read in the
clinic timezone and stripped of tzinfo before it is compared with stored values.
"""

from datetime import datetime, timedelta
from typing import Protocol
from zoneinfo import ZoneInfo

from clinic_api.core.config import settings


class Clock(Protocol):
    def now(self) -> datetime: ...


def _get_timezone(name: str | None) -> ZoneInfo:
    """Get a ZoneInfo timezone with safe fallback."""
    if not name:
        return ZoneInfo("UTC")
    try:
        return ZoneInfo(name)
    except Exception:
        return ZoneInfo("UTC")


class SystemClock:
    """Reads the real time in the clinic timezone."""

    def __init__(self, timezone_name: str | None = None):
        self.tz = _get_timezone(timezone_name or settings.CLINIC_TIMEZONE)

    def now(self) -> datetime:
        return datetime.now(self.tz).replace(tzinfo=None, microsecond=0)


class FixedClock:
    """Clock pinned to a given instant. Used by tests and dry runs."""

    def __init__(self, current: datetime):
        self.current = current

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)


system_clock = SystemClock()


def to_clinic_time(value: datetime) -> datetime:
    """Convert an aware datetime to naive clinic-local time; naive values pass through."""
    if value.tzinfo is not None:
        return value.astimezone(system_clock.tz).replace(tzinfo=None)
    return value


def resolve_now(now: datetime | None) -> datetime:
    """Return `now` if given, otherwise the system clock reading."""
    if now is None:
        return system_clock.now()
    return to_clinic_time(now)
