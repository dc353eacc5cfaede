"""Slot generator - bookable fixed-length slots for a date.

Candidates are walked from each active window in steps of the session
duration, merged across windows, then filtered against blocks and occupying
appointments. Of two free candidates that overlap, only the earlier is kept.
The booking horizon is caller policy, passed in as an explicit
[min_start, max_start) filter.
"""

from datetime import date, datetime, time, timedelta
from typing import NamedTuple
from uuid import UUID

from sqlalchemy.orm import Session

from clinic_api.core.clock import resolve_now
from clinic_api.core.config import settings
from clinic_api.core.exceptions import ValidationError
from clinic_api.db.enums import DayOfWeek
from clinic_api.db.models import SessionType
from clinic_api.services import availability_service, conflict_service


# =============================================================================
# Types
# =============================================================================

class Slot(NamedTuple):
    """Bookable slot; always available when returned by the generator."""
    time: time
    start: datetime
    end: datetime
    available: bool = True


class DaySlots(NamedTuple):
    """Slots for one day of a range query."""
    date: date
    slots: list[Slot]


# =============================================================================
# Generation
# =============================================================================

def _candidate_starts(
    slot_date: date,
    windows: list,
    duration: timedelta,
) -> dict[datetime, datetime]:
    """Start -> end for every window-aligned candidate, de-duplicated by start."""
    candidates: dict[datetime, datetime] = {}
    for window in windows:
        current = datetime.combine(slot_date, window.start_time)
        window_end = datetime.combine(slot_date, window.end_time)
        while current + duration <= window_end:
            candidates.setdefault(current, current + duration)
            current += duration
    return candidates


def generate_slots(
    db: Session,
    slot_date: date,
    session_type: SessionType,
    *,
    duration_minutes: int | None = None,
    min_start: datetime | None = None,
    max_start: datetime | None = None,
    exclude_appointment_id: UUID | None = None,
) -> list[Slot]:
    """
    Produce chronologically ordered, non-duplicated free slots for a date.

    `duration_minutes` overrides the session type's duration.
    `exclude_appointment_id` ignores one appointment's occupancy.
    """
    minutes = duration_minutes if duration_minutes is not None else session_type.duration_minutes
    if minutes <= 0:
        raise ValidationError("Session duration must be positive")
    duration = timedelta(minutes=minutes)

    windows = availability_service.windows_for(db, DayOfWeek.from_date(slot_date))
    candidates = _candidate_starts(slot_date, windows, duration)
    if not candidates:
        return []

    span_start = min(candidates)
    span_end = max(candidates.values())
    blocks = availability_service.blocks_overlapping(db, span_start, span_end)
    appointments = conflict_service.occupying_appointments(
        db, span_start, span_end, exclude_appointment_id=exclude_appointment_id
    )

    slots: list[Slot] = []
    last_end: datetime | None = None
    for start in sorted(candidates):
        end = candidates[start]
        if min_start is not None and start < min_start:
            continue
        if max_start is not None and start >= max_start:
            continue
        if any(
            conflict_service.overlaps(start, end, b.start_datetime, b.end_datetime)
            for b in blocks
        ):
            continue
        if any(
            conflict_service.overlaps(start, end, a.start_datetime, a.end_datetime)
            for a in appointments
        ):
            continue
        # Overlapping windows can yield staggered candidates; keep the earliest
        if last_end is not None and start < last_end:
            continue
        slots.append(Slot(time=start.time(), start=start, end=end))
        last_end = end
    return slots


# =============================================================================
# Public booking policy
# =============================================================================

def booking_window(now: datetime) -> tuple[datetime, datetime]:
    """[earliest, latest) slot start a patient may book at `now`."""
    return (
        now + timedelta(hours=settings.MIN_ADVANCE_HOURS),
        now + timedelta(days=settings.BOOKING_HORIZON_DAYS),
    )


def get_available_slots(
    db: Session,
    slot_date: date,
    session_type: SessionType,
    now: datetime | None = None,
    exclude_appointment_id: UUID | None = None,
    duration_minutes: int | None = None,
) -> list[Slot]:
    """Slots a patient can book for `slot_date` under the public booking window."""
    if not session_type.is_active:
        return []
    min_start, max_start = booking_window(resolve_now(now))
    if slot_date < min_start.date() or slot_date > max_start.date():
        return []
    return generate_slots(
        db,
        slot_date,
        session_type,
        duration_minutes=duration_minutes,
        min_start=min_start,
        max_start=max_start,
        exclude_appointment_id=exclude_appointment_id,
    )


def get_available_slots_for_range(
    db: Session,
    start_date: date,
    end_date: date,
    session_type: SessionType,
    now: datetime | None = None,
) -> list[DaySlots]:
    """Per-day bookable slots for [start_date, end_date]; empty days are omitted."""
    if end_date < start_date:
        raise ValidationError("end_date must not be before start_date")
    span_days = (end_date - start_date).days + 1
    if span_days > settings.MAX_SLOT_RANGE_DAYS:
        raise ValidationError(
            f"Date range too large (max {settings.MAX_SLOT_RANGE_DAYS} days)"
        )

    now = resolve_now(now)
    result: list[DaySlots] = []
    for offset in range(span_days):
        current = start_date + timedelta(days=offset)
        slots = get_available_slots(db, current, session_type, now=now)
        if slots:
            result.append(DaySlots(date=current, slots=slots))
    return result
