"""Conflict checker - overlap detection against appointments and blocks.

A candidate range conflicts when the half-open interval [start, end) overlaps
an occupying appointment (scheduled/confirmed) or any block. Every check here
is read-only, so callers can use it as a dry run before a batch commit.
"""

from datetime import date, datetime
from typing import NamedTuple, Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from clinic_api.core.exceptions import ValidationError
from clinic_api.db.enums import OCCUPYING_STATUSES
from clinic_api.db.models import Appointment, Block
from clinic_api.services import availability_service


# =============================================================================
# Types
# =============================================================================

class Conflict(NamedTuple):
    """What a candidate range collides with."""
    kind: str  # "appointment" | "block"
    start: datetime
    end: datetime
    reference_id: UUID


class RangeConflict(NamedTuple):
    """Conflict for one entry of a batch check."""
    index: int
    start: datetime
    end: datetime
    conflict: Conflict

    @property
    def date(self) -> date:
        return self.start.date()


# =============================================================================
# Helpers
# =============================================================================

def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open interval overlap test."""
    return a_start < b_end and b_start < a_end


def validate_range(start: datetime, end: datetime) -> None:
    if end <= start:
        raise ValidationError(
            f"Invalid range: end {end.isoformat()} is not after start {start.isoformat()}"
        )


def occupying_appointments(
    db: Session,
    start: datetime,
    end: datetime,
    exclude_appointment_id: UUID | None = None,
) -> list[Appointment]:
    """Scheduled/confirmed appointments overlapping [start, end), ordered by start."""
    query = db.query(Appointment).filter(
        Appointment.start_datetime < end,
        Appointment.end_datetime > start,
        Appointment.status.in_([s.value for s in OCCUPYING_STATUSES]),
    )
    if exclude_appointment_id:
        query = query.filter(Appointment.id != exclude_appointment_id)
    return query.order_by(Appointment.start_datetime).all()


def _first_conflict(
    start: datetime,
    end: datetime,
    appointments: Sequence[Appointment],
    blocks: Sequence[Block],
) -> Conflict | None:
    for appt in appointments:
        if overlaps(start, end, appt.start_datetime, appt.end_datetime):
            return Conflict("appointment", appt.start_datetime, appt.end_datetime, appt.id)
    for block in blocks:
        if overlaps(start, end, block.start_datetime, block.end_datetime):
            return Conflict("block", block.start_datetime, block.end_datetime, block.id)
    return None


# =============================================================================
# Checks
# =============================================================================

def find_conflict(
    db: Session,
    start: datetime,
    end: datetime,
    exclude_appointment_id: UUID | None = None,
) -> Conflict | None:
    """Return the first conflict for [start, end), appointments before blocks."""
    validate_range(start, end)
    appointments = occupying_appointments(db, start, end, exclude_appointment_id)
    blocks = availability_service.blocks_overlapping(db, start, end)
    return _first_conflict(start, end, appointments, blocks)


def has_conflict(
    db: Session,
    start: datetime,
    end: datetime,
    exclude_appointment_id: UUID | None = None,
) -> bool:
    return find_conflict(db, start, end, exclude_appointment_id) is not None


def check_many(
    db: Session,
    ranges: Sequence[tuple[datetime, datetime]],
    exclude_appointment_id: UUID | None = None,
) -> list[RangeConflict]:
    """
    Batch dry run over candidate ranges.

    Loads appointments and blocks for the overall span once and returns one
    entry per conflicting candidate, in input order.
    """
    if not ranges:
        return []
    for start, end in ranges:
        validate_range(start, end)

    span_start = min(start for start, _ in ranges)
    span_end = max(end for _, end in ranges)
    appointments = occupying_appointments(db, span_start, span_end, exclude_appointment_id)
    blocks = availability_service.blocks_overlapping(db, span_start, span_end)

    conflicts: list[RangeConflict] = []
    for index, (start, end) in enumerate(ranges):
        conflict = _first_conflict(start, end, appointments, blocks)
        if conflict:
            conflicts.append(RangeConflict(index, start, end, conflict))
    return conflicts
