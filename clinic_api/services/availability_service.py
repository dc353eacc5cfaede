"""Availability calendar - weekly open-hours windows and one-off blocks.

Read side feeds the slot generator and the conflict checker; write side is
staff-only CRUD.
"""

import logging
from datetime import date, datetime, time, timedelta
from uuid import UUID

from sqlalchemy.orm import Session

from clinic_api.core.exceptions import NotFound, SlotUnavailable, ValidationError
from clinic_api.db.enums import BlockType, DayOfWeek
from clinic_api.db.models import AvailabilityWindow, Block

logger = logging.getLogger(__name__)


# =============================================================================
# Read side
# =============================================================================

def windows_for(db: Session, day_of_week: DayOfWeek) -> list[AvailabilityWindow]:
    """Active windows for a weekday, ordered by start time."""
    return db.query(AvailabilityWindow).filter(
        AvailabilityWindow.day_of_week == DayOfWeek(day_of_week).value,
        AvailabilityWindow.is_active == True,  # noqa: E712
    ).order_by(AvailabilityWindow.start_time, AvailabilityWindow.end_time).all()


def blocks_overlapping(db: Session, start: datetime, end: datetime) -> list[Block]:
    """Blocks overlapping the half-open range [start, end), ordered by start."""
    return db.query(Block).filter(
        Block.start_datetime < end,
        Block.end_datetime > start,
    ).order_by(Block.start_datetime).all()


def is_within_window(db: Session, start: datetime, end: datetime) -> bool:
    """True when [start, end) sits fully inside one active window of that day."""
    if start.date() != end.date():
        return False
    windows = windows_for(db, DayOfWeek.from_date(start.date()))
    for window in windows:
        window_start = datetime.combine(start.date(), window.start_time)
        window_end = datetime.combine(start.date(), window.end_time)
        if window_start <= start and end <= window_end:
            return True
    return False


# =============================================================================
# Availability windows
# =============================================================================

def _validate_window_times(start_time: time, end_time: time) -> None:
    if start_time >= end_time:
        raise ValidationError("Window start_time must be before end_time")


def list_windows(db: Session, active_only: bool = False) -> list[AvailabilityWindow]:
    query = db.query(AvailabilityWindow)
    if active_only:
        query = query.filter(AvailabilityWindow.is_active == True)  # noqa: E712
    windows = query.order_by(AvailabilityWindow.start_time).all()
    return sorted(windows, key=lambda w: (DayOfWeek(w.day_of_week).weekday, w.start_time))


def get_window(db: Session, window_id: UUID) -> AvailabilityWindow:
    window = db.query(AvailabilityWindow).filter(AvailabilityWindow.id == window_id).first()
    if not window:
        raise NotFound("Availability window not found")
    return window


def create_window(
    db: Session,
    day_of_week: DayOfWeek,
    start_time: time,
    end_time: time,
    is_active: bool = True,
) -> AvailabilityWindow:
    """Create a weekly availability window."""
    _validate_window_times(start_time, end_time)
    window = AvailabilityWindow(
        day_of_week=DayOfWeek(day_of_week).value,
        start_time=start_time,
        end_time=end_time,
        is_active=is_active,
    )
    db.add(window)
    db.commit()
    db.refresh(window)
    logger.info("Created availability window %s (%s)", window.id, window.day_of_week)
    return window


def update_window(
    db: Session,
    window_id: UUID,
    day_of_week: DayOfWeek | None = None,
    start_time: time | None = None,
    end_time: time | None = None,
    is_active: bool | None = None,
) -> AvailabilityWindow:
    """Update an availability window. Existing appointments are not touched."""
    window = get_window(db, window_id)
    _validate_window_times(
        start_time if start_time is not None else window.start_time,
        end_time if end_time is not None else window.end_time,
    )
    if day_of_week is not None:
        window.day_of_week = DayOfWeek(day_of_week).value
    if start_time is not None:
        window.start_time = start_time
    if end_time is not None:
        window.end_time = end_time
    if is_active is not None:
        window.is_active = is_active

    db.commit()
    db.refresh(window)
    return window


def delete_window(db: Session, window_id: UUID) -> None:
    window = get_window(db, window_id)
    db.delete(window)
    db.commit()
    logger.info("Deleted availability window %s", window_id)


# =============================================================================
# Blocks
# =============================================================================

def list_blocks(
    db: Session,
    date_from: date | None = None,
    date_to: date | None = None,
) -> list[Block]:
    """Blocks touching [date_from, date_to] (inclusive days), ordered by start."""
    query = db.query(Block)
    if date_from:
        query = query.filter(Block.end_datetime > datetime.combine(date_from, time.min))
    if date_to:
        query = query.filter(
            Block.start_datetime < datetime.combine(date_to + timedelta(days=1), time.min)
        )
    return query.order_by(Block.start_datetime).all()


def get_block(db: Session, block_id: UUID) -> Block:
    block = db.query(Block).filter(Block.id == block_id).first()
    if not block:
        raise NotFound("Block not found")
    return block


def _ensure_no_occupying_appointments(
    db: Session,
    start: datetime,
    end: datetime,
) -> None:
    """Lock the affected days, then refuse ranges covering live appointments."""
    from clinic_api.services import conflict_service, schedule_lock

    schedule_lock.lock_range(db, start, end)
    occupied = conflict_service.occupying_appointments(db, start, end)
    if occupied:
        first = occupied[0]
        raise SlotUnavailable(
            f"Block overlaps {len(occupied)} existing appointment(s); cancel them first",
            start=first.start_datetime,
            end=first.end_datetime,
        )


def create_block(
    db: Session,
    start_datetime: datetime,
    end_datetime: datetime,
    block_type: BlockType,
    reason: str | None = None,
) -> Block:
    """Create a block. Fails if it would cover an occupying appointment."""
    if start_datetime >= end_datetime:
        raise ValidationError("Block start must be before end")

    try:
        _ensure_no_occupying_appointments(db, start_datetime, end_datetime)
        block = Block(
            start_datetime=start_datetime,
            end_datetime=end_datetime,
            block_type=BlockType(block_type).value,
            reason=reason,
        )
        db.add(block)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(block)
    logger.info("Created %s block %s", block.block_type, block.id)
    return block


def update_block(
    db: Session,
    block_id: UUID,
    start_datetime: datetime | None = None,
    end_datetime: datetime | None = None,
    block_type: BlockType | None = None,
    reason: str | None = None,
) -> Block:
    """Update a block; a widened range is re-checked against appointments."""
    block = get_block(db, block_id)
    new_start = start_datetime if start_datetime is not None else block.start_datetime
    new_end = end_datetime if end_datetime is not None else block.end_datetime
    if new_start >= new_end:
        raise ValidationError("Block start must be before end")

    try:
        if new_start != block.start_datetime or new_end != block.end_datetime:
            _ensure_no_occupying_appointments(db, new_start, new_end)
        block.start_datetime = new_start
        block.end_datetime = new_end
        if block_type is not None:
            block.block_type = BlockType(block_type).value
        if reason is not None:
            block.reason = reason
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(block)
    return block


def delete_block(db: Session, block_id: UUID) -> None:
    block = get_block(db, block_id)
    db.delete(block)
    db.commit()
    logger.info("Deleted block %s", block_id)
