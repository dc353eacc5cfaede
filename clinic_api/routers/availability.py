"""Availability router - staff management of weekly windows and blocks."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from clinic_api.core.deps import get_db, require_admin_key
from clinic_api.schemas.availability import (
    AvailabilityWindowCreate,
    AvailabilityWindowRead,
    AvailabilityWindowUpdate,
    BlockCreate,
    BlockRead,
    BlockUpdate,
)
from clinic_api.services import availability_service

router = APIRouter(dependencies=[Depends(require_admin_key)])


def _window_to_read(window) -> AvailabilityWindowRead:
    return AvailabilityWindowRead(
        id=window.id,
        day_of_week=window.day_of_week,
        start_time=window.start_time,
        end_time=window.end_time,
        is_active=window.is_active,
        created_at=window.created_at,
        updated_at=window.updated_at,
    )


def _block_to_read(block) -> BlockRead:
    return BlockRead(
        id=block.id,
        start_datetime=block.start_datetime,
        end_datetime=block.end_datetime,
        block_type=block.block_type,
        reason=block.reason,
        created_at=block.created_at,
    )


# =============================================================================
# Windows
# =============================================================================

@router.get("/availability", response_model=list[AvailabilityWindowRead])
def list_windows(
    active_only: bool = Query(False),
    db: Session = Depends(get_db),
):
    """All weekly windows, Monday first."""
    return [_window_to_read(w) for w in availability_service.list_windows(db, active_only)]


@router.post("/availability", response_model=AvailabilityWindowRead, status_code=201)
def create_window(
    data: AvailabilityWindowCreate,
    db: Session = Depends(get_db),
):
    window = availability_service.create_window(
        db,
        day_of_week=data.day_of_week,
        start_time=data.start_time,
        end_time=data.end_time,
        is_active=data.is_active,
    )
    return _window_to_read(window)


@router.patch("/availability/{window_id}", response_model=AvailabilityWindowRead)
def update_window(
    window_id: UUID,
    data: AvailabilityWindowUpdate,
    db: Session = Depends(get_db),
):
    window = availability_service.update_window(
        db,
        window_id,
        day_of_week=data.day_of_week,
        start_time=data.start_time,
        end_time=data.end_time,
        is_active=data.is_active,
    )
    return _window_to_read(window)


@router.delete("/availability/{window_id}", status_code=204)
def delete_window(
    window_id: UUID,
    db: Session = Depends(get_db),
):
    availability_service.delete_window(db, window_id)


# =============================================================================
# Blocks
# =============================================================================

@router.get("/blocks", response_model=list[BlockRead])
def list_blocks(
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    db: Session = Depends(get_db),
):
    """Blocks touching the given days, earliest first."""
    blocks = availability_service.list_blocks(db, date_from=date_from, date_to=date_to)
    return [_block_to_read(b) for b in blocks]


@router.post("/blocks", response_model=BlockRead, status_code=201)
def create_block(
    data: BlockCreate,
    db: Session = Depends(get_db),
):
    """
    Create a block.

    Fails with 409 when the range covers a scheduled or confirmed appointment.
    """
    block = availability_service.create_block(
        db,
        start_datetime=data.start_datetime,
        end_datetime=data.end_datetime,
        block_type=data.block_type,
        reason=data.reason,
    )
    return _block_to_read(block)


@router.patch("/blocks/{block_id}", response_model=BlockRead)
def update_block(
    block_id: UUID,
    data: BlockUpdate,
    db: Session = Depends(get_db),
):
    block = availability_service.update_block(
        db,
        block_id,
        start_datetime=data.start_datetime,
        end_datetime=data.end_datetime,
        block_type=data.block_type,
        reason=data.reason,
    )
    return _block_to_read(block)


@router.delete("/blocks/{block_id}", status_code=204)
def delete_block(
    block_id: UUID,
    db: Session = Depends(get_db),
):
    availability_service.delete_block(db, block_id)
