"""Session type service - bookable session templates."""

import logging
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from clinic_api.core.exceptions import NotFound, ValidationError
from clinic_api.db.models import SessionType

logger = logging.getLogger(__name__)


def _validate_duration(duration_minutes: int) -> None:
    if duration_minutes <= 0:
        raise ValidationError("duration_minutes must be positive")


def create_session_type(
    db: Session,
    name: str,
    duration_minutes: int = 50,
    price: Decimal = Decimal("0"),
    description: str | None = None,
    display_order: int = 0,
    is_active: bool = True,
) -> SessionType:
    """Create a new session type."""
    _validate_duration(duration_minutes)
    session_type = SessionType(
        name=name,
        description=description,
        duration_minutes=duration_minutes,
        price=price,
        display_order=display_order,
        is_active=is_active,
    )
    db.add(session_type)
    db.commit()
    db.refresh(session_type)
    logger.info("Created session type %s", session_type.id)
    return session_type


def update_session_type(
    db: Session,
    session_type_id: UUID,
    name: str | None = None,
    description: str | None = None,
    duration_minutes: int | None = None,
    price: Decimal | None = None,
    display_order: int | None = None,
    is_active: bool | None = None,
) -> SessionType:
    """
    Update a session type.

    Changing the duration does not touch existing appointments; they keep the
    duration they were booked with until rescheduled.
    """
    session_type = get_session_type(db, session_type_id)
    if name is not None:
        session_type.name = name
    if description is not None:
        session_type.description = description
    if duration_minutes is not None:
        _validate_duration(duration_minutes)
        session_type.duration_minutes = duration_minutes
    if price is not None:
        session_type.price = price
    if display_order is not None:
        session_type.display_order = display_order
    if is_active is not None:
        session_type.is_active = is_active

    db.commit()
    db.refresh(session_type)
    return session_type


def deactivate_session_type(db: Session, session_type_id: UUID) -> SessionType:
    """Soft delete: hide from booking, keep history."""
    return update_session_type(db, session_type_id, is_active=False)


def get_session_type(db: Session, session_type_id: UUID) -> SessionType:
    session_type = db.query(SessionType).filter(SessionType.id == session_type_id).first()
    if not session_type:
        raise NotFound("Session type not found")
    return session_type


def get_bookable_session_type(db: Session, session_type_id: UUID) -> SessionType:
    """Session type that exists and is active."""
    session_type = get_session_type(db, session_type_id)
    if not session_type.is_active:
        raise ValidationError("Session type is not active")
    return session_type


def list_session_types(db: Session, active_only: bool = True) -> list[SessionType]:
    query = db.query(SessionType)
    if active_only:
        query = query.filter(SessionType.is_active == True)  # noqa: E712
    return query.order_by(SessionType.display_order, SessionType.name).all()
