"""Session types router - staff CRUD for bookable session templates."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from clinic_api.core.deps import get_db, require_admin_key
from clinic_api.schemas.session_type import (
    SessionTypeCreate,
    SessionTypeRead,
    SessionTypeUpdate,
)
from clinic_api.services import session_type_service

router = APIRouter(dependencies=[Depends(require_admin_key)])


def _session_type_to_read(session_type) -> SessionTypeRead:
    return SessionTypeRead.model_validate(session_type, from_attributes=True)


@router.get("/session-types", response_model=list[SessionTypeRead])
def list_session_types(
    active_only: bool = Query(False),
    db: Session = Depends(get_db),
):
    types = session_type_service.list_session_types(db, active_only=active_only)
    return [_session_type_to_read(t) for t in types]


@router.post("/session-types", response_model=SessionTypeRead, status_code=201)
def create_session_type(
    data: SessionTypeCreate,
    db: Session = Depends(get_db),
):
    session_type = session_type_service.create_session_type(db, **data.model_dump())
    return _session_type_to_read(session_type)


@router.get("/session-types/{session_type_id}", response_model=SessionTypeRead)
def get_session_type(
    session_type_id: UUID,
    db: Session = Depends(get_db),
):
    return _session_type_to_read(session_type_service.get_session_type(db, session_type_id))


@router.patch("/session-types/{session_type_id}", response_model=SessionTypeRead)
def update_session_type(
    session_type_id: UUID,
    data: SessionTypeUpdate,
    db: Session = Depends(get_db),
):
    """Update a session type. Existing appointments keep their booked duration."""
    session_type = session_type_service.update_session_type(
        db, session_type_id, **data.model_dump(exclude_unset=True)
    )
    return _session_type_to_read(session_type)


@router.delete("/session-types/{session_type_id}", response_model=SessionTypeRead)
def deactivate_session_type(
    session_type_id: UUID,
    db: Session = Depends(get_db),
):
    """Soft delete: the type is hidden from booking but history is kept."""
    session_type = session_type_service.deactivate_session_type(db, session_type_id)
    return _session_type_to_read(session_type)
