"""Recurring series router - staff endpoints for weekly/biweekly series."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from clinic_api.core.clock import Clock
from clinic_api.core.deps import get_clock, get_db, require_admin_key
from clinic_api.routers.appointments import appointment_to_list_item, appointment_to_read
from clinic_api.schemas.appointment import AppointmentCancel, AppointmentRead
from clinic_api.schemas.series import (
    SeriesCancelResponse,
    SeriesCheckResponse,
    SeriesConflictItem,
    SeriesCreate,
    SeriesDetailRead,
    SeriesRead,
)
from clinic_api.services import recurrence_service

router = APIRouter(dependencies=[Depends(require_admin_key)])


# =============================================================================
# Helper Functions
# =============================================================================

def _rule_from(data: SeriesCreate) -> recurrence_service.SeriesRule:
    return recurrence_service.SeriesRule(
        day_of_week=data.day_of_week,
        start_time=data.start_time,
        frequency=data.frequency,
        start_date=data.start_date,
        end_date=data.end_date,
    )


def _series_fields(series) -> dict:
    return dict(
        id=series.id,
        patient_id=series.patient_id,
        patient_name=series.patient.full_name,
        session_type_id=series.session_type_id,
        session_type_name=series.session_type.name,
        day_of_week=series.day_of_week,
        start_time=series.start_time,
        frequency=series.frequency,
        start_date=series.start_date,
        end_date=series.end_date,
        is_active=series.is_active,
        occurrence_count=len(series.appointments),
        created_at=series.created_at,
    )


def _series_to_read(series) -> SeriesRead:
    return SeriesRead(**_series_fields(series))


def _series_to_detail(series) -> SeriesDetailRead:
    return SeriesDetailRead(
        **_series_fields(series),
        appointments=[appointment_to_list_item(a) for a in series.appointments],
    )


# =============================================================================
# Series
# =============================================================================

@router.post("/series/check", response_model=SeriesCheckResponse)
def check_series(
    data: SeriesCreate,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Dry run: list every occurrence and which of them conflict. Writes nothing."""
    report = recurrence_service.check_series_conflicts(
        db, _rule_from(data), data.session_type_id, now=clock.now()
    )
    return SeriesCheckResponse(
        occurrences=report.occurrences,
        has_conflicts=report.has_conflicts,
        conflicting_dates=report.conflicting_dates,
        conflicts=[
            SeriesConflictItem(
                date=c.date,
                start_datetime=c.start,
                end_datetime=c.end,
                reason=c.conflict.kind,
            )
            for c in report.conflicts
        ],
    )


@router.post("/series", response_model=SeriesDetailRead, status_code=201)
def create_series(
    data: SeriesCreate,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """
    Create a series and all of its occurrences.

    409 with `conflicting_dates` when any occurrence is taken; nothing is stored then.
    """
    series = recurrence_service.create_series(
        db,
        patient_id=data.patient_id,
        session_type_id=data.session_type_id,
        rule=_rule_from(data),
        now=clock.now(),
        patient_name=data.patient_name,
        patient_phone=data.patient_phone,
        patient_email=data.patient_email,
    )
    return _series_to_detail(series)


@router.get("/series", response_model=list[SeriesRead])
def list_series(db: Session = Depends(get_db)):
    """Active series."""
    return [_series_to_read(s) for s in recurrence_service.list_active_series(db)]


@router.get("/series/{series_id}", response_model=SeriesDetailRead)
def get_series(
    series_id: UUID,
    db: Session = Depends(get_db),
):
    return _series_to_detail(recurrence_service.get_series(db, series_id))


@router.delete("/series/{series_id}", response_model=SeriesCancelResponse)
def delete_series(
    series_id: UUID,
    reason: str | None = Query(None, max_length=500),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Deactivate a series; only future scheduled/confirmed occurrences are cancelled."""
    cancelled = recurrence_service.delete_series(db, series_id, reason=reason, now=clock.now())
    return SeriesCancelResponse(series_id=series_id, cancelled_count=cancelled)


@router.post("/series/occurrences/{appointment_id}/cancel", response_model=AppointmentRead)
def cancel_occurrence(
    appointment_id: UUID,
    data: AppointmentCancel,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Cancel a single occurrence, keeping the rest of the series."""
    appt = recurrence_service.cancel_occurrence(
        db, appointment_id, reason=data.reason, now=clock.now()
    )
    return appointment_to_read(appt)
