"""Patients router - staff patient lookup and maintenance."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from clinic_api.core.deps import get_db, require_admin_key
from clinic_api.schemas.patient import PatientListResponse, PatientRead, PatientUpdate
from clinic_api.services import patient_service
from clinic_api.utils.pagination import PaginationParams, get_pagination

router = APIRouter(dependencies=[Depends(require_admin_key)])


def _patient_to_read(patient) -> PatientRead:
    return PatientRead.model_validate(patient, from_attributes=True)


@router.get("/patients", response_model=PatientListResponse)
def list_patients(
    q: str | None = Query(None, max_length=100, description="Search name, phone or email"),
    include_inactive: bool = Query(False),
    pagination: PaginationParams = Depends(get_pagination),
    db: Session = Depends(get_db),
):
    patients, total = patient_service.list_patients(
        db,
        q=q,
        include_inactive=include_inactive,
        limit=pagination.limit,
        offset=pagination.offset,
    )
    return PatientListResponse(
        items=[_patient_to_read(p) for p in patients],
        **pagination.page_fields(total),
    )


@router.get("/patients/search", response_model=list[PatientRead])
def search_patients(
    name: str = Query(..., min_length=1, max_length=100),
    db: Session = Depends(get_db),
):
    """Active patients by name, for pickers."""
    return [_patient_to_read(p) for p in patient_service.search_patients(db, name)]


@router.get("/patients/{patient_id}", response_model=PatientRead)
def get_patient(
    patient_id: UUID,
    db: Session = Depends(get_db),
):
    return _patient_to_read(patient_service.get_patient(db, patient_id))


@router.put("/patients/{patient_id}", response_model=PatientRead)
def update_patient(
    patient_id: UUID,
    data: PatientUpdate,
    db: Session = Depends(get_db),
):
    patient = patient_service.update_patient(
        db,
        patient_id,
        full_name=data.full_name,
        phone=data.phone,
        email=data.email,
    )
    return _patient_to_read(patient)


@router.delete("/patients/{patient_id}", status_code=204)
def deactivate_patient(
    patient_id: UUID,
    db: Session = Depends(get_db),
):
    """Soft delete; appointments are kept."""
    patient_service.deactivate_patient(db, patient_id)
