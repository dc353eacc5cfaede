"""Patient service - lookup for bookings and staff patient management."""

import logging
import re
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from clinic_api.core.exceptions import NotFound, ValidationError
from clinic_api.db.models import Patient

logger = logging.getLogger(__name__)


def normalize_phone(phone: str) -> str:
    """Keep digits and a leading '+'."""
    phone = phone.strip()
    digits = re.sub(r"\D", "", phone)
    if len(digits) < 8:
        raise ValidationError("Phone number is too short")
    return f"+{digits}" if phone.startswith("+") else digits


def get_patient(db: Session, patient_id: UUID) -> Patient:
    patient = db.query(Patient).filter(Patient.id == patient_id).first()
    if not patient:
        raise NotFound("Patient not found")
    return patient


def find_or_create_patient(
    db: Session,
    full_name: str,
    phone: str,
    email: str | None = None,
) -> Patient:
    """
    Find a patient by phone, or stage a new one.

    Flushes but does not commit; the caller's booking transaction owns it.
    Name and email of an existing patient are refreshed from the latest booking.
    """
    phone = normalize_phone(phone)
    patient = db.query(Patient).filter(Patient.phone == phone).first()
    if patient:
        patient.full_name = full_name
        if email:
            patient.email = email
        patient.is_active = True
    else:
        patient = Patient(full_name=full_name, phone=phone, email=email)
        db.add(patient)
    db.flush()
    return patient


def resolve_patient(
    db: Session,
    patient_id: UUID | None = None,
    full_name: str | None = None,
    phone: str | None = None,
    email: str | None = None,
) -> Patient:
    """Existing patient by id, else find-or-create from name and phone."""
    if patient_id is not None:
        return get_patient(db, patient_id)
    if not (full_name and phone):
        raise ValidationError("Provide patient_id or patient name and phone")
    return find_or_create_patient(db, full_name=full_name, phone=phone, email=email)


# =============================================================================
# Staff management
# =============================================================================

def list_patients(
    db: Session,
    q: str | None = None,
    include_inactive: bool = False,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Patient], int]:
    """
    List patients by name with optional search on name, phone or email.

    Returns (items, total_count).
    """
    query = db.query(Patient)

    if not include_inactive:
        query = query.filter(Patient.is_active.is_(True))

    if q:
        search_term = f"%{q.strip()}%"
        query = query.filter(
            or_(
                Patient.full_name.ilike(search_term),
                Patient.phone.ilike(search_term),
                Patient.email.ilike(search_term),
            )
        )

    total = query.count()
    patients = query.order_by(Patient.full_name, Patient.id).offset(offset).limit(limit).all()
    return patients, total


def search_patients(db: Session, name: str) -> list[Patient]:
    """Active patients whose name contains `name`, case-insensitive."""
    return (
        db.query(Patient)
        .filter(
            Patient.is_active.is_(True),
            Patient.full_name.ilike(f"%{name.strip()}%"),
        )
        .order_by(Patient.full_name)
        .all()
    )


def update_patient(
    db: Session,
    patient_id: UUID,
    full_name: str | None = None,
    phone: str | None = None,
    email: str | None = None,
) -> Patient:
    """Update contact details; a phone already used by another patient is rejected."""
    patient = get_patient(db, patient_id)
    if full_name is not None:
        patient.full_name = full_name
    if phone is not None:
        phone = normalize_phone(phone)
        taken = db.query(Patient).filter(Patient.phone == phone, Patient.id != patient.id).first()
        if taken:
            raise ValidationError("Another patient already uses this phone")
        patient.phone = phone
    if email is not None:
        patient.email = email

    db.commit()
    db.refresh(patient)
    logger.info("Updated patient %s", patient.id)
    return patient


def deactivate_patient(db: Session, patient_id: UUID) -> Patient:
    """Soft delete; existing appointments and series are left as they are."""
    patient = get_patient(db, patient_id)
    patient.is_active = False
    db.commit()
    db.refresh(patient)
    logger.info("Deactivated patient %s", patient.id)
    return patient
