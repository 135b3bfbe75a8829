"""Patient registration, identity allocation and search.

Patient IDs are derived from the highest internal id (``P`` followed by at
least three digits).  Neither the contact-uniqueness check nor the ID
allocation is serialized against concurrent registrations; a collision is
caught by the table's unique constraints and reported as a conflict.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clinic_api.models import Patient
from clinic_api.schemas import PatientCreate, PatientUpdate
from clinic_api.services.errors import ConflictError

logger = logging.getLogger(__name__)

PATIENT_ID_PREFIX = "P"
PATIENT_ID_MIN_DIGITS = 3


def format_patient_id(sequence: int) -> str:
    """Render a sequence number as a human-readable patient ID."""

    return f"{PATIENT_ID_PREFIX}{sequence:0{PATIENT_ID_MIN_DIGITS}d}"


def next_patient_id(db: Session) -> str:
    last_id = db.scalar(select(func.max(Patient.id)))
    return format_patient_id((last_id or 0) + 1)


def _flush_or_conflict(db: Session, message: str) -> None:
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        logger.warning("patient unique constraint violated", extra={"error": str(exc.orig)})
        raise ConflictError(message) from exc


def _ensure_contact_available(db: Session, cnic: str | None, phone: str | None) -> None:
    conditions = []
    if cnic:
        conditions.append(Patient.cnic == cnic)
    if phone:
        conditions.append(Patient.phone == phone)
    if not conditions:
        return

    existing = db.execute(
        select(Patient).where(or_(*conditions)).order_by(Patient.id).limit(1)
    ).scalar_one_or_none()
    if existing is None:
        return

    if cnic and existing.cnic == cnic:
        logger.warning("duplicate patient cnic", extra={"existing_patient": existing.patient_id})
        raise ConflictError("Patient with this CNIC already exists")
    if phone and existing.phone == phone:
        logger.warning("duplicate patient phone", extra={"existing_patient": existing.patient_id})
        raise ConflictError("Patient with this phone number already exists")


def create_patient(db: Session, payload: PatientCreate) -> Patient:
    """Register a patient and allocate its patient ID."""

    _ensure_contact_available(db, payload.cnic, payload.phone)

    patient = Patient(
        patient_id=next_patient_id(db),
        cnic=payload.cnic,
        phone=payload.phone,
        name=payload.name,
    )
    db.add(patient)
    _flush_or_conflict(
        db, "Patient could not be created: unique constraint violated on patient ID, CNIC or phone"
    )
    logger.info(
        "registered patient",
        extra={"patient_pk": patient.id, "patient_code": patient.patient_id},
    )
    return patient


def get_patients(db: Session) -> list[Patient]:
    stmt = select(Patient).order_by(Patient.id)
    return list(db.execute(stmt).scalars().all())


def get_patient_by_id(db: Session, patient_pk: int) -> Patient | None:
    return db.get(Patient, patient_pk)


def search_patients(db: Session, query: str) -> list[Patient]:
    """Match patients whose ID, CNIC, phone or name contains ``query``.

    Matching is case-insensitive; ``%`` and ``_`` are taken literally.  A
    blank query yields no results.
    """

    term = query.strip()
    if not term:
        return []

    conditions = [
        Patient.patient_id == term,
        Patient.patient_id.icontains(term, autoescape=True),
        Patient.cnic == term,
        Patient.cnic.icontains(term, autoescape=True),
        Patient.phone == term,
        Patient.phone.icontains(term, autoescape=True),
        Patient.name.icontains(term, autoescape=True),
    ]
    stmt = select(Patient).where(or_(*conditions)).order_by(Patient.id)
    return list(db.execute(stmt).scalars().all())


def update_patient(db: Session, patient_pk: int, payload: PatientUpdate) -> Patient | None:
    """Apply the supplied fields; explicit ``None`` clears a field.

    Returns ``None`` for an unknown patient and the unchanged record when the
    payload carries no fields.  The CNIC-or-phone rule is only enforced at
    registration.
    """

    patient = db.get(Patient, patient_pk)
    if patient is None:
        return None

    changes = payload.changes()
    if not changes:
        return patient

    for field, value in changes.items():
        setattr(patient, field, value)
    _flush_or_conflict(
        db, "Patient update violates a unique constraint: CNIC or phone already in use"
    )
    logger.info(
        "updated patient",
        extra={"patient_pk": patient.id, "fields": sorted(changes)},
    )
    return patient
