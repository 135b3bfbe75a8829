"""Visit records."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from clinic_api.models import Doctor, Patient, Visit
from clinic_api.models.base import utcnow
from clinic_api.schemas import VisitCreate, VisitUpdate
from clinic_api.services.errors import NotFoundError

logger = logging.getLogger(__name__)

_DATE_FIELDS = ("visit_date", "follow_up_date")


def as_naive_utc(value: datetime | None) -> datetime | None:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC."""

    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _require_patient(db: Session, patient_pk: int, message: str) -> None:
    if db.get(Patient, patient_pk) is None:
        logger.warning("unknown patient referenced", extra={"patient_pk": patient_pk})
        raise NotFoundError(message.format(id=patient_pk))


def _require_doctor(db: Session, doctor_id: int, message: str) -> None:
    if db.get(Doctor, doctor_id) is None:
        logger.warning("unknown doctor referenced", extra={"doctor_id": doctor_id})
        raise NotFoundError(message.format(id=doctor_id))


def create_visit(db: Session, payload: VisitCreate) -> Visit:
    """Record a visit; ``visit_date`` defaults to now."""

    _require_patient(db, payload.patient_id, "Patient with ID {id} does not exist")
    _require_doctor(db, payload.doctor_id, "Doctor with ID {id} does not exist")

    visit = Visit(
        patient_id=payload.patient_id,
        doctor_id=payload.doctor_id,
        visit_date=as_naive_utc(payload.visit_date) or utcnow(),
        symptoms=payload.symptoms,
        diagnosis=payload.diagnosis,
        prescription=payload.prescription,
        notes=payload.notes or None,
        follow_up_date=as_naive_utc(payload.follow_up_date),
    )
    db.add(visit)
    db.flush()
    logger.info(
        "recorded visit",
        extra={
            "visit_id": visit.id,
            "patient_pk": visit.patient_id,
            "doctor_id": visit.doctor_id,
        },
    )
    return visit


def get_visits(db: Session) -> list[Visit]:
    stmt = select(Visit).order_by(Visit.id)
    return list(db.execute(stmt).scalars().all())


def get_visit_by_id(db: Session, visit_id: int) -> Visit | None:
    return db.get(Visit, visit_id)


def get_visits_by_patient(db: Session, patient_pk: int) -> list[Visit]:
    """Visit history for a patient, most recent first."""

    stmt = (
        select(Visit)
        .where(Visit.patient_id == patient_pk)
        .order_by(Visit.visit_date.desc(), Visit.id.desc())
    )
    return list(db.execute(stmt).scalars().all())


def update_visit(db: Session, visit_id: int, payload: VisitUpdate) -> Visit | None:
    """Apply the supplied fields, validating new patient/doctor references.

    Returns ``None`` for an unknown visit and the unchanged record when the
    payload carries no fields.
    """

    visit = db.get(Visit, visit_id)
    if visit is None:
        return None

    changes = payload.changes()
    if "patient_id" in changes:
        _require_patient(db, changes["patient_id"], "Patient with id {id} does not exist")
    if "doctor_id" in changes:
        _require_doctor(db, changes["doctor_id"], "Doctor with id {id} does not exist")

    if not changes:
        return visit

    for field in _DATE_FIELDS:
        if field in changes:
            changes[field] = as_naive_utc(changes[field])
    for field, value in changes.items():
        setattr(visit, field, value)
    db.flush()
    logger.info(
        "updated visit",
        extra={"visit_id": visit.id, "fields": sorted(changes)},
    )
    return visit


def delete_visit(db: Session, visit_id: int) -> bool:
    """Delete a visit; reports whether a row was removed."""

    result = db.execute(delete(Visit).where(Visit.id == visit_id))
    removed = bool(result.rowcount)
    logger.info("deleted visit", extra={"visit_id": visit_id, "removed": removed})
    return removed
