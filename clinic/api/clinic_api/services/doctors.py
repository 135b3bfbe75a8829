"""Doctor management."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from clinic_api.models import Doctor, Location, Visit
from clinic_api.schemas import DoctorCreate, DoctorUpdate
from clinic_api.services.errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


def _require_location(db: Session, location_id: int) -> Location:
    location = db.get(Location, location_id)
    if location is None:
        logger.warning("unknown location referenced", extra={"location_id": location_id})
        raise NotFoundError(f"Location with id {location_id} does not exist")
    return location


def create_doctor(db: Session, payload: DoctorCreate) -> Doctor:
    _require_location(db, payload.location_id)

    doctor = Doctor(
        name=payload.name,
        contact_number=payload.contact_number,
        location_id=payload.location_id,
        timings=payload.timings,
    )
    db.add(doctor)
    db.flush()
    logger.info(
        "created doctor",
        extra={"doctor_id": doctor.id, "location_id": doctor.location_id},
    )
    return doctor


def get_doctors(db: Session) -> list[Doctor]:
    stmt = (
        select(Doctor)
        .join(Location, Doctor.location_id == Location.id)
        .order_by(Doctor.id)
    )
    return list(db.execute(stmt).scalars().all())


def get_doctor_by_id(db: Session, doctor_id: int) -> Doctor | None:
    return db.get(Doctor, doctor_id)


def get_doctors_by_location(db: Session, location_id: int) -> list[Doctor]:
    stmt = select(Doctor).where(Doctor.location_id == location_id).order_by(Doctor.id)
    return list(db.execute(stmt).scalars().all())


def update_doctor(db: Session, doctor_id: int, payload: DoctorUpdate) -> Doctor | None:
    """Apply the supplied fields, validating a new location first.

    Returns ``None`` when the payload carries no fields or the doctor does not
    exist.
    """

    changes = payload.changes()
    if "location_id" in changes:
        _require_location(db, changes["location_id"])

    if not changes:
        return None

    doctor = db.get(Doctor, doctor_id)
    if doctor is None:
        return None

    for field, value in changes.items():
        setattr(doctor, field, value)
    db.flush()
    logger.info(
        "updated doctor",
        extra={"doctor_id": doctor.id, "fields": sorted(changes)},
    )
    return doctor


def delete_doctor(db: Session, doctor_id: int) -> bool:
    """Delete a doctor with no recorded visits."""

    doctor = db.get(Doctor, doctor_id)
    if doctor is None:
        raise NotFoundError(f"Doctor with ID {doctor_id} not found")

    has_visits = db.scalar(
        select(Visit.id).where(Visit.doctor_id == doctor_id).limit(1)
    )
    if has_visits is not None:
        logger.warning("doctor delete blocked", extra={"doctor_id": doctor_id})
        raise ConflictError(
            f"Cannot delete doctor with ID {doctor_id} because they have existing visits"
        )

    db.delete(doctor)
    db.flush()
    logger.info("deleted doctor", extra={"doctor_id": doctor_id})
    return True
