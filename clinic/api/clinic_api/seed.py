from __future__ import annotations

import logging

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from clinic_api.core.config import settings
from clinic_api.db.session import SessionLocal, init_db
from clinic_api.logging_utils import configure_logging
from clinic_api.models import Doctor, Location, Patient
from clinic_api.schemas import PatientCreate
from clinic_api.services.patients import create_patient

logger = logging.getLogger(__name__)

DEMO_LOCATION: tuple[str, str] = ("Main Clinic", "1 Main Street")

DEMO_DOCTOR: tuple[str, str, str] = (
    "Dr. Ayesha Khan",
    "+92-300-0000001",
    "Mon-Fri 9AM-5PM",
)

PATIENTS: list[tuple[str | None, str | None, str | None]] = [
    ("35202-1234567-1", "+92-300-1234567", "Ali Raza"),
    (None, "+92-301-7654321", "Sana Malik"),
]


def ensure_location(session: Session) -> Location:
    name, address = DEMO_LOCATION
    location = session.execute(
        select(Location).where(Location.name == name)
    ).scalar_one_or_none()
    if location:
        logger.info("location already present", extra={"location_id": location.id})
        return location

    location = Location(name=name, address=address)
    session.add(location)
    session.flush()
    logger.info("created location", extra={"location_id": location.id})
    return location


def ensure_doctor(session: Session, location: Location) -> Doctor:
    """Make sure the profile used by the doctor login exists."""

    doctor = session.get(Doctor, settings.doctor_profile_id)
    if doctor:
        logger.info("doctor profile already present", extra={"doctor_id": doctor.id})
        return doctor

    name, contact_number, timings = DEMO_DOCTOR
    doctor = Doctor(
        name=name,
        contact_number=contact_number,
        location_id=location.id,
        timings=timings,
    )
    session.add(doctor)
    session.flush()
    if doctor.id != settings.doctor_profile_id:
        # doctor login resolves its profile by this id
        raise RuntimeError(
            f"Seeded doctor received id {doctor.id} but DOCTOR_PROFILE_ID is "
            f"{settings.doctor_profile_id}; set DOCTOR_PROFILE_ID to match"
        )
    logger.info("created doctor profile", extra={"doctor_id": doctor.id})
    return doctor


def ensure_patients(session: Session) -> list[Patient]:
    created = 0
    patients: list[Patient] = []
    for cnic, phone, name in PATIENTS:
        conditions = []
        if cnic:
            conditions.append(Patient.cnic == cnic)
        if phone:
            conditions.append(Patient.phone == phone)
        patient = session.execute(
            select(Patient).where(or_(*conditions)).limit(1)
        ).scalar_one_or_none()
        if not patient:
            patient = create_patient(session, PatientCreate(cnic=cnic, phone=phone, name=name))
            created += 1
        patients.append(patient)

    logger.info("ensured patients", extra={"created_count": created, "total": len(patients)})
    return patients


def seed() -> None:
    configure_logging(settings.log_level)
    logger.info("starting seed process")

    init_db()
    session = SessionLocal()
    try:
        location = ensure_location(session)
        ensure_doctor(session, location)
        ensure_patients(session)
        session.commit()
        logger.info("seed complete")
    except Exception:
        session.rollback()
        logger.exception("seed failed")
        raise
    finally:
        session.close()


if __name__ == "__main__":  # pragma: no cover - script entrypoint
    seed()
