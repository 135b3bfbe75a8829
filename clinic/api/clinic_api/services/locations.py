"""Location management for the superadmin screens."""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from clinic_api.models import Doctor, Location
from clinic_api.schemas import LocationCreate, LocationUpdate
from clinic_api.services.errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


def create_location(db: Session, payload: LocationCreate) -> Location:
    location = Location(name=payload.name, address=payload.address)
    db.add(location)
    db.flush()
    logger.info("created location", extra={"location_id": location.id})
    return location


def get_locations(db: Session) -> list[Location]:
    stmt = select(Location).order_by(Location.id)
    return list(db.execute(stmt).scalars().all())


def get_location_by_id(db: Session, location_id: int) -> Location | None:
    return db.get(Location, location_id)


def update_location(
    db: Session, location_id: int, payload: LocationUpdate
) -> Location | None:
    """Apply the supplied fields.

    Returns ``None`` when the payload carries no fields or the location does
    not exist.
    """

    changes = payload.changes()
    if not changes:
        return None

    location = db.get(Location, location_id)
    if location is None:
        return None

    for field, value in changes.items():
        setattr(location, field, value)
    db.flush()
    logger.info(
        "updated location",
        extra={"location_id": location.id, "fields": sorted(changes)},
    )
    return location


def delete_location(db: Session, location_id: int) -> bool:
    """Delete a location that no doctor is assigned to."""

    location = db.get(Location, location_id)
    if location is None:
        raise NotFoundError(f"Location with ID {location_id} not found")

    doctor_count = db.scalar(
        select(func.count()).select_from(Doctor).where(Doctor.location_id == location_id)
    )
    if doctor_count:
        logger.warning(
            "location delete blocked",
            extra={"location_id": location_id, "doctor_count": doctor_count},
        )
        raise ConflictError(
            f"Cannot delete location. There are {doctor_count} doctor(s) "
            "associated with this location"
        )

    db.delete(location)
    db.flush()
    logger.info("deleted location", extra={"location_id": location_id})
    return True
