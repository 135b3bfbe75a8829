"""Fixed-credential login for the two clinic roles.

There are exactly two accounts, configured through settings.  No session or
token is issued; the client keeps the returned role in memory.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from clinic_api.core.config import Settings, settings as default_settings
from clinic_api.models import Doctor
from clinic_api.schemas import LoginRequest
from clinic_api.services.errors import AuthenticationError, NotFoundError

logger = logging.getLogger(__name__)

ROLE_SUPERADMIN = "superadmin"
ROLE_DOCTOR = "doctor"


@dataclass
class LoginResult:
    role: str
    doctor: Doctor | None = None


def login(
    db: Session, payload: LoginRequest, *, config: Settings | None = None
) -> LoginResult:
    config = config or default_settings

    if (
        payload.username == config.superadmin_username
        and payload.password == config.superadmin_password
    ):
        logger.info("superadmin logged in")
        return LoginResult(role=ROLE_SUPERADMIN)

    if (
        payload.username == config.doctor_username
        and payload.password == config.doctor_password
    ):
        doctor = db.get(Doctor, config.doctor_profile_id)
        if doctor is None:
            logger.warning(
                "doctor profile missing",
                extra={"doctor_id": config.doctor_profile_id},
            )
            raise NotFoundError("Doctor profile not found. Please contact administrator.")
        logger.info("doctor logged in", extra={"doctor_id": doctor.id})
        return LoginResult(role=ROLE_DOCTOR, doctor=doctor)

    logger.warning("login rejected", extra={"username": payload.username})
    raise AuthenticationError("Invalid username or password")
