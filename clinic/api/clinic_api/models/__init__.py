"""SQLAlchemy models for the clinic API."""

from clinic_api.models.doctor import Doctor
from clinic_api.models.location import Location
from clinic_api.models.patient import Patient
from clinic_api.models.visit import Visit

__all__ = [
    "Doctor",
    "Location",
    "Patient",
    "Visit",
]
