"""Service layer for the clinic API."""

from clinic_api.services.auth import LoginResult, login
from clinic_api.services.doctors import (
    create_doctor,
    delete_doctor,
    get_doctor_by_id,
    get_doctors,
    get_doctors_by_location,
    update_doctor,
)
from clinic_api.services.errors import (
    AuthenticationError,
    ClinicError,
    ConflictError,
    NotFoundError,
)
from clinic_api.services.locations import (
    create_location,
    delete_location,
    get_location_by_id,
    get_locations,
    update_location,
)
from clinic_api.services.patients import (
    create_patient,
    get_patient_by_id,
    get_patients,
    search_patients,
    update_patient,
)
from clinic_api.services.visits import (
    create_visit,
    delete_visit,
    get_visit_by_id,
    get_visits,
    get_visits_by_patient,
    update_visit,
)

__all__ = [
    "AuthenticationError",
    "ClinicError",
    "ConflictError",
    "LoginResult",
    "NotFoundError",
    "create_doctor",
    "create_location",
    "create_patient",
    "create_visit",
    "delete_doctor",
    "delete_location",
    "delete_visit",
    "get_doctor_by_id",
    "get_doctors",
    "get_doctors_by_location",
    "get_location_by_id",
    "get_locations",
    "get_patient_by_id",
    "get_patients",
    "get_visit_by_id",
    "get_visits",
    "get_visits_by_patient",
    "login",
    "search_patients",
    "update_doctor",
    "update_location",
    "update_patient",
    "update_visit",
]
