"""Import SQLAlchemy models so ``Base.metadata`` knows every table."""

from clinic_api.models.base import Base
from clinic_api.models import (  # noqa: F401
    Doctor,
    Location,
    Patient,
    Visit,
)

__all__ = [
    "Base",
    "Doctor",
    "Location",
    "Patient",
    "Visit",
]
