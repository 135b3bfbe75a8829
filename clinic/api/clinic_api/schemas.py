"""Request and response models for the clinic API.

Input models are the validation boundary: service functions receive already
validated instances and never re-check field shapes.  Update models rely on
``model_fields_set`` so an omitted field and an explicit ``null`` stay
distinguishable.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, ClassVar, Literal

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    field_serializer,
    model_validator,
)


def _required(message: str) -> AfterValidator:
    def check(value: str) -> str:
        if not value:
            raise ValueError(message)
        return value

    return AfterValidator(check)


LocationName = Annotated[str, _required("Location name is required")]
LocationAddress = Annotated[str, _required("Location address is required")]
DoctorName = Annotated[str, _required("Doctor name is required")]
ContactNumber = Annotated[str, _required("Contact number is required")]
Timings = Annotated[str, _required("Timings are required")]
Symptoms = Annotated[str, _required("Symptoms are required")]
Diagnosis = Annotated[str, _required("Diagnosis is required")]
Prescription = Annotated[str, _required("Prescription is required")]


class PartialUpdate(BaseModel):
    """Base for PATCH payloads.

    Fields listed in ``non_nullable`` may be omitted but not sent as ``null``,
    since the matching columns are NOT NULL.
    """

    non_nullable: ClassVar[tuple[str, ...]] = ()

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="after")
    def check_required_columns(self) -> "PartialUpdate":
        for field in self.non_nullable:
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self

    def changes(self) -> dict:
        """Return only the fields the caller actually supplied."""

        return self.model_dump(exclude_unset=True)


class OrmModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# Locations


class LocationCreate(BaseModel):
    name: LocationName
    address: LocationAddress


class LocationUpdate(PartialUpdate):
    non_nullable: ClassVar[tuple[str, ...]] = ("name", "address")

    name: LocationName | None = None
    address: LocationAddress | None = None


class LocationRead(OrmModel):
    id: int
    name: str
    address: str


# Doctors


class DoctorCreate(BaseModel):
    name: DoctorName
    contact_number: ContactNumber
    location_id: int
    timings: Timings


class DoctorUpdate(PartialUpdate):
    non_nullable: ClassVar[tuple[str, ...]] = (
        "name",
        "contact_number",
        "location_id",
        "timings",
    )

    name: DoctorName | None = None
    contact_number: ContactNumber | None = None
    location_id: int | None = None
    timings: Timings | None = None


class DoctorRead(OrmModel):
    id: int
    name: str
    contact_number: str
    location_id: int
    timings: str


# Patients


class PatientCreate(BaseModel):
    cnic: str | None = None
    phone: str | None = None
    name: str | None = None

    @model_validator(mode="after")
    def require_contact(self) -> "PatientCreate":
        # blank strings count as "not provided"
        self.cnic = self.cnic or None
        self.phone = self.phone or None
        self.name = self.name or None
        if not (self.cnic or self.phone):
            raise ValueError("Either CNIC or phone number must be provided")
        return self


class PatientUpdate(PartialUpdate):
    cnic: str | None = None
    phone: str | None = None
    name: str | None = None


class PatientRead(OrmModel):
    id: int
    patient_id: str
    cnic: str | None
    phone: str | None
    name: str | None


# Visits


class VisitCreate(BaseModel):
    patient_id: int
    doctor_id: int
    visit_date: datetime | None = None
    symptoms: Symptoms
    diagnosis: Diagnosis
    prescription: Prescription
    notes: str | None = None
    follow_up_date: datetime | None = None


class VisitUpdate(PartialUpdate):
    non_nullable: ClassVar[tuple[str, ...]] = (
        "patient_id",
        "doctor_id",
        "visit_date",
        "symptoms",
        "diagnosis",
        "prescription",
    )

    patient_id: int | None = None
    doctor_id: int | None = None
    visit_date: datetime | None = None
    symptoms: Symptoms | None = None
    diagnosis: Diagnosis | None = None
    prescription: Prescription | None = None
    notes: str | None = None
    follow_up_date: datetime | None = None


class VisitRead(OrmModel):
    id: int
    patient_id: int
    doctor_id: int
    visit_date: datetime
    symptoms: str
    diagnosis: str
    prescription: str
    notes: str | None
    follow_up_date: datetime | None

    @field_serializer("visit_date", "follow_up_date")
    def serialize_utc(self, value: datetime | None) -> str | None:
        # stored naive UTC; clients get an explicit offset
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat()


# Auth and misc


class LoginRequest(BaseModel):
    username: str
    password: str


class LoginResponse(BaseModel):
    role: Literal["superadmin", "doctor"]
    doctor: DoctorRead | None = None


class DeleteResult(BaseModel):
    success: bool


class HealthStatus(BaseModel):
    status: str
    timestamp: str
