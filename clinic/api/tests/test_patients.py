import pytest
from fastapi.testclient import TestClient
from pydantic import ValidationError

from clinic_api.main import app
from clinic_api.models import Patient
from clinic_api.schemas import PatientCreate, PatientUpdate
from clinic_api.services import ConflictError, create_patient, search_patients, update_patient
from clinic_api.services.patients import format_patient_id


client = TestClient(app)

SEARCH_FIXTURES = [
    ("P001", "12345-6789012-3", "+92-300-1234567", "John Doe"),
    ("P002", "98765-4321098-7", "+92-301-9876543", "Jane Smith"),
    ("P003", None, "+92-302-5555555", "Bob Johnson"),
    ("P004", "11111-2222233-4", None, None),
    ("PAT005", "55555-6666677-8", "+92-303-7777777", "Alice Brown"),
]


@pytest.fixture
def search_data(db):
    for patient_id, cnic, phone, name in SEARCH_FIXTURES:
        db.add(Patient(patient_id=patient_id, cnic=cnic, phone=phone, name=name))
    db.flush()
    return db


def codes(patients) -> list[str]:
    return [p.patient_id for p in patients]


@pytest.mark.parametrize(
    "sequence, expected",
    [(1, "P001"), (42, "P042"), (999, "P999"), (1000, "P1000"), (12345, "P12345")],
)
def test_format_patient_id(sequence, expected):
    assert format_patient_id(sequence) == expected


def test_patients_receive_sequential_ids(db):
    first = create_patient(db, PatientCreate(cnic="11111-1111111-1"))
    second = create_patient(db, PatientCreate(phone="+92-300-0000002"))
    third = create_patient(db, PatientCreate(cnic="33333-3333333-3", phone="+92-300-0000003"))
    assert codes([first, second, third]) == ["P001", "P002", "P003"]


def test_patient_id_grows_past_three_digits(db):
    db.add(Patient(id=999, patient_id="P999", phone="+92-300-0000999"))
    db.flush()
    patient = create_patient(db, PatientCreate(phone="+92-300-0001000"))
    assert patient.patient_id == "P1000"


def test_contact_method_required():
    with pytest.raises(ValidationError, match="Either CNIC or phone number must be provided"):
        PatientCreate(name="No Contact")


def test_blank_contact_fields_count_as_missing():
    with pytest.raises(ValidationError):
        PatientCreate(cnic="", phone="", name="Blank")
    assert PatientCreate(phone="+92-300", name="").name is None


def test_duplicate_cnic_rejected(db):
    create_patient(db, PatientCreate(cnic="12345-1234567-1", phone="+92-300-1111111"))
    with pytest.raises(ConflictError, match="CNIC already exists"):
        create_patient(db, PatientCreate(cnic="12345-1234567-1", phone="+92-300-2222222"))


def test_duplicate_phone_rejected(db):
    create_patient(db, PatientCreate(cnic="12345-1234567-1", phone="+92-300-1111111"))
    with pytest.raises(ConflictError, match="phone number already exists"):
        create_patient(db, PatientCreate(cnic="99999-9999999-9", phone="+92-300-1111111"))


def test_same_name_different_contacts_allowed(db):
    create_patient(db, PatientCreate(cnic="11111-1111111-1", name="Ali"))
    second = create_patient(db, PatientCreate(cnic="22222-2222222-2", name="Ali"))
    assert second.patient_id == "P002"


def test_create_patient_over_http():
    response = client.post("/api/v1/patients", json={"phone": "+92-300-1234567"})
    assert response.status_code == 201
    assert response.json() == {
        "id": 1,
        "patient_id": "P001",
        "cnic": None,
        "phone": "+92-300-1234567",
        "name": None,
    }


def test_create_patient_without_contact_over_http():
    response = client.post("/api/v1/patients", json={"name": "Nobody"})
    assert response.status_code == 422
    assert "Either CNIC or phone number must be provided" in response.text


def test_duplicate_reported_over_http():
    client.post("/api/v1/patients", json={"cnic": "12345-1234567-1"})
    response = client.post("/api/v1/patients", json={"cnic": "12345-1234567-1"})
    assert response.status_code == 409
    assert response.json() == {"detail": "Patient with this CNIC already exists"}
    assert len(client.get("/api/v1/patients").json()) == 1


@pytest.mark.parametrize(
    "query, expected",
    [
        ("P001", ["P001"]),
        ("001", ["P001"]),
        ("98765-4321098-7", ["P002"]),
        ("6789", ["P001"]),
        ("+92-301", ["P002"]),
        ("john", ["P001", "P003"]),
        ("ALICE", ["PAT005"]),
        ("nonexistent", []),
    ],
)
def test_search_matches_any_field(search_data, query, expected):
    assert codes(search_patients(search_data, query)) == expected


def test_search_across_fields_simultaneously(search_data):
    assert codes(search_patients(search_data, "P")) == ["P001", "P002", "P003", "P004", "PAT005"]


@pytest.mark.parametrize("query", ["", "   ", "\t"])
def test_blank_search_returns_nothing(search_data, query):
    assert search_patients(search_data, query) == []


def test_search_treats_wildcards_literally(search_data):
    assert search_patients(search_data, "%") == []
    assert search_patients(search_data, "_") == []


def test_search_trims_query(search_data):
    assert codes(search_patients(search_data, "  P003 ")) == ["P003"]


def test_search_over_http():
    client.post("/api/v1/patients", json={"phone": "+92-300-1234567", "name": "John Doe"})
    client.post("/api/v1/patients", json={"phone": "+92-301-7654321", "name": "Jane Roe"})

    response = client.get("/api/v1/patients/search", params={"query": "doe"})
    assert response.status_code == 200
    assert [p["name"] for p in response.json()] == ["John Doe"]
    assert client.get("/api/v1/patients/search", params={"query": " "}).json() == []
    assert client.get("/api/v1/patients/search").json() == []


def test_update_single_field(db):
    patient = create_patient(
        db, PatientCreate(cnic="12345-1234567-1", phone="+92-300-1234567", name="Test Patient")
    )
    updated = update_patient(db, patient.id, PatientUpdate(name="Renamed"))
    assert (updated.name, updated.cnic, updated.phone) == (
        "Renamed",
        "12345-1234567-1",
        "+92-300-1234567",
    )
    assert updated.patient_id == "P001"


def test_update_explicit_null_clears_fields(db):
    patient = create_patient(
        db, PatientCreate(cnic="12345-1234567-1", phone="+92-300-1234567", name="Test Patient")
    )
    updated = update_patient(db, patient.id, PatientUpdate(name=None, cnic=None))
    assert updated.name is None
    assert updated.cnic is None
    assert updated.phone == "+92-300-1234567"


def test_update_with_no_fields_returns_current_record(db):
    patient = create_patient(db, PatientCreate(phone="+92-300-1234567", name="Test Patient"))
    assert update_patient(db, patient.id, PatientUpdate()) is patient


def test_update_missing_patient_returns_none(db):
    assert update_patient(db, 999, PatientUpdate(name="Ghost")) is None


def test_update_ignores_patient_id_changes():
    created = client.post("/api/v1/patients", json={"phone": "+92-300-1234567"}).json()
    response = client.patch(
        f"/api/v1/patients/{created['id']}", json={"patient_id": "X999", "name": "Named"}
    )
    assert response.json()["patient_id"] == "P001"
    assert response.json()["name"] == "Named"


def test_update_to_taken_cnic_conflicts():
    client.post("/api/v1/patients", json={"cnic": "11111-1111111-1"})
    second = client.post("/api/v1/patients", json={"cnic": "22222-2222222-2"}).json()

    response = client.patch(
        f"/api/v1/patients/{second['id']}", json={"cnic": "11111-1111111-1"}
    )
    assert response.status_code == 409
    assert "unique" in response.json()["detail"].lower()
    assert client.get(f"/api/v1/patients/{second['id']}").json()["cnic"] == "22222-2222222-2"


def test_update_to_taken_phone_conflicts():
    client.post("/api/v1/patients", json={"phone": "+92-300-8888888"})
    second = client.post("/api/v1/patients", json={"phone": "+92-300-9999999"}).json()

    response = client.patch(
        f"/api/v1/patients/{second['id']}", json={"phone": "+92-300-8888888"}
    )
    assert response.status_code == 409
    assert "unique" in response.json()["detail"].lower()


def test_get_patient_by_id_over_http():
    created = client.post("/api/v1/patients", json={"cnic": "12345-1234567-1"}).json()
    assert client.get(f"/api/v1/patients/{created['id']}").json() == created
    assert client.get("/api/v1/patients/999").json() is None
