import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select

from clinic_api import seed as seed_module
from clinic_api.main import app
from clinic_api.models import Doctor, Location, Patient


client = TestClient(app)


def count(session, model) -> int:
    return session.scalar(select(func.count()).select_from(model))


def test_seed_is_idempotent(monkeypatch, session_factory):
    monkeypatch.setattr(seed_module, "SessionLocal", session_factory)
    monkeypatch.setattr(seed_module, "init_db", lambda: None)

    seed_module.seed()
    seed_module.seed()

    with session_factory() as session:
        assert count(session, Location) == 1
        assert count(session, Doctor) == 1
        patients = session.execute(select(Patient).order_by(Patient.id)).scalars().all()
        assert [p.patient_id for p in patients] == ["P001", "P002"]


def test_seeded_doctor_can_log_in(monkeypatch, session_factory):
    monkeypatch.setattr(seed_module, "SessionLocal", session_factory)
    monkeypatch.setattr(seed_module, "init_db", lambda: None)
    seed_module.seed()

    response = client.post(
        "/api/v1/auth/login", json={"username": "doctor1", "password": "password"}
    )
    assert response.status_code == 200
    assert response.json()["doctor"]["name"] == "Dr. Ayesha Khan"


def test_seed_fails_when_doctor_id_differs_from_profile(monkeypatch, session_factory):
    monkeypatch.setattr(seed_module, "SessionLocal", session_factory)
    monkeypatch.setattr(seed_module, "init_db", lambda: None)
    monkeypatch.setattr(seed_module.settings, "doctor_profile_id", 5)

    with pytest.raises(RuntimeError, match="DOCTOR_PROFILE_ID is 5"):
        seed_module.seed()

    with session_factory() as session:
        assert count(session, Doctor) == 0
        assert count(session, Location) == 0
