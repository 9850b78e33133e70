"""
Tests for patient endpoints, identifier generation and the pregnancy rule.
"""
import re
import threading
from datetime import date

import pytest

from core.exceptions import DataValidationError
from core.permissions import ALL_PERMISSIONS, PrincipalKind, RoleName
from models.enums import Gender
from models.principal import Principal
from schemas.patient import PatientCreate
from services.authorization_service import AuthorizationEngine
from services.patient_service import PatientService, apply_pregnancy_rule


def patient_payload(**overrides):
    payload = {
        "name": "Jane Roe",
        "date_of_birth": "1990-05-17",
        "gender": "female",
        "blood_type": "O+",
        "contact": {"phone": "555-0199", "email": "jane@example.com"},
        "allergies": ["penicillin"],
        "insurance_info": {"type": "private", "provider": "Acme Health"},
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def institution(make_institution):
    return make_institution()


@pytest.fixture
def nurse(make_user, institution):
    return make_user(RoleName.NURSE, institution.id)


@pytest.fixture
def patient_service(patient_repo, institution_repo, record_repo):
    return PatientService(
        patient_repository=patient_repo,
        institution_repository=institution_repo,
        record_repository=record_repo,
        engine=AuthorizationEngine(),
        id_prefix="PAT",
        id_digits=6,
    )


@pytest.fixture
def system_admin():
    return Principal(
        id="admin-1",
        kind=PrincipalKind.ADMIN_USER,
        name="Admin",
        role=RoleName.ADMIN,
        permissions=ALL_PERMISSIONS,
    )


class TestCreate:
    def test_generates_identifier(self, client, nurse, institution, headers_for):
        response = client.post("/api/v1/patients", json=patient_payload(), headers=headers_for(nurse))
        assert response.status_code == 201
        created = response.json()["data"]
        assert re.fullmatch(r"PAT\d{6}", created["patient_id"])
        assert created["institution_id"] == institution.id
        assert created["is_credentialed"] is False
        assert created["is_pregnant"] is False
        assert created["age"] >= 30
        assert created["created_by"] == nurse.id

    def test_supplied_identifier_kept(self, client, nurse, headers_for):
        response = client.post(
            "/api/v1/patients",
            json=patient_payload(patient_id="P-482913"),
            headers=headers_for(nurse),
        )
        assert response.status_code == 201
        assert response.json()["data"]["patient_id"] == "P-482913"

    def test_duplicate_supplied_identifier_is_409(self, client, nurse, headers_for):
        body = patient_payload(patient_id="P-482913")
        assert client.post("/api/v1/patients", json=body, headers=headers_for(nurse)).status_code == 201
        response = client.post("/api/v1/patients", json=body, headers=headers_for(nurse))
        assert response.status_code == 409
        assert "patient_id" in response.json()["message"]

    def test_with_password_is_credentialed(self, client, nurse, headers_for):
        response = client.post(
            "/api/v1/patients",
            json=patient_payload(password="patient-password"),
            headers=headers_for(nurse),
        )
        assert response.json()["data"]["is_credentialed"] is True

    def test_future_birth_date_rejected(self, client, nurse, headers_for):
        response = client.post(
            "/api/v1/patients",
            json=patient_payload(date_of_birth="2999-01-01"),
            headers=headers_for(nurse),
        )
        assert response.status_code == 422

    def test_nested_route_uses_path_institution(self, client, nurse, institution, headers_for):
        response = client.post(
            f"/api/v1/institutions/{institution.id}/patients",
            json=patient_payload(),
            headers=headers_for(nurse),
        )
        assert response.status_code == 201
        assert response.json()["data"]["institution_id"] == institution.id

    def test_patient_token_cannot_create(self, client, make_patient, headers_for):
        patient = make_patient(password="patient-password")
        response = client.post("/api/v1/patients", json=patient_payload(), headers=headers_for(patient))
        assert response.status_code == 403


class TestIdentifierGeneration:
    def test_format(self, patient_service):
        for _ in range(50):
            assert re.fullmatch(r"PAT\d{6}", patient_service.generate_identifier())

    def test_regenerates_when_taken(self, patient_service, make_patient, system_admin, monkeypatch):
        make_patient(patient_id="PAT000001")
        candidates = iter(["PAT000001", "PAT000001", "PAT000002"])
        monkeypatch.setattr(patient_service, "generate_identifier", lambda: next(candidates))

        created = patient_service.create_patient(
            PatientCreate(**patient_payload()), system_admin
        )
        assert created.patient_id == "PAT000002"

    def test_regenerates_on_insert_collision(self, patient_service, patient_repo, make_patient, system_admin, monkeypatch):
        # The pre-check misses (a concurrent insert won the race); the UNIQUE index catches it.
        make_patient(patient_id="PAT000001")
        candidates = iter(["PAT000001", "PAT000003"])
        monkeypatch.setattr(patient_service, "generate_identifier", lambda: next(candidates))
        monkeypatch.setattr(patient_repo, "identifier_exists", lambda patient_id: False)

        created = patient_service.create_patient(
            PatientCreate(**patient_payload()), system_admin
        )
        assert created.patient_id == "PAT000003"
        assert patient_repo.count() == 2

    def test_concurrent_creation_yields_unique_identifiers(
        self, patient_repo, institution_repo, record_repo, system_admin
    ):
        service = PatientService(
            patient_repository=patient_repo,
            institution_repository=institution_repo,
            record_repository=record_repo,
            engine=AuthorizationEngine(),
            id_prefix="T",
            id_digits=4,
        )
        created, errors = [], []

        def worker():
            try:
                for _ in range(5):
                    created.append(service.create_patient(PatientCreate(**patient_payload()), system_admin))
            except Exception as e:  # collected and asserted below
                errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        identifiers = [p.patient_id for p in created]
        assert len(identifiers) == 40
        assert len(set(identifiers)) == 40
        assert patient_repo.count() == 40


class TestPregnancyRule:
    def test_rule_function(self):
        assert apply_pregnancy_rule(Gender.FEMALE, None) is False
        assert apply_pregnancy_rule(Gender.FEMALE, True) is True
        assert apply_pregnancy_rule(Gender.MALE, None) is None
        assert apply_pregnancy_rule(Gender.MALE, False) is None
        with pytest.raises(DataValidationError):
            apply_pregnancy_rule(Gender.MALE, True)

    def test_male_pregnant_rejected(self, client, nurse, headers_for):
        response = client.post(
            "/api/v1/patients",
            json=patient_payload(gender="male", is_pregnant=True),
            headers=headers_for(nurse),
        )
        assert response.status_code == 400

    def test_gender_change_to_male_clears_flag(self, client, nurse, make_patient, institution, headers_for):
        patient = make_patient(institution.id)
        url = f"/api/v1/patients/{patient.patient_id}"
        response = client.put(url, json={"is_pregnant": True}, headers=headers_for(nurse))
        assert response.json()["data"]["is_pregnant"] is True

        response = client.put(url, json={"gender": "male"}, headers=headers_for(nurse))
        assert response.status_code == 200
        assert response.json()["data"]["is_pregnant"] is None

    def test_update_male_to_pregnant_rejected(self, client, nurse, make_patient, institution, headers_for):
        patient = make_patient(institution.id, gender=Gender.MALE)
        response = client.put(
            f"/api/v1/patients/{patient.patient_id}",
            json={"is_pregnant": True},
            headers=headers_for(nurse),
        )
        assert response.status_code == 400


class TestReadUpdateDelete:
    def test_get_and_update(self, client, nurse, make_patient, institution, headers_for):
        patient = make_patient(institution.id)
        url = f"/api/v1/patients/{patient.patient_id}"
        assert client.get(url, headers=headers_for(nurse)).json()["data"]["name"] == "Jane Roe"

        response = client.put(
            url,
            json={"name": "Jane Q. Roe", "blood_type": "AB-", "allergies": []},
            headers=headers_for(nurse),
        )
        updated = response.json()["data"]
        assert updated["name"] == "Jane Q. Roe"
        assert updated["blood_type"] == "AB-"
        assert updated["allergies"] == []
        assert updated["updated_by"] == nurse.id

    def test_unknown_is_404(self, client, nurse, headers_for):
        assert client.get("/api/v1/patients/PAT999999", headers=headers_for(nurse)).status_code == 404

    def test_delete(self, client, nurse, make_patient, institution, headers_for, patient_repo):
        patient = make_patient(institution.id)
        response = client.delete(f"/api/v1/patients/{patient.patient_id}", headers=headers_for(nurse))
        assert response.status_code == 200
        assert patient_repo.get(patient.patient_id) is None

    def test_delete_with_records_is_409(
        self, client, nurse, make_patient, make_doctor, make_record, institution, headers_for
    ):
        patient = make_patient(institution.id)
        make_record(patient.patient_id, make_doctor([institution.id]).id, institution.id)
        response = client.delete(f"/api/v1/patients/{patient.patient_id}", headers=headers_for(nurse))
        assert response.status_code == 409

    def test_nested_route_hides_other_institutions(
        self, client, nurse, make_patient, make_institution, institution, headers_for
    ):
        elsewhere = make_patient(make_institution(name="Elsewhere").id)
        response = client.get(
            f"/api/v1/institutions/{institution.id}/patients/{elsewhere.patient_id}",
            headers=headers_for(nurse),
        )
        assert response.status_code == 404


class TestListing:
    def test_global_list_scoped_to_own_and_unaffiliated(
        self, client, nurse, make_patient, make_institution, institution, headers_for
    ):
        make_patient(institution.id, name="Own Patient")
        make_patient(None, name="Walk In")
        make_patient(make_institution(name="Elsewhere").id, name="Foreign Patient")

        response = client.get("/api/v1/patients", headers=headers_for(nurse))
        names = sorted(p["name"] for p in response.json()["data"])
        assert names == ["Own Patient", "Walk In"]

    def test_admin_sees_everyone(self, client, admin_headers, make_patient, make_institution):
        make_patient(make_institution().id)
        make_patient(make_institution(name="Elsewhere").id)
        response = client.get("/api/v1/patients", headers=admin_headers)
        assert response.json()["pagination"]["totalItems"] == 2

    def test_filters(self, client, nurse, make_patient, institution, headers_for):
        make_patient(institution.id, name="Alice Smith")
        make_patient(institution.id, name="Bob Smith", gender=Gender.MALE)
        response = client.get("/api/v1/patients?gender=male&search=Smith", headers=headers_for(nurse))
        assert [p["name"] for p in response.json()["data"]] == ["Bob Smith"]

    def test_nested_list(self, client, nurse, make_patient, make_institution, institution, headers_for):
        make_patient(institution.id)
        make_patient(None)
        response = client.get(f"/api/v1/institutions/{institution.id}/patients", headers=headers_for(nurse))
        assert response.json()["pagination"]["totalItems"] == 1


def test_age_is_computed(make_patient, patient_repo):
    patient = patient_repo.get(make_patient().patient_id)
    today = date.today()
    expected = today.year - 1990 - ((today.month, today.day) < (5, 17))
    assert patient.age == expected
