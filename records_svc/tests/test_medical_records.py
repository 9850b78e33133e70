"""
Tests for medical record endpoints and patient self-access.
"""
import pytest

from core.permissions import RoleName


@pytest.fixture
def institution(make_institution):
    return make_institution()


@pytest.fixture
def nurse(make_user, institution):
    return make_user(RoleName.NURSE, institution.id)


@pytest.fixture
def doctor(make_doctor, institution):
    return make_doctor([institution.id])


@pytest.fixture
def patient(make_patient, institution):
    return make_patient(institution.id, password="patient-password")


def record_payload(patient_id, doctor_id, **overrides):
    payload = {
        "patient_id": patient_id,
        "doctor_id": doctor_id,
        "visit_info": {"type": "consultation", "date": "2024-03-01T09:00:00Z"},
        "clinical_data": {"symptoms": ["cough", "fever"], "diagnosis": "Influenza"},
        "prescriptions": [
            {"medication_name": "Oseltamivir", "dosage": "75mg", "frequency": "2x daily", "duration": "5 days"}
        ],
        "lab_results": [{"test_name": "Flu A", "result": "positive", "status": "abnormal"}],
    }
    payload.update(overrides)
    return payload


class TestCreate:
    def test_defaults_to_callers_institution(self, client, nurse, doctor, patient, institution, headers_for):
        response = client.post(
            "/api/v1/medical-records",
            json=record_payload(patient.patient_id, doctor.id),
            headers=headers_for(nurse),
        )
        assert response.status_code == 201
        record = response.json()["data"]
        assert record["institution_id"] == institution.id
        assert record["visit_info"]["type"] == "consultation"
        assert record["prescriptions"][0]["medication_name"] == "Oseltamivir"
        assert record["lab_results"][0]["status"] == "abnormal"
        assert record["created_by"] == nurse.id

    def test_unknown_patient_is_404(self, client, nurse, doctor, headers_for):
        response = client.post(
            "/api/v1/medical-records",
            json=record_payload("PAT999999", doctor.id),
            headers=headers_for(nurse),
        )
        assert response.status_code == 404

    def test_unknown_doctor_is_404(self, client, nurse, patient, headers_for):
        response = client.post(
            "/api/v1/medical-records",
            json=record_payload(patient.patient_id, "missing-doctor"),
            headers=headers_for(nurse),
        )
        assert response.status_code == 404

    def test_invalid_visit_type_is_422(self, client, nurse, doctor, patient, headers_for):
        response = client.post(
            "/api/v1/medical-records",
            json=record_payload(
                patient.patient_id, doctor.id, visit_info={"type": "picnic", "date": "2024-03-01T09:00:00Z"}
            ),
            headers=headers_for(nurse),
        )
        assert response.status_code == 422

    def test_receptionist_cannot_write_records(self, client, make_user, institution, doctor, patient, headers_for):
        receptionist = make_user(RoleName.RECEPTIONIST, institution.id)
        response = client.post(
            "/api/v1/medical-records",
            json=record_payload(patient.patient_id, doctor.id),
            headers=headers_for(receptionist),
        )
        assert response.status_code == 403
        assert response.json()["reason"] == "InsufficientPermission"

    def test_doctor_creates_on_nested_route(self, client, doctor, patient, institution, headers_for):
        response = client.post(
            f"/api/v1/institutions/{institution.id}/medical-records",
            json=record_payload(patient.patient_id, doctor.id),
            headers=headers_for(doctor),
        )
        assert response.status_code == 201
        assert response.json()["data"]["institution_id"] == institution.id


class TestFilters:
    @pytest.fixture
    def records(self, make_record, patient, doctor, institution):
        return [
            make_record(patient.patient_id, doctor.id, institution.id, "consultation", "2024-01-10T08:00:00Z"),
            make_record(patient.patient_id, doctor.id, institution.id, "emergency", "2024-02-15T23:30:00Z"),
            make_record(patient.patient_id, doctor.id, institution.id, "follow-up", "2024-03-20T12:00:00Z"),
        ]

    def test_newest_first(self, client, nurse, records, headers_for):
        response = client.get("/api/v1/medical-records", headers=headers_for(nurse))
        assert [r["id"] for r in response.json()["data"]] == [r.id for r in reversed(records)]

    def test_visit_type(self, client, nurse, records, headers_for):
        response = client.get("/api/v1/medical-records?visit_type=emergency", headers=headers_for(nurse))
        assert [r["id"] for r in response.json()["data"]] == [records[1].id]

    def test_date_range_is_inclusive(self, client, nurse, records, headers_for):
        response = client.get(
            "/api/v1/medical-records?date_from=2024-01-10&date_to=2024-02-15",
            headers=headers_for(nurse),
        )
        assert {r["id"] for r in response.json()["data"]} == {records[0].id, records[1].id}

    def test_patient_filter(self, client, nurse, records, make_patient, make_record, doctor, institution, headers_for):
        other = make_patient(institution.id)
        make_record(other.patient_id, doctor.id, institution.id)
        response = client.get(
            f"/api/v1/medical-records?patient_id={other.patient_id}", headers=headers_for(nurse)
        )
        assert response.json()["pagination"]["totalItems"] == 1

    def test_other_institutions_hidden(self, client, nurse, records, make_institution, make_record, headers_for):
        elsewhere = make_institution(name="Elsewhere")
        make_record(records[0].patient_id, records[0].doctor_id, elsewhere.id)
        response = client.get("/api/v1/medical-records", headers=headers_for(nurse))
        assert response.json()["pagination"]["totalItems"] == 3


class TestPatientSelfAccess:
    def test_patient_reads_own_records_across_institutions(
        self, client, patient, doctor, institution, make_institution, make_record, headers_for
    ):
        make_record(patient.patient_id, doctor.id, institution.id)
        make_record(patient.patient_id, doctor.id, make_institution(name="Elsewhere").id)
        response = client.get(f"/api/v1/medical-records/patient/{patient.patient_id}", headers=headers_for(patient))
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["count"] == 2
        assert len(data["medical_records"]) == 2
        assert data["patient"] == {
            "patient_id": patient.patient_id,
            "name": patient.name,
            "date_of_birth": patient.date_of_birth.isoformat(),
            "gender": patient.gender.value,
        }

    def test_other_patient_is_forbidden(self, client, patient, make_patient, headers_for):
        other = make_patient(password="other-password")
        response = client.get(f"/api/v1/medical-records/patient/{patient.patient_id}", headers=headers_for(other))
        assert response.status_code == 403

    def test_staff_is_forbidden(self, client, patient, nurse, headers_for):
        response = client.get(f"/api/v1/medical-records/patient/{patient.patient_id}", headers=headers_for(nurse))
        assert response.status_code == 403

    def test_admin_allowed(self, client, patient, admin_headers):
        response = client.get(f"/api/v1/medical-records/patient/{patient.patient_id}", headers=admin_headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["medical_records"] == []
        assert data["count"] == 0
        assert data["patient"]["patient_id"] == patient.patient_id

    def test_unknown_patient_is_404_for_admin(self, client, admin_headers):
        response = client.get("/api/v1/medical-records/patient/PAT000000", headers=admin_headers)
        assert response.status_code == 404

    def test_patient_cannot_use_staff_listing(self, client, patient, headers_for):
        assert client.get("/api/v1/medical-records", headers=headers_for(patient)).status_code == 403


class TestUpdateDelete:
    def test_update(self, client, nurse, doctor, patient, institution, make_record, headers_for):
        record = make_record(patient.patient_id, doctor.id, institution.id)
        response = client.put(
            f"/api/v1/medical-records/{record.id}",
            json={"clinical_data": {"symptoms": [], "diagnosis": "Resolved"}},
            headers=headers_for(nurse),
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["clinical_data"]["diagnosis"] == "Resolved"
        assert data["visit_info"]["type"] == "consultation"
        assert data["updated_by"] == nurse.id

    def test_author_keeps_access_after_moving(
        self, client, doctor, patient, institution, make_institution, make_record, doctor_repo, headers_for
    ):
        record = make_record(patient.patient_id, doctor.id, institution.id)
        doctor.institution_ids = [make_institution(name="New Clinic").id]
        doctor_repo.update(doctor)

        response = client.put(
            f"/api/v1/medical-records/{record.id}",
            json={"clinical_data": {"notes": "Follow-up by phone"}},
            headers=headers_for(doctor),
        )
        assert response.status_code == 200

    def test_other_doctor_elsewhere_is_scope_violation(
        self, client, doctor, patient, institution, make_institution, make_doctor, make_record, headers_for
    ):
        record = make_record(patient.patient_id, doctor.id, institution.id)
        outsider = make_doctor([make_institution(name="Elsewhere").id])
        response = client.get(f"/api/v1/medical-records/{record.id}", headers=headers_for(outsider))
        assert response.status_code == 403
        assert response.json()["reason"] == "ScopeViolation"

    def test_delete(self, client, nurse, doctor, patient, institution, make_record, record_repo, headers_for):
        record = make_record(patient.patient_id, doctor.id, institution.id)
        response = client.delete(f"/api/v1/medical-records/{record.id}", headers=headers_for(nurse))
        assert response.status_code == 200
        assert record_repo.get(record.id) is None

    def test_unknown_is_404(self, client, nurse, headers_for):
        assert client.get("/api/v1/medical-records/missing", headers=headers_for(nurse)).status_code == 404

    def test_nested_route_hides_other_institutions(
        self, client, nurse, doctor, patient, institution, make_institution, make_record, headers_for
    ):
        record = make_record(patient.patient_id, doctor.id, make_institution(name="Elsewhere").id)
        response = client.get(
            f"/api/v1/institutions/{institution.id}/medical-records/{record.id}",
            headers=headers_for(nurse),
        )
        assert response.status_code == 404
