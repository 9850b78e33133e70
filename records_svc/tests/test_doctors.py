"""
Tests for doctor endpoints.
"""
import pytest

from core.permissions import Permission, RoleName


def doctor_payload(**overrides):
    payload = {
        "name": "Dr. Ada Lovelace",
        "email": "ada@example.com",
        "password": "doctor-password",
        "specialization": "Cardiology",
        "license_number": "LIC-2024-001",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def institution(make_institution):
    return make_institution()


@pytest.fixture
def manager(make_user, institution):
    return make_user(RoleName.ADMIN_INSTITUTIONS, institution.id)


class TestCreate:
    def test_nested_create_adds_path_institution(self, client, institution, manager, headers_for):
        response = client.post(
            f"/api/v1/institutions/{institution.id}/doctors",
            json=doctor_payload(),
            headers=headers_for(manager),
        )
        assert response.status_code == 201
        created = response.json()["data"]
        assert created["institution_ids"] == [institution.id]
        assert created["can_sign_in"] is True
        assert "password_hash" not in created

    def test_global_create_requires_an_institution(self, client, manager, headers_for):
        response = client.post("/api/v1/doctors", json=doctor_payload(), headers=headers_for(manager))
        assert response.status_code == 400

    def test_global_create_with_institutions(self, client, institution, manager, headers_for):
        response = client.post(
            "/api/v1/doctors",
            json=doctor_payload(institution_ids=[institution.id]),
            headers=headers_for(manager),
        )
        assert response.status_code == 201

    def test_without_password_cannot_sign_in(self, client, institution, manager, headers_for):
        body = doctor_payload()
        del body["password"]
        response = client.post(
            f"/api/v1/institutions/{institution.id}/doctors", json=body, headers=headers_for(manager)
        )
        assert response.json()["data"]["can_sign_in"] is False

    def test_duplicate_license_is_409(self, client, institution, manager, headers_for):
        url = f"/api/v1/institutions/{institution.id}/doctors"
        assert client.post(url, json=doctor_payload(), headers=headers_for(manager)).status_code == 201
        response = client.post(
            url, json=doctor_payload(email="other@example.com"), headers=headers_for(manager)
        )
        assert response.status_code == 409
        assert "license_number" in response.json()["message"]

    def test_foreign_institution_is_scope_violation(self, client, manager, make_institution, headers_for):
        other = make_institution(name="Elsewhere")
        response = client.post(
            "/api/v1/doctors",
            json=doctor_payload(institution_ids=[other.id]),
            headers=headers_for(manager),
        )
        assert response.status_code == 403
        assert response.json()["reason"] == "ScopeViolation"

    def test_nurse_cannot_register_doctors(self, client, institution, make_user, headers_for):
        nurse = make_user(RoleName.NURSE, institution.id)
        response = client.post(
            f"/api/v1/institutions/{institution.id}/doctors",
            json=doctor_payload(),
            headers=headers_for(nurse),
        )
        assert response.status_code == 403
        assert response.json()["reason"] == "InsufficientPermission"


class TestReadUpdateDelete:
    def test_get_and_update(self, client, institution, manager, make_doctor, headers_for):
        doctor = make_doctor([institution.id])
        url = f"/api/v1/doctors/{doctor.id}"
        assert client.get(url, headers=headers_for(manager)).json()["data"]["name"] == "Dr. Grey"

        response = client.put(url, json={"specialization": "Neurology"}, headers=headers_for(manager))
        assert response.status_code == 200
        assert response.json()["data"]["specialization"] == "Neurology"

    def test_nested_update_cannot_detach_path_institution(
        self, client, institution, manager, make_doctor, headers_for
    ):
        doctor = make_doctor([institution.id])
        response = client.put(
            f"/api/v1/institutions/{institution.id}/doctors/{doctor.id}",
            json={"institution_ids": []},
            headers=headers_for(manager),
        )
        assert response.status_code == 400

    def test_doctor_of_other_institution_hidden_on_nested_route(
        self, client, institution, manager, make_doctor, make_institution, headers_for
    ):
        doctor = make_doctor([make_institution(name="Elsewhere").id])
        response = client.get(
            f"/api/v1/institutions/{institution.id}/doctors/{doctor.id}",
            headers=headers_for(manager),
        )
        assert response.status_code == 404

    def test_unknown_is_404(self, client, manager, headers_for):
        assert client.get("/api/v1/doctors/missing", headers=headers_for(manager)).status_code == 404

    def test_delete(self, client, institution, manager, make_doctor, doctor_repo, headers_for):
        doctor = make_doctor([institution.id])
        response = client.delete(f"/api/v1/doctors/{doctor.id}", headers=headers_for(manager))
        assert response.status_code == 200
        assert doctor_repo.get(doctor.id) is None

    def test_delete_with_records_is_409(
        self, client, institution, manager, make_doctor, make_patient, make_record, headers_for
    ):
        doctor = make_doctor([institution.id])
        make_record(make_patient(institution.id).patient_id, doctor.id, institution.id)
        response = client.delete(f"/api/v1/doctors/{doctor.id}", headers=headers_for(manager))
        assert response.status_code == 409


class TestSharedDoctor:
    @pytest.fixture
    def partner(self, make_institution):
        return make_institution(name="Partner Clinic")

    @pytest.fixture
    def shared(self, make_doctor, institution, partner):
        return make_doctor([institution.id, partner.id])

    def test_removing_other_institution_is_scope_violation(
        self, client, manager, shared, institution, doctor_repo, headers_for
    ):
        response = client.put(
            f"/api/v1/doctors/{shared.id}",
            json={"institution_ids": [institution.id]},
            headers=headers_for(manager),
        )
        assert response.status_code == 403
        assert response.json()["reason"] == "ScopeViolation"
        assert len(doctor_repo.get(shared.id).institution_ids) == 2

    def test_removing_own_institution_is_allowed(
        self, client, manager, shared, partner, headers_for
    ):
        response = client.put(
            f"/api/v1/doctors/{shared.id}",
            json={"institution_ids": [partner.id]},
            headers=headers_for(manager),
        )
        assert response.status_code == 200
        assert response.json()["data"]["institution_ids"] == [partner.id]

    def test_cross_institution_modify_allows_removal(
        self, client, make_user, institution, shared, headers_for
    ):
        manager = make_user(
            RoleName.ADMIN_INSTITUTIONS, institution.id, permissions=[Permission.CROSS_INSTITUTION_MODIFY]
        )
        response = client.put(
            f"/api/v1/doctors/{shared.id}",
            json={"institution_ids": [institution.id]},
            headers=headers_for(manager),
        )
        assert response.status_code == 200
        assert response.json()["data"]["institution_ids"] == [institution.id]

    def test_delete_is_scope_violation(self, client, manager, shared, doctor_repo, headers_for):
        response = client.delete(f"/api/v1/doctors/{shared.id}", headers=headers_for(manager))
        assert response.status_code == 403
        assert response.json()["reason"] == "ScopeViolation"
        assert doctor_repo.get(shared.id) is not None

    def test_admin_may_delete(self, client, admin_headers, shared, doctor_repo):
        response = client.delete(f"/api/v1/doctors/{shared.id}", headers=admin_headers)
        assert response.status_code == 200
        assert doctor_repo.get(shared.id) is None


class TestListing:
    def test_scoped_to_own_institutions(self, client, institution, manager, make_doctor, make_institution, headers_for):
        make_doctor([institution.id])
        make_doctor([make_institution(name="Elsewhere").id])
        response = client.get("/api/v1/doctors", headers=headers_for(manager))
        assert response.json()["pagination"]["totalItems"] == 1

    def test_admin_sees_all(self, client, admin_headers, make_doctor, make_institution):
        make_doctor([make_institution().id])
        make_doctor([make_institution(name="Elsewhere").id])
        response = client.get("/api/v1/doctors", headers=admin_headers)
        assert response.json()["pagination"]["totalItems"] == 2

    def test_multi_institution_doctor_listed_under_each(
        self, client, institution, make_doctor, make_institution, admin_headers
    ):
        other = make_institution(name="Elsewhere")
        make_doctor([institution.id, other.id])
        for inst_id in (institution.id, other.id):
            response = client.get(f"/api/v1/institutions/{inst_id}/doctors", headers=admin_headers)
            assert response.json()["pagination"]["totalItems"] == 1

    def test_search(self, client, institution, manager, make_doctor, headers_for, doctor_repo):
        doctor = make_doctor([institution.id])
        doctor.specialization = "Dermatology"
        doctor_repo.update(doctor)
        make_doctor([institution.id])
        response = client.get("/api/v1/doctors?specialization=Dermatology", headers=headers_for(manager))
        assert [d["id"] for d in response.json()["data"]] == [doctor.id]
