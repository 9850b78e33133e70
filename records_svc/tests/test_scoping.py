"""
Tests for institution scoping and cross-institution grants.
"""
import pytest

from core.permissions import RoleName


@pytest.fixture
def institution_a(make_institution):
    return make_institution(name="Institution A")


@pytest.fixture
def institution_b(make_institution):
    return make_institution(name="Institution B")


@pytest.fixture
def nurse(make_user, institution_a):
    return make_user(RoleName.NURSE, institution_a.id)


@pytest.fixture
def patient_b(make_patient, institution_b):
    return make_patient(institution_b.id)


class TestScopeViolation:
    def test_reading_other_institutions_patient(self, client, nurse, patient_b, headers_for):
        response = client.get(f"/api/v1/patients/{patient_b.patient_id}", headers=headers_for(nurse))
        assert response.status_code == 403
        assert response.json()["reason"] == "ScopeViolation"

    def test_nested_route_of_other_institution(self, client, nurse, institution_b, headers_for):
        response = client.get(f"/api/v1/institutions/{institution_b.id}/patients", headers=headers_for(nurse))
        assert response.status_code == 403
        assert response.json()["reason"] == "ScopeViolation"

    def test_unknown_institution_is_404_before_scope(self, client, nurse, headers_for):
        response = client.get("/api/v1/institutions/missing/patients", headers=headers_for(nurse))
        assert response.status_code == 404

    def test_unaffiliated_patient_is_readable(self, client, nurse, make_patient, headers_for):
        walk_in = make_patient(None)
        response = client.get(f"/api/v1/patients/{walk_in.patient_id}", headers=headers_for(nurse))
        assert response.status_code == 200


class TestCrossInstitutionGrants:
    def grant(self, client, admin_headers, user, permissions):
        response = client.put(
            f"/api/v1/admin/users/{user.id}",
            json={"permissions": permissions},
            headers=admin_headers,
        )
        assert response.status_code == 200
        return response.json()["data"]

    def test_access_grant_opens_reads_only(self, client, admin_headers, nurse, patient_b, headers_for):
        self.grant(client, admin_headers, nurse, ["cross_institution_access"])
        url = f"/api/v1/patients/{patient_b.patient_id}"

        assert client.get(url, headers=headers_for(nurse)).status_code == 200

        response = client.put(url, json={"name": "Renamed"}, headers=headers_for(nurse))
        assert response.status_code == 403
        assert response.json()["reason"] == "ScopeViolation"

    def test_modify_grant_opens_writes(self, client, admin_headers, nurse, patient_b, headers_for):
        self.grant(client, admin_headers, nurse, ["cross_institution_access", "cross_institution_modify"])
        response = client.put(
            f"/api/v1/patients/{patient_b.patient_id}",
            json={"name": "Renamed"},
            headers=headers_for(nurse),
        )
        assert response.status_code == 200

    def test_access_grant_widens_global_listing(self, client, admin_headers, nurse, patient_b, make_patient, institution_a, headers_for):
        make_patient(institution_a.id)
        before = client.get("/api/v1/patients", headers=headers_for(nurse)).json()["pagination"]["totalItems"]
        self.grant(client, admin_headers, nurse, ["cross_institution_access"])
        after = client.get("/api/v1/patients", headers=headers_for(nurse)).json()["pagination"]["totalItems"]
        assert (before, after) == (1, 2)

    def test_grants_do_not_open_nested_routes(self, client, admin_headers, nurse, institution_b, patient_b, headers_for):
        self.grant(client, admin_headers, nurse, ["cross_institution_access", "cross_institution_modify"])
        response = client.get(
            f"/api/v1/institutions/{institution_b.id}/patients/{patient_b.patient_id}",
            headers=headers_for(nurse),
        )
        assert response.status_code == 403
        assert response.json()["reason"] == "ScopeViolation"

    def test_permission_still_required(self, client, admin_headers, make_user, institution_a, headers_for):
        receptionist = make_user(RoleName.RECEPTIONIST, institution_a.id)
        self.grant(client, admin_headers, receptionist, ["cross_institution_access"])
        response = client.get("/api/v1/medical-records", headers=headers_for(receptionist))
        assert response.status_code == 403
        assert response.json()["reason"] == "InsufficientPermission"
