"""
Tests for staff user management and the privilege-escalation guard.
"""
import pytest

from core.permissions import RoleName


def user_payload(**overrides):
    payload = {
        "name": "Nora Nurse",
        "email": "nora@example.com",
        "password": "s3cure-passw0rd",
        "role": "nurse",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def institution(make_institution):
    return make_institution()


@pytest.fixture
def manager(make_user, institution):
    return make_user(RoleName.ADMIN_INSTITUTIONS, institution.id)


class TestInstitutionManager:
    def test_creates_nurse_in_own_institution(self, client, institution, manager, headers_for):
        response = client.post(
            f"/api/v1/institutions/{institution.id}/users",
            json=user_payload(),
            headers=headers_for(manager),
        )
        assert response.status_code == 201
        created = response.json()["data"]
        assert created["institution_id"] == institution.id
        assert created["role"] == "nurse"
        assert "password_hash" not in created

    def test_path_institution_overrides_body(self, client, institution, manager, headers_for, make_institution):
        other = make_institution(name="Elsewhere")
        response = client.post(
            f"/api/v1/institutions/{institution.id}/users",
            json=user_payload(institution_id=other.id),
            headers=headers_for(manager),
        )
        assert response.status_code == 201
        assert response.json()["data"]["institution_id"] == institution.id

    @pytest.mark.parametrize("role", ["admin", "doctor", "patient"])
    def test_cannot_assign_restricted_roles(self, client, institution, manager, headers_for, role):
        response = client.post(
            f"/api/v1/institutions/{institution.id}/users",
            json=user_payload(role=role),
            headers=headers_for(manager),
        )
        assert response.status_code == 403

    def test_cannot_grant_permissions_it_lacks(self, client, institution, manager, headers_for):
        response = client.post(
            f"/api/v1/institutions/{institution.id}/users",
            json=user_payload(permissions=["emergency_override"]),
            headers=headers_for(manager),
        )
        assert response.status_code == 403

    def test_can_grant_permissions_it_holds(self, client, institution, manager, headers_for):
        response = client.post(
            f"/api/v1/institutions/{institution.id}/users",
            json=user_payload(permissions=["view_statistics"]),
            headers=headers_for(manager),
        )
        assert response.status_code == 201
        assert response.json()["data"]["permissions"] == ["view_statistics"]

    def test_cannot_promote_to_admin(self, client, institution, manager, make_user, headers_for):
        nurse = make_user(RoleName.NURSE, institution.id)
        response = client.put(
            f"/api/v1/institutions/{institution.id}/users/{nurse.id}",
            json={"role": "admin"},
            headers=headers_for(manager),
        )
        assert response.status_code == 403

    def test_duplicate_email_is_409(self, client, institution, manager, headers_for):
        url = f"/api/v1/institutions/{institution.id}/users"
        assert client.post(url, json=user_payload(), headers=headers_for(manager)).status_code == 201
        assert client.post(url, json=user_payload(), headers=headers_for(manager)).status_code == 409

    def test_lists_only_own_institution(self, client, institution, manager, make_user, make_institution, headers_for):
        make_user(RoleName.NURSE, institution.id)
        make_user(RoleName.NURSE, make_institution(name="Elsewhere").id)
        response = client.get(f"/api/v1/institutions/{institution.id}/users", headers=headers_for(manager))
        assert response.status_code == 200
        assert response.json()["pagination"]["totalItems"] == 2

    def test_user_of_other_institution_is_404(self, client, institution, manager, make_user, make_institution, headers_for):
        stranger = make_user(RoleName.NURSE, make_institution(name="Elsewhere").id)
        response = client.get(
            f"/api/v1/institutions/{institution.id}/users/{stranger.id}",
            headers=headers_for(manager),
        )
        assert response.status_code == 404

    def test_cannot_delete_self(self, client, institution, manager, headers_for):
        response = client.delete(
            f"/api/v1/institutions/{institution.id}/users/{manager.id}",
            headers=headers_for(manager),
        )
        assert response.status_code == 400

    def test_nurse_cannot_manage_users(self, client, institution, make_user, headers_for):
        nurse = make_user(RoleName.NURSE, institution.id)
        response = client.post(
            f"/api/v1/institutions/{institution.id}/users",
            json=user_payload(email="other@example.com"),
            headers=headers_for(nurse),
        )
        assert response.status_code == 403
        assert response.json()["reason"] == "InsufficientPermission"


class TestAdminUsers:
    def test_admin_creates_admin(self, client, admin_headers):
        response = client.post(
            "/api/v1/admin/users",
            json=user_payload(email="second-admin@example.com", role="admin"),
            headers=admin_headers,
        )
        assert response.status_code == 201
        assert response.json()["data"]["institution_id"] is None

    def test_non_admin_role_needs_institution(self, client, admin_headers):
        response = client.post("/api/v1/admin/users", json=user_payload(), headers=admin_headers)
        assert response.status_code == 400

    def test_unknown_institution_is_404(self, client, admin_headers):
        response = client.post(
            "/api/v1/admin/users",
            json=user_payload(institution_id="missing"),
            headers=admin_headers,
        )
        assert response.status_code == 404

    def test_admin_accounts_cannot_be_deleted(self, client, admin, admin_headers):
        response = client.delete(f"/api/v1/admin/users/{admin.id}", headers=admin_headers)
        assert response.status_code == 400

    def test_crud_is_audited(self, client, admin, admin_headers, make_institution, audit_repo):
        inst = make_institution()
        created = client.post(
            "/api/v1/admin/users",
            json=user_payload(institution_id=inst.id),
            headers=admin_headers,
        ).json()["data"]
        client.put(f"/api/v1/admin/users/{created['id']}", json={"name": "Nora N."}, headers=admin_headers)
        assert client.delete(f"/api/v1/admin/users/{created['id']}", headers=admin_headers).status_code == 200

        actions = [e.action for e in audit_repo.list(actor_id=admin.id)[0]]
        assert set(actions) == {"user_created", "user_updated", "user_deleted"}

    def test_admin_routes_reject_non_admins(self, client, make_institution, make_user, headers_for):
        manager = make_user(RoleName.ADMIN_INSTITUTIONS, make_institution().id)
        for path in ("/api/v1/admin/users", "/api/v1/admin/roles", "/api/v1/admin/audit-logs"):
            assert client.get(path, headers=headers_for(manager)).status_code == 403

    def test_audit_log_listing(self, client, admin_headers, make_institution):
        inst = make_institution()
        client.post("/api/v1/admin/users", json=user_payload(institution_id=inst.id), headers=admin_headers)
        response = client.get("/api/v1/admin/audit-logs?action=user_created", headers=admin_headers)
        assert response.status_code == 200
        entries = response.json()["data"]
        assert len(entries) == 1
        assert entries[0]["action"] == "user_created"
