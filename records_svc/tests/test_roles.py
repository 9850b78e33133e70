"""
Tests for role documents and their effect on effective permissions.
"""
from core.permissions import RoleName

NURSE_ROLE = {
    "name": "nurse",
    "display_name": "Ward Nurse",
    "description": "Reads and writes patient charts only",
    "permissions": ["manage_patients"],
}


def test_system_roles_listed(client, admin_headers):
    response = client.get("/api/v1/admin/roles?limit=100", headers=admin_headers)
    assert response.status_code == 200
    roles = {r["name"]: r for r in response.json()["data"]}
    assert {"admin", "admin_institutions", "doctor", "patient"} <= set(roles)
    assert all(roles[name]["is_system"] for name in ("admin", "admin_institutions", "doctor", "patient"))


def test_create_get_and_duplicate(client, admin_headers):
    response = client.post("/api/v1/admin/roles", json=NURSE_ROLE, headers=admin_headers)
    assert response.status_code == 201
    role = response.json()["data"]
    assert role["is_system"] is False
    assert role["permissions"] == ["manage_patients"]

    fetched = client.get(f"/api/v1/admin/roles/{role['id']}", headers=admin_headers)
    assert fetched.json()["data"]["display_name"] == "Ward Nurse"

    assert client.post("/api/v1/admin/roles", json=NURSE_ROLE, headers=admin_headers).status_code == 409


def test_stored_bundle_replaces_default(client, admin_headers, make_institution, make_user, headers_for):
    nurse = make_user(RoleName.NURSE, make_institution().id)
    headers = headers_for(nurse)
    me = client.get("/api/v1/auth/me", headers=headers).json()["data"]
    assert "manage_medical_records" in me["permissions"]

    client.post("/api/v1/admin/roles", json=NURSE_ROLE, headers=admin_headers)

    me = client.get("/api/v1/auth/me", headers=headers).json()["data"]
    assert me["permissions"] == ["manage_patients"]
    assert client.get("/api/v1/medical-records", headers=headers).status_code == 403


def test_update_bundle_applies_on_next_request(client, admin_headers, make_institution, make_user, headers_for):
    role = client.post("/api/v1/admin/roles", json=NURSE_ROLE, headers=admin_headers).json()["data"]
    nurse = make_user(RoleName.NURSE, make_institution().id)

    response = client.put(
        f"/api/v1/admin/roles/{role['id']}",
        json={"permissions": ["manage_patients", "view_statistics"]},
        headers=admin_headers,
    )
    assert response.status_code == 200

    me = client.get("/api/v1/auth/me", headers=headers_for(nurse)).json()["data"]
    assert sorted(me["permissions"]) == ["manage_patients", "view_statistics"]


def test_system_role_cannot_be_deleted(client, admin_headers, role_repo):
    doctor_role = role_repo.get_by_name(RoleName.DOCTOR)
    response = client.delete(f"/api/v1/admin/roles/{doctor_role.id}", headers=admin_headers)
    assert response.status_code == 400
    assert role_repo.get(doctor_role.id) is not None


def test_custom_role_deleted_and_audited(client, admin, admin_headers, role_repo, audit_repo):
    role = client.post("/api/v1/admin/roles", json=NURSE_ROLE, headers=admin_headers).json()["data"]
    assert client.delete(f"/api/v1/admin/roles/{role['id']}", headers=admin_headers).status_code == 200
    assert role_repo.get(role["id"]) is None

    actions = {e.action for e in audit_repo.list(actor_id=admin.id)[0]}
    assert {"role_created", "role_deleted"} <= actions


def test_unknown_role_is_404(client, admin_headers):
    assert client.get("/api/v1/admin/roles/missing", headers=admin_headers).status_code == 404


def test_unknown_permission_is_422(client, admin_headers):
    response = client.post(
        "/api/v1/admin/roles",
        json={**NURSE_ROLE, "permissions": ["fly_helicopters"]},
        headers=admin_headers,
    )
    assert response.status_code == 422
