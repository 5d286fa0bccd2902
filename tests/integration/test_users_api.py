"""Integration tests for /api/users and the hierarchy gate."""

import pytest

from konfi.models import AuditLog, User


class TestListUsers:
    """GET /api/users"""

    def test_lists_staff_with_can_edit(self, client, admin_headers, org_admin, teamer_user, konfi_user):
        response = client.get("/api/users", headers=admin_headers)

        assert response.status_code == 200
        users = {u["username"]: u for u in response.json()}
        assert set(users) == {"orgadmin", "pastor", "teamer1"}
        assert users["orgadmin"]["can_edit"] is False
        assert users["pastor"]["can_edit"] is False
        assert users["teamer1"]["can_edit"] is True

    def test_include_konfis(self, client, teamer_headers, konfi_user):
        response = client.get("/api/users?include_konfis=true", headers=teamer_headers)
        users = {u["username"]: u for u in response.json()}
        assert users["konfi1"]["can_edit"] is True
        assert users["teamer1"]["can_edit"] is False

    def test_konfi_lacks_permission(self, client, konfi_headers):
        response = client.get("/api/users", headers=konfi_headers)
        assert response.status_code == 403
        assert "admin.users.view" in response.json()["error"]

    def test_requires_token(self, client, org):
        response = client.get("/api/users")
        assert response.status_code == 401
        assert response.json() == {"error": "No token provided"}

    def test_rejects_garbage_token(self, client, org):
        response = client.get("/api/users", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401


class TestCreateUser:
    """POST /api/users"""

    def test_admin_creates_teamer(self, client, db_session, admin_headers, roles):
        response = client.post(
            "/api/users",
            json={
                "username": "newteamer",
                "display_name": "Neue Teamerin",
                "password": "secret123",
                "role_id": roles["teamer"].id,
            },
            headers=admin_headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["username"] == "newteamer"
        assert body["message"]
        created = db_session.query(User).filter(User.id == body["id"]).one()
        assert created.role_name == "teamer"
        assert db_session.query(AuditLog).filter(AuditLog.action == "user.created").count() == 1

    def test_teamer_cannot_create_teamer(self, client, teamer_headers, roles):
        response = client.post(
            "/api/users",
            json={
                "username": "another",
                "display_name": "Another",
                "password": "secret123",
                "role_id": roles["teamer"].id,
            },
            headers=teamer_headers,
        )
        assert response.status_code == 403
        assert "teamer" in response.json()["error"]

    def test_teamer_creates_konfi(self, client, teamer_headers, roles):
        response = client.post(
            "/api/users",
            json={
                "username": "konfi2",
                "display_name": "Ben",
                "password": "secret123",
                "role_id": roles["konfi"].id,
            },
            headers=teamer_headers,
        )
        assert response.status_code == 201

    def test_foreign_role_rejected(self, client, db_session, org_admin_headers, other_org):
        from konfi.models import Role

        foreign = (
            db_session.query(Role)
            .filter(Role.organization_id == other_org.id, Role.name == "konfi")
            .one()
        )
        response = client.post(
            "/api/users",
            json={"username": "x-user", "display_name": "X", "password": "secret123", "role_id": foreign.id},
            headers=org_admin_headers,
        )
        assert response.status_code == 400

    def test_duplicate_username(self, client, org_admin_headers, roles, teamer_user):
        response = client.post(
            "/api/users",
            json={"username": "teamer1", "display_name": "Dup", "password": "secret123", "role_id": roles["konfi"].id},
            headers=org_admin_headers,
        )
        assert response.status_code == 409

    def test_validation_errors_are_400(self, client, org_admin_headers, roles):
        response = client.post(
            "/api/users",
            json={"username": "ab", "display_name": "Short", "password": "123", "role_id": roles["konfi"].id},
            headers=org_admin_headers,
        )
        assert response.status_code == 400
        assert "error" in response.json()

    @pytest.mark.parametrize("encode", [lambda rid: True, lambda rid: f"{rid}.0", lambda rid: str(rid)])
    def test_non_integer_role_id_cannot_slip_past_gate(self, client, db_session, teamer_headers, roles, encode):
        response = client.post(
            "/api/users",
            json={
                "username": "sneaky",
                "display_name": "Sneaky",
                "password": "secret123",
                "role_id": encode(roles["admin"].id),
            },
            headers=teamer_headers,
        )

        assert response.status_code == 400
        assert response.json() == {"error": "role_id must be an integer"}
        assert db_session.query(User).filter(User.username == "sneaky").first() is None


class TestUpdateUser:
    """PUT /api/users/{id}"""

    def test_org_admin_promotes_teamer_to_admin(self, client, db_session, org_admin_headers, teamer_user, roles):
        response = client.put(
            f"/api/users/{teamer_user.id}",
            json={"role_id": roles["admin"].id},
            headers=org_admin_headers,
        )

        assert response.status_code == 200
        db_session.expire_all()
        assert db_session.get(User, teamer_user.id).role_name == "admin"

    def test_admin_cannot_promote_teamer_to_admin(self, client, admin_headers, teamer_user, roles):
        response = client.put(
            f"/api/users/{teamer_user.id}",
            json={"role_id": roles["admin"].id},
            headers=admin_headers,
        )
        assert response.status_code == 403

    @pytest.mark.parametrize("encode", [lambda rid: True, lambda rid: f"{rid}.0", lambda rid: str(rid)])
    def test_non_integer_role_id_cannot_promote(self, client, db_session, admin_headers, teamer_user, roles, encode):
        response = client.put(
            f"/api/users/{teamer_user.id}",
            json={"role_id": encode(roles["org_admin"].id)},
            headers=admin_headers,
        )

        assert response.status_code == 400
        db_session.expire_all()
        assert db_session.get(User, teamer_user.id).role_name == "teamer"

    def test_admin_can_rename_teamer(self, client, admin_headers, teamer_user):
        response = client.put(
            f"/api/users/{teamer_user.id}",
            json={"display_name": "Renamed"},
            headers=admin_headers,
        )
        assert response.status_code == 200

    def test_cross_org_target_is_404(self, client, org_admin_headers, other_org, make_user):
        stranger = make_user("stranger", "teamer", organization=other_org)
        response = client.put(
            f"/api/users/{stranger.id}",
            json={"display_name": "Hijacked"},
            headers=org_admin_headers,
        )
        assert response.status_code == 404

    def test_empty_update_rejected(self, client, org_admin_headers, teamer_user):
        response = client.put(f"/api/users/{teamer_user.id}", json={}, headers=org_admin_headers)
        assert response.status_code == 400

    def test_cannot_deactivate_self(self, client, org_admin_headers, org_admin):
        response = client.put(
            f"/api/users/{org_admin.id}",
            json={"is_active": False},
            headers=org_admin_headers,
        )
        assert response.status_code == 400

    def test_deactivated_user_token_stops_working(self, client, org_admin_headers, teamer_user, teamer_headers):
        client.put(f"/api/users/{teamer_user.id}", json={"is_active": False}, headers=org_admin_headers)
        response = client.get("/api/auth/me", headers=teamer_headers)
        assert response.status_code == 401

    def test_reset_password(self, client, org_admin_headers, teamer_user, login):
        response = client.put(
            f"/api/users/{teamer_user.id}/reset-password",
            json={"password": "brandnew1"},
            headers=org_admin_headers,
        )
        assert response.status_code == 200
        assert login("teamer1", "brandnew1")


class TestDeleteUser:
    """DELETE /api/users/{id}"""

    def test_admin_cannot_delete_org_admin(self, client, admin_headers, org_admin):
        response = client.delete(f"/api/users/{org_admin.id}", headers=admin_headers)
        assert response.status_code == 403
        assert "org_admin" in response.json()["error"]

    def test_admin_deletes_konfi(self, client, db_session, admin_headers, konfi_user):
        konfi_id = konfi_user.id
        response = client.delete(f"/api/users/{konfi_id}", headers=admin_headers)
        assert response.status_code == 200
        db_session.expire_all()
        assert db_session.get(User, konfi_id) is None

    def test_cannot_delete_self(self, client, org_admin_headers, org_admin):
        response = client.delete(f"/api/users/{org_admin.id}", headers=org_admin_headers)
        assert response.status_code == 400

    def test_teamer_lacks_delete_permission(self, client, teamer_headers, konfi_user):
        response = client.delete(f"/api/users/{konfi_user.id}", headers=teamer_headers)
        assert response.status_code == 403


class TestGetUser:

    def test_view_gate(self, client, teamer_headers, admin_user, konfi_user):
        assert client.get(f"/api/users/{konfi_user.id}", headers=teamer_headers).status_code == 200
        assert client.get(f"/api/users/{admin_user.id}", headers=teamer_headers).status_code == 403
