"""Integration tests for /api/organizations."""

from konfi.models import Organization, Role, Setting, User

NEW_ORG = {
    "name": "St. Johannis",
    "slug": "st-johannis",
    "display_name": "Kirchengemeinde St. Johannis",
    "admin_username": "johannis-admin",
    "admin_password": "secret123",
    "admin_display_name": "Pfarrerin Johannis",
}


class TestCreateOrganization:

    def test_creates_roles_settings_and_admin(self, client, db_session, org_admin_headers, login):
        response = client.post("/api/organizations", json=NEW_ORG, headers=org_admin_headers)

        assert response.status_code == 201
        org_id = response.json()["id"]
        role_names = {r.name for r in db_session.query(Role).filter(Role.organization_id == org_id)}
        assert role_names == {"org_admin", "admin", "teamer", "konfi"}
        settings = {s.key for s in db_session.query(Setting).filter(Setting.organization_id == org_id)}
        assert settings == {"target_gottesdienst", "target_gemeinde"}
        admin = db_session.query(User).filter(User.username == "johannis-admin").one()
        assert admin.organization_id == org_id
        assert admin.role_name == "org_admin"
        assert login("johannis-admin", "secret123")

    def test_duplicate_slug(self, client, org_admin_headers):
        payload = dict(NEW_ORG, slug="st-marien")
        assert client.post("/api/organizations", json=payload, headers=org_admin_headers).status_code == 409

    def test_duplicate_admin_username_creates_nothing(self, client, db_session, org_admin_headers):
        payload = dict(NEW_ORG, admin_username="orgadmin")
        assert client.post("/api/organizations", json=payload, headers=org_admin_headers).status_code == 409
        assert db_session.query(Organization).filter(Organization.slug == "st-johannis").first() is None

    def test_admin_lacks_permission(self, client, admin_headers):
        assert client.post("/api/organizations", json=NEW_ORG, headers=admin_headers).status_code == 403

    def test_missing_fields(self, client, org_admin_headers):
        response = client.post("/api/organizations", json={"name": "Nope"}, headers=org_admin_headers)
        assert response.status_code == 400


class TestReadOrganization:

    def test_current(self, client, org, konfi_user, teamer_headers):
        response = client.get("/api/organizations/current", headers=teamer_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["slug"] == "st-marien"
        assert body["konfi_count"] == 1
        assert body["user_count"] == 2

    def test_other_org_is_forbidden(self, client, org_admin_headers, other_org):
        assert client.get(f"/api/organizations/{other_org.id}", headers=org_admin_headers).status_code == 403

    def test_list(self, client, org_admin_headers, other_org):
        slugs = {o["slug"] for o in client.get("/api/organizations", headers=org_admin_headers).json()}
        assert slugs == {"st-marien", "st-paul"}

    def test_stats(self, client, org, org_admin_headers, konfi_user):
        response = client.get(f"/api/organizations/{org.id}/stats", headers=org_admin_headers)
        assert response.json()["konfi_count"] == 1
        assert response.json()["pending_request_count"] == 0


class TestUpdateDeleteOrganization:

    def test_update_own(self, client, org, org_admin_headers):
        response = client.put(
            f"/api/organizations/{org.id}",
            json={"contact_email": "buero@st-marien.de"},
            headers=org_admin_headers,
        )
        assert response.status_code == 200

    def test_update_other_is_forbidden(self, client, org_admin_headers, other_org):
        response = client.put(
            f"/api/organizations/{other_org.id}",
            json={"display_name": "Taken over"},
            headers=org_admin_headers,
        )
        assert response.status_code == 403

    def test_cannot_delete_own(self, client, org, org_admin_headers):
        assert client.delete(f"/api/organizations/{org.id}", headers=org_admin_headers).status_code == 400

    def test_cannot_delete_with_konfis(self, client, org_admin_headers, other_org, make_user):
        make_user("paul-konfi", "konfi", organization=other_org)
        response = client.delete(f"/api/organizations/{other_org.id}", headers=org_admin_headers)
        assert response.status_code == 409

    def test_delete_other_without_konfis(self, client, db_session, org_admin_headers, other_org):
        org_id = other_org.id
        response = client.delete(f"/api/organizations/{org_id}", headers=org_admin_headers)
        assert response.status_code == 200
        db_session.expire_all()
        assert db_session.get(Organization, org_id) is None
        assert db_session.query(User).filter(User.organization_id == org_id).count() == 0
        assert db_session.query(Role).filter(Role.organization_id == org_id).count() == 0
