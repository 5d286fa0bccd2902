"""Integration tests for /api/badges and automatic badge awarding."""

import pytest

from konfi.models import KonfiBadge


@pytest.fixture
def activity(client, org_admin_headers):
    response = client.post(
        "/api/activities",
        json={"name": "Sonntagsgottesdienst", "points": 2, "type": "gottesdienst"},
        headers=org_admin_headers,
    )
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def make_badge(client, org_admin_headers):
    def _make(**fields):
        payload = {"name": "Erste Schritte", "icon": "star", "criteria_type": "total_points", "criteria_value": 2}
        payload.update(fields)
        response = client.post("/api/badges", json=payload, headers=org_admin_headers)
        assert response.status_code == 201, response.json()
        return response.json()

    return _make


def assign(client, activity, konfi, headers):
    response = client.post(
        f"/api/activities/{activity['id']}/assign", json={"konfi_id": konfi.id}, headers=headers
    )
    assert response.status_code == 201
    return response.json()


class TestBadgeCatalog:

    def test_create(self, make_badge):
        badge = make_badge()
        assert badge["criteria_type"] == "total_points"
        assert badge["is_active"] is True
        assert badge["earned_count"] == 0

    def test_unknown_criteria_type(self, client, org_admin_headers):
        response = client.post(
            "/api/badges",
            json={"name": "X", "icon": "star", "criteria_type": "bonus_points", "criteria_value": 1},
            headers=org_admin_headers,
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Unknown criteria type: bonus_points"}

    def test_missing_extra(self, client, org_admin_headers):
        response = client.post(
            "/api/badges",
            json={"name": "X", "icon": "star", "criteria_type": "time_based", "criteria_value": 3},
            headers=org_admin_headers,
        )
        assert response.status_code == 400
        assert response.json() == {"error": "criteria_extra.days is required for time_based"}

    def test_teamer_cannot_create(self, client, teamer_headers):
        response = client.post(
            "/api/badges",
            json={"name": "X", "icon": "star", "criteria_type": "total_points", "criteria_value": 1},
            headers=teamer_headers,
        )
        assert response.status_code == 403

    def test_criteria_types(self, client, konfi_headers):
        response = client.get("/api/badges/criteria-types", headers=konfi_headers)
        assert response.status_code == 200
        assert response.json()["time_based"]["extra"] == "days"

    def test_update(self, client, make_badge, admin_headers):
        badge = make_badge()
        response = client.put(
            f"/api/badges/{badge['id']}", json={"criteria_value": 5, "is_active": False}, headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["criteria_value"] == 5
        assert response.json()["is_active"] is False

    def test_other_org_badge_not_found(self, client, make_badge, login, other_org):
        badge = make_badge()
        response = client.put(
            f"/api/badges/{badge['id']}", json={"criteria_value": 5}, headers=login("otheradmin")
        )
        assert response.status_code == 404


class TestAwarding:

    def test_awarded_on_assign_once(self, client, activity, make_badge, konfi_user, teamer_headers):
        make_badge()
        assert assign(client, activity, konfi_user, teamer_headers)["new_badges"] == ["Erste Schritte"]
        assert assign(client, activity, konfi_user, teamer_headers)["new_badges"] == []

    def test_not_awarded_below_threshold(self, client, activity, make_badge, konfi_user, teamer_headers):
        make_badge(criteria_value=10)
        assert assign(client, activity, konfi_user, teamer_headers)["new_badges"] == []

    def test_konfi_sees_progress(self, client, activity, make_badge, konfi_user, konfi_headers, teamer_headers):
        make_badge()
        assign(client, activity, konfi_user, teamer_headers)

        response = client.get(f"/api/badges/konfis/{konfi_user.id}", headers=konfi_headers)
        assert response.status_code == 200
        body = response.json()
        assert [b["name"] for b in body["earned"]] == ["Erste Schritte"]
        assert body["earned"][0]["earned_at"]
        assert body["progress"] == "1/1"

    def test_earned_count_in_list(self, client, activity, make_badge, konfi_user, teamer_headers):
        make_badge()
        assign(client, activity, konfi_user, teamer_headers)
        [badge] = client.get("/api/badges", headers=teamer_headers).json()
        assert badge["earned_count"] == 1

    def test_awarded_on_request_approval(self, client, make_badge, konfi_user, konfi_headers, admin_headers):
        make_badge(name="Gemeindeheld", criteria_type="gemeinde_points", criteria_value=3)
        created = client.post(
            "/api/activity-requests",
            json={"activity_name": "Gemeindefest geholfen", "description": "Aufbau", "category": "gemeinde"},
            headers=konfi_headers,
        ).json()
        response = client.put(
            f"/api/activity-requests/{created['id']}",
            json={"status": "approved", "points": 3},
            headers=admin_headers,
        )
        assert response.status_code == 200

        earned = client.get(f"/api/badges/konfis/{konfi_user.id}", headers=konfi_headers).json()["earned"]
        assert [b["name"] for b in earned] == ["Gemeindeheld"]

    def test_hidden_badge_revealed_once_earned(
        self, client, activity, make_badge, konfi_user, konfi_headers, teamer_headers
    ):
        make_badge(name="Geheim", is_hidden=True)
        url = f"/api/badges/konfis/{konfi_user.id}"
        assert client.get(url, headers=konfi_headers).json()["available"] == []

        assign(client, activity, konfi_user, teamer_headers)
        body = client.get(url, headers=konfi_headers).json()
        assert [b["name"] for b in body["available"]] == ["Geheim"]
        assert body["progress"] == "1/1"

    def test_konfi_cannot_read_other_konfi(self, client, make_user, konfi_headers):
        other = make_user("konfi2", "konfi")
        response = client.get(f"/api/badges/konfis/{other.id}", headers=konfi_headers)
        assert response.status_code == 403

    def test_delete_removes_awards(
        self, client, activity, make_badge, konfi_user, teamer_headers, admin_headers, db_session
    ):
        badge = make_badge()
        assign(client, activity, konfi_user, teamer_headers)

        response = client.delete(f"/api/badges/{badge['id']}", headers=admin_headers)
        assert response.status_code == 200
        assert db_session.query(KonfiBadge).filter(KonfiBadge.badge_id == badge["id"]).count() == 0
