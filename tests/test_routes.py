from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from dispatch.cache import JsonCache
from dispatch.email_service import EmailSendResult
from dispatch.models import Billing, MissionAssignment, User
from dispatch.routes import email as email_routes
from dispatch.routes import geocoding

from conftest import add_assignment, add_mission, add_user, future


class FakeRedis:
    def __init__(self):
        self.data = {}
        self.ttls = {}

    def get(self, key):
        return self.data.get(key)

    def setex(self, key, ttl, value):
        self.data[key] = value
        self.ttls[key] = ttl


class TestUsers:
    def test_create_and_list_technicians(self, client):
        response = client.post(
            "/users", json={"name": "Jean", "email": "Jean@Example.com", "phone": "06 12 34 56 78"}
        )
        assert response.status_code == 201
        assert response.json()["email"] == "jean@example.com"
        assert response.json()["is_validated"] is False

        client.post("/users", json={"name": "Sophie", "role": "admin"})

        technicians = client.get("/users/technicians").json()
        assert [t["name"] for t in technicians] == ["Jean"]

    def test_duplicate_email(self, client):
        client.post("/users", json={"name": "Jean", "email": "jean@example.com"})
        response = client.post("/users", json={"name": "Jean bis", "email": "jean@example.com"})
        assert response.status_code == 409

    def test_invalid_phone(self, client):
        response = client.post("/users", json={"name": "Jean", "phone": "123"})
        assert response.status_code == 422

    def test_validation_toggle(self, client, db):
        technician = add_user(db)

        response = client.post(f"/users/{technician.id}/validate", json={"is_validated": True})

        assert response.status_code == 200
        assert response.json()["is_validated"] is True

    def test_update_profile(self, client, db):
        technician = add_user(db)

        response = client.patch(f"/users/{technician.id}", json={"name": "Jean-Marc"})

        assert response.json()["name"] == "Jean-Marc"
        assert client.patch("/users/nope", json={"name": "x"}).status_code == 404

    def test_delete_technician_removes_assignments(self, client, db):
        technician = add_user(db)
        mission = add_mission(db, future(hour=10), future(hour=12))
        add_assignment(db, mission, technician)

        response = client.delete(f"/users/{technician.id}")

        assert response.status_code == 200
        db.expire_all()
        assert db.get(User, technician.id) is None
        assert db.query(MissionAssignment).count() == 0
        assert client.get(f"/missions/{mission.id}").json()["assignments"] == []

    def test_delete_technician_with_payments_is_refused(self, client, db):
        technician = add_user(db)
        mission = add_mission(db, future(hour=10), future(hour=12))
        db.add(Billing(mission_id=mission.id, technician_id=technician.id, amount=150))
        db.commit()

        assert client.delete(f"/users/{technician.id}").status_code == 409

    def test_delete_only_targets_technicians(self, client, db):
        admin = add_user(db, name="Sophie", role="admin")

        assert client.delete(f"/users/{admin.id}").status_code == 404
        assert client.delete("/users/nope").status_code == 404


class TestAvailability:
    def test_create_list_delete(self, client, db):
        technician = add_user(db)

        response = client.post(
            "/availability",
            json={"technician_id": technician.id, "start_time": "09:00", "end_time": "17:00"},
        )
        assert response.status_code == 201
        availability_id = response.json()["id"]

        listed = client.get(f"/availability/{technician.id}").json()
        assert [a["id"] for a in listed] == [availability_id]

        assert client.delete(f"/availability/{availability_id}").status_code == 204
        assert client.get(f"/availability/{technician.id}").json() == []
        assert client.delete(f"/availability/{availability_id}").status_code == 404

    def test_reversed_times(self, client, db):
        technician = add_user(db)

        response = client.post(
            "/availability",
            json={"technician_id": technician.id, "start_time": "17:00", "end_time": "09:00"},
        )

        assert response.status_code == 400


class TestBilling:
    def test_create_and_mark_paid(self, client, db):
        technician = add_user(db, email="jean@example.com")
        mission = add_mission(db, future(hour=10), future(hour=12))

        response = client.post(
            "/billing",
            json={"mission_id": mission.id, "technician_id": technician.id, "amount": 150},
        )
        assert response.status_code == 201
        billing = response.json()
        assert billing["status"] == "pending"
        assert billing["mission"]["title"] == "Livraison château"

        response = client.patch(f"/billing/{billing['id']}/status", json={"status": "paid"})
        assert response.json()["status"] == "paid"
        assert response.json()["paid_at"] is not None

        assert len(client.get("/billing", params={"technician_id": technician.id}).json()) == 1
        assert client.get("/billing", params={"technician_id": "other"}).json() == []

    def test_amount_ceiling(self, client, db):
        technician = add_user(db)
        mission = add_mission(db, future(hour=10), future(hour=12))

        response = client.post(
            "/billing",
            json={"mission_id": mission.id, "technician_id": technician.id, "amount": 20000},
        )

        assert response.status_code == 422

    def test_unknown_mission(self, client, db):
        technician = add_user(db)
        response = client.post(
            "/billing", json={"mission_id": "nope", "technician_id": technician.id, "amount": 10}
        )
        assert response.status_code == 404


class TestSendAssignmentEmail:
    def body(self, **mission):
        payload = {
            "title": "Livraison",
            "type": "Livraison jeux",
            "date_start": "2026-11-07T09:00:00Z",
            "date_end": "2026-11-07T13:00:00Z",
            "location": "Lyon",
            "forfeit": 150,
        }
        payload.update(mission)
        return {
            "technician": {"id": "t1", "name": "Jean", "email": "jean@example.com"},
            "mission": payload,
            "adminName": "Sophie",
        }

    def test_success(self, client, monkeypatch):
        send = AsyncMock(return_value=EmailSendResult(success=True, message_id="<42@esil>"))
        monkeypatch.setattr(email_routes, "send_assignment_notification", send)

        response = client.post("/email/send-assignment", json=self.body())

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "messageId": "<42@esil>",
            "message": "Email envoyé avec succès",
        }
        technician, mission, admin_name = send.await_args.args
        assert technician.name == "Jean"
        assert mission.title == "Livraison"
        assert admin_name == "Sophie"

    def test_missing_title(self, client):
        response = client.post("/email/send-assignment", json=self.body(title=None))

        assert response.status_code == 400
        assert "titre" in response.json()["error"]

    def test_missing_email(self, client):
        body = self.body()
        body["technician"]["email"] = None

        assert client.post("/email/send-assignment", json=body).status_code == 400

    def test_transport_failure(self, client):
        response = client.post("/email/send-assignment", json=self.body())

        assert response.status_code == 500
        assert response.json()["details"] == "Email service not configured"


class TestValidationRoutes:
    def test_mission_dates(self, client):
        response = client.post(
            "/validation/mission-dates",
            json={"date_start": future(hour=12).isoformat(), "date_end": future(hour=10).isoformat()},
        )
        assert response.json() == {
            "is_valid": False,
            "error": "La date de fin doit être postérieure à la date de début",
            "reason": "InvalidRange",
        }

    def test_availability(self, client):
        response = client.post(
            "/validation/availability", json={"start_time": "08:00", "end_time": "12:00"}
        )
        assert response.json()["is_valid"] is True

    def test_password(self, client):
        response = client.post("/validation/password", json={"password": "abc"})
        assert response.json()["strength"] == 1
        assert len(response.json()["errors"]) == 4

    def test_planning_conflict(self, client):
        response = client.post(
            "/validation/planning-conflict",
            json={
                "date_start": "2026-06-02T10:00:00+02:00",
                "date_end": "2026-06-02T12:00:00+02:00",
                "existing": [
                    {"id": "a", "date_start": "2026-06-02T06:00:00Z", "date_end": "2026-06-02T08:00:00Z"},
                    {"id": "b", "date_start": "2026-06-02T09:00:00Z", "date_end": "2026-06-02T11:00:00Z"},
                ],
            },
        )
        body = response.json()
        assert body["has_conflict"] is True
        assert body["conflicting"]["id"] == "b"


class TestGeocoding:
    @pytest.fixture
    def redis(self, monkeypatch):
        fake = FakeRedis()
        monkeypatch.setattr(
            geocoding, "search_cache", JsonCache("nominatim:search", ttl=60, client_factory=lambda: fake)
        )
        return fake

    def mock_client(self, response):
        client = AsyncMock()
        client.get.return_value = response
        client.__aenter__.return_value = client
        return patch("dispatch.routes.geocoding.httpx.AsyncClient", return_value=client)

    def test_results_are_ranked_and_cached(self, client, redis):
        response = httpx.Response(
            200,
            json=[
                {"lat": "45.76", "lon": "4.83", "display_name": "Lyon", "importance": 0.4},
                {"lat": "45.75", "lon": "4.85", "display_name": "Lyon 7e", "importance": 0.9},
                {"lat": "n/a", "lon": "4.8", "display_name": "Cassé"},
            ],
        )
        with self.mock_client(response) as factory:
            first = client.get("/geocoding/search", params={"q": "Lyon"})
            second = client.get("/geocoding/search", params={"q": "lyon"})

        assert first.status_code == 200
        assert [r["displayName"] for r in first.json()["results"]] == ["Lyon 7e", "Lyon"]
        assert first.json()["results"][0] == {"latitude": 45.75, "longitude": 4.85, "displayName": "Lyon 7e"}
        assert second.json() == first.json()
        assert factory.call_count == 1
        assert list(redis.data) == ["nominatim:search:5:lyon"]

    def test_short_query(self, client, redis):
        assert client.get("/geocoding/search", params={"q": "ly"}).json() == {"results": []}

    def test_upstream_error(self, client, redis):
        with self.mock_client(httpx.Response(503, text="overloaded")):
            response = client.get("/geocoding/search", params={"q": "Lyon"})

        assert response.status_code == 502

    def test_network_error(self, client, redis):
        client_mock = AsyncMock()
        client_mock.__aenter__.return_value = client_mock
        client_mock.get.side_effect = httpx.ConnectError("unreachable")
        with patch("dispatch.routes.geocoding.httpx.AsyncClient", return_value=client_mock):
            response = client.get("/geocoding/search", params={"q": "Lyon"})

        assert response.status_code == 502


class TestJsonCache:
    def test_fails_open_without_redis(self):
        def unavailable():
            raise ConnectionError("no redis")

        cache = JsonCache("test", ttl=60, client_factory=unavailable)

        assert cache.fetch("key") is None
        assert cache.store({"a": 1}, "key") is False

    def test_broken_connection(self):
        broken = MagicMock()
        broken.get.side_effect = ConnectionError("reset")
        broken.setex.side_effect = ConnectionError("reset")
        cache = JsonCache("test", ttl=60, client_factory=lambda: broken)

        assert cache.fetch("key") is None
        assert cache.store(1, "key") is False

    def test_round_trip_with_ttl(self):
        fake = FakeRedis()
        cache = JsonCache("geo", ttl=120, client_factory=lambda: fake)

        assert cache.store([{"displayName": "Lyon"}], 5, "lyon")

        assert fake.ttls["geo:5:lyon"] == 120
        assert cache.fetch(5, "lyon") == [{"displayName": "Lyon"}]

    def test_unreadable_entry_is_a_miss(self):
        fake = FakeRedis()
        fake.data["geo:x"] = "{not json"
        cache = JsonCache("geo", ttl=60, client_factory=lambda: fake)

        assert cache.fetch("x") is None


def test_health(client, db):
    add_user(db)
    body = client.get("/health").json()

    assert body["status"] == "ok"
    assert body["realtime"] == {"backend": "LocalChangeFeed", "subscribed": True}
    assert body["missions_store"]["count"] == 0
