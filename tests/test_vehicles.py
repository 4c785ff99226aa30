from datetime import date

import pytest

from dispatch.models import CompanyVehicle, VehicleAssignment

from conftest import add_mission, add_user, future


def vehicle_payload(**overrides):
    payload = {
        "name": "Camion 20m3",
        "category": "camion",
        "brand": "Renault",
        "model": "Master",
        "license_plate": "ab 123 cd",
        "current_mileage": 85000,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def admin(db):
    return add_user(db, name="Sophie", role="admin", email="sophie@esil.fr")


@pytest.fixture
def vehicle(client):
    return client.post("/vehicles", json=vehicle_payload()).json()


class TestFleet:
    def test_create_and_list(self, client):
        response = client.post("/vehicles", json=vehicle_payload())
        client.post("/vehicles", json=vehicle_payload(name="Berlingo", license_plate=None))

        assert response.status_code == 201
        assert response.json()["license_plate"] == "AB-123-CD"
        assert response.json()["status"] == "disponible"
        assert [v["name"] for v in client.get("/vehicles").json()] == ["Berlingo", "Camion 20m3"]

    def test_duplicate_plate(self, client, vehicle):
        response = client.post("/vehicles", json=vehicle_payload(name="Autre", license_plate="AB-123-CD"))
        assert response.status_code == 409

    def test_invalid_category(self, client):
        response = client.post("/vehicles", json=vehicle_payload(category="tracteur"))
        assert response.status_code == 422

    def test_available_filter(self, client, vehicle):
        client.post("/vehicles", json=vehicle_payload(name="Vieux", license_plate=None, status="hors_service"))

        available = client.get("/vehicles", params={"available": True}).json()

        assert [v["id"] for v in available] == [vehicle["id"]]

    def test_update_and_delete(self, client, vehicle):
        response = client.patch(f"/vehicles/{vehicle['id']}", json={"status": "maintenance"})
        assert response.json()["status"] == "maintenance"

        assert client.delete(f"/vehicles/{vehicle['id']}").status_code == 200
        assert client.get(f"/vehicles/{vehicle['id']}").status_code == 404


class TestMissionAllocation:
    def test_assign_and_return(self, client, db, admin, vehicle):
        mission = add_mission(db, future(hour=10), future(hour=18))

        response = client.post(
            f"/vehicles/{vehicle['id']}/assign",
            json={"mission_id": mission.id, "assigned_by": admin.id, "notes": "Clés au dépôt"},
        )
        assert response.status_code == 201
        assert response.json()["mission"]["id"] == mission.id
        assert client.get(f"/vehicles/{vehicle['id']}").json()["status"] == "en_mission"

        response = client.post(
            f"/vehicles/{vehicle['id']}/return", json={"mission_id": mission.id, "mileage": 85230}
        )
        assert response.status_code == 200
        assert response.json()["returned_at"] is not None

        details = client.get(f"/vehicles/{vehicle['id']}").json()
        assert details["status"] == "disponible"
        assert details["current_mileage"] == 85230
        assert len(details["assignments"]) == 1

    def test_vehicle_out_on_a_mission_is_unavailable(self, client, db, admin, vehicle):
        first = add_mission(db, future(hour=10), future(hour=12))
        second = add_mission(db, future(hour=14), future(hour=16), title="Soirée DJ")
        client.post(f"/vehicles/{vehicle['id']}/assign", json={"mission_id": first.id, "assigned_by": admin.id})

        response = client.post(
            f"/vehicles/{vehicle['id']}/assign", json={"mission_id": second.id, "assigned_by": admin.id}
        )

        assert response.status_code == 409
        assert client.delete(f"/vehicles/{vehicle['id']}").status_code == 409

    def test_return_without_assignment(self, client, db, vehicle):
        mission = add_mission(db, future(hour=10), future(hour=12))

        response = client.post(f"/vehicles/{vehicle['id']}/return", json={"mission_id": mission.id})

        assert response.status_code == 404

    def test_unknown_mission(self, client, admin, vehicle):
        response = client.post(
            f"/vehicles/{vehicle['id']}/assign", json={"mission_id": "nope", "assigned_by": admin.id}
        )
        assert response.status_code == 404

    def test_assignments_by_mission(self, client, db, admin, vehicle):
        mission = add_mission(db, future(hour=10), future(hour=12))
        other = add_mission(db, future(days=3), future(days=3, hour=12))
        client.post(f"/vehicles/{vehicle['id']}/assign", json={"mission_id": mission.id, "assigned_by": admin.id})

        assert len(client.get("/vehicles/assignments", params={"mission_id": mission.id}).json()) == 1
        assert client.get("/vehicles/assignments", params={"mission_id": other.id}).json() == []

    def test_deleting_the_mission_frees_the_vehicle(self, client, db, admin, vehicle):
        mission = add_mission(db, future(hour=10), future(hour=12))
        client.post(f"/vehicles/{vehicle['id']}/assign", json={"mission_id": mission.id, "assigned_by": admin.id})

        assert client.delete(f"/missions/{mission.id}").status_code == 200

        db.expire_all()
        assert db.query(VehicleAssignment).count() == 0
        assert db.get(CompanyVehicle, vehicle["id"]).status == "disponible"


class TestMaintenance:
    def test_add_updates_vehicle_dates(self, client, vehicle):
        response = client.post(
            f"/vehicles/{vehicle['id']}/maintenance",
            json={
                "maintenance_type": "Vidange",
                "description": "Vidange et filtres",
                "cost": 180.5,
                "performed_at": "2026-09-15",
                "next_maintenance_date": "2027-03-15",
            },
        )

        assert response.status_code == 201
        details = client.get(f"/vehicles/{vehicle['id']}").json()
        assert details["last_maintenance_date"] == "2026-09-15"
        assert details["next_maintenance_date"] == "2027-03-15"
        assert [m["maintenance_type"] for m in details["maintenance"]] == ["Vidange"]

    def test_older_record_does_not_move_the_dates_back(self, db, client, vehicle):
        client.patch(f"/vehicles/{vehicle['id']}", json={"last_maintenance_date": "2026-10-01"})

        client.post(
            f"/vehicles/{vehicle['id']}/maintenance",
            json={"maintenance_type": "Pneus", "description": "Permutation", "performed_at": "2026-01-10"},
        )

        db.expire_all()
        assert db.get(CompanyVehicle, vehicle["id"]).last_maintenance_date == date(2026, 10, 1)

    def test_update_and_delete(self, client, vehicle):
        record = client.post(
            f"/vehicles/{vehicle['id']}/maintenance",
            json={"maintenance_type": "Vidange", "description": "x", "performed_at": "2026-09-15"},
        ).json()

        response = client.patch(f"/vehicles/maintenance/{record['id']}", json={"cost": 99})
        assert response.json()["cost"] == 99

        assert client.delete(f"/vehicles/maintenance/{record['id']}").status_code == 200
        assert client.delete(f"/vehicles/maintenance/{record['id']}").status_code == 404


class TestDrivers:
    def test_authorize_and_remove(self, client, db, admin, vehicle):
        technician = add_user(db, name="Jean")

        response = client.post(
            f"/vehicles/{vehicle['id']}/drivers",
            json={"driver_id": technician.id, "authorized_by": admin.id, "license_type": "C"},
        )
        assert response.status_code == 201
        assert response.json()["driver"]["name"] == "Jean"

        duplicate = client.post(
            f"/vehicles/{vehicle['id']}/drivers",
            json={"driver_id": technician.id, "authorized_by": admin.id},
        )
        assert duplicate.status_code == 409

        assert client.delete(f"/vehicles/{vehicle['id']}/drivers/{technician.id}").status_code == 200
        assert client.get(f"/vehicles/{vehicle['id']}").json()["drivers"] == []

    def test_deleting_a_technician_revokes_authorizations(self, client, db, admin, vehicle):
        technician = add_user(db, name="Jean")
        client.post(
            f"/vehicles/{vehicle['id']}/drivers",
            json={"driver_id": technician.id, "authorized_by": admin.id},
        )

        client.delete(f"/users/{technician.id}")

        assert client.get(f"/vehicles/{vehicle['id']}").json()["drivers"] == []


def test_vehicle_writes_publish_change_events(client, context):
    seen = []
    context.feed.subscribe("test", "company_vehicles", lambda event: seen.append(event.kind))

    vehicle = client.post("/vehicles", json=vehicle_payload()).json()
    client.patch(f"/vehicles/{vehicle['id']}", json={"notes": "Attelage"})
    client.delete(f"/vehicles/{vehicle['id']}")

    assert seen == ["INSERT", "UPDATE", "DELETE"]
