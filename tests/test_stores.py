import asyncio
from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from dispatch.stores import AdminStore, MissionsStore
from dispatch.stores.admin_store import compute_stats, technician_stats
from dispatch.stores.missions_store import LOAD_ERROR
from dispatch.stores.sources import SqlDataSource

from conftest import add_assignment, add_mission, add_user, future

NOW = datetime(2026, 6, 1, 12, 0)


def make_source(missions=None, technicians=None, billings=None):
    source = AsyncMock()
    source.fetch_missions.return_value = missions or []
    source.fetch_technicians.return_value = technicians or []
    source.fetch_billings.return_value = billings or []
    return source


class TestMissionsStore:
    @pytest.mark.asyncio
    async def test_refresh_replaces_the_whole_list(self):
        source = make_source(missions=[{"id": "m1"}, {"id": "m2"}])
        store = MissionsStore(source)

        await store.refresh()
        source.fetch_missions.return_value = [{"id": "m3"}]
        await store.refresh()

        snapshot = store.get_snapshot()
        assert [m["id"] for m in snapshot.missions] == ["m3"]
        assert not snapshot.loading
        assert snapshot.error is None
        assert snapshot.last_sync is not None

    @pytest.mark.asyncio
    async def test_failed_refresh_keeps_previous_data(self):
        source = make_source(missions=[{"id": "m1"}])
        store = MissionsStore(source)
        await store.refresh()

        source.fetch_missions.side_effect = ConnectionError("offline")
        await store.refresh()

        snapshot = store.get_snapshot()
        assert snapshot.error == LOAD_ERROR
        assert [m["id"] for m in snapshot.missions] == ["m1"]
        assert not snapshot.loading

        store.clear_error()
        assert store.get_snapshot().error is None

    @pytest.mark.asyncio
    async def test_reset_empties_the_cache(self):
        store = MissionsStore(make_source(missions=[{"id": "m1"}]))
        await store.refresh()

        store.reset()

        snapshot = store.get_snapshot()
        assert snapshot.missions == ()
        assert snapshot.last_sync is None

    @pytest.mark.asyncio
    async def test_overlapping_refreshes_last_completion_wins(self):
        first_gate, second_gate = asyncio.Event(), asyncio.Event()
        results = iter(
            [(first_gate, [{"id": "first"}]), (second_gate, [{"id": "second"}])]
        )

        async def fetch_missions():
            gate, missions = next(results)
            await gate.wait()
            return missions

        source = make_source()
        source.fetch_missions.side_effect = fetch_missions
        store = MissionsStore(source)

        first = asyncio.create_task(store.refresh())
        second = asyncio.create_task(store.refresh())
        await asyncio.sleep(0)
        assert store.get_snapshot().loading

        # The later call resolves first
        second_gate.set()
        await second
        assert store.get_snapshot().loading
        assert [m["id"] for m in store.get_snapshot().missions] == ["second"]

        first_gate.set()
        await first
        snapshot = store.get_snapshot()
        assert [m["id"] for m in snapshot.missions] == ["first"]
        assert not snapshot.loading
        assert snapshot.error is None

    @pytest.mark.asyncio
    async def test_refresh_started_before_reset_is_discarded(self):
        gate = asyncio.Event()

        async def fetch_missions():
            await gate.wait()
            return [{"id": "secret-mission"}]

        source = make_source()
        source.fetch_missions.side_effect = fetch_missions
        store = MissionsStore(source)

        pending = asyncio.create_task(store.refresh())
        await asyncio.sleep(0)
        store.reset()
        gate.set()
        await pending

        snapshot = store.get_snapshot()
        assert snapshot.missions == ()
        assert snapshot.last_sync is None
        assert not snapshot.loading

    @pytest.mark.asyncio
    async def test_failure_started_before_reset_leaves_no_error(self):
        gate = asyncio.Event()

        async def fetch_missions():
            await gate.wait()
            raise ConnectionError("offline")

        source = make_source()
        source.fetch_missions.side_effect = fetch_missions
        store = MissionsStore(source)

        pending = asyncio.create_task(store.refresh())
        await asyncio.sleep(0)
        store.reset()
        gate.set()
        await pending

        assert store.get_snapshot().error is None


class TestAdminStore:
    @pytest.mark.asyncio
    async def test_refresh_loads_all_collections(self):
        source = make_source(
            missions=[{"id": "m1", "type": "DJ", "forfeit": 200, "assignments": []}],
            technicians=[{"id": "t1", "assignments": []}],
            billings=[{"id": "b1", "amount": 80, "status": "paid"}],
        )
        store = AdminStore(source)

        await store.refresh()

        snapshot = store.get_snapshot()
        assert len(snapshot.missions) == 1
        assert snapshot.technicians[0]["stats"]["completed_missions"] == 0
        assert snapshot.stats["billings"]["paid_amount"] == 80
        assert snapshot.loading == {"missions": False, "technicians": False, "billings": False}

    @pytest.mark.asyncio
    async def test_one_failing_collection_does_not_block_the_others(self):
        source = make_source(billings=[{"id": "b1", "amount": 10, "status": "pending"}])
        source.fetch_technicians.side_effect = RuntimeError("boom")
        store = AdminStore(source)

        await store.refresh()

        snapshot = store.get_snapshot()
        assert snapshot.technicians == ()
        assert len(snapshot.billings) == 1

    @pytest.mark.asyncio
    async def test_reset(self):
        store = AdminStore(make_source(billings=[{"id": "b1", "amount": 10, "status": "paid"}]))
        await store.refresh()

        store.reset()

        snapshot = store.get_snapshot()
        assert snapshot.billings == ()
        assert snapshot.stats["billings"]["total_amount"] == 0

    @pytest.mark.asyncio
    async def test_refresh_started_before_reset_is_discarded(self):
        gate = asyncio.Event()

        async def fetch_billings():
            await gate.wait()
            return [{"id": "b1", "amount": 10, "status": "paid"}]

        source = make_source()
        source.fetch_billings.side_effect = fetch_billings
        store = AdminStore(source)

        pending = asyncio.create_task(store.refresh())
        await asyncio.sleep(0)
        store.reset()
        gate.set()
        await pending

        snapshot = store.get_snapshot()
        assert snapshot.billings == ()
        assert snapshot.last_sync is None
        assert snapshot.stats["billings"]["total_amount"] == 0
        assert snapshot.loading == {"missions": False, "technicians": False, "billings": False}


class TestStats:
    def test_compute_stats(self):
        running = {"date_start": NOW - timedelta(hours=1), "date_end": NOW + timedelta(hours=1)}
        later = {"date_start": NOW + timedelta(days=1), "date_end": NOW + timedelta(days=1, hours=2)}
        missions = [
            {"type": "DJ", "forfeit": 200, "assignments": [{"status": "accepted"}]},
            {"type": "DJ", "forfeit": 100, "assignments": [{"status": "rejected"}]},
            {"type": "Manutention", "forfeit": 50, "assignments": []},
        ]
        technicians = [
            {"assignments": [{"status": "accepted", "mission": running}]},
            {"assignments": [{"status": "accepted", "mission": later}]},
            {"assignments": [{"status": "pending", "mission": running}]},
        ]
        billings = [
            {"amount": 100, "status": "pending"},
            {"amount": 50, "status": "validated"},
            {"amount": 25, "status": "paid"},
        ]

        stats = compute_stats(missions, technicians, billings, NOW)

        assert stats["missions"]["total"] == 3
        assert stats["missions"]["by_type"] == {"DJ": 2, "Manutention": 1}
        assert stats["missions"]["total_revenue"] == 350
        assert stats["missions"]["assigned_count"] == 1
        assert stats["technicians"] == {"total": 3, "available": 2, "busy": 1}
        assert stats["billings"] == {
            "total_amount": 175,
            "pending_amount": 100,
            "validated_amount": 50,
            "paid_amount": 25,
        }

    def test_technician_stats(self):
        technician = {
            "assignments": [
                {"status": "completed", "mission": {"forfeit": 120}},
                {"status": "completed", "mission": {"forfeit": 80}},
                {"status": "pending", "mission": {"forfeit": 50}},
            ]
        }
        assert technician_stats(technician) == {
            "completed_missions": 2,
            "pending_missions": 1,
            "total_revenue": 200,
        }


class TestSqlDataSource:
    @pytest.mark.asyncio
    async def test_fetches_serialized_rows(self, session_factory, db):
        technician = add_user(db, "Jean", email="jean@example.com")
        mission = add_mission(db, future(hour=10), future(hour=12))
        add_assignment(db, mission, technician, status="accepted")

        source = SqlDataSource(session_factory)
        missions = await source.fetch_missions()
        technicians = await source.fetch_technicians()

        assert missions[0]["title"] == "Livraison château"
        assert missions[0]["assignments"][0]["technician"]["name"] == "Jean"
        assert technicians[0]["assignments"][0]["mission"]["id"] == mission.id
        assert await source.fetch_billings() == []
