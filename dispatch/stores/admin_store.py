"""Admin store - missions, technicians and billing for the dashboard"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..models import BOOKING_STATUSES
from ..shared.clock import utcnow

logger = logging.getLogger(__name__)

COLLECTIONS = ("missions", "technicians", "billings")


def empty_stats() -> dict:
    return {
        "missions": {"total": 0, "by_type": {}, "total_revenue": 0.0, "assigned_count": 0},
        "technicians": {"total": 0, "available": 0, "busy": 0},
        "billings": {
            "total_amount": 0.0,
            "pending_amount": 0.0,
            "validated_amount": 0.0,
            "paid_amount": 0.0,
        },
    }


@dataclass(frozen=True)
class AdminSnapshot:
    missions: tuple
    technicians: tuple
    billings: tuple
    loading: dict
    last_sync: Optional[datetime]
    stats: dict = field(default_factory=empty_stats)


def technician_stats(technician: dict) -> dict:
    assignments = technician.get("assignments") or []
    completed = [a for a in assignments if a.get("status") == "completed"]
    return {
        "completed_missions": len(completed),
        "pending_missions": sum(1 for a in assignments if a.get("status") == "pending"),
        "total_revenue": sum((a.get("mission") or {}).get("forfeit", 0) for a in completed),
    }


def compute_stats(
    missions: list[dict], technicians: list[dict], billings: list[dict], now: datetime
) -> dict:
    stats = empty_stats()

    mission_stats = stats["missions"]
    mission_stats["total"] = len(missions)
    for mission in missions:
        mission_type = mission.get("type")
        mission_stats["by_type"][mission_type] = mission_stats["by_type"].get(mission_type, 0) + 1
        mission_stats["total_revenue"] += mission.get("forfeit") or 0
        if any(
            a.get("status") in BOOKING_STATUSES + ("completed",)
            for a in mission.get("assignments") or []
        ):
            mission_stats["assigned_count"] += 1

    # Busy: on an accepted mission running right now
    busy = 0
    for technician in technicians:
        for assignment in technician.get("assignments") or []:
            mission = assignment.get("mission")
            if (
                assignment.get("status") == "accepted"
                and mission
                and mission["date_start"] <= now < mission["date_end"]
            ):
                busy += 1
                break
    stats["technicians"] = {
        "total": len(technicians),
        "available": len(technicians) - busy,
        "busy": busy,
    }

    billing_stats = stats["billings"]
    for billing in billings:
        amount = billing.get("amount") or 0
        billing_stats["total_amount"] += amount
        key = f"{billing.get('status')}_amount"
        if key in billing_stats:
            billing_stats[key] += amount

    return stats


class AdminStore:
    """
    Dashboard cache; every refresh re-fetches the three collections.

    Results of fetches started before ``reset`` are dropped.
    """

    def __init__(self, source):
        self.source = source
        self._generation = 0
        self._reset_state()

    def _reset_state(self) -> None:
        self._missions: list[dict] = []
        self._technicians: list[dict] = []
        self._billings: list[dict] = []
        self._pending = {name: 0 for name in COLLECTIONS}
        self._last_sync: Optional[datetime] = None
        self._stats = empty_stats()

    async def refresh(self) -> None:
        logger.info("🔄 Refreshing admin data...")
        generation = self._generation
        await asyncio.gather(
            self.refresh_missions(),
            self.refresh_technicians(),
            self.refresh_billings(),
        )
        if generation != self._generation:
            return
        self._last_sync = utcnow()
        self._recompute()

    async def refresh_missions(self) -> None:
        missions = await self._fetch("missions", self.source.fetch_missions)
        if missions is not None:
            self._missions = missions
            self._recompute()

    async def refresh_technicians(self) -> None:
        technicians = await self._fetch("technicians", self.source.fetch_technicians)
        if technicians is not None:
            for technician in technicians:
                technician["stats"] = technician_stats(technician)
            self._technicians = technicians
            self._recompute()

    async def refresh_billings(self) -> None:
        billings = await self._fetch("billings", self.source.fetch_billings)
        if billings is not None:
            self._billings = billings
            self._recompute()

    async def _fetch(self, name: str, fetch) -> Optional[list]:
        generation = self._generation
        self._pending[name] += 1
        try:
            result = list(await fetch() or [])
        except Exception as e:
            if generation == self._generation:
                logger.error(f"❌ Error loading {name}: {e}")
            return None
        finally:
            if generation == self._generation:
                self._pending[name] = max(0, self._pending[name] - 1)

        if generation != self._generation:
            logger.info(f"⏭️ Discarding {name} fetched before the last reset")
            return None
        return result

    def _recompute(self) -> None:
        self._stats = compute_stats(self._missions, self._technicians, self._billings, utcnow())

    def reset(self) -> None:
        self._generation += 1
        self._reset_state()

    def get_snapshot(self) -> AdminSnapshot:
        return AdminSnapshot(
            missions=tuple(self._missions),
            technicians=tuple(self._technicians),
            billings=tuple(self._billings),
            loading={name: count > 0 for name, count in self._pending.items()},
            last_sync=self._last_sync,
            stats=self._stats,
        )
