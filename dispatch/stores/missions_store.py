"""Missions store - cached mission list with assignments"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..shared.clock import utcnow

logger = logging.getLogger(__name__)

LOAD_ERROR = "Erreur lors du chargement des missions. Veuillez réessayer."


@dataclass(frozen=True)
class MissionsSnapshot:
    missions: tuple
    loading: bool
    error: Optional[str]
    last_sync: Optional[datetime]


class MissionsStore:
    """
    Single shared cache of missions.

    ``refresh`` always re-fetches the whole collection. Several refreshes may
    be in flight at once; whichever completes last is what the cache holds.
    A refresh that was started before ``reset`` is discarded when it lands.
    """

    def __init__(self, source):
        self.source = source
        self._missions: list[dict] = []
        self._error: Optional[str] = None
        self._last_sync: Optional[datetime] = None
        self._pending = 0
        self._generation = 0

    @property
    def loading(self) -> bool:
        return self._pending > 0

    async def refresh(self) -> None:
        logger.info("🔄 Refreshing missions...")
        generation = self._generation
        self._pending += 1
        self._error = None
        try:
            missions = await self.source.fetch_missions()
        except Exception as e:
            if generation != self._generation:
                return
            logger.error(f"❌ Error loading missions: {e}")
            self._error = LOAD_ERROR
            return
        finally:
            if generation == self._generation:
                self._pending = max(0, self._pending - 1)

        if generation != self._generation:
            logger.info("⏭️ Discarding missions fetched before the last reset")
            return
        self._missions = list(missions or [])
        self._last_sync = utcnow()

    def reset(self) -> None:
        self._generation += 1
        self._missions = []
        self._error = None
        self._last_sync = None
        self._pending = 0

    def clear_error(self) -> None:
        self._error = None

    def get_snapshot(self) -> MissionsSnapshot:
        return MissionsSnapshot(
            missions=tuple(self._missions),
            loading=self.loading,
            error=self._error,
            last_sync=self._last_sync,
        )
