"""Mission service - Business logic for missions and assignments"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Mission, MissionAssignment, User
from ...realtime.feed import ChangeFeed
from ...shared.clock import to_naive_utc, utcnow
from ...shared.validators import PAST_START, check_planning_conflict, validate_mission_dates
from .repository import MissionRepository
from .schemas import MissionCreate, MissionUpdate, PlanningConflict

logger = logging.getLogger(__name__)


def _as_aware_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class MissionService:
    """Service layer for mission business logic"""

    def __init__(self, db: Session, feed: ChangeFeed):
        self.db = db
        self.feed = feed
        self.repo = MissionRepository()

    def list_missions(self) -> list[Mission]:
        return self.repo.list_missions(self.db)

    def get_mission(self, mission_id: str) -> Mission:
        mission = self.repo.get_mission(self.db, mission_id)
        if not mission:
            raise HTTPException(status_code=404, detail="Mission introuvable")
        return mission

    def create_mission(self, data: MissionCreate) -> Mission:
        """Create a mission after checking its window"""
        start = _as_aware_utc(data.date_start)
        end = _as_aware_utc(data.date_end)

        result = validate_mission_dates(start, end)
        if not result.is_valid:
            logger.warning(f"⚠️ Mission rejected ({result.reason}): {data.title}")
            raise HTTPException(status_code=400, detail=result.error)

        mission_data = data.model_dump()
        mission_data["date_start"] = to_naive_utc(start)
        mission_data["date_end"] = to_naive_utc(end)
        mission_data["title"] = data.title.strip()
        mission_data["location"] = data.location.strip()

        mission = self.repo.create_mission(self.db, **mission_data)
        logger.info(f"✅ Mission created: {mission.id} ({mission.title})")
        self.feed.publish("missions", "INSERT", {"id": mission.id})
        return mission

    def update_mission(self, mission_id: str, data: MissionUpdate) -> Mission:
        mission = self.get_mission(mission_id)
        updates = data.model_dump(exclude_unset=True)

        if "date_start" in updates or "date_end" in updates:
            start = _as_aware_utc(updates.get("date_start") or mission.date_start)
            end = _as_aware_utc(updates.get("date_end") or mission.date_end)
            result = validate_mission_dates(start, end)
            # An unchanged start may legitimately lie in the past
            start_changed = "date_start" in updates and updates["date_start"] is not None
            if not result.is_valid and (result.reason != PAST_START or start_changed):
                raise HTTPException(status_code=400, detail=result.error)
            updates["date_start"] = to_naive_utc(start)
            updates["date_end"] = to_naive_utc(end)

        mission = self.repo.update_mission(self.db, mission, **updates)
        self.feed.publish("missions", "UPDATE", {"id": mission.id})
        return mission

    def delete_mission(self, mission_id: str) -> None:
        mission = self.get_mission(mission_id)
        if mission.billings:
            raise HTTPException(
                status_code=409, detail="Impossible de supprimer une mission déjà facturée"
            )

        removed = self.repo.delete_mission(self.db, mission)
        logger.info(f"🗑️ Mission {mission_id} deleted with {removed} assignment(s)")
        if removed:
            self.feed.publish("mission_assignments", "DELETE", {"mission_id": mission_id})
        self.feed.publish("missions", "DELETE", {"id": mission_id})

    # ========================================================================
    # ASSIGNMENTS
    # ========================================================================

    def assign_technicians(
        self, mission_id: str, technician_ids: list[str]
    ) -> tuple[Mission, list[MissionAssignment], list[PlanningConflict]]:
        """
        Propose the mission to each technician that is free for its window.

        Technicians already booked on an overlapping mission are skipped and
        reported as conflicts; technicians already on this mission are skipped.
        """
        mission = self.get_mission(mission_id)

        to_assign = []
        conflicts = []
        for technician_id in dict.fromkeys(technician_ids):
            technician = self.db.get(User, technician_id)
            if not technician or technician.role != "technicien":
                raise HTTPException(status_code=404, detail=f"Technicien introuvable: {technician_id}")

            if self.repo.existing_assignment(self.db, mission.id, technician_id):
                logger.info(f"Technician {technician_id} already on mission {mission.id}")
                continue

            booked = self.repo.booked_missions_for_technician(
                self.db, technician_id, exclude_mission_id=mission.id
            )
            conflict = check_planning_conflict(mission.date_start, mission.date_end, booked)
            if conflict.has_conflict:
                logger.warning(
                    f"⚠️ Planning conflict for {technician_id}: {conflict.conflicting.title}"
                )
                conflicts.append(
                    PlanningConflict(
                        technician_id=technician_id,
                        conflicting_mission_id=conflict.conflicting.id,
                        conflicting_title=conflict.conflicting.title,
                    )
                )
                continue

            to_assign.append(technician_id)

        assignments = []
        if to_assign:
            assignments = self.repo.create_assignments(self.db, mission.id, to_assign)
            for assignment in assignments:
                self.feed.publish("mission_assignments", "INSERT", {"id": assignment.id})

        return mission, assignments, conflicts

    def update_assignment_status(
        self, assignment_id: str, status: str, responded_at: Optional[datetime] = None
    ) -> MissionAssignment:
        assignment = self.repo.get_assignment(self.db, assignment_id)
        if not assignment:
            raise HTTPException(status_code=404, detail="Assignation introuvable")

        assignment = self.repo.set_assignment_status(
            self.db, assignment, status, responded_at or utcnow()
        )
        self.feed.publish("mission_assignments", "UPDATE", {"id": assignment.id})
        return assignment

    def cancel_pending_assignments(self, mission_id: str) -> int:
        mission = self.get_mission(mission_id)
        cancelled = self.repo.cancel_pending_assignments(self.db, mission.id, utcnow())
        if cancelled:
            self.feed.publish("mission_assignments", "UPDATE", {"mission_id": mission.id})
        return cancelled
