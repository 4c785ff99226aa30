"""Mission repository - Database operations for missions and assignments"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import BOOKING_STATUSES, Mission, MissionAssignment
from ..vehicles.repository import VehicleRepository


class MissionRepository:
    """Repository for mission database operations"""

    @staticmethod
    def list_missions(db: Session) -> list[Mission]:
        """All missions with their assignments and technicians, soonest first"""
        return (
            db.query(Mission)
            .options(joinedload(Mission.assignments).joinedload(MissionAssignment.technician))
            .order_by(Mission.date_start.asc())
            .all()
        )

    @staticmethod
    def get_mission(db: Session, mission_id: str) -> Optional[Mission]:
        return (
            db.query(Mission)
            .options(joinedload(Mission.assignments).joinedload(MissionAssignment.technician))
            .filter(Mission.id == mission_id)
            .first()
        )

    @staticmethod
    def create_mission(db: Session, **mission_data) -> Mission:
        mission = Mission(**mission_data)
        db.add(mission)
        db.commit()
        db.refresh(mission)
        return mission

    @staticmethod
    def update_mission(db: Session, mission: Mission, **updates) -> Mission:
        """Update a mission with provided fields; None clears a nullable column"""
        for key, value in updates.items():
            if hasattr(mission, key):
                setattr(mission, key, value)

        db.commit()
        db.refresh(mission)
        return mission

    @staticmethod
    def delete_mission(db: Session, mission: Mission) -> int:
        """
        Delete the mission's assignments and vehicle allocations, then the mission.

        Returns the number of technician assignments removed.
        """
        removed = len(mission.assignments)
        for assignment in list(mission.assignments):
            db.delete(assignment)
        VehicleRepository.release_mission_vehicles(db, mission.id)
        db.delete(mission)
        db.commit()
        return removed

    # Assignment Methods
    @staticmethod
    def booked_missions_for_technician(
        db: Session, technician_id: str, exclude_mission_id: Optional[str] = None
    ) -> list[Mission]:
        """Missions the technician is booked on (pending or accepted assignment)"""
        query = (
            db.query(Mission)
            .join(MissionAssignment, MissionAssignment.mission_id == Mission.id)
            .filter(
                MissionAssignment.technician_id == technician_id,
                MissionAssignment.status.in_(BOOKING_STATUSES),
            )
        )
        if exclude_mission_id:
            query = query.filter(Mission.id != exclude_mission_id)
        return query.order_by(Mission.date_start.asc()).all()

    @staticmethod
    def get_assignment(db: Session, assignment_id: str) -> Optional[MissionAssignment]:
        return (
            db.query(MissionAssignment)
            .options(
                joinedload(MissionAssignment.mission), joinedload(MissionAssignment.technician)
            )
            .filter(MissionAssignment.id == assignment_id)
            .first()
        )

    @staticmethod
    def existing_assignment(
        db: Session, mission_id: str, technician_id: str
    ) -> Optional[MissionAssignment]:
        return (
            db.query(MissionAssignment)
            .filter(
                MissionAssignment.mission_id == mission_id,
                MissionAssignment.technician_id == technician_id,
                MissionAssignment.status.in_(BOOKING_STATUSES),
            )
            .first()
        )

    @staticmethod
    def create_assignments(
        db: Session, mission_id: str, technician_ids: list[str]
    ) -> list[MissionAssignment]:
        assignments = [
            MissionAssignment(mission_id=mission_id, technician_id=technician_id, status="pending")
            for technician_id in technician_ids
        ]
        db.add_all(assignments)
        db.commit()
        for assignment in assignments:
            db.refresh(assignment)
        return assignments

    @staticmethod
    def set_assignment_status(
        db: Session, assignment: MissionAssignment, status: str, responded_at: datetime
    ) -> MissionAssignment:
        assignment.status = status
        assignment.responded_at = responded_at
        db.commit()
        db.refresh(assignment)
        return assignment

    @staticmethod
    def cancel_pending_assignments(db: Session, mission_id: str, responded_at: datetime) -> int:
        """Cancel every pending assignment of a mission. Returns the number cancelled."""
        cancelled = (
            db.query(MissionAssignment)
            .filter(
                MissionAssignment.mission_id == mission_id,
                MissionAssignment.status == "pending",
            )
            .update(
                {"status": "cancelled", "responded_at": responded_at},
                synchronize_session=False,
            )
        )
        db.commit()
        return cancelled
