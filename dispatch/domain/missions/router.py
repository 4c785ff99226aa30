"""Mission router - FastAPI endpoints for missions and assignments"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...context import DispatchContext, get_context, get_session
from ...domain.technicians.repository import UserRepository
from ...email_service import send_bulk_assignment_notifications, send_mission_response_email
from ...schemas import MessageResponse
from .schemas import (
    AssignmentResponse,
    AssignmentStatusUpdate,
    AssignTechniciansRequest,
    AssignTechniciansResponse,
    MissionCreate,
    MissionResponse,
    MissionUpdate,
)
from .service import MissionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/missions", tags=["Missions"])


def get_mission_service(
    db: Session = Depends(get_session), ctx: DispatchContext = Depends(get_context)
) -> MissionService:
    """Dependency injection for MissionService"""
    return MissionService(db, ctx.feed)


# ============================================================================
# CORE CRUD OPERATIONS
# ============================================================================


@router.get("", response_model=list[MissionResponse])
async def list_missions(service: MissionService = Depends(get_mission_service)):
    return service.list_missions()


@router.get("/{mission_id}", response_model=MissionResponse)
async def get_mission(mission_id: str, service: MissionService = Depends(get_mission_service)):
    return service.get_mission(mission_id)


@router.post("", response_model=MissionResponse, status_code=201)
async def create_mission(
    data: MissionCreate, service: MissionService = Depends(get_mission_service)
):
    return service.create_mission(data)


@router.patch("/{mission_id}", response_model=MissionResponse)
async def update_mission(
    mission_id: str,
    data: MissionUpdate,
    service: MissionService = Depends(get_mission_service),
):
    return service.update_mission(mission_id, data)


@router.delete("/{mission_id}", response_model=MessageResponse)
async def delete_mission(mission_id: str, service: MissionService = Depends(get_mission_service)):
    service.delete_mission(mission_id)
    return MessageResponse(message="Mission supprimée")


# ============================================================================
# ASSIGNMENTS
# ============================================================================


@router.post("/{mission_id}/assignments", response_model=AssignTechniciansResponse)
async def assign_technicians(
    mission_id: str,
    data: AssignTechniciansRequest,
    service: MissionService = Depends(get_mission_service),
):
    """Propose a mission to technicians and email the ones that were assigned"""
    mission, assignments, conflicts = service.assign_technicians(mission_id, data.technician_ids)

    response = AssignTechniciansResponse(
        assigned=[AssignmentResponse.model_validate(a) for a in assignments],
        conflicts=conflicts,
    )

    if data.notify and assignments:
        technicians = [a.technician for a in assignments]
        summary = await send_bulk_assignment_notifications(technicians, mission, data.admin_name)
        response.notified = len(summary["success"])
        response.notification_failures = len(summary["failed"])
        for failure in summary["failed"]:
            logger.warning(
                f"⚠️ Assignment email not sent to {failure['technician_id']}: {failure['error']}"
            )

    return response


@router.patch("/assignments/{assignment_id}", response_model=AssignmentResponse)
async def update_assignment_status(
    assignment_id: str,
    data: AssignmentStatusUpdate,
    service: MissionService = Depends(get_mission_service),
):
    """Record a technician's answer and tell the mission's creator (or every admin)"""
    assignment = service.update_assignment_status(assignment_id, data.status)

    if data.status in ("accepted", "rejected"):
        for email in _response_recipients(service, assignment.mission):
            result = await send_mission_response_email(
                to=email,
                technician_name=assignment.technician.name,
                mission=assignment.mission,
                accepted=data.status == "accepted",
                reason=data.reason,
            )
            if not result.success:
                logger.warning(f"⚠️ Response email not sent to {email}: {result.error}")

    return assignment


def _response_recipients(service: MissionService, mission) -> list[str]:
    if mission.created_by:
        creator = UserRepository.get_user(service.db, mission.created_by)
        if creator and creator.email:
            return [creator.email]
    return [admin.email for admin in UserRepository.list_admins(service.db) if admin.email]


@router.post("/{mission_id}/assignments/cancel-pending", response_model=MessageResponse)
async def cancel_pending_assignments(
    mission_id: str, service: MissionService = Depends(get_mission_service)
):
    cancelled = service.cancel_pending_assignments(mission_id)
    return MessageResponse(message=f"{cancelled} assignation(s) annulée(s)")
