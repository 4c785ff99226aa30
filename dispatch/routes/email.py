"""
Email Routes - Manual sending of mission assignment notifications
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..email_service import send_assignment_notification

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/email", tags=["Email"])


class EmailTechnician(BaseModel):
    id: Optional[str] = None
    name: str = ""
    email: Optional[str] = None


class EmailMission(BaseModel):
    id: Optional[str] = None
    title: Optional[str] = None
    type: str = ""
    description: Optional[str] = None
    date_start: datetime
    date_end: datetime
    location: str = ""
    forfeit: float = 0


class SendAssignmentRequest(BaseModel):
    technician: EmailTechnician
    mission: EmailMission
    admin_name: Optional[str] = Field(None, alias="adminName")

    class Config:
        populate_by_name = True


@router.post("/send-assignment")
async def send_assignment_email(data: SendAssignmentRequest):
    """Send the assignment notification for one technician"""
    if not data.technician.email or not data.mission.title:
        return JSONResponse(
            status_code=400,
            content={
                "error": "Données manquantes: email du technicien et titre de la mission requis"
            },
        )

    result = await send_assignment_notification(data.technician, data.mission, data.admin_name)
    if not result.success:
        logger.error(f"❌ Assignment email failed for {data.technician.email}: {result.error}")
        return JSONResponse(
            status_code=500,
            content={
                "error": "Erreur lors de l'envoi de l'email",
                "details": result.error or "Erreur inconnue",
            },
        )

    return {
        "success": True,
        "messageId": result.message_id,
        "message": "Email envoyé avec succès",
    }
