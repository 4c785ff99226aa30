"""Mission domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ...schemas import UserSummary
from ...shared.validators import validate_amount

MissionType = Literal["Livraison jeux", "Presta sono", "DJ", "Manutention", "Déplacement"]
AssignmentStatus = Literal["pending", "accepted", "rejected", "cancelled", "completed"]


class MissionCreate(BaseModel):
    """Schema for creating a mission"""

    type: MissionType
    title: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    date_start: datetime
    date_end: datetime
    location: str = Field(..., min_length=1, max_length=200)
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    forfeit: float
    required_people: int = Field(1, ge=1)
    created_by: Optional[str] = None

    @field_validator("title", "location")
    @classmethod
    def strip_required(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Ce champ est requis")
        return v

    @field_validator("forfeit")
    @classmethod
    def check_forfeit(cls, v):
        result = validate_amount(v)
        if not result.is_valid:
            raise ValueError(result.error)
        return v


class MissionUpdate(BaseModel):
    """
    Schema for updating a mission; omitted fields are left untouched.

    An explicit null clears description and coordinates. Required columns
    cannot be cleared.
    """

    type: Optional[MissionType] = None
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    date_start: Optional[datetime] = None
    date_end: Optional[datetime] = None
    location: Optional[str] = Field(None, min_length=1, max_length=200)
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    forfeit: Optional[float] = None
    required_people: Optional[int] = Field(None, ge=1)

    @field_validator(
        "type", "date_start", "date_end", "forfeit", "required_people", "title", "location"
    )
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("Ce champ ne peut pas être vide")
        return v

    @field_validator("title", "location")
    @classmethod
    def strip_required(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Ce champ est requis")
        return v

    @field_validator("forfeit")
    @classmethod
    def check_forfeit(cls, v):
        result = validate_amount(v)
        if not result.is_valid:
            raise ValueError(result.error)
        return v


class AssignmentResponse(BaseModel):
    id: str
    mission_id: str
    technician_id: str
    status: str
    assigned_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None
    technician: Optional[UserSummary] = None

    class Config:
        from_attributes = True


class MissionResponse(BaseModel):
    id: str
    type: str
    title: str
    description: Optional[str] = None
    date_start: datetime
    date_end: datetime
    location: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    forfeit: float
    required_people: int
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    assignments: list[AssignmentResponse] = []

    class Config:
        from_attributes = True


class AssignTechniciansRequest(BaseModel):
    technician_ids: list[str] = Field(..., min_length=1)
    notify: bool = True
    admin_name: Optional[str] = None


class PlanningConflict(BaseModel):
    technician_id: str
    conflicting_mission_id: str
    conflicting_title: str


class AssignTechniciansResponse(BaseModel):
    assigned: list[AssignmentResponse]
    conflicts: list[PlanningConflict] = []
    notified: int = 0
    notification_failures: int = 0


class AssignmentStatusUpdate(BaseModel):
    status: AssignmentStatus
    reason: Optional[str] = None
