"""Technician domain schemas"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ...schemas import MissionSummary
from ...shared.validators import validate_email, validate_phone


class UserCreate(BaseModel):
    """Profile created at signup"""

    id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=50)
    role: Literal["admin", "technicien"] = "technicien"
    email: Optional[str] = None
    phone: Optional[str] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        if v and not validate_email(v):
            raise ValueError("Adresse email invalide")
        return v.strip().lower() if v else v

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        if v and not validate_phone(v):
            raise ValueError("Numéro de téléphone invalide")
        return v


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    phone: Optional[str] = None

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        if v and not validate_phone(v):
            raise ValueError("Numéro de téléphone invalide")
        return v


class ValidationToggle(BaseModel):
    is_validated: bool


class TechnicianAssignment(BaseModel):
    id: str
    status: str
    mission: Optional[MissionSummary] = None

    class Config:
        from_attributes = True


class TechnicianResponse(BaseModel):
    id: str
    name: str
    role: str
    email: Optional[str] = None
    phone: Optional[str] = None
    is_validated: bool
    created_at: Optional[datetime] = None
    assignments: list[TechnicianAssignment] = []

    class Config:
        from_attributes = True
