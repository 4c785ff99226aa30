"""Billing domain schemas"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, field_validator

from ...schemas import MissionSummary, UserSummary
from ...shared.validators import validate_amount

BillingStatus = Literal["pending", "validated", "paid"]


class BillingCreate(BaseModel):
    mission_id: str
    technician_id: str
    amount: float
    notes: Optional[str] = None

    @field_validator("amount")
    @classmethod
    def check_amount(cls, v):
        result = validate_amount(v)
        if not result.is_valid:
            raise ValueError(result.error)
        return v


class BillingStatusUpdate(BaseModel):
    status: BillingStatus
    notify: bool = True


class BillingResponse(BaseModel):
    id: str
    mission_id: str
    technician_id: str
    amount: float
    status: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    mission: Optional[MissionSummary] = None
    technician: Optional[UserSummary] = None

    class Config:
        from_attributes = True
