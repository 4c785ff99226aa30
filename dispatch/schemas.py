from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class UserSummary(BaseModel):
    id: str
    name: str
    role: str
    email: Optional[str] = None
    phone: Optional[str] = None
    is_validated: bool = False

    class Config:
        from_attributes = True


class MissionSummary(BaseModel):
    id: str
    type: str
    title: str
    description: Optional[str] = None
    date_start: datetime
    date_end: datetime
    location: str
    forfeit: float

    class Config:
        from_attributes = True


class MessageResponse(BaseModel):
    message: str
