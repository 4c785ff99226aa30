"""Availability domain schemas"""

from datetime import datetime, time
from typing import Optional

from pydantic import BaseModel


class AvailabilityCreate(BaseModel):
    technician_id: str
    start_time: time
    end_time: time


class AvailabilityResponse(BaseModel):
    id: str
    technician_id: str
    start_time: time
    end_time: time
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
