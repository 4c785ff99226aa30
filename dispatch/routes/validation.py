"""
Validation Routes - Expose the shared validators to clients
"""

from datetime import datetime, time
from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel

from ..shared.clock import to_naive_utc, utcnow
from ..shared.validators import (
    check_planning_conflict,
    validate_availability_times,
    validate_mission_dates,
    validate_password,
)

router = APIRouter(prefix="/validation", tags=["Validation"])


class DateRange(BaseModel):
    date_start: datetime
    date_end: datetime


class IdentifiedRange(DateRange):
    id: Optional[str] = None


class TimeRange(BaseModel):
    start_time: time
    end_time: time


class PasswordCheck(BaseModel):
    password: str


class PlanningConflictCheck(DateRange):
    existing: list[IdentifiedRange] = []


class ValidationResponse(BaseModel):
    is_valid: bool
    error: Optional[str] = None
    reason: Optional[str] = None


class PasswordStrengthResponse(BaseModel):
    is_valid: bool
    strength: int
    errors: list[str]


class PlanningConflictResponse(BaseModel):
    has_conflict: bool
    conflicting: Optional[IdentifiedRange] = None


def _to_response(result) -> ValidationResponse:
    return ValidationResponse(is_valid=result.is_valid, error=result.error, reason=result.reason)


@router.post("/mission-dates", response_model=ValidationResponse)
async def check_mission_dates(data: DateRange):
    start = to_naive_utc(data.date_start)
    end = to_naive_utc(data.date_end)
    return _to_response(validate_mission_dates(start, end, now=utcnow()))


@router.post("/availability", response_model=ValidationResponse)
async def check_availability(data: TimeRange):
    return _to_response(validate_availability_times(data.start_time, data.end_time))


@router.post("/password", response_model=PasswordStrengthResponse)
async def check_password(data: PasswordCheck):
    result = validate_password(data.password)
    return PasswordStrengthResponse(
        is_valid=result.is_valid, strength=result.strength, errors=result.errors
    )


@router.post("/planning-conflict", response_model=PlanningConflictResponse)
async def check_conflict(data: PlanningConflictCheck):
    # Mixed offsets are compared on a common naive UTC clock
    existing = [
        IdentifiedRange(
            id=r.id, date_start=to_naive_utc(r.date_start), date_end=to_naive_utc(r.date_end)
        )
        for r in data.existing
    ]
    result = check_planning_conflict(
        to_naive_utc(data.date_start), to_naive_utc(data.date_end), existing
    )
    return PlanningConflictResponse(has_conflict=result.has_conflict, conflicting=result.conflicting)
