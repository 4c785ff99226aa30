"""Availability router - technicians' working hours"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ...context import DispatchContext, get_context, get_session
from ...models import User
from ...shared.validators import validate_availability_times
from .repository import AvailabilityRepository
from .schemas import AvailabilityCreate, AvailabilityResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/availability", tags=["Availability"])


@router.get("/{technician_id}", response_model=list[AvailabilityResponse])
async def list_availability(technician_id: str, db: Session = Depends(get_session)):
    return AvailabilityRepository.list_for_technician(db, technician_id)


@router.post("", response_model=AvailabilityResponse, status_code=201)
async def create_availability(
    data: AvailabilityCreate,
    db: Session = Depends(get_session),
    ctx: DispatchContext = Depends(get_context),
):
    result = validate_availability_times(data.start_time, data.end_time)
    if not result.is_valid:
        raise HTTPException(status_code=400, detail=result.error)

    if not db.get(User, data.technician_id):
        raise HTTPException(status_code=404, detail="Technicien introuvable")

    availability = AvailabilityRepository.create(db, **data.model_dump())
    ctx.feed.publish("availability", "INSERT", {"id": availability.id})
    return availability


@router.delete("/{availability_id}", status_code=204)
async def delete_availability(
    availability_id: str,
    db: Session = Depends(get_session),
    ctx: DispatchContext = Depends(get_context),
):
    availability = AvailabilityRepository.get(db, availability_id)
    if not availability:
        raise HTTPException(status_code=404, detail="Disponibilité introuvable")

    AvailabilityRepository.delete(db, availability)
    ctx.feed.publish("availability", "DELETE", {"id": availability_id})
