"""Technician router - user profiles, validation flag and removal"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ...context import DispatchContext, get_context, get_session
from ...schemas import MessageResponse
from .repository import UserRepository
from .schemas import TechnicianResponse, UserCreate, UserUpdate, ValidationToggle

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/technicians", response_model=list[TechnicianResponse])
async def list_technicians(db: Session = Depends(get_session)):
    return UserRepository.list_technicians(db)


@router.post("", response_model=TechnicianResponse, status_code=201)
async def create_user(
    data: UserCreate,
    db: Session = Depends(get_session),
    ctx: DispatchContext = Depends(get_context),
):
    """Create the profile of a user who just signed up"""
    if data.email and UserRepository.get_by_email(db, data.email):
        raise HTTPException(status_code=409, detail="Un utilisateur existe déjà avec cet email")

    user_data = data.model_dump(exclude_none=True)
    user = UserRepository.create_user(db, **user_data)
    logger.info(f"✅ User profile created: {user.id} ({user.role})")
    ctx.feed.publish("users", "INSERT", {"id": user.id})
    return user


@router.patch("/{user_id}", response_model=TechnicianResponse)
async def update_user(
    user_id: str,
    data: UserUpdate,
    db: Session = Depends(get_session),
    ctx: DispatchContext = Depends(get_context),
):
    user = UserRepository.get_user(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="Utilisateur introuvable")

    user = UserRepository.update_user(db, user, **data.model_dump(exclude_unset=True))
    ctx.feed.publish("users", "UPDATE", {"id": user.id})
    return user


@router.post("/{user_id}/validate", response_model=TechnicianResponse)
async def set_validation(
    user_id: str,
    data: ValidationToggle,
    db: Session = Depends(get_session),
    ctx: DispatchContext = Depends(get_context),
):
    """Validate (or un-validate) a technician account"""
    user = UserRepository.get_user(db, user_id)
    if not user or user.role != "technicien":
        raise HTTPException(status_code=404, detail="Technicien introuvable")

    user.is_validated = data.is_validated
    db.commit()
    db.refresh(user)
    logger.info(f"Technician {user_id} validation set to {data.is_validated}")
    ctx.feed.publish("users", "UPDATE", {"id": user.id})
    return user


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_technician(
    user_id: str,
    db: Session = Depends(get_session),
    ctx: DispatchContext = Depends(get_context),
):
    """Remove a technician together with their mission assignments"""
    user = UserRepository.get_user(db, user_id)
    if not user or user.role != "technicien":
        raise HTTPException(status_code=404, detail="Technicien introuvable")
    if UserRepository.has_billings(db, user_id):
        raise HTTPException(
            status_code=409, detail="Impossible de supprimer un technicien ayant des paiements"
        )

    removed = UserRepository.delete_technician(db, user)
    logger.info(f"🗑️ Technician {user_id} deleted with {removed} assignment(s)")
    if removed:
        ctx.feed.publish("mission_assignments", "DELETE", {"technician_id": user_id})
    ctx.feed.publish("users", "DELETE", {"id": user_id})
    return MessageResponse(message="Technicien supprimé")
