"""Billing router - technician payments per mission"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ...context import DispatchContext, get_context, get_session
from ...email_service import send_payment_status_email
from ...models import Mission, User
from ...shared.clock import utcnow
from .repository import BillingRepository
from .schemas import BillingCreate, BillingResponse, BillingStatusUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing", tags=["Billing"])


@router.get("", response_model=list[BillingResponse])
async def list_billings(technician_id: Optional[str] = None, db: Session = Depends(get_session)):
    return BillingRepository.list_billings(db, technician_id)


@router.post("", response_model=BillingResponse, status_code=201)
async def create_billing(
    data: BillingCreate,
    db: Session = Depends(get_session),
    ctx: DispatchContext = Depends(get_context),
):
    if not db.get(Mission, data.mission_id):
        raise HTTPException(status_code=404, detail="Mission introuvable")
    if not db.get(User, data.technician_id):
        raise HTTPException(status_code=404, detail="Technicien introuvable")

    billing = BillingRepository.create_billing(db, **data.model_dump())
    logger.info(f"💶 Billing {billing.id} created for technician {billing.technician_id}")
    ctx.feed.publish("billing", "INSERT", {"id": billing.id})
    return BillingRepository.get_billing(db, billing.id)


@router.patch("/{billing_id}/status", response_model=BillingResponse)
async def update_billing_status(
    billing_id: str,
    data: BillingStatusUpdate,
    db: Session = Depends(get_session),
    ctx: DispatchContext = Depends(get_context),
):
    billing = BillingRepository.get_billing(db, billing_id)
    if not billing:
        raise HTTPException(status_code=404, detail="Facturation introuvable")

    billing.status = data.status
    billing.paid_at = utcnow() if data.status == "paid" else None
    db.commit()
    db.refresh(billing)
    ctx.feed.publish("billing", "UPDATE", {"id": billing.id})

    if data.notify and billing.technician and billing.technician.email:
        result = await send_payment_status_email(
            to=billing.technician.email,
            technician_name=billing.technician.name,
            mission_title=billing.mission.title if billing.mission else "",
            amount=billing.amount,
            status=billing.status,
        )
        if not result.success:
            logger.warning(f"⚠️ Payment email not sent for {billing.id}: {result.error}")

    return billing
