"""Billing repository"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Billing


class BillingRepository:
    @staticmethod
    def list_billings(db: Session, technician_id: Optional[str] = None) -> list[Billing]:
        query = db.query(Billing).options(
            joinedload(Billing.mission), joinedload(Billing.technician)
        )
        if technician_id:
            query = query.filter(Billing.technician_id == technician_id)
        return query.order_by(Billing.created_at.desc()).all()

    @staticmethod
    def get_billing(db: Session, billing_id: str) -> Optional[Billing]:
        return (
            db.query(Billing)
            .options(joinedload(Billing.mission), joinedload(Billing.technician))
            .filter(Billing.id == billing_id)
            .first()
        )

    @staticmethod
    def create_billing(db: Session, **billing_data) -> Billing:
        billing = Billing(**billing_data)
        db.add(billing)
        db.commit()
        db.refresh(billing)
        return billing
