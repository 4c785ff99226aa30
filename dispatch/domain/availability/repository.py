"""Availability repository"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Availability


class AvailabilityRepository:
    @staticmethod
    def list_for_technician(db: Session, technician_id: str) -> list[Availability]:
        return (
            db.query(Availability)
            .filter(Availability.technician_id == technician_id)
            .order_by(Availability.start_time.asc())
            .all()
        )

    @staticmethod
    def get(db: Session, availability_id: str) -> Optional[Availability]:
        return db.query(Availability).filter(Availability.id == availability_id).first()

    @staticmethod
    def create(db: Session, **data) -> Availability:
        availability = Availability(**data)
        db.add(availability)
        db.commit()
        db.refresh(availability)
        return availability

    @staticmethod
    def delete(db: Session, availability: Availability) -> None:
        db.delete(availability)
        db.commit()
