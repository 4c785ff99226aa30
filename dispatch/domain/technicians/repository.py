"""Technician repository - Database operations for users"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Billing, MissionAssignment, User
from ..vehicles.repository import VehicleRepository


class UserRepository:
    @staticmethod
    def list_technicians(db: Session) -> list[User]:
        """Technicians with their assignments and missions, by name"""
        return (
            db.query(User)
            .options(joinedload(User.assignments).joinedload(MissionAssignment.mission))
            .filter(User.role == "technicien")
            .order_by(User.name.asc())
            .all()
        )

    @staticmethod
    def list_admins(db: Session) -> list[User]:
        return db.query(User).filter(User.role == "admin").all()

    @staticmethod
    def get_user(db: Session, user_id: str) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email).first()

    @staticmethod
    def create_user(db: Session, **user_data) -> User:
        user = User(**user_data)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def update_user(db: Session, user: User, **updates) -> User:
        for key, value in updates.items():
            if value is not None and hasattr(user, key):
                setattr(user, key, value)
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def has_billings(db: Session, user_id: str) -> bool:
        return db.query(Billing.id).filter(Billing.technician_id == user_id).first() is not None

    @staticmethod
    def delete_technician(db: Session, user: User) -> int:
        """Delete the technician's assignments, availability and vehicle authorizations, then the user"""
        removed = len(user.assignments)
        VehicleRepository.remove_driver_authorizations(db, user.id)
        db.delete(user)
        db.commit()
        return removed
