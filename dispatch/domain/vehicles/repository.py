"""Vehicle repository - Database operations for the fleet"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import CompanyVehicle, VehicleAssignment, VehicleDriver, VehicleMaintenance


class VehicleRepository:
    """Repository for vehicles, their mission assignments, maintenance and drivers"""

    @staticmethod
    def list_vehicles(db: Session, status: Optional[str] = None) -> list[CompanyVehicle]:
        query = db.query(CompanyVehicle)
        if status:
            query = query.filter(CompanyVehicle.status == status)
        return query.order_by(CompanyVehicle.name.asc()).all()

    @staticmethod
    def get_vehicle(db: Session, vehicle_id: str) -> Optional[CompanyVehicle]:
        return db.query(CompanyVehicle).filter(CompanyVehicle.id == vehicle_id).first()

    @staticmethod
    def get_vehicle_with_details(db: Session, vehicle_id: str) -> Optional[CompanyVehicle]:
        return (
            db.query(CompanyVehicle)
            .options(
                joinedload(CompanyVehicle.assignments).joinedload(VehicleAssignment.mission),
                joinedload(CompanyVehicle.maintenance),
                joinedload(CompanyVehicle.drivers).joinedload(VehicleDriver.driver),
            )
            .filter(CompanyVehicle.id == vehicle_id)
            .first()
        )

    @staticmethod
    def get_by_plate(db: Session, license_plate: str) -> Optional[CompanyVehicle]:
        return (
            db.query(CompanyVehicle).filter(CompanyVehicle.license_plate == license_plate).first()
        )

    @staticmethod
    def create_vehicle(db: Session, **vehicle_data) -> CompanyVehicle:
        vehicle = CompanyVehicle(**vehicle_data)
        db.add(vehicle)
        db.commit()
        db.refresh(vehicle)
        return vehicle

    @staticmethod
    def update_vehicle(db: Session, vehicle: CompanyVehicle, **updates) -> CompanyVehicle:
        for key, value in updates.items():
            if hasattr(vehicle, key):
                setattr(vehicle, key, value)
        db.commit()
        db.refresh(vehicle)
        return vehicle

    @staticmethod
    def delete_vehicle(db: Session, vehicle: CompanyVehicle) -> None:
        db.delete(vehicle)
        db.commit()

    # ========================================================================
    # MISSION ASSIGNMENTS
    # ========================================================================

    @staticmethod
    def list_assignments(db: Session, mission_id: Optional[str] = None) -> list[VehicleAssignment]:
        """Vehicle assignments, most recent first"""
        query = db.query(VehicleAssignment).options(joinedload(VehicleAssignment.mission))
        if mission_id:
            query = query.filter(VehicleAssignment.mission_id == mission_id)
        return query.order_by(VehicleAssignment.assigned_at.desc()).all()

    @staticmethod
    def get_open_assignment(
        db: Session, vehicle_id: str, mission_id: Optional[str] = None
    ) -> Optional[VehicleAssignment]:
        """The assignment of this vehicle that has not been returned yet"""
        query = db.query(VehicleAssignment).filter(
            VehicleAssignment.vehicle_id == vehicle_id,
            VehicleAssignment.returned_at.is_(None),
        )
        if mission_id:
            query = query.filter(VehicleAssignment.mission_id == mission_id)
        return query.first()

    @staticmethod
    def assign_to_mission(
        db: Session, vehicle: CompanyVehicle, mission_id: str, assigned_by: str, notes=None
    ) -> VehicleAssignment:
        assignment = VehicleAssignment(
            vehicle_id=vehicle.id, mission_id=mission_id, assigned_by=assigned_by, notes=notes
        )
        vehicle.status = "en_mission"
        db.add(assignment)
        db.commit()
        db.refresh(assignment)
        return assignment

    @staticmethod
    def return_vehicle(
        db: Session,
        vehicle: CompanyVehicle,
        assignment: VehicleAssignment,
        returned_at: datetime,
        mileage: Optional[int] = None,
    ) -> VehicleAssignment:
        assignment.returned_at = returned_at
        if vehicle.status == "en_mission":
            vehicle.status = "disponible"
        if mileage is not None:
            vehicle.current_mileage = mileage
        db.commit()
        db.refresh(assignment)
        return assignment

    @staticmethod
    def release_mission_vehicles(db: Session, mission_id: str) -> int:
        """Drop a mission's vehicle assignments and free vehicles still out on it. No commit."""
        assignments = (
            db.query(VehicleAssignment).filter(VehicleAssignment.mission_id == mission_id).all()
        )
        for assignment in assignments:
            if assignment.returned_at is None and assignment.vehicle.status == "en_mission":
                assignment.vehicle.status = "disponible"
            db.delete(assignment)
        return len(assignments)

    # ========================================================================
    # MAINTENANCE
    # ========================================================================

    @staticmethod
    def get_maintenance(db: Session, maintenance_id: str) -> Optional[VehicleMaintenance]:
        return db.query(VehicleMaintenance).filter(VehicleMaintenance.id == maintenance_id).first()

    @staticmethod
    def add_maintenance(
        db: Session, vehicle: CompanyVehicle, **maintenance_data
    ) -> VehicleMaintenance:
        record = VehicleMaintenance(vehicle_id=vehicle.id, **maintenance_data)
        db.add(record)

        performed_at = maintenance_data["performed_at"]
        if not vehicle.last_maintenance_date or performed_at >= vehicle.last_maintenance_date:
            vehicle.last_maintenance_date = performed_at
            if maintenance_data.get("next_maintenance_date"):
                vehicle.next_maintenance_date = maintenance_data["next_maintenance_date"]

        db.commit()
        db.refresh(record)
        return record

    @staticmethod
    def update_maintenance(
        db: Session, record: VehicleMaintenance, **updates
    ) -> VehicleMaintenance:
        for key, value in updates.items():
            if hasattr(record, key):
                setattr(record, key, value)
        db.commit()
        db.refresh(record)
        return record

    @staticmethod
    def delete_maintenance(db: Session, record: VehicleMaintenance) -> None:
        db.delete(record)
        db.commit()

    # ========================================================================
    # AUTHORIZED DRIVERS
    # ========================================================================

    @staticmethod
    def get_driver(db: Session, vehicle_id: str, driver_id: str) -> Optional[VehicleDriver]:
        return (
            db.query(VehicleDriver)
            .filter(VehicleDriver.vehicle_id == vehicle_id, VehicleDriver.driver_id == driver_id)
            .first()
        )

    @staticmethod
    def add_driver(db: Session, vehicle: CompanyVehicle, **driver_data) -> VehicleDriver:
        driver = VehicleDriver(vehicle_id=vehicle.id, **driver_data)
        db.add(driver)
        db.commit()
        db.refresh(driver)
        return driver

    @staticmethod
    def remove_driver(db: Session, driver: VehicleDriver) -> None:
        db.delete(driver)
        db.commit()

    @staticmethod
    def remove_driver_authorizations(db: Session, driver_id: str) -> int:
        """Revoke every vehicle authorization of a user. No commit."""
        return (
            db.query(VehicleDriver)
            .filter(VehicleDriver.driver_id == driver_id)
            .delete(synchronize_session=False)
        )
