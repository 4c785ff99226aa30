"""Vehicle service - fleet management and vehicle allocation to missions"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import CompanyVehicle, Mission, User, VehicleAssignment, VehicleMaintenance
from ...realtime.feed import ChangeFeed
from ...shared.clock import utcnow
from .repository import VehicleRepository
from .schemas import (
    DriverCreate,
    MaintenanceCreate,
    MaintenanceUpdate,
    VehicleAssignRequest,
    VehicleCreate,
    VehicleReturnRequest,
    VehicleUpdate,
)

logger = logging.getLogger(__name__)


class VehicleService:
    """Service layer for the vehicle fleet"""

    def __init__(self, db: Session, feed: ChangeFeed):
        self.db = db
        self.feed = feed
        self.repo = VehicleRepository()

    def list_vehicles(self, available_only: bool = False) -> list[CompanyVehicle]:
        return self.repo.list_vehicles(self.db, status="disponible" if available_only else None)

    def get_vehicle(self, vehicle_id: str) -> CompanyVehicle:
        vehicle = self.repo.get_vehicle(self.db, vehicle_id)
        if not vehicle:
            raise HTTPException(status_code=404, detail="Véhicule introuvable")
        return vehicle

    def get_vehicle_details(self, vehicle_id: str) -> CompanyVehicle:
        vehicle = self.repo.get_vehicle_with_details(self.db, vehicle_id)
        if not vehicle:
            raise HTTPException(status_code=404, detail="Véhicule introuvable")
        return vehicle

    def _check_plate(self, license_plate: Optional[str], vehicle_id: Optional[str] = None) -> None:
        if not license_plate:
            return
        existing = self.repo.get_by_plate(self.db, license_plate)
        if existing and existing.id != vehicle_id:
            raise HTTPException(
                status_code=409, detail="Un véhicule existe déjà avec cette immatriculation"
            )

    def create_vehicle(self, data: VehicleCreate) -> CompanyVehicle:
        self._check_plate(data.license_plate)
        vehicle = self.repo.create_vehicle(self.db, **data.model_dump())
        logger.info(f"🚚 Vehicle added: {vehicle.id} ({vehicle.name})")
        self.feed.publish("company_vehicles", "INSERT", {"id": vehicle.id})
        return vehicle

    def update_vehicle(self, vehicle_id: str, data: VehicleUpdate) -> CompanyVehicle:
        vehicle = self.get_vehicle(vehicle_id)
        updates = data.model_dump(exclude_unset=True)
        if "license_plate" in updates:
            self._check_plate(updates["license_plate"], vehicle.id)

        vehicle = self.repo.update_vehicle(self.db, vehicle, **updates)
        self.feed.publish("company_vehicles", "UPDATE", {"id": vehicle.id})
        return vehicle

    def delete_vehicle(self, vehicle_id: str) -> None:
        vehicle = self.get_vehicle(vehicle_id)
        if self.repo.get_open_assignment(self.db, vehicle.id):
            raise HTTPException(
                status_code=409, detail="Impossible de supprimer un véhicule en mission"
            )

        self.repo.delete_vehicle(self.db, vehicle)
        logger.info(f"🗑️ Vehicle {vehicle_id} deleted")
        self.feed.publish("company_vehicles", "DELETE", {"id": vehicle_id})

    # ========================================================================
    # MISSION ASSIGNMENTS
    # ========================================================================

    def list_assignments(self, mission_id: Optional[str] = None) -> list[VehicleAssignment]:
        return self.repo.list_assignments(self.db, mission_id)

    def assign_to_mission(self, vehicle_id: str, data: VehicleAssignRequest) -> VehicleAssignment:
        """Send an available vehicle out on a mission"""
        vehicle = self.get_vehicle(vehicle_id)
        if not self.db.get(Mission, data.mission_id):
            raise HTTPException(status_code=404, detail="Mission introuvable")
        if not self.db.get(User, data.assigned_by):
            raise HTTPException(status_code=404, detail="Utilisateur introuvable")

        if vehicle.status != "disponible" or self.repo.get_open_assignment(self.db, vehicle.id):
            raise HTTPException(status_code=409, detail="Ce véhicule n'est pas disponible")

        assignment = self.repo.assign_to_mission(
            self.db, vehicle, data.mission_id, data.assigned_by, data.notes
        )
        logger.info(f"🚚 Vehicle {vehicle.name} assigned to mission {data.mission_id}")
        self.feed.publish("vehicle_assignments", "INSERT", {"id": assignment.id})
        self.feed.publish("company_vehicles", "UPDATE", {"id": vehicle.id})
        return assignment

    def return_vehicle(self, vehicle_id: str, data: VehicleReturnRequest) -> VehicleAssignment:
        vehicle = self.get_vehicle(vehicle_id)
        assignment = self.repo.get_open_assignment(self.db, vehicle.id, data.mission_id)
        if not assignment:
            raise HTTPException(
                status_code=404, detail="Aucune assignation en cours pour ce véhicule"
            )

        assignment = self.repo.return_vehicle(
            self.db, vehicle, assignment, utcnow(), mileage=data.mileage
        )
        logger.info(f"Vehicle {vehicle.name} returned from mission {data.mission_id}")
        self.feed.publish("vehicle_assignments", "UPDATE", {"id": assignment.id})
        self.feed.publish("company_vehicles", "UPDATE", {"id": vehicle.id})
        return assignment

    # ========================================================================
    # MAINTENANCE
    # ========================================================================

    def _get_maintenance(self, maintenance_id: str) -> VehicleMaintenance:
        record = self.repo.get_maintenance(self.db, maintenance_id)
        if not record:
            raise HTTPException(status_code=404, detail="Maintenance introuvable")
        return record

    def add_maintenance(self, vehicle_id: str, data: MaintenanceCreate) -> VehicleMaintenance:
        vehicle = self.get_vehicle(vehicle_id)
        record = self.repo.add_maintenance(self.db, vehicle, **data.model_dump())
        self.feed.publish("vehicle_maintenance", "INSERT", {"id": record.id})
        return record

    def update_maintenance(self, maintenance_id: str, data: MaintenanceUpdate) -> VehicleMaintenance:
        record = self._get_maintenance(maintenance_id)
        record = self.repo.update_maintenance(
            self.db, record, **data.model_dump(exclude_unset=True, exclude_none=True)
        )
        self.feed.publish("vehicle_maintenance", "UPDATE", {"id": record.id})
        return record

    def delete_maintenance(self, maintenance_id: str) -> None:
        record = self._get_maintenance(maintenance_id)
        self.repo.delete_maintenance(self.db, record)
        self.feed.publish("vehicle_maintenance", "DELETE", {"id": maintenance_id})

    # ========================================================================
    # AUTHORIZED DRIVERS
    # ========================================================================

    def add_driver(self, vehicle_id: str, data: DriverCreate):
        vehicle = self.get_vehicle(vehicle_id)
        if not self.db.get(User, data.driver_id):
            raise HTTPException(status_code=404, detail="Conducteur introuvable")
        if self.repo.get_driver(self.db, vehicle.id, data.driver_id):
            raise HTTPException(
                status_code=409, detail="Ce conducteur est déjà autorisé sur ce véhicule"
            )

        driver = self.repo.add_driver(self.db, vehicle, **data.model_dump())
        self.feed.publish("vehicle_drivers", "INSERT", {"id": driver.id})
        return driver

    def remove_driver(self, vehicle_id: str, driver_id: str) -> None:
        driver = self.repo.get_driver(self.db, vehicle_id, driver_id)
        if not driver:
            raise HTTPException(status_code=404, detail="Conducteur non autorisé sur ce véhicule")
        authorization_id = driver.id
        self.repo.remove_driver(self.db, driver)
        self.feed.publish("vehicle_drivers", "DELETE", {"id": authorization_id})
