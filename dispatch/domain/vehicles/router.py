"""Vehicle router - fleet, mission allocation, maintenance and authorized drivers"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...context import DispatchContext, get_context, get_session
from ...schemas import MessageResponse
from .schemas import (
    DriverCreate,
    DriverResponse,
    MaintenanceCreate,
    MaintenanceResponse,
    MaintenanceUpdate,
    VehicleAssignmentResponse,
    VehicleAssignRequest,
    VehicleCreate,
    VehicleDetailsResponse,
    VehicleResponse,
    VehicleReturnRequest,
    VehicleUpdate,
)
from .service import VehicleService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/vehicles", tags=["Vehicles"])


def get_vehicle_service(
    db: Session = Depends(get_session), ctx: DispatchContext = Depends(get_context)
) -> VehicleService:
    return VehicleService(db, ctx.feed)


# ============================================================================
# FLEET
# ============================================================================


@router.get("", response_model=list[VehicleResponse])
async def list_vehicles(
    available: bool = False, service: VehicleService = Depends(get_vehicle_service)
):
    """All vehicles by name, or only the ones free to go out on a mission"""
    return service.list_vehicles(available_only=available)


@router.get("/assignments", response_model=list[VehicleAssignmentResponse])
async def list_vehicle_assignments(
    mission_id: Optional[str] = None, service: VehicleService = Depends(get_vehicle_service)
):
    return service.list_assignments(mission_id)


@router.get("/{vehicle_id}", response_model=VehicleDetailsResponse)
async def get_vehicle(vehicle_id: str, service: VehicleService = Depends(get_vehicle_service)):
    return service.get_vehicle_details(vehicle_id)


@router.post("", response_model=VehicleResponse, status_code=201)
async def create_vehicle(data: VehicleCreate, service: VehicleService = Depends(get_vehicle_service)):
    return service.create_vehicle(data)


@router.patch("/{vehicle_id}", response_model=VehicleResponse)
async def update_vehicle(
    vehicle_id: str, data: VehicleUpdate, service: VehicleService = Depends(get_vehicle_service)
):
    return service.update_vehicle(vehicle_id, data)


@router.delete("/{vehicle_id}", response_model=MessageResponse)
async def delete_vehicle(vehicle_id: str, service: VehicleService = Depends(get_vehicle_service)):
    service.delete_vehicle(vehicle_id)
    return MessageResponse(message="Véhicule supprimé")


# ============================================================================
# MISSION ASSIGNMENTS
# ============================================================================


@router.post("/{vehicle_id}/assign", response_model=VehicleAssignmentResponse, status_code=201)
async def assign_vehicle(
    vehicle_id: str,
    data: VehicleAssignRequest,
    service: VehicleService = Depends(get_vehicle_service),
):
    return service.assign_to_mission(vehicle_id, data)


@router.post("/{vehicle_id}/return", response_model=VehicleAssignmentResponse)
async def return_vehicle(
    vehicle_id: str,
    data: VehicleReturnRequest,
    service: VehicleService = Depends(get_vehicle_service),
):
    return service.return_vehicle(vehicle_id, data)


# ============================================================================
# MAINTENANCE
# ============================================================================


@router.post("/{vehicle_id}/maintenance", response_model=MaintenanceResponse, status_code=201)
async def add_maintenance(
    vehicle_id: str,
    data: MaintenanceCreate,
    service: VehicleService = Depends(get_vehicle_service),
):
    return service.add_maintenance(vehicle_id, data)


@router.patch("/maintenance/{maintenance_id}", response_model=MaintenanceResponse)
async def update_maintenance(
    maintenance_id: str,
    data: MaintenanceUpdate,
    service: VehicleService = Depends(get_vehicle_service),
):
    return service.update_maintenance(maintenance_id, data)


@router.delete("/maintenance/{maintenance_id}", response_model=MessageResponse)
async def delete_maintenance(
    maintenance_id: str, service: VehicleService = Depends(get_vehicle_service)
):
    service.delete_maintenance(maintenance_id)
    return MessageResponse(message="Maintenance supprimée")


# ============================================================================
# AUTHORIZED DRIVERS
# ============================================================================


@router.post("/{vehicle_id}/drivers", response_model=DriverResponse, status_code=201)
async def add_driver(
    vehicle_id: str, data: DriverCreate, service: VehicleService = Depends(get_vehicle_service)
):
    return service.add_driver(vehicle_id, data)


@router.delete("/{vehicle_id}/drivers/{driver_id}", response_model=MessageResponse)
async def remove_driver(
    vehicle_id: str, driver_id: str, service: VehicleService = Depends(get_vehicle_service)
):
    service.remove_driver(vehicle_id, driver_id)
    return MessageResponse(message="Conducteur retiré")
