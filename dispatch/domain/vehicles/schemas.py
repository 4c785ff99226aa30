"""Vehicle domain schemas"""

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ...schemas import MissionSummary, UserSummary

VehicleCategory = Literal[
    "voiture_particuliere", "camionnette", "camion", "fourgon", "remorque", "moto", "velo"
]
VehicleStatus = Literal["disponible", "en_mission", "maintenance", "hors_service"]
FuelType = Literal["essence", "diesel", "electrique", "hybride", "gpl"]


class VehicleCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    category: VehicleCategory
    brand: str = Field(..., min_length=1, max_length=50)
    model: str = Field(..., min_length=1, max_length=50)
    year: Optional[int] = Field(None, ge=1950, le=2100)
    license_plate: Optional[str] = Field(None, max_length=20)
    vin: Optional[str] = Field(None, max_length=17)
    fuel_type: Optional[FuelType] = None
    fuel_capacity: Optional[float] = Field(None, gt=0)
    max_payload: Optional[float] = Field(None, gt=0)
    max_volume: Optional[float] = Field(None, gt=0)
    status: VehicleStatus = "disponible"
    current_mileage: int = Field(0, ge=0)
    last_maintenance_date: Optional[date] = None
    next_maintenance_date: Optional[date] = None
    insurance_expiry_date: Optional[date] = None
    registration_expiry_date: Optional[date] = None
    notes: Optional[str] = None

    @field_validator("license_plate")
    @classmethod
    def normalize_plate(cls, v):
        # AB-123-CD and ab 123 cd are the same plate
        if v is None:
            return v
        v = v.strip().upper().replace(" ", "-")
        return v or None


class VehicleUpdate(BaseModel):
    """Partial update; omitted fields are left untouched"""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    category: Optional[VehicleCategory] = None
    brand: Optional[str] = Field(None, min_length=1, max_length=50)
    model: Optional[str] = Field(None, min_length=1, max_length=50)
    year: Optional[int] = Field(None, ge=1950, le=2100)
    license_plate: Optional[str] = Field(None, max_length=20)
    fuel_type: Optional[FuelType] = None
    status: Optional[VehicleStatus] = None
    current_mileage: Optional[int] = Field(None, ge=0)
    last_maintenance_date: Optional[date] = None
    next_maintenance_date: Optional[date] = None
    insurance_expiry_date: Optional[date] = None
    registration_expiry_date: Optional[date] = None
    notes: Optional[str] = None

    @field_validator("license_plate")
    @classmethod
    def normalize_plate(cls, v):
        if v is None:
            return v
        return v.strip().upper().replace(" ", "-") or None


class VehicleResponse(BaseModel):
    id: str
    name: str
    category: str
    brand: str
    model: str
    year: Optional[int] = None
    license_plate: Optional[str] = None
    vin: Optional[str] = None
    fuel_type: Optional[str] = None
    fuel_capacity: Optional[float] = None
    max_payload: Optional[float] = None
    max_volume: Optional[float] = None
    status: str
    current_mileage: int
    last_maintenance_date: Optional[date] = None
    next_maintenance_date: Optional[date] = None
    insurance_expiry_date: Optional[date] = None
    registration_expiry_date: Optional[date] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ============================================================================
# MISSION ASSIGNMENTS
# ============================================================================


class VehicleAssignRequest(BaseModel):
    mission_id: str
    assigned_by: str
    notes: Optional[str] = None


class VehicleReturnRequest(BaseModel):
    mission_id: str
    mileage: Optional[int] = Field(None, ge=0)


class VehicleAssignmentResponse(BaseModel):
    id: str
    vehicle_id: str
    mission_id: str
    assigned_by: str
    assigned_at: Optional[datetime] = None
    returned_at: Optional[datetime] = None
    notes: Optional[str] = None
    mission: Optional[MissionSummary] = None

    class Config:
        from_attributes = True


# ============================================================================
# MAINTENANCE
# ============================================================================


class MaintenanceCreate(BaseModel):
    maintenance_type: str = Field(..., min_length=1, max_length=50)
    description: str = Field(..., min_length=1)
    cost: Optional[float] = Field(None, ge=0)
    performed_by: Optional[str] = Field(None, max_length=100)
    performed_at: date
    next_maintenance_date: Optional[date] = None
    mileage_at_maintenance: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = None


class MaintenanceUpdate(BaseModel):
    maintenance_type: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = Field(None, min_length=1)
    cost: Optional[float] = Field(None, ge=0)
    performed_by: Optional[str] = Field(None, max_length=100)
    performed_at: Optional[date] = None
    next_maintenance_date: Optional[date] = None
    mileage_at_maintenance: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = None


class MaintenanceResponse(BaseModel):
    id: str
    vehicle_id: str
    maintenance_type: str
    description: str
    cost: Optional[float] = None
    performed_by: Optional[str] = None
    performed_at: date
    next_maintenance_date: Optional[date] = None
    mileage_at_maintenance: Optional[int] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True


# ============================================================================
# AUTHORIZED DRIVERS
# ============================================================================


class DriverCreate(BaseModel):
    driver_id: str
    authorized_by: str
    license_type: Optional[str] = Field(None, max_length=10)
    license_expiry_date: Optional[date] = None
    notes: Optional[str] = None


class DriverResponse(BaseModel):
    id: str
    vehicle_id: str
    driver_id: str
    license_type: Optional[str] = None
    license_expiry_date: Optional[date] = None
    authorized_at: Optional[datetime] = None
    authorized_by: str
    notes: Optional[str] = None
    driver: Optional[UserSummary] = None

    class Config:
        from_attributes = True


class VehicleDetailsResponse(VehicleResponse):
    assignments: list[VehicleAssignmentResponse] = []
    maintenance: list[MaintenanceResponse] = []
    drivers: list[DriverResponse] = []
