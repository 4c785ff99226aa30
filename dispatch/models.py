import uuid

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    Time,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base

MISSION_TYPES = ("Livraison jeux", "Presta sono", "DJ", "Manutention", "Déplacement")
USER_ROLES = ("admin", "technicien")

# Assignment statuses that book the technician for the mission window
BOOKING_STATUSES = ("pending", "accepted")

VEHICLE_CATEGORIES = (
    "voiture_particuliere",
    "camionnette",
    "camion",
    "fourgon",
    "remorque",
    "moto",
    "velo",
)
VEHICLE_STATUSES = ("disponible", "en_mission", "maintenance", "hors_service")
FUEL_TYPES = ("essence", "diesel", "electrique", "hybride", "gpl")


def generate_id():
    """Generate a UUID string primary key"""
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(50), nullable=False)
    role = Column(String(20), nullable=False, default="technicien")  # admin, technicien
    email = Column(String(255), unique=True, index=True, nullable=True)
    phone = Column(String(30), nullable=True)
    is_validated = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    assignments = relationship(
        "MissionAssignment", back_populates="technician", cascade="all, delete-orphan"
    )
    availabilities = relationship(
        "Availability", back_populates="technician", cascade="all, delete-orphan"
    )


class Mission(Base):
    __tablename__ = "missions"

    id = Column(String(36), primary_key=True, default=generate_id)
    type = Column(String(30), nullable=False)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    date_start = Column(DateTime, nullable=False, index=True)
    date_end = Column(DateTime, nullable=False)
    location = Column(String(200), nullable=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    forfeit = Column(Float, nullable=False)
    required_people = Column(Integer, default=1, nullable=False)
    created_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    assignments = relationship(
        "MissionAssignment", back_populates="mission", cascade="all, delete-orphan"
    )
    billings = relationship("Billing", back_populates="mission", passive_deletes=True)


class MissionAssignment(Base):
    __tablename__ = "mission_assignments"

    id = Column(String(36), primary_key=True, default=generate_id)
    mission_id = Column(String(36), ForeignKey("missions.id"), nullable=False, index=True)
    technician_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="pending")
    assigned_at = Column(DateTime, server_default=func.now())
    responded_at = Column(DateTime, nullable=True)

    mission = relationship("Mission", back_populates="assignments")
    technician = relationship("User", back_populates="assignments")


class Availability(Base):
    __tablename__ = "availability"

    id = Column(String(36), primary_key=True, default=generate_id)
    technician_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    technician = relationship("User", back_populates="availabilities")


class Billing(Base):
    __tablename__ = "billing"

    id = Column(String(36), primary_key=True, default=generate_id)
    mission_id = Column(String(36), ForeignKey("missions.id"), nullable=False, index=True)
    technician_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    status = Column(String(20), nullable=False, default="pending")  # pending, validated, paid
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    paid_at = Column(DateTime, nullable=True)

    mission = relationship("Mission", back_populates="billings")
    technician = relationship("User")


class CompanyVehicle(Base):
    __tablename__ = "company_vehicles"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(100), nullable=False)
    category = Column(String(30), nullable=False)
    brand = Column(String(50), nullable=False)
    model = Column(String(50), nullable=False)
    year = Column(Integer, nullable=True)
    license_plate = Column(String(20), unique=True, nullable=True)
    vin = Column(String(17), nullable=True)
    fuel_type = Column(String(20), nullable=True)
    fuel_capacity = Column(Float, nullable=True)
    max_payload = Column(Float, nullable=True)  # kg
    max_volume = Column(Float, nullable=True)  # m3
    status = Column(String(20), nullable=False, default="disponible")
    current_mileage = Column(Integer, nullable=False, default=0)
    last_maintenance_date = Column(Date, nullable=True)
    next_maintenance_date = Column(Date, nullable=True)
    insurance_expiry_date = Column(Date, nullable=True)
    registration_expiry_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    assignments = relationship(
        "VehicleAssignment",
        back_populates="vehicle",
        cascade="all, delete-orphan",
        order_by="VehicleAssignment.assigned_at.desc()",
    )
    maintenance = relationship(
        "VehicleMaintenance",
        back_populates="vehicle",
        cascade="all, delete-orphan",
        order_by="VehicleMaintenance.performed_at.desc()",
    )
    drivers = relationship("VehicleDriver", back_populates="vehicle", cascade="all, delete-orphan")


class VehicleAssignment(Base):
    __tablename__ = "vehicle_assignments"

    id = Column(String(36), primary_key=True, default=generate_id)
    vehicle_id = Column(String(36), ForeignKey("company_vehicles.id"), nullable=False, index=True)
    mission_id = Column(String(36), ForeignKey("missions.id"), nullable=False, index=True)
    assigned_by = Column(String(36), ForeignKey("users.id"), nullable=False)
    assigned_at = Column(DateTime, server_default=func.now())
    returned_at = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)

    vehicle = relationship("CompanyVehicle", back_populates="assignments")
    mission = relationship("Mission")


class VehicleMaintenance(Base):
    __tablename__ = "vehicle_maintenance"

    id = Column(String(36), primary_key=True, default=generate_id)
    vehicle_id = Column(String(36), ForeignKey("company_vehicles.id"), nullable=False, index=True)
    maintenance_type = Column(String(50), nullable=False)
    description = Column(Text, nullable=False)
    cost = Column(Float, nullable=True)
    performed_by = Column(String(100), nullable=True)
    performed_at = Column(Date, nullable=False)
    next_maintenance_date = Column(Date, nullable=True)
    mileage_at_maintenance = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    vehicle = relationship("CompanyVehicle", back_populates="maintenance")


class VehicleDriver(Base):
    __tablename__ = "vehicle_drivers"

    id = Column(String(36), primary_key=True, default=generate_id)
    vehicle_id = Column(String(36), ForeignKey("company_vehicles.id"), nullable=False, index=True)
    driver_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    license_type = Column(String(10), nullable=True)
    license_expiry_date = Column(Date, nullable=True)
    authorized_at = Column(DateTime, server_default=func.now())
    authorized_by = Column(String(36), ForeignKey("users.id"), nullable=False)
    notes = Column(Text, nullable=True)

    vehicle = relationship("CompanyVehicle", back_populates="drivers")
    driver = relationship("User", foreign_keys=[driver_id])
