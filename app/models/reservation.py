from sqlalchemy import Column, String, Numeric, Integer, ForeignKey, DateTime, Date, Text, Boolean, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from app.database import Base

class ReservationStatus(str, enum.Enum):
    PENDING = "pending"
    BOOKED = "booked"
    PICKED_UP = "picked_up"
    RETURNED = "returned"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

# Statuses that no longer hold the vehicle
CLOSED_STATUSES = (
    ReservationStatus.CANCELLED,
    ReservationStatus.COMPLETED,
    ReservationStatus.RETURNED,
)

class ReservationType(str, enum.Enum):
    STANDARD = "standard"
    MAINTENANCE_BLOCK = "maintenance_block"
    REPLACEMENT = "replacement"

class MaintenanceState(str, enum.Enum):
    SCHEDULED = "scheduled"
    IN = "in"
    IN_SERVICE = "in_service"
    OUT = "out"

ACTIVE_MAINTENANCE_STATES = (
    MaintenanceState.SCHEDULED,
    MaintenanceState.IN,
    MaintenanceState.IN_SERVICE,
)

class MaintenanceCategory(str, enum.Enum):
    APK_INSPECTION = "apk_inspection"
    WARRANTY_SERVICE = "warranty_service"
    TIRE_CHANGE = "tire_change"
    REPAIR = "repair"
    GENERAL = "general"

class Reservation(Base):
    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), index=True)  # NULL for TBD spares
    customer_id = Column(Integer, ForeignKey("customers.id"), index=True)  # NULL for maintenance blocks
    driver_id = Column(Integer, ForeignKey("drivers.id", ondelete="SET NULL"))

    # Period
    start_date = Column(Date, nullable=False, index=True)
    end_date = Column(Date, index=True)  # NULL = open-ended

    status = Column(SQLEnum(ReservationStatus), nullable=False, default=ReservationStatus.PENDING)
    type = Column(SQLEnum(ReservationType), nullable=False, default=ReservationType.STANDARD)

    # Spare vehicles
    replacement_for_reservation_id = Column(Integer, ForeignKey("reservations.id"))
    placeholder_spare = Column(Boolean, nullable=False, default=False)

    contract_number = Column(String(50), index=True)
    total_price = Column(Numeric(10, 2))
    notes = Column(Text)

    # Mileage
    pickup_mileage = Column(Integer)
    return_mileage = Column(Integer)

    # Maintenance blocks
    maintenance_duration = Column(Integer)  # days
    maintenance_status = Column(SQLEnum(MaintenanceState))
    maintenance_category = Column(SQLEnum(MaintenanceCategory))

    deleted_at = Column(DateTime(timezone=True))

    created_by = Column(String(100))
    updated_by = Column(String(100))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    vehicle = relationship("Vehicle", lazy="selectin")
    customer = relationship("Customer", lazy="selectin")

    @property
    def is_open_ended(self):
        return self.end_date is None

    @property
    def is_maintenance_block(self):
        return self.type == ReservationType.MAINTENANCE_BLOCK
