from sqlalchemy import Column, String, Boolean, Integer, Date, Numeric, Text, DateTime, Enum as SQLEnum
from sqlalchemy.sql import func
import enum
from app.database import Base

class AvailabilityStatus(str, enum.Enum):
    AVAILABLE = "available"
    SCHEDULED = "scheduled"
    RENTED = "rented"
    NEEDS_FIXING = "needs_fixing"
    NOT_FOR_RENTAL = "not_for_rental"

# Set by staff, never overwritten by reservation-driven recomputation
MANUAL_STATUSES = (AvailabilityStatus.NEEDS_FIXING, AvailabilityStatus.NOT_FOR_RENTAL)

class MaintenanceStatus(str, enum.Enum):
    OK = "ok"
    NEEDS_SERVICE = "needs_service"
    IN_SERVICE = "in_service"

class Vehicle(Base):
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    license_plate = Column(String(20), unique=True, nullable=False, index=True)
    brand = Column(String(100), nullable=False)
    model = Column(String(100), nullable=False)
    vehicle_type = Column(String(50))
    chassis_number = Column(String(50))
    fuel = Column(String(30))
    color = Column(String(50))

    # Inspection & warranty
    apk_date = Column(Date)
    warranty_end_date = Column(Date)

    # Status
    availability_status = Column(
        SQLEnum(AvailabilityStatus), nullable=False, default=AvailabilityStatus.AVAILABLE
    )
    maintenance_status = Column(
        SQLEnum(MaintenanceStatus), nullable=False, default=MaintenanceStatus.OK
    )
    maintenance_note = Column(Text)

    # Pricing
    daily_price = Column(Numeric(10, 2))
    monthly_price = Column(Numeric(10, 2))

    # Mileage
    departure_mileage = Column(Integer)
    return_mileage = Column(Integer)

    gps = Column(Boolean, default=False)
    spare_key = Column(Boolean, default=False)
    winter_tires = Column(Boolean, default=False)
    remarks = Column(Text)

    created_by = Column(String(100))
    updated_by = Column(String(100))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def display_name(self):
        return f"{self.license_plate} ({self.brand} {self.model})"
