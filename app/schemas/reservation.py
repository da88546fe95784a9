from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime, date
from decimal import Decimal
from app.models.reservation import (
    ReservationStatus, ReservationType, MaintenanceState, MaintenanceCategory
)
from app.schemas.vehicle import VehicleSummary
from app.schemas.driver import CustomerSummary

class ReservationCreate(BaseModel):
    vehicle_id: Optional[int] = None
    customer_id: Optional[int] = None
    driver_id: Optional[int] = None
    start_date: date
    end_date: Optional[date] = None  # open-ended rental
    status: ReservationStatus = ReservationStatus.PENDING
    type: ReservationType = ReservationType.STANDARD
    contract_number: Optional[str] = Field(None, max_length=50)
    total_price: Optional[Decimal] = Field(None, ge=0)
    notes: Optional[str] = None
    maintenance_duration: Optional[int] = Field(None, ge=0)
    maintenance_status: Optional[MaintenanceState] = None
    maintenance_category: Optional[MaintenanceCategory] = None

class ReservationUpdate(BaseModel):
    vehicle_id: Optional[int] = None
    customer_id: Optional[int] = None
    driver_id: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[ReservationStatus] = None  # pending <-> booked only
    contract_number: Optional[str] = Field(None, max_length=50)
    total_price: Optional[Decimal] = Field(None, ge=0)
    notes: Optional[str] = None
    maintenance_duration: Optional[int] = Field(None, ge=0)
    maintenance_status: Optional[MaintenanceState] = None
    maintenance_category: Optional[MaintenanceCategory] = None

class ReservationResponse(BaseModel):
    id: int
    vehicle_id: Optional[int]
    customer_id: Optional[int]
    driver_id: Optional[int] = None
    start_date: date
    end_date: Optional[date]
    status: ReservationStatus
    type: ReservationType
    replacement_for_reservation_id: Optional[int] = None
    placeholder_spare: bool
    contract_number: Optional[str] = None
    total_price: Optional[Decimal] = None
    notes: Optional[str] = None
    pickup_mileage: Optional[int] = None
    return_mileage: Optional[int] = None
    maintenance_duration: Optional[int] = None
    maintenance_status: Optional[MaintenanceState] = None
    maintenance_category: Optional[MaintenanceCategory] = None
    vehicle: Optional[VehicleSummary] = None
    customer: Optional[CustomerSummary] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class AvailabilityResponse(BaseModel):
    vehicle_id: int
    start_date: date
    end_date: Optional[date]
    available: bool
    conflicts: List[ReservationResponse]

class ReservationPickup(BaseModel):
    mileage: Optional[int] = Field(None, ge=0)

class ReservationReturn(BaseModel):
    return_date: Optional[date] = None
    mileage: Optional[int] = Field(None, ge=0)

class ReservationActionResponse(BaseModel):
    reservation: ReservationResponse
    warning: Optional[str] = None

# Maintenance
class MaintenanceBlockCreate(BaseModel):
    vehicle_id: int
    start_date: date
    end_date: Optional[date] = None
    maintenance_duration: Optional[int] = Field(None, ge=0)
    maintenance_category: MaintenanceCategory = MaintenanceCategory.GENERAL
    notes: Optional[str] = None

class MaintenanceBlockClose(BaseModel):
    end_date: Optional[date] = None

# Spare vehicles
class ReplacementCreate(BaseModel):
    original_reservation_id: int
    spare_vehicle_id: int
    start_date: date
    end_date: Optional[date] = None

class ReplacementClose(BaseModel):
    end_date: Optional[date] = None

class PlaceholderCreate(BaseModel):
    original_reservation_id: int
    customer_id: int
    start_date: date
    end_date: Optional[date] = None

class PlaceholderAssign(BaseModel):
    vehicle_id: int
    end_date: Optional[date] = None
