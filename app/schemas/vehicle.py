from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime, date
from decimal import Decimal
from app.models.vehicle import AvailabilityStatus, MaintenanceStatus

class VehicleBase(BaseModel):
    vehicle_type: Optional[str] = None
    chassis_number: Optional[str] = None
    fuel: Optional[str] = None
    color: Optional[str] = None
    apk_date: Optional[date] = None
    warranty_end_date: Optional[date] = None
    daily_price: Optional[Decimal] = Field(None, ge=0)
    monthly_price: Optional[Decimal] = Field(None, ge=0)
    departure_mileage: Optional[int] = Field(None, ge=0)
    return_mileage: Optional[int] = Field(None, ge=0)
    gps: Optional[bool] = None
    spare_key: Optional[bool] = None
    winter_tires: Optional[bool] = None
    remarks: Optional[str] = None

class VehicleCreate(VehicleBase):
    license_plate: str = Field(..., min_length=1, max_length=20)
    brand: str = Field(..., min_length=1, max_length=100)
    model: str = Field(..., min_length=1, max_length=100)

class VehicleUpdate(VehicleBase):
    license_plate: Optional[str] = Field(None, min_length=1, max_length=20)
    brand: Optional[str] = Field(None, min_length=1, max_length=100)
    model: Optional[str] = Field(None, min_length=1, max_length=100)

class VehicleResponse(VehicleBase):
    id: int
    license_plate: str
    brand: str
    model: str
    availability_status: AvailabilityStatus
    maintenance_status: MaintenanceStatus
    maintenance_note: Optional[str] = None
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class VehicleSummary(BaseModel):
    id: int
    license_plate: str
    brand: str
    model: str
    availability_status: AvailabilityStatus

    class Config:
        from_attributes = True

class VehicleStatusUpdate(BaseModel):
    availability_status: AvailabilityStatus

class VehicleStatusChange(BaseModel):
    vehicle: VehicleResponse
    warning: Optional[str] = None

class VehicleServiceMark(BaseModel):
    maintenance_status: MaintenanceStatus
    maintenance_note: Optional[str] = None
