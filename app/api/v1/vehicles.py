from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from datetime import date
from app.database import get_db
from app.dependencies import get_current_user, get_current_admin
from app.schemas.vehicle import (
    VehicleCreate, VehicleUpdate, VehicleResponse,
    VehicleStatusUpdate, VehicleStatusChange, VehicleServiceMark,
)
from app.services.vehicle_service import VehicleService
from app.services.vehicle_status import VehicleStatusService
from app.services.availability_service import AvailabilityService
from app.services.maintenance_service import MaintenanceService
from app.api.v1.websocket import broadcast_data_update
from app.models import User, AvailabilityStatus

router = APIRouter(prefix="/vehicles", tags=["Vehicles"])

def _payload(vehicle) -> dict:
    return VehicleResponse.model_validate(vehicle).model_dump(mode="json")

@router.get("", response_model=List[VehicleResponse])
async def list_vehicles(
    search: Optional[str] = None,
    availability_status: Optional[AvailabilityStatus] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await VehicleService(db).list(search, availability_status, skip, limit)

@router.get("/available", response_model=List[VehicleResponse])
async def available_vehicles(
    on_date: Optional[date] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Vehicles without a rental on the given day (default today)"""
    return await AvailabilityService(db).get_available_vehicles(on_date)

@router.get("/apk-expiring", response_model=List[VehicleResponse])
async def apk_expiring(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await AvailabilityService(db).get_vehicles_with_apk_expiring_soon()

@router.get("/warranty-expiring", response_model=List[VehicleResponse])
async def warranty_expiring(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await AvailabilityService(db).get_vehicles_with_warranty_expiring_soon()

@router.post("/sync-status", response_model=List[VehicleResponse])
async def sync_all_statuses(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_admin)
):
    """Recompute every vehicle's availability; returns the vehicles that changed"""
    changed = await VehicleStatusService(db).sync_all()
    for vehicle in changed:
        await broadcast_data_update("vehicle", "updated", _payload(vehicle))
    return changed

@router.get("/{vehicle_id}", response_model=VehicleResponse)
async def get_vehicle(
    vehicle_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await VehicleService(db).get(vehicle_id)

@router.post("", response_model=VehicleResponse, status_code=status.HTTP_201_CREATED)
async def create_vehicle(
    vehicle_data: VehicleCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    vehicle = await VehicleService(db).create(vehicle_data, created_by=current_user.username)
    await broadcast_data_update("vehicle", "created", _payload(vehicle))
    return vehicle

@router.patch("/{vehicle_id}", response_model=VehicleResponse)
async def update_vehicle(
    vehicle_id: int,
    vehicle_data: VehicleUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    vehicle = await VehicleService(db).update(vehicle_id, vehicle_data, updated_by=current_user.username)
    await broadcast_data_update("vehicle", "updated", _payload(vehicle))
    return vehicle

@router.delete("/{vehicle_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_vehicle(
    vehicle_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Delete a vehicle with its documents and expenses; its reservations are soft-deleted"""
    await VehicleService(db).delete(vehicle_id)
    await broadcast_data_update("vehicle", "deleted", {"id": vehicle_id})

@router.put("/{vehicle_id}/status", response_model=VehicleStatusChange)
async def set_vehicle_status(
    vehicle_id: int,
    status_data: VehicleStatusUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Set availability by hand; refused when it contradicts active rentals or maintenance"""
    vehicle, warning = await VehicleStatusService(db).set_manual_status(
        vehicle_id, status_data.availability_status
    )
    await broadcast_data_update("vehicle", "updated", _payload(vehicle))
    return VehicleStatusChange(vehicle=VehicleResponse.model_validate(vehicle), warning=warning)

@router.post("/{vehicle_id}/sync-status", response_model=VehicleResponse)
async def sync_vehicle_status(
    vehicle_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    vehicle = await VehicleStatusService(db).sync_vehicle(vehicle_id)
    await broadcast_data_update("vehicle", "updated", _payload(vehicle))
    return vehicle

@router.put("/{vehicle_id}/service", response_model=VehicleResponse)
async def mark_for_service(
    vehicle_id: int,
    service_data: VehicleServiceMark,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    vehicle = await MaintenanceService(db).mark_vehicle_for_service(
        vehicle_id, service_data.maintenance_status, service_data.maintenance_note
    )
    await broadcast_data_update("vehicle", "updated", _payload(vehicle))
    return vehicle
