from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from app.database import get_db
from app.dependencies import get_current_user
from app.schemas.reservation import (
    ReservationResponse, ReservationActionResponse, MaintenanceBlockCreate, MaintenanceBlockClose,
)
from app.services.maintenance_service import MaintenanceService
from app.services.availability_service import AvailabilityService
from app.api.v1.websocket import broadcast_data_update
from app.models import User

router = APIRouter(prefix="/maintenance", tags=["Maintenance"])

async def _block_result(block, warning: Optional[str], action: str) -> ReservationActionResponse:
    response = ReservationResponse.model_validate(block)
    await broadcast_data_update("reservation", action, response.model_dump(mode="json"))
    # The vehicle's availability may have changed with the block
    await broadcast_data_update("vehicle", "updated", {"id": block.vehicle_id})
    return ReservationActionResponse(reservation=response, warning=warning)

@router.get("/blocks", response_model=List[ReservationResponse])
async def list_blocks(
    vehicle_id: Optional[int] = None,
    include_closed: bool = False,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await MaintenanceService(db).list_blocks(vehicle_id, include_closed)

@router.get("/upcoming", response_model=List[ReservationResponse])
async def upcoming_maintenance(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Scheduled maintenance starting today or later"""
    return await AvailabilityService(db).get_upcoming_maintenance()

@router.post("/blocks", response_model=ReservationActionResponse, status_code=status.HTTP_201_CREATED)
async def create_block(
    block_data: MaintenanceBlockCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Schedule a maintenance block
    Only other maintenance blocks count as conflicts; rentals on the same dates are allowed
    """
    block, warning = await MaintenanceService(db).create_maintenance_block(
        block_data.vehicle_id,
        block_data.start_date,
        block_data.end_date,
        block_data.maintenance_duration,
        block_data.maintenance_category,
        block_data.notes,
    )
    return await _block_result(block, warning, "created")

@router.post("/blocks/{block_id}/start", response_model=ReservationActionResponse)
async def start_block(
    block_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    block, warning = await MaintenanceService(db).start_maintenance(block_id)
    return await _block_result(block, warning, "updated")

@router.post("/blocks/{block_id}/close", response_model=ReservationActionResponse)
async def close_block(
    block_id: int,
    close_data: Optional[MaintenanceBlockClose] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    end_date = close_data.end_date if close_data else None
    block, warning = await MaintenanceService(db).close_maintenance_block(block_id, end_date)
    return await _block_result(block, warning, "updated")
