from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from datetime import date
from app.database import get_db
from app.dependencies import get_current_user
from app.schemas.reservation import (
    ReservationResponse, ReplacementCreate, ReplacementClose, PlaceholderCreate, PlaceholderAssign,
)
from app.schemas.vehicle import VehicleResponse
from app.services.spare_vehicle_service import SpareVehicleService
from app.services.availability_service import AvailabilityService
from app.services.notification_service import EmailService
from app.api.v1.websocket import broadcast_data_update
from app.models import User
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/spares", tags=["Spare Vehicles"])

def _payload(reservation) -> dict:
    return ReservationResponse.model_validate(reservation).model_dump(mode="json")

@router.get("/available-vehicles", response_model=List[VehicleResponse])
async def available_spares(
    start_date: date,
    end_date: date,
    exclude_vehicle_id: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Vehicles free for the whole range, not in service and not manually taken off the road"""
    return await AvailabilityService(db).get_available_vehicles_in_range(
        start_date, end_date, exclude_vehicle_id
    )

# Replacements
@router.post("/replacements", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
async def create_replacement(
    replacement_data: ReplacementCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    replacement = await SpareVehicleService(db).create_replacement(
        replacement_data.original_reservation_id,
        replacement_data.spare_vehicle_id,
        replacement_data.start_date,
        replacement_data.end_date,
    )
    await broadcast_data_update("reservation", "created", _payload(replacement))
    return replacement

@router.post("/replacements/{replacement_id}/close", response_model=ReservationResponse)
async def close_replacement(
    replacement_id: int,
    close_data: Optional[ReplacementClose] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    end_date = close_data.end_date if close_data else None
    replacement = await SpareVehicleService(db).close_replacement(replacement_id, end_date)
    await broadcast_data_update("reservation", "updated", _payload(replacement))
    return replacement

@router.get("/replacements/for/{original_id}", response_model=List[ReservationResponse])
async def list_replacements(
    original_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await SpareVehicleService(db).list_replacements(original_id)

@router.get("/replacements/active/{original_id}", response_model=ReservationResponse)
async def active_replacement(
    original_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """The spare the customer is driving today"""
    replacement = await SpareVehicleService(db).get_active_replacement(original_id)
    if not replacement:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No active spare vehicle for this reservation"
        )
    return replacement

# Placeholders
@router.get("/placeholders", response_model=List[ReservationResponse])
async def list_placeholders(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await SpareVehicleService(db).get_placeholders(start_date, end_date)

@router.get("/placeholders/needing-assignment", response_model=List[ReservationResponse])
async def placeholders_needing_assignment(
    days_ahead: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await SpareVehicleService(db).get_placeholders_needing_assignment(days_ahead)

@router.post("/placeholders", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
async def create_placeholder(
    placeholder_data: PlaceholderCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Reserve a spare for a customer before the vehicle is chosen"""
    placeholder = await SpareVehicleService(db).create_placeholder(
        placeholder_data.original_reservation_id,
        placeholder_data.customer_id,
        placeholder_data.start_date,
        placeholder_data.end_date,
    )
    await broadcast_data_update("reservation", "created", _payload(placeholder))
    await broadcast_data_update("notification", "created")
    return placeholder

@router.post("/placeholders/{placeholder_id}/assign", response_model=ReservationResponse)
async def assign_placeholder(
    placeholder_id: int,
    assign_data: PlaceholderAssign,
    notify_customer: bool = False,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    reservation = await SpareVehicleService(db).assign_vehicle_to_placeholder(
        placeholder_id, assign_data.vehicle_id, assign_data.end_date
    )
    await broadcast_data_update("reservation", "updated", _payload(reservation))
    await broadcast_data_update("notification", "updated")

    if notify_customer:
        sent = await EmailService().send_spare_assignment(reservation)
        if not sent:
            logger.warning(f"Spare assignment email for reservation {reservation.id} was not sent")

    return reservation
