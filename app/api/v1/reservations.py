from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from datetime import date
from app.database import get_db
from app.dependencies import get_current_user
from app.schemas.reservation import (
    ReservationCreate, ReservationUpdate, ReservationResponse, AvailabilityResponse,
    ReservationPickup, ReservationReturn, ReservationActionResponse,
)
from app.services.reservation_service import ReservationService
from app.services.availability_service import AvailabilityService
from app.services.notification_service import EmailService
from app.api.v1.websocket import broadcast_data_update
from app.models import User, ReservationStatus, ReservationType

router = APIRouter(prefix="/reservations", tags=["Reservations"])

def _payload(reservation) -> dict:
    return ReservationResponse.model_validate(reservation).model_dump(mode="json")

async def _action_result(reservation, warning: Optional[str], action: str) -> ReservationActionResponse:
    await broadcast_data_update("reservation", action, _payload(reservation))
    return ReservationActionResponse(
        reservation=ReservationResponse.model_validate(reservation),
        warning=warning
    )

@router.get("", response_model=List[ReservationResponse])
async def list_reservations(
    status_filter: Optional[ReservationStatus] = Query(None, alias="status"),
    reservation_type: Optional[ReservationType] = Query(None, alias="type"),
    vehicle_id: Optional[int] = None,
    customer_id: Optional[int] = None,
    include_deleted: bool = False,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await ReservationService(db).list(
        status_filter, reservation_type, vehicle_id, customer_id, include_deleted, skip, limit
    )

@router.get("/search", response_model=List[ReservationResponse])
async def search_reservations(
    q: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Search by license plate (with or without dashes), vehicle, customer, date or status"""
    return await ReservationService(db).search(q)

@router.get("/calendar", response_model=List[ReservationResponse])
async def calendar(
    start_date: date,
    end_date: date,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """All reservations and maintenance blocks overlapping the range"""
    return await AvailabilityService(db).get_reservations_in_range(start_date, end_date)

@router.get("/upcoming", response_model=List[ReservationResponse])
async def upcoming(
    limit: Optional[int] = Query(None, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await AvailabilityService(db).get_upcoming_reservations(limit)

@router.get("/overdue", response_model=List[ReservationResponse])
async def overdue(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await AvailabilityService(db).get_overdue_reservations()

@router.get("/availability", response_model=AvailabilityResponse)
async def check_availability(
    vehicle_id: int,
    start_date: date,
    end_date: Optional[date] = None,
    exclude_id: Optional[int] = None,
    is_maintenance_block: bool = False,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Check whether a vehicle is free for a date range; no end date means open-ended"""
    conflicts = await AvailabilityService(db).check_conflicts(
        vehicle_id, start_date, end_date, exclude_id, is_maintenance_block
    )
    return AvailabilityResponse(
        vehicle_id=vehicle_id,
        start_date=start_date,
        end_date=end_date,
        available=not conflicts,
        conflicts=[ReservationResponse.model_validate(r) for r in conflicts]
    )

@router.get("/{reservation_id}", response_model=ReservationResponse)
async def get_reservation(
    reservation_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await ReservationService(db).get(reservation_id)

@router.post("", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    reservation_data: ReservationCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Create a reservation
    Rejected with 409 when the vehicle is already booked for an overlapping range
    """
    reservation = await ReservationService(db).create(reservation_data, created_by=current_user.username)
    await broadcast_data_update("reservation", "created", _payload(reservation))
    return reservation

@router.patch("/{reservation_id}", response_model=ReservationResponse)
async def update_reservation(
    reservation_id: int,
    reservation_data: ReservationUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    reservation = await ReservationService(db).update(
        reservation_id, reservation_data, updated_by=current_user.username
    )
    await broadcast_data_update("reservation", "updated", _payload(reservation))
    return reservation

@router.post("/{reservation_id}/pickup", response_model=ReservationActionResponse)
async def pickup(
    reservation_id: int,
    pickup_data: Optional[ReservationPickup] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    mileage = pickup_data.mileage if pickup_data else None
    reservation, warning = await ReservationService(db).pickup(reservation_id, mileage)
    return await _action_result(reservation, warning, "updated")

@router.post("/{reservation_id}/return", response_model=ReservationActionResponse)
async def return_reservation(
    reservation_id: int,
    return_data: Optional[ReservationReturn] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return_data = return_data or ReservationReturn()
    reservation, warning = await ReservationService(db).return_reservation(
        reservation_id, return_data.return_date, return_data.mileage
    )
    return await _action_result(reservation, warning, "updated")

@router.post("/{reservation_id}/cancel", response_model=ReservationActionResponse)
async def cancel(
    reservation_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    reservation, warning = await ReservationService(db).cancel(reservation_id)
    return await _action_result(reservation, warning, "updated")

@router.delete("/{reservation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_reservation(
    reservation_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Soft delete; the reservation can be restored later"""
    await ReservationService(db).soft_delete(reservation_id)
    await broadcast_data_update("reservation", "deleted", {"id": reservation_id})

@router.post("/{reservation_id}/restore", response_model=ReservationResponse)
async def restore_reservation(
    reservation_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    reservation = await ReservationService(db).restore(reservation_id)
    await broadcast_data_update("reservation", "updated", _payload(reservation))
    return reservation

@router.post("/{reservation_id}/send-confirmation")
async def send_confirmation(
    reservation_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    reservation = await ReservationService(db).get(reservation_id)
    sent = await EmailService().send_reservation_confirmation(reservation)
    return {"sent": sent}
