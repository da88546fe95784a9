from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from app.database import get_db
from app.dependencies import get_current_user
from app.schemas.driver import (
    CustomerCreate, CustomerUpdate, CustomerResponse,
    DriverResponse,
)
from app.schemas.reservation import ReservationResponse
from app.services.customer_service import CustomerService
from app.services.reservation_service import ReservationService
from app.api.v1.websocket import broadcast_data_update
from app.models import User

router = APIRouter(prefix="/customers", tags=["Customers"])

def _payload(customer) -> dict:
    return CustomerResponse.model_validate(customer).model_dump(mode="json")

@router.get("", response_model=List[CustomerResponse])
async def list_customers(
    search: Optional[str] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await CustomerService(db).list(search, skip, limit)

@router.get("/{customer_id}", response_model=CustomerResponse)
async def get_customer(
    customer_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await CustomerService(db).get(customer_id)

@router.get("/{customer_id}/reservations", response_model=List[ReservationResponse])
async def customer_reservations(
    customer_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    await CustomerService(db).get(customer_id)
    return await ReservationService(db).list(customer_id=customer_id)

@router.post("", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
async def create_customer(
    customer_data: CustomerCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    customer = await CustomerService(db).create(customer_data, created_by=current_user.username)
    await broadcast_data_update("customer", "created", _payload(customer))
    return customer

@router.patch("/{customer_id}", response_model=CustomerResponse)
async def update_customer(
    customer_id: int,
    customer_data: CustomerUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    customer = await CustomerService(db).update(customer_id, customer_data, updated_by=current_user.username)
    await broadcast_data_update("customer", "updated", _payload(customer))
    return customer

@router.delete("/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_customer(
    customer_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Delete a customer; refused while they have active reservations"""
    await CustomerService(db).delete(customer_id)
    await broadcast_data_update("customer", "deleted", {"id": customer_id})

# Drivers
@router.get("/{customer_id}/drivers", response_model=List[DriverResponse])
async def list_drivers(
    customer_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await CustomerService(db).list_drivers(customer_id)
