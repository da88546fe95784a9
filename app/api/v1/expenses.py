from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from datetime import date
from app.database import get_db
from app.dependencies import get_current_user
from app.schemas.other import ExpenseCreate, ExpenseUpdate, ExpenseResponse
from app.services.record_service import ExpenseService
from app.api.v1.websocket import broadcast_data_update
from app.models import User

router = APIRouter(prefix="/expenses", tags=["Expenses"])

def _payload(expense) -> dict:
    return ExpenseResponse.model_validate(expense).model_dump(mode="json")

@router.get("", response_model=List[ExpenseResponse])
async def list_expenses(
    vehicle_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await ExpenseService(db).list(vehicle_id, start_date, end_date)

@router.get("/vehicle/{vehicle_id}/total")
async def vehicle_total(
    vehicle_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    total = await ExpenseService(db).total_for_vehicle(vehicle_id)
    return {"vehicle_id": vehicle_id, "total": str(total)}

@router.get("/{expense_id}", response_model=ExpenseResponse)
async def get_expense(
    expense_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await ExpenseService(db).get(expense_id)

@router.post("", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
async def create_expense(
    expense_data: ExpenseCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    expense = await ExpenseService(db).create(expense_data, created_by=current_user.username)
    await broadcast_data_update("expense", "created", _payload(expense))
    return expense

@router.patch("/{expense_id}", response_model=ExpenseResponse)
async def update_expense(
    expense_id: int,
    expense_data: ExpenseUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    expense = await ExpenseService(db).update(expense_id, expense_data)
    await broadcast_data_update("expense", "updated", _payload(expense))
    return expense

@router.delete("/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_expense(
    expense_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    await ExpenseService(db).delete(expense_id)
    await broadcast_data_update("expense", "deleted", {"id": expense_id})
