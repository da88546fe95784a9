from datetime import date
from decimal import Decimal
from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from app.models import Vehicle, Reservation, Expense, Document
from app.schemas.other import ExpenseCreate, ExpenseUpdate, DocumentCreate, DocumentUpdate
from app.services.exceptions import NotFoundError, ValidationError
import logging

logger = logging.getLogger(__name__)

class ExpenseService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, expense_id: int) -> Expense:
        expense = await self.db.get(Expense, expense_id)
        if not expense:
            raise NotFoundError(f"Expense {expense_id} not found")
        return expense

    async def list(
        self,
        vehicle_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> List[Expense]:
        query = select(Expense)
        if vehicle_id:
            query = query.where(Expense.vehicle_id == vehicle_id)
        if start_date:
            query = query.where(Expense.date >= start_date)
        if end_date:
            query = query.where(Expense.date <= end_date)
        result = await self.db.execute(query.order_by(Expense.date.desc(), Expense.id.desc()))
        return list(result.scalars().all())

    async def total_for_vehicle(self, vehicle_id: int) -> Decimal:
        result = await self.db.execute(
            select(func.coalesce(func.sum(Expense.amount), 0)).where(Expense.vehicle_id == vehicle_id)
        )
        return Decimal(str(result.scalar_one()))

    async def create(self, data: ExpenseCreate, created_by: Optional[str] = None) -> Expense:
        if not await self.db.get(Vehicle, data.vehicle_id):
            raise NotFoundError(f"Vehicle {data.vehicle_id} not found")

        expense = Expense(**data.model_dump(), created_by=created_by)
        self.db.add(expense)
        await self.db.commit()
        await self.db.refresh(expense)
        logger.info(f"Expense {expense.id} ({expense.category}, {expense.amount}) for vehicle {expense.vehicle_id}")
        return expense

    async def update(self, expense_id: int, data: ExpenseUpdate) -> Expense:
        expense = await self.get(expense_id)
        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(expense, key, value)
        await self.db.commit()
        await self.db.refresh(expense)
        return expense

    async def delete(self, expense_id: int):
        expense = await self.get(expense_id)
        await self.db.delete(expense)
        await self.db.commit()

class DocumentService:
    """Document records; file storage itself lives under UPLOAD_DIR"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, document_id: int) -> Document:
        document = await self.db.get(Document, document_id)
        if not document:
            raise NotFoundError(f"Document {document_id} not found")
        return document

    async def list(
        self,
        vehicle_id: Optional[int] = None,
        reservation_id: Optional[int] = None,
        document_type: Optional[str] = None
    ) -> List[Document]:
        query = select(Document)
        if vehicle_id:
            query = query.where(Document.vehicle_id == vehicle_id)
        if reservation_id:
            query = query.where(Document.reservation_id == reservation_id)
        if document_type:
            query = query.where(Document.document_type == document_type)
        result = await self.db.execute(query.order_by(Document.upload_date.desc(), Document.id.desc()))
        return list(result.scalars().all())

    async def _check_reservation(self, reservation_id: Optional[int], vehicle_id: int):
        if reservation_id is None:
            return
        reservation = await self.db.get(Reservation, reservation_id)
        if not reservation:
            raise NotFoundError(f"Reservation {reservation_id} not found")
        if reservation.vehicle_id not in (None, vehicle_id):
            raise ValidationError("Reservation belongs to a different vehicle")

    async def create(self, data: DocumentCreate, created_by: Optional[str] = None) -> Document:
        if not await self.db.get(Vehicle, data.vehicle_id):
            raise NotFoundError(f"Vehicle {data.vehicle_id} not found")
        await self._check_reservation(data.reservation_id, data.vehicle_id)

        document = Document(**data.model_dump(), created_by=created_by)
        self.db.add(document)
        await self.db.commit()
        await self.db.refresh(document)
        logger.info(f"Document {document.id} ({document.document_type}) stored for vehicle {document.vehicle_id}")
        return document

    async def update(self, document_id: int, data: DocumentUpdate) -> Document:
        document = await self.get(document_id)
        changes = data.model_dump(exclude_unset=True)
        if "reservation_id" in changes:
            await self._check_reservation(changes["reservation_id"], document.vehicle_id)

        for key, value in changes.items():
            setattr(document, key, value)
        await self.db.commit()
        await self.db.refresh(document)
        return document

    async def delete(self, document_id: int):
        document = await self.get(document_id)
        await self.db.delete(document)
        await self.db.commit()
