from datetime import datetime, timezone
from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, func, or_
from app.models import Vehicle, Reservation, Expense, Document, AvailabilityStatus
from app.schemas.vehicle import VehicleCreate, VehicleUpdate
from app.services.exceptions import NotFoundError, ConflictError
from app.utils.search import like_pattern
import logging

logger = logging.getLogger(__name__)

class VehicleService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, vehicle_id: int) -> Vehicle:
        vehicle = await self.db.get(Vehicle, vehicle_id)
        if not vehicle:
            raise NotFoundError(f"Vehicle {vehicle_id} not found")
        return vehicle

    async def list(
        self,
        search: Optional[str] = None,
        availability_status: Optional[AvailabilityStatus] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[Vehicle]:
        query = select(Vehicle)

        if search:
            pattern = like_pattern(search)
            query = query.where(or_(
                func.replace(func.upper(Vehicle.license_plate), "-", "").like(pattern),
                func.upper(Vehicle.brand).like(pattern),
                func.upper(Vehicle.model).like(pattern),
            ))
        if availability_status:
            query = query.where(Vehicle.availability_status == availability_status)

        result = await self.db.execute(query.order_by(Vehicle.license_plate).offset(skip).limit(limit))
        return list(result.scalars().all())

    async def _ensure_unique_plate(self, license_plate: str, exclude_id: Optional[int] = None):
        query = select(Vehicle.id).where(Vehicle.license_plate == license_plate)
        if exclude_id is not None:
            query = query.where(Vehicle.id != exclude_id)
        result = await self.db.execute(query.limit(1))
        if result.scalar_one_or_none() is not None:
            raise ConflictError(f"License plate {license_plate} is already registered")

    async def create(self, data: VehicleCreate, created_by: Optional[str] = None) -> Vehicle:
        fields = data.model_dump(exclude_unset=True)
        fields["license_plate"] = fields["license_plate"].strip().upper()
        await self._ensure_unique_plate(fields["license_plate"])

        vehicle = Vehicle(**fields, created_by=created_by, updated_by=created_by)
        self.db.add(vehicle)
        await self.db.commit()
        await self.db.refresh(vehicle)

        logger.info(f"Vehicle {vehicle.license_plate} created")
        return vehicle

    async def update(self, vehicle_id: int, data: VehicleUpdate, updated_by: Optional[str] = None) -> Vehicle:
        vehicle = await self.get(vehicle_id)
        changes = data.model_dump(exclude_unset=True)

        if changes.get("license_plate"):
            changes["license_plate"] = changes["license_plate"].strip().upper()
            await self._ensure_unique_plate(changes["license_plate"], exclude_id=vehicle.id)

        for key, value in changes.items():
            setattr(vehicle, key, value)
        vehicle.updated_by = updated_by

        await self.db.commit()
        await self.db.refresh(vehicle)
        return vehicle

    async def delete(self, vehicle_id: int):
        """
        Remove a vehicle with its documents and expenses.
        Its reservations are soft-deleted so rental history survives.
        """
        vehicle = await self.get(vehicle_id)
        now = datetime.now(timezone.utc)

        await self.db.execute(delete(Document).where(Document.vehicle_id == vehicle.id))
        await self.db.execute(delete(Expense).where(Expense.vehicle_id == vehicle.id))
        await self.db.execute(
            update(Reservation)
            .where(Reservation.vehicle_id == vehicle.id, Reservation.deleted_at.is_(None))
            .values(deleted_at=now)
        )
        # Deleted reservations keep their history in notes, not the foreign key
        await self.db.execute(
            update(Reservation)
            .where(Reservation.vehicle_id == vehicle.id)
            .values(vehicle_id=None)
        )
        await self.db.delete(vehicle)
        await self.db.commit()

        logger.info(f"Vehicle {vehicle.license_plate} deleted")
