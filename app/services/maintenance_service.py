from datetime import date
from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from app.models import (
    Vehicle, Reservation, ReservationStatus, ReservationType, MaintenanceStatus,
    MaintenanceState, MaintenanceCategory, ACTIVE_MAINTENANCE_STATES,
)
from app.services.availability_service import AvailabilityService
from app.services.vehicle_status import (
    VehicleStatusService, status_on_maintenance_start, status_on_maintenance_end, current_status,
)
from app.services.exceptions import NotFoundError, ValidationError, ConflictError, StatusTransitionError
from app.utils.dates import covers, today as current_date
import logging

logger = logging.getLogger(__name__)

class MaintenanceService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.availability = AvailabilityService(db)
        self.status = VehicleStatusService(db)

    async def _get_vehicle(self, vehicle_id: int) -> Vehicle:
        vehicle = await self.db.get(Vehicle, vehicle_id)
        if not vehicle:
            raise NotFoundError(f"Vehicle {vehicle_id} not found")
        return vehicle

    async def get_block(self, block_id: int) -> Reservation:
        block = await self.db.get(Reservation, block_id)
        if not block or block.deleted_at is not None or block.type != ReservationType.MAINTENANCE_BLOCK:
            raise NotFoundError(f"Maintenance block {block_id} not found")
        return block

    async def list_blocks(self, vehicle_id: Optional[int] = None, include_closed: bool = False) -> List[Reservation]:
        query = select(Reservation).where(
            Reservation.type == ReservationType.MAINTENANCE_BLOCK,
            Reservation.deleted_at.is_(None),
        )
        if vehicle_id:
            query = query.where(Reservation.vehicle_id == vehicle_id)
        if not include_closed:
            query = query.where(
                Reservation.status != ReservationStatus.CANCELLED,
                Reservation.maintenance_status.in_(ACTIVE_MAINTENANCE_STATES),
            )
        result = await self.db.execute(query.order_by(Reservation.start_date))
        return list(result.scalars().all())

    async def mark_vehicle_for_service(
        self,
        vehicle_id: int,
        maintenance_status: MaintenanceStatus,
        note: Optional[str] = None
    ) -> Vehicle:
        vehicle = await self._get_vehicle(vehicle_id)
        vehicle.maintenance_status = maintenance_status
        vehicle.maintenance_note = note

        await self.db.commit()
        await self.db.refresh(vehicle)
        logger.info(f"Vehicle {vehicle.license_plate} maintenance status: {maintenance_status.value}")
        return vehicle

    async def add_block(
        self,
        vehicle: Vehicle,
        start_date: date,
        end_date: Optional[date] = None,
        duration: Optional[int] = None,
        category: MaintenanceCategory = MaintenanceCategory.GENERAL,
        notes: Optional[str] = None,
        customer_id: Optional[int] = None
    ) -> Reservation:
        """Insert a maintenance block after checking it against other blocks. Does not commit."""
        if end_date is not None and end_date < start_date:
            raise ValidationError("End date cannot be before start date")

        conflicts = await self.availability.check_conflicts(
            vehicle.id, start_date, end_date, is_maintenance_block=True
        )
        if conflicts:
            raise ConflictError("Vehicle already has maintenance scheduled for these dates", conflicts)

        if duration is None and end_date is not None:
            duration = (end_date - start_date).days + 1

        block = Reservation(
            vehicle_id=vehicle.id,
            customer_id=customer_id,
            start_date=start_date,
            end_date=end_date,
            status=ReservationStatus.BOOKED,
            type=ReservationType.MAINTENANCE_BLOCK,
            maintenance_status=MaintenanceState.SCHEDULED,
            maintenance_category=category,
            maintenance_duration=duration,
            notes=notes or "Vehicle maintenance block",
        )
        self.db.add(block)
        await self.db.flush()
        return block

    async def create_maintenance_block(
        self,
        vehicle_id: int,
        start_date: date,
        end_date: Optional[date] = None,
        duration: Optional[int] = None,
        category: MaintenanceCategory = MaintenanceCategory.GENERAL,
        notes: Optional[str] = None
    ) -> tuple:
        """
        Schedule workshop time for a vehicle. Returns (block, warning).

        A block that already covers today takes the vehicle off the road
        straight away, which is refused while the vehicle is rented out.
        """
        vehicle = await self._get_vehicle(vehicle_id)

        transition = None
        if covers(start_date, end_date, current_date()):
            transition = status_on_maintenance_start(current_status(vehicle))
            if not transition.allowed:
                raise StatusTransitionError(transition.error)

        block = await self.add_block(vehicle, start_date, end_date, duration, category, notes)
        warning = self.status.apply(vehicle, transition) if transition else None

        await self.db.commit()
        await self.db.refresh(block)
        logger.info(f"Maintenance block {block.id} scheduled for {vehicle.license_plate} from {start_date}")
        return block, warning

    async def start_maintenance(self, block_id: int) -> tuple:
        """Vehicle arrived at the workshop. Returns (block, warning)."""
        block = await self.get_block(block_id)
        if block.maintenance_status not in (MaintenanceState.SCHEDULED, None):
            raise StatusTransitionError(f"Maintenance block {block_id} is already {block.maintenance_status.value}")

        vehicle = await self._get_vehicle(block.vehicle_id)
        warning = self.status.apply(vehicle, status_on_maintenance_start(current_status(vehicle)))

        block.maintenance_status = MaintenanceState.IN
        vehicle.maintenance_status = MaintenanceStatus.IN_SERVICE

        await self.db.commit()
        await self.db.refresh(block)
        return block, warning

    def close_block(self, block: Reservation, end_date: Optional[date] = None):
        """Mark a block finished. Does not touch the vehicle or commit."""
        block.status = ReservationStatus.COMPLETED
        block.maintenance_status = MaintenanceState.OUT
        if end_date is not None:
            block.end_date = max(end_date, block.start_date)
        elif block.end_date is None:
            block.end_date = max(current_date(), block.start_date)

    async def close_maintenance_block(self, block_id: int, end_date: Optional[date] = None) -> tuple:
        """Vehicle is back from the workshop. Returns (block, warning)."""
        block = await self.get_block(block_id)
        if block.status in (ReservationStatus.COMPLETED, ReservationStatus.CANCELLED):
            raise StatusTransitionError(f"Maintenance block {block_id} is already closed")

        vehicle = await self._get_vehicle(block.vehicle_id)
        self.close_block(block, end_date)
        await self.db.flush()

        ctx = await self.status.get_context(vehicle)
        warning = self.status.apply(vehicle, status_on_maintenance_end(current_status(vehicle), ctx))
        vehicle.maintenance_status = MaintenanceStatus.OK
        vehicle.maintenance_note = None

        await self.db.commit()
        await self.db.refresh(block)
        logger.info(f"Maintenance block {block.id} closed for {vehicle.license_plate}")
        return block, warning
