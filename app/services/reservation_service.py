from datetime import date, datetime, timezone
from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_, func
from app.models import (
    Vehicle, Customer, Driver, Reservation, ReservationStatus, ReservationType,
    MaintenanceState, CLOSED_STATUSES,
)
from app.schemas.reservation import ReservationCreate, ReservationUpdate
from app.services.availability_service import AvailabilityService
from app.services.vehicle_status import (
    VehicleStatusService, status_on_pickup, status_on_return,
    status_on_reservation_cancel, status_on_maintenance_end, current_status,
)
from app.services.exceptions import NotFoundError, ValidationError, ConflictError, StatusTransitionError
from app.utils.dates import today as current_date
from app.utils.search import like_pattern, normalize_search_query
import logging

logger = logging.getLogger(__name__)

# Statuses an edit may switch between
PLANNING_STATUSES = (ReservationStatus.PENDING, ReservationStatus.BOOKED)

class ReservationService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.availability = AvailabilityService(db)
        self.status = VehicleStatusService(db)

    async def get(self, reservation_id: int, include_deleted: bool = False) -> Reservation:
        reservation = await self.db.get(Reservation, reservation_id)
        if not reservation or (reservation.deleted_at is not None and not include_deleted):
            raise NotFoundError(f"Reservation {reservation_id} not found")
        return reservation

    async def list(
        self,
        status: Optional[ReservationStatus] = None,
        reservation_type: Optional[ReservationType] = None,
        vehicle_id: Optional[int] = None,
        customer_id: Optional[int] = None,
        include_deleted: bool = False,
        skip: int = 0,
        limit: int = 100
    ) -> List[Reservation]:
        query = select(Reservation)

        if not include_deleted:
            query = query.where(Reservation.deleted_at.is_(None))
        if status:
            query = query.where(Reservation.status == status)
        if reservation_type:
            query = query.where(Reservation.type == reservation_type)
        if vehicle_id:
            query = query.where(Reservation.vehicle_id == vehicle_id)
        if customer_id:
            query = query.where(Reservation.customer_id == customer_id)

        query = query.order_by(Reservation.start_date.desc(), Reservation.id.desc()).offset(skip).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def search(self, query: str, limit: int = 50) -> List[Reservation]:
        """
        Free-text search over reservations.

        License plates match with or without dashes. Vehicle brand/model and
        customer name, email and phone are matched the same way; an ISO date
        matches reservations running on that day and a status name matches
        that status.
        """
        normalized = normalize_search_query(query)
        if not normalized:
            return []

        pattern = like_pattern(query)

        def matches(column):
            return func.replace(func.upper(column), "-", "").like(pattern)

        conditions = [
            matches(Vehicle.license_plate),
            matches(Vehicle.brand),
            matches(Vehicle.model),
            matches(Customer.name),
            matches(Customer.email),
            matches(Customer.phone),
            matches(Reservation.contract_number),
        ]

        try:
            day = date.fromisoformat(query.strip())
            conditions.append(
                (Reservation.start_date <= day)
                & or_(Reservation.end_date.is_(None), Reservation.end_date >= day)
            )
        except ValueError:
            pass

        try:
            conditions.append(Reservation.status == ReservationStatus(query.strip().lower()))
        except ValueError:
            pass

        result = await self.db.execute(
            select(Reservation)
            .outerjoin(Vehicle, Reservation.vehicle_id == Vehicle.id)
            .outerjoin(Customer, Reservation.customer_id == Customer.id)
            .where(Reservation.deleted_at.is_(None), or_(*conditions))
            .order_by(Reservation.start_date.desc())
            .limit(limit)
        )
        return list(result.scalars().unique().all())

    async def _validate(self, fields: dict, exclude_id: Optional[int] = None):
        """Shared create/update checks; raises before anything is written"""
        start_date = fields.get("start_date")
        end_date = fields.get("end_date")
        reservation_type = fields.get("type") or ReservationType.STANDARD

        if start_date is None:
            raise ValidationError("Start date is required")
        if end_date is not None and end_date < start_date:
            raise ValidationError("End date cannot be before start date")

        vehicle_id = fields.get("vehicle_id")
        customer_id = fields.get("customer_id")

        if reservation_type == ReservationType.MAINTENANCE_BLOCK and not vehicle_id:
            raise ValidationError("Maintenance blocks require a vehicle")
        if reservation_type == ReservationType.STANDARD and (not vehicle_id or not customer_id):
            raise ValidationError("Reservations require a vehicle and a customer")
        if (
            reservation_type == ReservationType.REPLACEMENT
            and not vehicle_id
            and not fields.get("placeholder_spare")
        ):
            raise ValidationError("Replacement reservations require a vehicle")

        if vehicle_id and not await self.db.get(Vehicle, vehicle_id):
            raise NotFoundError(f"Vehicle {vehicle_id} not found")
        if customer_id and not await self.db.get(Customer, customer_id):
            raise NotFoundError(f"Customer {customer_id} not found")

        driver_id = fields.get("driver_id")
        if driver_id:
            driver = await self.db.get(Driver, driver_id)
            if not driver:
                raise NotFoundError(f"Driver {driver_id} not found")
            if customer_id and driver.customer_id != customer_id:
                raise ValidationError("Driver does not belong to this customer")

        await self.ensure_unique_contract_number(fields.get("contract_number"), exclude_id)

        if vehicle_id and fields.get("status") != ReservationStatus.CANCELLED:
            conflicts = await self.availability.check_conflicts(
                vehicle_id,
                start_date,
                end_date,
                exclude_id=exclude_id,
                is_maintenance_block=reservation_type == ReservationType.MAINTENANCE_BLOCK,
            )
            if conflicts:
                raise ConflictError(
                    "Vehicle is already reserved for the selected dates", conflicts
                )

    async def ensure_unique_contract_number(self, contract_number: Optional[str], exclude_id: Optional[int] = None):
        if not contract_number:
            return
        query = select(Reservation.id).where(
            Reservation.contract_number == contract_number,
            Reservation.deleted_at.is_(None),
        )
        if exclude_id is not None:
            query = query.where(Reservation.id != exclude_id)
        result = await self.db.execute(query.limit(1))
        if result.scalar_one_or_none() is not None:
            raise ConflictError(f"Contract number {contract_number} is already in use")

    async def create(self, data: ReservationCreate, created_by: Optional[str] = None) -> Reservation:
        fields = data.model_dump()
        await self._validate(fields)

        if fields["type"] == ReservationType.MAINTENANCE_BLOCK:
            fields["customer_id"] = None
            fields["maintenance_status"] = fields.get("maintenance_status") or MaintenanceState.SCHEDULED

        reservation = Reservation(**fields, created_by=created_by, updated_by=created_by)
        self.db.add(reservation)
        await self.db.flush()

        if reservation.vehicle_id:
            await self.status.sync_vehicle(reservation.vehicle_id, commit=False)

        await self.db.commit()
        await self.db.refresh(reservation)

        logger.info(f"Reservation {reservation.id} created ({reservation.type.value}, vehicle {reservation.vehicle_id})")
        return reservation

    async def update(self, reservation_id: int, data: ReservationUpdate, updated_by: Optional[str] = None) -> Reservation:
        reservation = await self.get(reservation_id)
        changes = data.model_dump(exclude_unset=True)

        for field in ("start_date", "status"):
            if field in changes and changes[field] is None:
                raise ValidationError(f"{field.replace('_', ' ').capitalize()} cannot be empty")

        # Pickup, return and cancel have their own vehicle rules
        new_status = changes.get("status", reservation.status)
        if new_status != reservation.status and (
            reservation.status not in PLANNING_STATUSES or new_status not in PLANNING_STATUSES
        ):
            raise StatusTransitionError(
                f"Status cannot change from {reservation.status.value} to {new_status.value} here; "
                "use pickup, return or cancel"
            )

        merged = {
            "vehicle_id": reservation.vehicle_id,
            "customer_id": reservation.customer_id,
            "driver_id": reservation.driver_id,
            "start_date": reservation.start_date,
            "end_date": reservation.end_date,
            "status": reservation.status,
            "type": reservation.type,
            "contract_number": reservation.contract_number,
            "placeholder_spare": reservation.placeholder_spare,
        }
        merged.update(changes)
        await self._validate(merged, exclude_id=reservation.id)

        old_vehicle_id = reservation.vehicle_id
        for key, value in changes.items():
            setattr(reservation, key, value)
        reservation.updated_by = updated_by
        await self.db.flush()

        for vehicle_id in {old_vehicle_id, reservation.vehicle_id}:
            if vehicle_id:
                await self.status.sync_vehicle(vehicle_id, commit=False)

        await self.db.commit()
        await self.db.refresh(reservation)
        return reservation

    async def _vehicle_for(self, reservation: Reservation) -> Vehicle:
        if not reservation.vehicle_id:
            raise ValidationError("Reservation has no vehicle assigned")
        vehicle = await self.db.get(Vehicle, reservation.vehicle_id)
        if not vehicle:
            raise NotFoundError(f"Vehicle {reservation.vehicle_id} not found")
        return vehicle

    def _ensure_open(self, reservation: Reservation):
        if reservation.status in CLOSED_STATUSES:
            raise StatusTransitionError(
                f"Reservation {reservation.id} is already {reservation.status.value}"
            )

    async def pickup(self, reservation_id: int, mileage: Optional[int] = None) -> tuple:
        """Hand the vehicle to the customer. Returns (reservation, warning)."""
        reservation = await self.get(reservation_id)
        self._ensure_open(reservation)
        if reservation.type == ReservationType.MAINTENANCE_BLOCK:
            raise ValidationError("Maintenance blocks cannot be picked up")

        vehicle = await self._vehicle_for(reservation)
        warning = self.status.apply(vehicle, status_on_pickup(current_status(vehicle)))

        reservation.status = ReservationStatus.PICKED_UP
        if mileage is not None:
            reservation.pickup_mileage = mileage
            vehicle.departure_mileage = mileage

        await self.db.commit()
        await self.db.refresh(reservation)
        logger.info(f"Reservation {reservation.id} picked up ({vehicle.license_plate})")
        return reservation, warning

    async def return_reservation(
        self,
        reservation_id: int,
        return_date: Optional[date] = None,
        mileage: Optional[int] = None
    ) -> tuple:
        """Take the vehicle back. Returns (reservation, warning)."""
        reservation = await self.get(reservation_id)
        self._ensure_open(reservation)
        vehicle = await self._vehicle_for(reservation)
        return_date = return_date or current_date()

        # Context must still see this rental as picked up
        ctx = await self.status.get_context(vehicle)
        warning = self.status.apply(vehicle, status_on_return(current_status(vehicle), ctx))

        reservation.status = ReservationStatus.RETURNED
        if reservation.end_date is None:
            reservation.end_date = return_date
        if mileage is not None:
            reservation.return_mileage = mileage
            vehicle.return_mileage = mileage

        await self.db.commit()
        await self.db.refresh(reservation)
        logger.info(f"Reservation {reservation.id} returned ({vehicle.license_plate}) on {return_date}")
        return reservation, warning

    async def cancel(self, reservation_id: int) -> tuple:
        """Cancel a reservation. Returns (reservation, warning)."""
        reservation = await self.get(reservation_id)
        self._ensure_open(reservation)

        reservation.status = ReservationStatus.CANCELLED
        if reservation.type == ReservationType.MAINTENANCE_BLOCK:
            reservation.maintenance_status = MaintenanceState.OUT
        await self.db.flush()

        warning = None
        if reservation.vehicle_id:
            vehicle = await self._vehicle_for(reservation)
            ctx = await self.status.get_context(vehicle)
            if reservation.type == ReservationType.MAINTENANCE_BLOCK:
                transition = status_on_maintenance_end(current_status(vehicle), ctx)
            else:
                transition = status_on_reservation_cancel(current_status(vehicle), ctx)
            warning = self.status.apply(vehicle, transition)

        await self.db.commit()
        await self.db.refresh(reservation)
        logger.info(f"Reservation {reservation.id} cancelled")
        return reservation, warning

    async def soft_delete(self, reservation_id: int) -> Reservation:
        reservation = await self.get(reservation_id)
        reservation.deleted_at = datetime.now(timezone.utc)
        await self.db.flush()

        if reservation.vehicle_id:
            await self.status.sync_vehicle(reservation.vehicle_id, commit=False)

        await self.db.commit()
        await self.db.refresh(reservation)
        logger.info(f"Reservation {reservation.id} deleted")
        return reservation

    async def restore(self, reservation_id: int) -> Reservation:
        reservation = await self.get(reservation_id, include_deleted=True)
        if reservation.deleted_at is None:
            return reservation

        await self.ensure_unique_contract_number(reservation.contract_number, exclude_id=reservation.id)
        if reservation.vehicle_id and reservation.status != ReservationStatus.CANCELLED:
            conflicts = await self.availability.check_conflicts(
                reservation.vehicle_id,
                reservation.start_date,
                reservation.end_date,
                exclude_id=reservation.id,
                is_maintenance_block=reservation.is_maintenance_block,
            )
            if conflicts:
                raise ConflictError("Vehicle was booked in the meantime", conflicts)

        reservation.deleted_at = None
        await self.db.flush()
        if reservation.vehicle_id:
            await self.status.sync_vehicle(reservation.vehicle_id, commit=False)

        await self.db.commit()
        await self.db.refresh(reservation)
        return reservation
