from datetime import date
from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_, and_
from app.models import (
    Vehicle, Reservation, Customer, ReservationStatus, ReservationType,
    MaintenanceStatus, MANUAL_STATUSES, ACTIVE_MAINTENANCE_STATES,
)
from app.config import settings
from app.services.exceptions import ValidationError
from app.utils.dates import effective_end, add_months, today as current_date
import logging

logger = logging.getLogger(__name__)

def overlaps_range(start: date, end: Optional[date]):
    """SQL condition: reservation overlaps [start, end], open ends never finish"""
    return and_(
        Reservation.start_date <= effective_end(end),
        or_(Reservation.end_date.is_(None), Reservation.end_date >= start),
    )

def not_cancelled():
    return and_(
        Reservation.deleted_at.is_(None),
        Reservation.status != ReservationStatus.CANCELLED,
    )

class AvailabilityService:
    """Conflict detection and availability queries over reservations"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def check_conflicts(
        self,
        vehicle_id: int,
        start_date: date,
        end_date: Optional[date] = None,
        exclude_id: Optional[int] = None,
        is_maintenance_block: bool = False
    ) -> List[Reservation]:
        """
        Reservations that would double-book the vehicle for the given range.

        Maintenance blocks are checked only against other maintenance blocks,
        and rentals only against rentals: a customer keeps their rental while
        the vehicle is in the workshop and drives a spare in the meantime.
        """
        if start_date is None:
            raise ValidationError("Start date is required")
        if end_date is not None and end_date < start_date:
            raise ValidationError("End date cannot be before start date")

        query = select(Reservation).where(
            Reservation.vehicle_id == vehicle_id,
            not_cancelled(),
            overlaps_range(start_date, end_date),
        )

        if is_maintenance_block:
            query = query.where(Reservation.type == ReservationType.MAINTENANCE_BLOCK)
        else:
            query = query.where(Reservation.type != ReservationType.MAINTENANCE_BLOCK)

        if exclude_id is not None:
            query = query.where(Reservation.id != exclude_id)

        result = await self.db.execute(query.order_by(Reservation.start_date))
        conflicts = list(result.scalars().all())

        if conflicts:
            logger.info(
                f"Vehicle {vehicle_id} has {len(conflicts)} conflicting reservation(s) "
                f"for {start_date} - {end_date or 'open-ended'}"
            )
        return conflicts

    async def get_available_vehicles(self, on_date: Optional[date] = None) -> List[Vehicle]:
        """Vehicles without a rental covering the given day"""
        on_date = on_date or current_date()

        busy = select(Reservation.vehicle_id).where(
            Reservation.vehicle_id.is_not(None),
            Reservation.type != ReservationType.MAINTENANCE_BLOCK,
            not_cancelled(),
            overlaps_range(on_date, on_date),
        )

        result = await self.db.execute(
            select(Vehicle)
            .where(Vehicle.id.notin_(busy))
            .order_by(Vehicle.license_plate)
        )
        return list(result.scalars().all())

    async def get_available_vehicles_in_range(
        self,
        start_date: date,
        end_date: Optional[date] = None,
        exclude_vehicle_id: Optional[int] = None
    ) -> List[Vehicle]:
        """
        Candidate spare vehicles: nothing booked in the range (maintenance
        included), not in the workshop and not held back by staff.
        """
        busy = select(Reservation.vehicle_id).where(
            Reservation.vehicle_id.is_not(None),
            not_cancelled(),
            overlaps_range(start_date, end_date),
        )

        query = select(Vehicle).where(
            Vehicle.id.notin_(busy),
            Vehicle.maintenance_status != MaintenanceStatus.IN_SERVICE,
            Vehicle.availability_status.notin_(MANUAL_STATUSES),
        )
        if exclude_vehicle_id is not None:
            query = query.where(Vehicle.id != exclude_vehicle_id)

        result = await self.db.execute(query.order_by(Vehicle.license_plate))
        return list(result.scalars().all())

    async def _open_ended_rental_customer(self, vehicle_id: int) -> Optional[Customer]:
        result = await self.db.execute(
            select(Reservation)
            .where(
                Reservation.vehicle_id == vehicle_id,
                Reservation.type == ReservationType.STANDARD,
                Reservation.end_date.is_(None),
                Reservation.status.in_([
                    ReservationStatus.PENDING,
                    ReservationStatus.BOOKED,
                    ReservationStatus.PICKED_UP,
                ]),
                Reservation.deleted_at.is_(None),
            )
            .order_by(Reservation.start_date)
            .limit(1)
        )
        rental = result.scalar_one_or_none()
        return rental.customer if rental else None

    async def get_reservations_in_range(self, start_date: date, end_date: date) -> List[Reservation]:
        """
        Calendar view of the range.

        A maintenance block has no customer of its own; when the vehicle is
        out on an open-ended rental the block shows that rental's customer.
        """
        result = await self.db.execute(
            select(Reservation)
            .where(
                Reservation.deleted_at.is_(None),
                overlaps_range(start_date, end_date),
            )
            .order_by(Reservation.start_date, Reservation.id)
        )
        reservations = list(result.scalars().all())

        for reservation in reservations:
            if (
                reservation.type == ReservationType.MAINTENANCE_BLOCK
                and reservation.customer_id is None
                and reservation.vehicle_id is not None
            ):
                customer = await self._open_ended_rental_customer(reservation.vehicle_id)
                if customer:
                    # Display only; the session must not write this back
                    self.db.expunge(reservation)
                    reservation.customer = customer

        return reservations

    async def get_upcoming_reservations(self, limit: Optional[int] = None) -> List[Reservation]:
        """Rentals starting today or later, soonest first"""
        limit = limit or settings.UPCOMING_RESERVATIONS_LIMIT
        result = await self.db.execute(
            select(Reservation)
            .where(
                Reservation.start_date >= current_date(),
                Reservation.type != ReservationType.MAINTENANCE_BLOCK,
                Reservation.status.in_([ReservationStatus.PENDING, ReservationStatus.BOOKED]),
                Reservation.deleted_at.is_(None),
            )
            .order_by(Reservation.start_date)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_upcoming_maintenance(self) -> List[Reservation]:
        """Open maintenance blocks that have not finished yet"""
        today = current_date()
        result = await self.db.execute(
            select(Reservation)
            .where(
                Reservation.type == ReservationType.MAINTENANCE_BLOCK,
                Reservation.maintenance_status.in_(ACTIVE_MAINTENANCE_STATES),
                or_(Reservation.end_date.is_(None), Reservation.end_date >= today),
                not_cancelled(),
            )
            .order_by(Reservation.start_date)
        )
        return list(result.scalars().all())

    async def get_overdue_reservations(self) -> List[Reservation]:
        """Picked-up rentals whose end date has passed"""
        result = await self.db.execute(
            select(Reservation)
            .where(
                Reservation.status == ReservationStatus.PICKED_UP,
                Reservation.end_date.is_not(None),
                Reservation.end_date < current_date(),
                Reservation.deleted_at.is_(None),
            )
            .order_by(Reservation.end_date)
        )
        return list(result.scalars().all())

    async def _expiring(self, column) -> List[Vehicle]:
        today = current_date()
        horizon = add_months(today, settings.APK_WARNING_MONTHS)
        result = await self.db.execute(
            select(Vehicle)
            .where(column.is_not(None), column > today, column <= horizon)
            .order_by(column)
        )
        return list(result.scalars().all())

    async def get_vehicles_with_apk_expiring_soon(self) -> List[Vehicle]:
        return await self._expiring(Vehicle.apk_date)

    async def get_vehicles_with_warranty_expiring_soon(self) -> List[Vehicle]:
        return await self._expiring(Vehicle.warranty_end_date)
