from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from app.models import (
    Vehicle, Reservation, AvailabilityStatus, ReservationStatus,
    ReservationType, CLOSED_STATUSES, ACTIVE_MAINTENANCE_STATES, MANUAL_STATUSES,
)
from app.services.exceptions import NotFoundError, StatusTransitionError
from app.utils.dates import covers, today as current_date
import logging

logger = logging.getLogger(__name__)

@dataclass
class StatusTransition:
    allowed: bool
    new_status: Optional[AvailabilityStatus] = None
    warning: Optional[str] = None
    error: Optional[str] = None

@dataclass
class VehicleStatusContext:
    vehicle: Vehicle
    active_reservations: List[Reservation] = field(default_factory=list)
    has_picked_up_reservation: bool = False
    has_booked_reservation: bool = False
    has_maintenance_block: bool = False

def current_status(vehicle: Vehicle) -> AvailabilityStatus:
    return vehicle.availability_status or AvailabilityStatus.AVAILABLE

def build_status_context(
    vehicle: Vehicle,
    reservations: Iterable[Reservation],
    on_date: Optional[date] = None
) -> VehicleStatusContext:
    """
    Summarise the reservations that currently hold a vehicle.

    Only live reservations count: not soft-deleted and not cancelled,
    completed or returned. Maintenance blocks are tracked separately from
    rentals and only count while their maintenance is still open.
    """
    on_date = on_date or current_date()

    live = [
        r for r in reservations
        if r.vehicle_id == vehicle.id
        and r.deleted_at is None
        and r.status not in CLOSED_STATUSES
    ]

    active = [
        r for r in live
        if r.type != ReservationType.MAINTENANCE_BLOCK
        and covers(r.start_date, r.end_date, on_date)
    ]

    has_block = any(
        r.type == ReservationType.MAINTENANCE_BLOCK
        and covers(r.start_date, r.end_date, on_date)
        and r.maintenance_status in ACTIVE_MAINTENANCE_STATES
        for r in live
    )

    return VehicleStatusContext(
        vehicle=vehicle,
        active_reservations=active,
        has_picked_up_reservation=any(r.status == ReservationStatus.PICKED_UP for r in active),
        has_booked_reservation=any(r.status == ReservationStatus.BOOKED for r in active),
        has_maintenance_block=has_block,
    )

def validate_manual_status_change(
    current: AvailabilityStatus,
    new: AvailabilityStatus,
    ctx: VehicleStatusContext
) -> StatusTransition:
    """Check a status chosen by staff against what the vehicle is doing today"""
    if current == new:
        return StatusTransition(allowed=True, new_status=new)

    if ctx.has_picked_up_reservation:
        if new == AvailabilityStatus.AVAILABLE:
            return StatusTransition(
                allowed=False,
                error='Cannot set vehicle to "available" while it has an active picked-up rental. '
                      'Please return the vehicle first.'
            )
        if new == AvailabilityStatus.NEEDS_FIXING:
            return StatusTransition(
                allowed=True,
                new_status=new,
                warning='Vehicle has an active rental. Setting to "needs fixing" will not affect the '
                        'current rental, but the vehicle will need attention after return.'
            )
        if new == AvailabilityStatus.NOT_FOR_RENTAL:
            return StatusTransition(
                allowed=True,
                new_status=new,
                warning='Vehicle has an active rental. It will be marked as "not for rental" '
                        'after the current rental ends.'
            )

    if ctx.has_maintenance_block:
        if new == AvailabilityStatus.AVAILABLE:
            return StatusTransition(
                allowed=False,
                error='Cannot set vehicle to "available" while it has an active maintenance block. '
                      'Please close the maintenance first.'
            )
        if new == AvailabilityStatus.NOT_FOR_RENTAL:
            return StatusTransition(
                allowed=True,
                new_status=new,
                warning='Vehicle has active maintenance. It will be marked as "not for rental" '
                        'after maintenance is complete.'
            )

    if ctx.has_booked_reservation and new in MANUAL_STATUSES:
        return StatusTransition(
            allowed=True,
            new_status=new,
            warning='Vehicle has upcoming booked reservations. Changing status may require '
                    'rescheduling those bookings.'
        )

    if new == AvailabilityStatus.RENTED and not ctx.has_picked_up_reservation:
        return StatusTransition(
            allowed=False,
            error='Cannot manually set vehicle to "rented". This status is set automatically '
                  'when a reservation is picked up.'
        )

    if new == AvailabilityStatus.SCHEDULED and not ctx.has_booked_reservation:
        return StatusTransition(
            allowed=False,
            error='Cannot manually set vehicle to "scheduled". This status is set automatically '
                  'when there are upcoming reservations.'
        )

    return StatusTransition(allowed=True, new_status=new)

def calculate_correct_status(ctx: VehicleStatusContext) -> AvailabilityStatus:
    current = current_status(ctx.vehicle)

    # Manual statuses are only ever cleared by staff
    if current in MANUAL_STATUSES:
        return current

    if ctx.has_picked_up_reservation:
        return AvailabilityStatus.RENTED
    if ctx.has_maintenance_block:
        return AvailabilityStatus.NEEDS_FIXING
    if ctx.has_booked_reservation:
        return AvailabilityStatus.SCHEDULED
    return AvailabilityStatus.AVAILABLE

def _from_reservations(ctx: VehicleStatusContext) -> AvailabilityStatus:
    if ctx.has_picked_up_reservation:
        return AvailabilityStatus.RENTED
    if ctx.has_booked_reservation:
        return AvailabilityStatus.SCHEDULED
    return AvailabilityStatus.AVAILABLE

def status_on_pickup(current: AvailabilityStatus) -> StatusTransition:
    if current == AvailabilityStatus.NOT_FOR_RENTAL:
        return StatusTransition(
            allowed=False,
            error='Cannot pickup vehicle that is marked as "not for rental".'
        )
    return StatusTransition(allowed=True, new_status=AvailabilityStatus.RENTED)

def status_on_return(current: AvailabilityStatus, ctx: VehicleStatusContext) -> StatusTransition:
    """
    Status after a rental comes back.

    The context is built before the returned reservation is closed, so the
    reservation being returned is still one of the picked-up rentals.
    """
    if current == AvailabilityStatus.NEEDS_FIXING:
        return StatusTransition(
            allowed=True,
            new_status=current,
            warning='Vehicle will remain as "needs fixing" after return.'
        )
    if current == AvailabilityStatus.NOT_FOR_RENTAL:
        return StatusTransition(
            allowed=True,
            new_status=current,
            warning='Vehicle will remain as "not for rental" after return.'
        )

    picked_up = [r for r in ctx.active_reservations if r.status == ReservationStatus.PICKED_UP]
    if len(picked_up) > 1:
        return StatusTransition(
            allowed=True,
            new_status=AvailabilityStatus.RENTED,
            warning="Vehicle has other active rentals."
        )
    if ctx.has_booked_reservation:
        return StatusTransition(allowed=True, new_status=AvailabilityStatus.SCHEDULED)
    return StatusTransition(allowed=True, new_status=AvailabilityStatus.AVAILABLE)

def status_on_maintenance_start(current: AvailabilityStatus) -> StatusTransition:
    if current == AvailabilityStatus.RENTED:
        return StatusTransition(
            allowed=False,
            error="Cannot start maintenance on a rented vehicle. Please return the vehicle first "
                  "or schedule maintenance for after the rental ends."
        )
    return StatusTransition(allowed=True, new_status=AvailabilityStatus.NEEDS_FIXING)

def status_on_maintenance_end(current: AvailabilityStatus, ctx: VehicleStatusContext) -> StatusTransition:
    if current == AvailabilityStatus.NOT_FOR_RENTAL:
        return StatusTransition(allowed=True, new_status=current)
    return StatusTransition(allowed=True, new_status=_from_reservations(ctx))

def status_on_reservation_cancel(current: AvailabilityStatus, ctx: VehicleStatusContext) -> StatusTransition:
    if current in MANUAL_STATUSES:
        return StatusTransition(allowed=True, new_status=current)
    return StatusTransition(allowed=True, new_status=_from_reservations(ctx))

class VehicleStatusService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_vehicle(self, vehicle_id: int) -> Vehicle:
        vehicle = await self.db.get(Vehicle, vehicle_id)
        if not vehicle:
            raise NotFoundError(f"Vehicle {vehicle_id} not found")
        return vehicle

    async def _live_reservations(self, vehicle_ids: Optional[List[int]] = None) -> List[Reservation]:
        query = select(Reservation).where(
            Reservation.deleted_at.is_(None),
            Reservation.status.notin_(CLOSED_STATUSES),
            Reservation.vehicle_id.is_not(None),
        )
        if vehicle_ids is not None:
            query = query.where(Reservation.vehicle_id.in_(vehicle_ids))
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_context(self, vehicle: Vehicle) -> VehicleStatusContext:
        reservations = await self._live_reservations([vehicle.id])
        return build_status_context(vehicle, reservations)

    def apply(self, vehicle: Vehicle, transition: StatusTransition) -> Optional[str]:
        """Write an allowed transition onto the vehicle, or raise its error"""
        if not transition.allowed:
            raise StatusTransitionError(transition.error or "Status change not allowed")
        if transition.new_status and transition.new_status != vehicle.availability_status:
            logger.info(
                f"Vehicle {vehicle.license_plate}: {vehicle.availability_status} -> {transition.new_status}"
            )
            vehicle.availability_status = transition.new_status
        return transition.warning

    async def sync_vehicle(self, vehicle_id: int, commit: bool = True) -> Vehicle:
        """Recompute one vehicle's availability from its reservations"""
        vehicle = await self._get_vehicle(vehicle_id)
        ctx = await self.get_context(vehicle)
        new_status = calculate_correct_status(ctx)

        if new_status != vehicle.availability_status:
            logger.info(f"Sync {vehicle.license_plate}: {vehicle.availability_status} -> {new_status}")
            vehicle.availability_status = new_status

        if commit:
            await self.db.commit()
            await self.db.refresh(vehicle)
        return vehicle

    async def sync_all(self) -> List[Vehicle]:
        """Recompute every vehicle and return the ones whose status changed"""
        result = await self.db.execute(select(Vehicle).order_by(Vehicle.id))
        vehicles = list(result.scalars().all())
        reservations = await self._live_reservations()

        changed = []
        for vehicle in vehicles:
            ctx = build_status_context(vehicle, reservations)
            new_status = calculate_correct_status(ctx)
            if new_status != vehicle.availability_status:
                vehicle.availability_status = new_status
                changed.append(vehicle)

        await self.db.commit()
        for vehicle in changed:
            await self.db.refresh(vehicle)

        logger.info(f"Status sync finished: {len(changed)} of {len(vehicles)} vehicles updated")
        return changed

    async def set_manual_status(self, vehicle_id: int, new_status: AvailabilityStatus) -> tuple:
        """
        Apply a status chosen by staff.

        Returns (vehicle, warning). Raises StatusTransitionError when the
        change contradicts the vehicle's current rentals or maintenance.
        """
        vehicle = await self._get_vehicle(vehicle_id)
        ctx = await self.get_context(vehicle)
        transition = validate_manual_status_change(current_status(vehicle), new_status, ctx)
        warning = self.apply(vehicle, transition)

        await self.db.commit()
        await self.db.refresh(vehicle)
        return vehicle, warning
