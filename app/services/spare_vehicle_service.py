from datetime import date, timedelta
from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from app.config import settings
from app.models import (
    Vehicle, Customer, Reservation, ReservationStatus, ReservationType,
    MaintenanceStatus, MaintenanceCategory, NotificationType, NotificationPriority,
    CLOSED_STATUSES,
)
from app.services.availability_service import AvailabilityService
from app.services.maintenance_service import MaintenanceService
from app.services.notification_service import NotificationService
from app.services.vehicle_status import (
    VehicleStatusService, status_on_return, status_on_maintenance_end, current_status,
)
from app.services.exceptions import NotFoundError, ValidationError, ConflictError, StatusTransitionError
from app.utils.dates import covers, ranges_overlap, today as current_date
import logging

logger = logging.getLogger(__name__)

class SpareVehicleService:
    """
    Spare (replacement) vehicles for customers whose own rental is in the
    workshop, including placeholder reservations recorded before the spare
    vehicle is chosen.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.availability = AvailabilityService(db)
        self.maintenance = MaintenanceService(db)
        self.notifications = NotificationService(db)
        self.status = VehicleStatusService(db)

    async def _get_reservation(self, reservation_id: int) -> Reservation:
        reservation = await self.db.get(Reservation, reservation_id)
        if not reservation or reservation.deleted_at is not None:
            raise NotFoundError(f"Reservation {reservation_id} not found")
        return reservation

    async def _get_vehicle(self, vehicle_id: int) -> Vehicle:
        vehicle = await self.db.get(Vehicle, vehicle_id)
        if not vehicle:
            raise NotFoundError(f"Vehicle {vehicle_id} not found")
        return vehicle

    async def _replacements_for(self, original_id: int) -> List[Reservation]:
        result = await self.db.execute(
            select(Reservation).where(
                Reservation.replacement_for_reservation_id == original_id,
                Reservation.type == ReservationType.REPLACEMENT,
                Reservation.status != ReservationStatus.CANCELLED,
                Reservation.deleted_at.is_(None),
            ).order_by(Reservation.start_date)
        )
        return list(result.scalars().all())

    async def get_active_replacement(self, original_id: int) -> Optional[Reservation]:
        """The replacement the customer is driving today, if any"""
        today = current_date()
        for replacement in await self._replacements_for(original_id):
            if covers(replacement.start_date, replacement.end_date, today):
                return replacement
        return None

    async def list_replacements(self, original_id: int) -> List[Reservation]:
        await self._get_reservation(original_id)
        return await self._replacements_for(original_id)

    async def create_replacement(
        self,
        original_id: int,
        spare_vehicle_id: int,
        start_date: date,
        end_date: Optional[date] = None
    ) -> Reservation:
        """
        Give the customer of a rental a spare vehicle while their own vehicle
        is serviced. The original vehicle goes in service and gets a
        maintenance block for the same period.
        """
        original = await self._get_reservation(original_id)
        if original.type == ReservationType.MAINTENANCE_BLOCK:
            raise ValidationError("Maintenance blocks cannot get a spare vehicle")
        if spare_vehicle_id == original.vehicle_id:
            raise ValidationError("Spare vehicle cannot be the same as original vehicle")

        spare = await self._get_vehicle(spare_vehicle_id)
        original_vehicle = await self.db.get(Vehicle, original.vehicle_id) if original.vehicle_id else None

        end_date = end_date or original.end_date
        if end_date is not None and end_date < start_date:
            raise ValidationError("End date cannot be before start date")

        conflicts = await self.availability.check_conflicts(spare.id, start_date, end_date)
        if conflicts:
            raise ConflictError("Spare vehicle has conflicting reservations", conflicts)

        original_info = original_vehicle.display_name if original_vehicle else f"Vehicle ID {original.vehicle_id}"

        replacement = Reservation(
            vehicle_id=spare.id,
            customer_id=original.customer_id,
            driver_id=original.driver_id,
            start_date=start_date,
            end_date=end_date,
            status=ReservationStatus.PICKED_UP if start_date <= current_date() else ReservationStatus.BOOKED,
            type=ReservationType.REPLACEMENT,
            replacement_for_reservation_id=original.id,
            placeholder_spare=False,
            notes=f"Spare vehicle {spare.display_name} for reservation #{original.id}",
        )
        self.db.add(replacement)
        await self.db.flush()

        if original_vehicle:
            original_vehicle.maintenance_status = MaintenanceStatus.IN_SERVICE
            blocks = await self.availability.check_conflicts(
                original_vehicle.id, start_date, end_date, is_maintenance_block=True
            )
            if not blocks:
                await self.maintenance.add_block(
                    original_vehicle,
                    start_date,
                    end_date,
                    category=MaintenanceCategory.REPAIR,
                    notes=f"In service, customer drives spare {spare.license_plate} (reservation #{replacement.id})",
                )

        swap_note = f"Vehicle swapped: {original_info} -> {spare.display_name} from {start_date:%d-%m-%Y}"
        original.notes = f"{original.notes}\n{swap_note}" if original.notes else swap_note

        await self.status.sync_vehicle(spare.id, commit=False)

        await self.db.commit()
        await self.db.refresh(replacement)
        logger.info(f"Replacement {replacement.id}: {spare.license_plate} for reservation #{original.id}")
        return replacement

    async def close_replacement(self, replacement_id: int, end_date: Optional[date] = None) -> Reservation:
        """The customer's own vehicle is back: end the spare and close its maintenance"""
        replacement = await self._get_reservation(replacement_id)
        if replacement.type != ReservationType.REPLACEMENT:
            raise ValidationError(f"Reservation {replacement_id} is not a replacement")
        if replacement.status in CLOSED_STATUSES:
            raise StatusTransitionError(f"Replacement {replacement_id} is already {replacement.status.value}")
        if replacement.vehicle_id is None:
            raise ValidationError("Placeholder spare reservations have no vehicle to return")

        end_date = end_date or current_date()
        if end_date < replacement.start_date:
            raise ValidationError("End date cannot be before start date")

        spare = await self._get_vehicle(replacement.vehicle_id)
        ctx = await self.status.get_context(spare)
        self.status.apply(spare, status_on_return(current_status(spare), ctx))

        period = (replacement.start_date, replacement.end_date)
        replacement.status = ReservationStatus.RETURNED
        replacement.end_date = end_date

        original = await self.db.get(Reservation, replacement.replacement_for_reservation_id)
        if original and original.vehicle_id:
            original_vehicle = await self._get_vehicle(original.vehicle_id)
            for block in await self.maintenance.list_blocks(original_vehicle.id):
                if ranges_overlap(block.start_date, block.end_date, *period):
                    self.maintenance.close_block(block, end_date)
            await self.db.flush()

            original_ctx = await self.status.get_context(original_vehicle)
            self.status.apply(
                original_vehicle,
                status_on_maintenance_end(current_status(original_vehicle), original_ctx)
            )
            original_vehicle.maintenance_status = MaintenanceStatus.OK
            original_vehicle.maintenance_note = None

        await self.db.commit()
        await self.db.refresh(replacement)
        logger.info(f"Replacement {replacement.id} closed on {end_date}")
        return replacement

    async def create_placeholder(
        self,
        original_id: int,
        customer_id: int,
        start_date: date,
        end_date: Optional[date] = None
    ) -> Reservation:
        """
        Record that a customer needs a spare vehicle before one is chosen.
        Raises a conflict when the original already has a live replacement.
        """
        original = await self._get_reservation(original_id)
        if not await self.db.get(Customer, customer_id):
            raise NotFoundError(f"Customer {customer_id} not found")
        if end_date is not None and end_date < start_date:
            raise ValidationError("End date cannot be before start date")

        live = [r for r in await self._replacements_for(original.id) if r.status not in CLOSED_STATUSES]
        if live:
            raise ConflictError(
                "A spare vehicle reservation already exists for this original reservation", live
            )

        placeholder = Reservation(
            vehicle_id=None,
            customer_id=customer_id,
            start_date=start_date,
            end_date=end_date,
            status=ReservationStatus.PENDING,
            type=ReservationType.REPLACEMENT,
            replacement_for_reservation_id=original.id,
            placeholder_spare=True,
            notes=f"TBD spare vehicle for reservation #{original.id}",
        )
        self.db.add(placeholder)
        await self.db.flush()

        period = f"{start_date}" + (f" - {end_date}" if end_date else "")
        await self.notifications.create_notification(
            title="Spare Vehicle Assignment Required",
            description=f"TBD spare vehicle needs assignment for {period}",
            notification_type=NotificationType.SPARE_ASSIGNMENT,
            priority=NotificationPriority.HIGH,
            on_date=start_date,
            link="/dashboard",
            icon="Car",
            data={"reservation_id": placeholder.id, "original_reservation_id": original.id},
            commit=False
        )

        await self.db.commit()
        await self.db.refresh(placeholder)
        logger.info(f"Placeholder spare {placeholder.id} created for reservation #{original.id}")
        return placeholder

    async def assign_vehicle_to_placeholder(
        self,
        placeholder_id: int,
        vehicle_id: int,
        end_date: Optional[date] = None
    ) -> Reservation:
        placeholder = await self._get_reservation(placeholder_id)
        if (
            placeholder.type != ReservationType.REPLACEMENT
            or not placeholder.placeholder_spare
            or placeholder.vehicle_id is not None
        ):
            raise ValidationError(f"Reservation {placeholder_id} is not an unassigned placeholder")

        vehicle = await self._get_vehicle(vehicle_id)
        if vehicle.maintenance_status == MaintenanceStatus.IN_SERVICE:
            raise ValidationError("Vehicle is currently in service and not available")

        end_date = end_date or placeholder.end_date
        if end_date is None:
            raise ValidationError(
                "End date must be specified when assigning vehicle to open-ended placeholder reservation"
            )
        if end_date < placeholder.start_date:
            raise ValidationError("End date cannot be before start date")

        conflicts = await self.availability.check_conflicts(
            vehicle.id, placeholder.start_date, end_date, exclude_id=placeholder.id
        )
        if conflicts:
            raise ConflictError("Vehicle has conflicting reservations during the assignment period", conflicts)

        placeholder.vehicle_id = vehicle.id
        placeholder.end_date = end_date
        placeholder.placeholder_spare = False
        placeholder.status = ReservationStatus.BOOKED
        placeholder.notes = (
            f"Spare vehicle {vehicle.display_name} assigned for reservation "
            f"#{placeholder.replacement_for_reservation_id}"
        )
        await self.db.flush()

        await self.notifications.resolve_spare_assignment(placeholder)
        await self.status.sync_vehicle(vehicle.id, commit=False)

        await self.db.commit()
        await self.db.refresh(placeholder)
        logger.info(f"Vehicle {vehicle.license_plate} assigned to placeholder {placeholder.id}")
        return placeholder

    async def get_placeholders(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> List[Reservation]:
        """Unassigned placeholders, optionally limited by start date"""
        query = select(Reservation).where(
            Reservation.placeholder_spare == True,
            Reservation.type == ReservationType.REPLACEMENT,
            Reservation.vehicle_id.is_(None),
            Reservation.status != ReservationStatus.CANCELLED,
            Reservation.deleted_at.is_(None),
        )
        if start_date:
            query = query.where(Reservation.start_date >= start_date)
        if end_date:
            query = query.where(Reservation.start_date <= end_date)

        result = await self.db.execute(query.order_by(Reservation.start_date))
        return list(result.scalars().all())

    async def get_placeholders_needing_assignment(self, days_ahead: Optional[int] = None) -> List[Reservation]:
        """Placeholders starting within the next days_ahead days (or already started)"""
        if days_ahead is None:
            days_ahead = settings.SPARE_ASSIGNMENT_DAYS_AHEAD
        cutoff = current_date() + timedelta(days=days_ahead)
        return await self.get_placeholders(end_date=cutoff)
