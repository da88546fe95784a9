"""Tests for the vehicle status rules and the status synchroniser."""

from datetime import date, datetime, timedelta, timezone

import pytest

from app.models import (
    Vehicle, Reservation, AvailabilityStatus, ReservationStatus, ReservationType, MaintenanceState,
)
from app.services.exceptions import StatusTransitionError
from app.services.vehicle_status import (
    build_status_context, calculate_correct_status, validate_manual_status_change,
    status_on_pickup, status_on_return, status_on_maintenance_start,
    status_on_maintenance_end, status_on_reservation_cancel, VehicleStatusService,
)

TODAY = date(2025, 6, 16)


def vehicle(status=AvailabilityStatus.AVAILABLE):
    return Vehicle(id=1, license_plate="AB-123-C", brand="Ford", model="Transit", availability_status=status)


def reservation(rid, status=ReservationStatus.BOOKED, start=TODAY, end=None, **fields):
    fields.setdefault("type", ReservationType.STANDARD)
    return Reservation(id=rid, vehicle_id=1, start_date=start, end_date=end, status=status, **fields)


def block(rid, state=MaintenanceState.SCHEDULED, start=TODAY, end=None):
    return reservation(
        rid, start=start, end=end, type=ReservationType.MAINTENANCE_BLOCK, maintenance_status=state
    )


def context(v, *reservations):
    return build_status_context(v, reservations, on_date=TODAY)


class TestBuildStatusContext:
    """Which reservations hold a vehicle on a given day."""

    def test_picked_up_rental(self):
        ctx = context(vehicle(), reservation(1, ReservationStatus.PICKED_UP, TODAY - timedelta(days=3)))
        assert ctx.has_picked_up_reservation
        assert not ctx.has_booked_reservation
        assert len(ctx.active_reservations) == 1

    def test_future_booking_is_not_active_today(self):
        ctx = context(vehicle(), reservation(1, start=TODAY + timedelta(days=2)))
        assert not ctx.has_booked_reservation
        assert ctx.active_reservations == []

    def test_cancelled_and_deleted_are_ignored(self):
        deleted = reservation(2)
        deleted.deleted_at = datetime.now(timezone.utc)
        ctx = context(vehicle(), reservation(1, ReservationStatus.CANCELLED), deleted)
        assert ctx.active_reservations == []

    def test_returned_rental_is_ignored(self):
        ctx = context(vehicle(), reservation(1, ReservationStatus.RETURNED))
        assert not ctx.has_picked_up_reservation

    def test_open_maintenance_block(self):
        ctx = context(vehicle(), block(1, MaintenanceState.IN))
        assert ctx.has_maintenance_block
        assert ctx.active_reservations == []

    def test_finished_maintenance_block_is_ignored(self):
        ctx = context(vehicle(), block(1, MaintenanceState.OUT))
        assert not ctx.has_maintenance_block

    def test_other_vehicles_are_ignored(self):
        other = reservation(1, ReservationStatus.PICKED_UP)
        other.vehicle_id = 2
        assert not context(vehicle(), other).has_picked_up_reservation


class TestCalculateCorrectStatus:
    """Status derived from reservations during a sync."""

    def test_manual_statuses_are_kept(self):
        for status in (AvailabilityStatus.NEEDS_FIXING, AvailabilityStatus.NOT_FOR_RENTAL):
            v = vehicle(status)
            assert calculate_correct_status(context(v, reservation(1, ReservationStatus.PICKED_UP))) == status

    def test_priority_order(self):
        v = vehicle()
        assert calculate_correct_status(
            context(v, reservation(1, ReservationStatus.PICKED_UP), block(2))
        ) == AvailabilityStatus.RENTED
        assert calculate_correct_status(context(v, reservation(1), block(2))) == AvailabilityStatus.NEEDS_FIXING
        assert calculate_correct_status(context(v, reservation(1))) == AvailabilityStatus.SCHEDULED
        assert calculate_correct_status(context(v)) == AvailabilityStatus.AVAILABLE

    def test_stale_rented_becomes_available(self):
        v = vehicle(AvailabilityStatus.RENTED)
        assert calculate_correct_status(context(v)) == AvailabilityStatus.AVAILABLE


class TestManualStatusChange:
    """Staff status changes checked against the vehicle's bookings."""

    def test_same_status_is_allowed(self):
        v = vehicle(AvailabilityStatus.RENTED)
        result = validate_manual_status_change(v.availability_status, AvailabilityStatus.RENTED, context(v))
        assert result.allowed

    def test_available_refused_while_picked_up(self):
        v = vehicle(AvailabilityStatus.RENTED)
        ctx = context(v, reservation(1, ReservationStatus.PICKED_UP))
        result = validate_manual_status_change(v.availability_status, AvailabilityStatus.AVAILABLE, ctx)
        assert not result.allowed
        assert "return the vehicle first" in result.error

    def test_needs_fixing_while_picked_up_warns(self):
        v = vehicle(AvailabilityStatus.RENTED)
        ctx = context(v, reservation(1, ReservationStatus.PICKED_UP))
        result = validate_manual_status_change(v.availability_status, AvailabilityStatus.NEEDS_FIXING, ctx)
        assert result.allowed
        assert result.new_status == AvailabilityStatus.NEEDS_FIXING
        assert result.warning

    def test_available_refused_during_maintenance(self):
        v = vehicle(AvailabilityStatus.NEEDS_FIXING)
        result = validate_manual_status_change(v.availability_status, AvailabilityStatus.AVAILABLE, context(v, block(1)))
        assert not result.allowed
        assert "maintenance" in result.error

    def test_booked_vehicle_taken_off_road_warns(self):
        v = vehicle(AvailabilityStatus.SCHEDULED)
        result = validate_manual_status_change(
            v.availability_status, AvailabilityStatus.NOT_FOR_RENTAL, context(v, reservation(1))
        )
        assert result.allowed
        assert "rescheduling" in result.warning

    def test_rented_cannot_be_set_by_hand(self):
        v = vehicle()
        result = validate_manual_status_change(v.availability_status, AvailabilityStatus.RENTED, context(v))
        assert not result.allowed

    def test_scheduled_cannot_be_set_by_hand(self):
        v = vehicle()
        result = validate_manual_status_change(v.availability_status, AvailabilityStatus.SCHEDULED, context(v))
        assert not result.allowed

    def test_free_vehicle_can_be_taken_off_road(self):
        v = vehicle()
        result = validate_manual_status_change(v.availability_status, AvailabilityStatus.NOT_FOR_RENTAL, context(v))
        assert result.allowed
        assert result.warning is None


class TestLifecycleTransitions:
    """Status changes on pickup, return, maintenance and cancellation."""

    def test_pickup(self):
        assert status_on_pickup(AvailabilityStatus.SCHEDULED).new_status == AvailabilityStatus.RENTED
        assert not status_on_pickup(AvailabilityStatus.NOT_FOR_RENTAL).allowed

    def test_pickup_of_needs_fixing_vehicle_is_allowed(self):
        assert status_on_pickup(AvailabilityStatus.NEEDS_FIXING).allowed

    def test_return_to_available(self):
        v = vehicle(AvailabilityStatus.RENTED)
        result = status_on_return(v.availability_status, context(v, reservation(1, ReservationStatus.PICKED_UP)))
        assert result.new_status == AvailabilityStatus.AVAILABLE

    def test_return_with_other_rental_still_out(self):
        v = vehicle(AvailabilityStatus.RENTED)
        ctx = context(v, reservation(1, ReservationStatus.PICKED_UP), reservation(2, ReservationStatus.PICKED_UP))
        result = status_on_return(v.availability_status, ctx)
        assert result.new_status == AvailabilityStatus.RENTED
        assert result.warning == "Vehicle has other active rentals."

    def test_return_with_booking_waiting(self):
        v = vehicle(AvailabilityStatus.RENTED)
        ctx = context(v, reservation(1, ReservationStatus.PICKED_UP), reservation(2))
        assert status_on_return(v.availability_status, ctx).new_status == AvailabilityStatus.SCHEDULED

    def test_return_keeps_manual_status(self):
        v = vehicle(AvailabilityStatus.NEEDS_FIXING)
        result = status_on_return(v.availability_status, context(v, reservation(1, ReservationStatus.PICKED_UP)))
        assert result.new_status == AvailabilityStatus.NEEDS_FIXING
        assert "needs fixing" in result.warning

    def test_maintenance_start(self):
        assert status_on_maintenance_start(AvailabilityStatus.AVAILABLE).new_status == AvailabilityStatus.NEEDS_FIXING
        assert not status_on_maintenance_start(AvailabilityStatus.RENTED).allowed

    def test_maintenance_end(self):
        v = vehicle(AvailabilityStatus.NEEDS_FIXING)
        assert status_on_maintenance_end(v.availability_status, context(v)).new_status == AvailabilityStatus.AVAILABLE
        assert status_on_maintenance_end(
            v.availability_status, context(v, reservation(1))
        ).new_status == AvailabilityStatus.SCHEDULED
        assert status_on_maintenance_end(
            AvailabilityStatus.NOT_FOR_RENTAL, context(v)
        ).new_status == AvailabilityStatus.NOT_FOR_RENTAL

    def test_cancel(self):
        v = vehicle(AvailabilityStatus.SCHEDULED)
        assert status_on_reservation_cancel(v.availability_status, context(v)).new_status == AvailabilityStatus.AVAILABLE
        assert status_on_reservation_cancel(
            AvailabilityStatus.NEEDS_FIXING, context(v)
        ).new_status == AvailabilityStatus.NEEDS_FIXING


class TestSyncService:
    """Recomputing stored statuses from the reservations in the database."""

    async def test_sync_all_only_fixes_stale_statuses(
        self, db, make_vehicle, make_customer, make_reservation, today
    ):
        c = await make_customer()
        broken = await make_vehicle(availability_status=AvailabilityStatus.NEEDS_FIXING)
        await make_reservation(broken, c, today - timedelta(days=2), None, status=ReservationStatus.PICKED_UP)
        parked = await make_vehicle(availability_status=AvailabilityStatus.NOT_FOR_RENTAL)
        stale = await make_vehicle(availability_status=AvailabilityStatus.RENTED)
        await make_vehicle()

        changed = await VehicleStatusService(db).sync_all()

        assert [v.id for v in changed] == [stale.id]
        for v in (broken, parked, stale):
            await db.refresh(v)
        assert broken.availability_status == AvailabilityStatus.NEEDS_FIXING
        assert parked.availability_status == AvailabilityStatus.NOT_FOR_RENTAL
        assert stale.availability_status == AvailabilityStatus.AVAILABLE

    async def test_sync_vehicle_with_booking(self, db, make_vehicle, make_customer, make_reservation, today):
        v = await make_vehicle()
        await make_reservation(v, await make_customer(), today, today + timedelta(days=2))

        v = await VehicleStatusService(db).sync_vehicle(v.id)
        assert v.availability_status == AvailabilityStatus.SCHEDULED

    async def test_manual_available_refused_during_rental(
        self, db, make_vehicle, make_customer, make_reservation, today
    ):
        v = await make_vehicle(availability_status=AvailabilityStatus.RENTED)
        await make_reservation(v, await make_customer(), today, None, status=ReservationStatus.PICKED_UP)
        service = VehicleStatusService(db)

        with pytest.raises(StatusTransitionError):
            await service.set_manual_status(v.id, AvailabilityStatus.AVAILABLE)
        await db.refresh(v)
        assert v.availability_status == AvailabilityStatus.RENTED

        v, warning = await service.set_manual_status(v.id, AvailabilityStatus.NEEDS_FIXING)
        assert v.availability_status == AvailabilityStatus.NEEDS_FIXING
        assert "active rental" in warning
