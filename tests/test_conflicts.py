"""Tests for conflict detection and availability queries."""

from datetime import datetime, timedelta, timezone

import pytest

from app.models import (
    AvailabilityStatus, MaintenanceStatus, ReservationStatus, ReservationType,
)
from app.services.availability_service import AvailabilityService
from app.services.exceptions import ValidationError


class TestCheckConflicts:
    """Double-booking detection for one vehicle."""

    async def test_overlapping_rental_conflicts(self, db, make_vehicle, make_customer, make_reservation, today):
        v = await make_vehicle()
        c = await make_customer()
        existing = await make_reservation(v, c, today, today + timedelta(days=5))

        conflicts = await AvailabilityService(db).check_conflicts(
            v.id, today + timedelta(days=5), today + timedelta(days=8)
        )
        assert [r.id for r in conflicts] == [existing.id]

    async def test_disjoint_rental_is_free(self, db, make_vehicle, make_customer, make_reservation, today):
        v = await make_vehicle()
        c = await make_customer()
        await make_reservation(v, c, today, today + timedelta(days=5))

        conflicts = await AvailabilityService(db).check_conflicts(
            v.id, today + timedelta(days=6), today + timedelta(days=8)
        )
        assert conflicts == []

    async def test_open_ended_rental_blocks_the_future(self, db, make_vehicle, make_customer, make_reservation, today):
        v = await make_vehicle()
        c = await make_customer()
        await make_reservation(v, c, today, None)

        conflicts = await AvailabilityService(db).check_conflicts(
            v.id, today + timedelta(days=400), today + timedelta(days=401)
        )
        assert len(conflicts) == 1

    async def test_open_ended_request_sees_later_bookings(self, db, make_vehicle, make_customer, make_reservation, today):
        v = await make_vehicle()
        c = await make_customer()
        await make_reservation(v, c, today + timedelta(days=30), today + timedelta(days=31))

        conflicts = await AvailabilityService(db).check_conflicts(v.id, today, None)
        assert len(conflicts) == 1

    async def test_cancelled_and_deleted_are_ignored(self, db, make_vehicle, make_customer, make_reservation, today):
        v = await make_vehicle()
        c = await make_customer()
        await make_reservation(v, c, today, today + timedelta(days=3), status=ReservationStatus.CANCELLED)
        await make_reservation(v, c, today, today + timedelta(days=3), deleted_at=datetime.now(timezone.utc))

        assert await AvailabilityService(db).check_conflicts(v.id, today, today + timedelta(days=3)) == []

    async def test_excluded_reservation_does_not_conflict_with_itself(
        self, db, make_vehicle, make_customer, make_reservation, today
    ):
        v = await make_vehicle()
        c = await make_customer()
        r = await make_reservation(v, c, today, today + timedelta(days=3))

        assert await AvailabilityService(db).check_conflicts(
            v.id, today, today + timedelta(days=4), exclude_id=r.id
        ) == []

    async def test_maintenance_and_rentals_are_checked_separately(
        self, db, make_vehicle, make_customer, make_reservation, today
    ):
        """A rental may run while the vehicle has a workshop block, and vice versa."""
        v = await make_vehicle()
        c = await make_customer()
        rental = await make_reservation(v, c, today, today + timedelta(days=10))
        workshop = await make_reservation(
            v, None, today + timedelta(days=2), today + timedelta(days=3), type=ReservationType.MAINTENANCE_BLOCK
        )
        service = AvailabilityService(db)

        rental_conflicts = await service.check_conflicts(v.id, today + timedelta(days=2), today + timedelta(days=2))
        block_conflicts = await service.check_conflicts(
            v.id, today + timedelta(days=2), today + timedelta(days=2), is_maintenance_block=True
        )
        assert [r.id for r in rental_conflicts] == [rental.id]
        assert [r.id for r in block_conflicts] == [workshop.id]

    async def test_other_vehicles_do_not_conflict(self, db, make_vehicle, make_customer, make_reservation, today):
        v1 = await make_vehicle()
        v2 = await make_vehicle()
        c = await make_customer()
        await make_reservation(v1, c, today, today + timedelta(days=3))

        assert await AvailabilityService(db).check_conflicts(v2.id, today, today + timedelta(days=3)) == []

    async def test_end_before_start_is_rejected(self, db, make_vehicle, today):
        v = await make_vehicle()
        with pytest.raises(ValidationError):
            await AvailabilityService(db).check_conflicts(v.id, today, today - timedelta(days=1))

    async def test_missing_start_is_rejected(self, db, make_vehicle):
        v = await make_vehicle()
        with pytest.raises(ValidationError):
            await AvailabilityService(db).check_conflicts(v.id, None)


class TestAvailableVehicles:
    """Fleet-wide availability queries."""

    async def test_available_today_skips_rented(self, db, make_vehicle, make_customer, make_reservation, today):
        free = await make_vehicle()
        busy = await make_vehicle()
        workshop = await make_vehicle()
        c = await make_customer()
        await make_reservation(busy, c, today - timedelta(days=1), today + timedelta(days=1))
        await make_reservation(workshop, None, today, today, type=ReservationType.MAINTENANCE_BLOCK)

        ids = {v.id for v in await AvailabilityService(db).get_available_vehicles(today)}
        assert free.id in ids
        assert busy.id not in ids
        # Maintenance does not count as a rental
        assert workshop.id in ids

    async def test_spare_candidates(self, db, make_vehicle, make_customer, make_reservation, today):
        free = await make_vehicle()
        booked = await make_vehicle()
        in_service = await make_vehicle(maintenance_status=MaintenanceStatus.IN_SERVICE)
        held_back = await make_vehicle(availability_status=AvailabilityStatus.NOT_FOR_RENTAL)
        blocked = await make_vehicle()
        c = await make_customer()
        await make_reservation(booked, c, today + timedelta(days=2), today + timedelta(days=4))
        await make_reservation(blocked, None, today + timedelta(days=3), None, type=ReservationType.MAINTENANCE_BLOCK)

        vehicles = await AvailabilityService(db).get_available_vehicles_in_range(
            today, today + timedelta(days=5)
        )
        assert [v.id for v in vehicles] == [free.id]

        vehicles = await AvailabilityService(db).get_available_vehicles_in_range(
            today, today + timedelta(days=5), exclude_vehicle_id=free.id
        )
        assert vehicles == []

    async def test_apk_expiring_soon(self, db, make_vehicle, today):
        soon = await make_vehicle(apk_date=today + timedelta(days=20))
        await make_vehicle(apk_date=today + timedelta(days=200))
        await make_vehicle(apk_date=today - timedelta(days=1))
        await make_vehicle()

        vehicles = await AvailabilityService(db).get_vehicles_with_apk_expiring_soon()
        assert [v.id for v in vehicles] == [soon.id]


class TestCalendarQueries:
    """Reservations shown on the planning views."""

    async def test_range_includes_blocks_and_open_ended(self, db, make_vehicle, make_customer, make_reservation, today):
        v = await make_vehicle()
        c = await make_customer()
        rental = await make_reservation(v, c, today - timedelta(days=30), None, status=ReservationStatus.PICKED_UP)
        workshop = await make_reservation(
            v, None, today + timedelta(days=1), today + timedelta(days=2), type=ReservationType.MAINTENANCE_BLOCK
        )
        await make_reservation(v, c, today + timedelta(days=60), today + timedelta(days=61))

        reservations = await AvailabilityService(db).get_reservations_in_range(today, today + timedelta(days=7))
        assert [r.id for r in reservations] == [rental.id, workshop.id]

        shown = reservations[1]
        # The block borrows the customer of the open-ended rental for display
        assert shown.customer is not None
        assert shown.customer.id == c.id

    async def test_upcoming_and_overdue(self, db, make_vehicle, make_customer, make_reservation, today):
        v = await make_vehicle()
        c = await make_customer()
        upcoming = await make_reservation(v, c, today + timedelta(days=3), today + timedelta(days=4))
        await make_reservation(v, c, today + timedelta(days=5), today + timedelta(days=6), status=ReservationStatus.CANCELLED)
        overdue = await make_reservation(
            v, c, today - timedelta(days=10), today - timedelta(days=2), status=ReservationStatus.PICKED_UP
        )

        service = AvailabilityService(db)
        assert [r.id for r in await service.get_upcoming_reservations()] == [upcoming.id]
        assert [r.id for r in await service.get_overdue_reservations()] == [overdue.id]
