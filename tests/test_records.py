"""Tests for fleet records: vehicles, customers, drivers, expenses, settings and notifications."""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from app.models import Driver, NotificationType, Reservation, ReservationStatus
from app.schemas.driver import DriverCreate
from app.schemas.other import AppSettingCreate, ExpenseCreate
from app.schemas.vehicle import VehicleCreate, VehicleUpdate
from app.services.customer_service import CustomerService
from app.services.exceptions import ConflictError, NotFoundError, ValidationError
from app.services.notification_service import EmailService, NotificationService
from app.services.record_service import ExpenseService
from app.services.settings_service import SettingsService
from app.services.vehicle_service import VehicleService


class TestVehicles:
    """Vehicle records."""

    async def test_plate_is_normalised_and_unique(self, db):
        service = VehicleService(db)
        vehicle = await service.create(VehicleCreate(license_plate=" ab-12-cd ", brand="Ford", model="Transit"))
        assert vehicle.license_plate == "AB-12-CD"

        with pytest.raises(ConflictError):
            await service.create(VehicleCreate(license_plate="AB-12-CD", brand="Ford", model="Custom"))

    async def test_search_without_dashes(self, db, make_vehicle):
        v = await make_vehicle(license_plate="KL-345-M")
        await make_vehicle(license_plate="ZZ-000-Z")

        assert [x.id for x in await VehicleService(db).list(search="kl345")] == [v.id]

    async def test_update_refuses_taken_plate(self, db, make_vehicle):
        await make_vehicle(license_plate="AA-111-A")
        v = await make_vehicle(license_plate="BB-222-B")

        with pytest.raises(ConflictError):
            await VehicleService(db).update(v.id, VehicleUpdate(license_plate="aa-111-a"))

    async def test_delete_keeps_reservation_history(self, db, make_vehicle, make_customer, make_reservation, today):
        v = await make_vehicle()
        c = await make_customer()
        r = await make_reservation(v, c, today, today + timedelta(days=1))
        reservation_id = r.id

        await VehicleService(db).delete(v.id)

        with pytest.raises(NotFoundError):
            await VehicleService(db).get(v.id)
        kept = await db.get(Reservation, reservation_id, populate_existing=True)
        assert kept.vehicle_id is None
        assert kept.deleted_at is not None


class TestCustomers:
    """Customers and their drivers."""

    async def test_delete_refused_with_active_reservation(
        self, db, make_vehicle, make_customer, make_reservation, today
    ):
        v = await make_vehicle()
        c = await make_customer()
        await make_reservation(v, c, today, None)

        with pytest.raises(ConflictError) as exc:
            await CustomerService(db).delete(c.id)
        assert len(exc.value.conflicts) == 1

    async def test_delete_with_closed_history(self, db, make_vehicle, make_customer, make_reservation, today):
        v = await make_vehicle()
        c = await make_customer()
        await make_reservation(v, c, today, today, status=ReservationStatus.RETURNED)

        await CustomerService(db).delete(c.id)
        with pytest.raises(NotFoundError):
            await CustomerService(db).get(c.id)

    async def test_single_primary_driver(self, db, make_customer):
        c = await make_customer()
        service = CustomerService(db)
        first = await service.create_driver(DriverCreate(customer_id=c.id, display_name="Anna", is_primary_driver=True))
        second = await service.create_driver(DriverCreate(customer_id=c.id, display_name="Bram", is_primary_driver=True))

        drivers = await service.list_drivers(c.id)
        primary = [d.id for d in drivers if d.is_primary_driver]
        assert primary == [second.id]
        first = await db.get(Driver, first.id, populate_existing=True)
        assert first.is_primary_driver is False


class TestExpenses:
    """Vehicle expenses."""

    async def test_total_for_vehicle(self, db, make_vehicle):
        v = await make_vehicle()
        service = ExpenseService(db)
        await service.create(ExpenseCreate(vehicle_id=v.id, category="tires", amount=Decimal("420.50"), date=date(2025, 3, 1)))
        await service.create(ExpenseCreate(vehicle_id=v.id, category="apk", amount=Decimal("79.50"), date=date(2025, 4, 1)))

        assert await service.total_for_vehicle(v.id) == Decimal("500")
        assert [e.category for e in await service.list(vehicle_id=v.id)] == ["apk", "tires"]

    async def test_unknown_vehicle(self, db):
        with pytest.raises(NotFoundError):
            await ExpenseService(db).create(
                ExpenseCreate(vehicle_id=12345, category="fuel", amount=Decimal("10"), date=date(2025, 1, 1))
            )


class TestSettings:
    """Runtime key/value settings."""

    async def test_duplicate_key(self, db):
        service = SettingsService(db)
        await service.create(AppSettingCreate(key="company_name", value="Fleet BV"))

        with pytest.raises(ConflictError):
            await service.create(AppSettingCreate(key="company_name", value="Other"))
        assert await service.get_value("company_name") == "Fleet BV"
        assert await service.get_value("missing", "default") == "default"


class TestNotifications:
    """In-app notifications and outgoing email."""

    async def test_expiry_notifications_are_not_duplicated(self, db, make_vehicle, today):
        await make_vehicle(apk_date=today + timedelta(days=10))
        await make_vehicle(warranty_end_date=today + timedelta(days=30))
        service = NotificationService(db)

        created = await service.generate_expiry_notifications()
        assert sorted(n.type for n in created) == sorted([NotificationType.APK, NotificationType.WARRANTY])
        assert await service.generate_expiry_notifications() == []

    async def test_mark_all_read(self, db):
        service = NotificationService(db)
        await service.create_notification("Reminder", "Call the garage")
        await service.create_notification("Reminder", "Order tires")

        assert await service.mark_all_read() == 2
        assert await service.list_notifications(unread_only=True) == []

    async def test_user_sees_own_and_shared(self, db):
        service = NotificationService(db)
        await service.create_notification("Shared", "For everybody")
        await service.create_notification("Mine", "For user 1", user_id=1)
        await service.create_notification("Theirs", "For user 2", user_id=2)

        titles = sorted(n.title for n in await service.list_notifications(user_id=1))
        assert titles == ["Mine", "Shared"]

    async def test_email_skipped_without_api_key(self):
        assert await EmailService().send_email("klant@example.nl", "Test", "<p>hi</p>") is False

    async def test_email_needs_recipient(self):
        with pytest.raises(ValidationError):
            await EmailService().send_email("", "Test", "<p>hi</p>")
