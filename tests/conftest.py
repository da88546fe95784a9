"""Shared fixtures: an in-memory database per test and small record factories."""

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["TIMEZONE"] = "Europe/Amsterdam"
os.environ["RESEND_API_KEY"] = ""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.database import Base
from app.models import (
    Vehicle, Customer, Reservation, ReservationStatus, ReservationType,
    AvailabilityStatus, MaintenanceState,
)
from app.utils.dates import today as current_date


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def today():
    return current_date()


@pytest.fixture
def make_vehicle(db):
    counter = {"n": 0}

    async def factory(**fields):
        counter["n"] += 1
        fields.setdefault("license_plate", f"AB-{counter['n']:03d}-C")
        fields.setdefault("brand", "Volkswagen")
        fields.setdefault("model", "Transporter")
        fields.setdefault("availability_status", AvailabilityStatus.AVAILABLE)
        vehicle = Vehicle(**fields)
        db.add(vehicle)
        await db.commit()
        await db.refresh(vehicle)
        return vehicle

    return factory


@pytest.fixture
def make_customer(db):
    async def factory(**fields):
        fields.setdefault("name", "Jansen Transport")
        fields.setdefault("email", "planning@jansen.example")
        customer = Customer(**fields)
        db.add(customer)
        await db.commit()
        await db.refresh(customer)
        return customer

    return factory


@pytest.fixture
def make_reservation(db):
    """Insert a reservation directly, bypassing conflict checks"""

    async def factory(vehicle, customer=None, start_date=None, end_date=None, **fields):
        fields.setdefault("status", ReservationStatus.BOOKED)
        fields.setdefault("type", ReservationType.STANDARD)
        if fields["type"] == ReservationType.MAINTENANCE_BLOCK:
            fields.setdefault("maintenance_status", MaintenanceState.SCHEDULED)
        reservation = Reservation(
            vehicle_id=vehicle.id if vehicle else None,
            customer_id=customer.id if customer else None,
            start_date=start_date or current_date(),
            end_date=end_date,
            **fields,
        )
        db.add(reservation)
        await db.commit()
        await db.refresh(reservation)
        return reservation

    return factory


class FakeRedis:
    """In-process stand-in for the few Redis calls the backup service makes"""

    def __init__(self):
        self.store = {}

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, nx=False, ex=None):
        if nx and key in self.store:
            return None
        self.store[key] = value
        return True

    async def delete(self, key):
        return 1 if self.store.pop(key, None) is not None else 0


@pytest.fixture
def fake_redis():
    return FakeRedis()
