from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func, or_
from app.models import Customer, Driver, Reservation, CLOSED_STATUSES
from app.schemas.driver import CustomerCreate, CustomerUpdate, DriverCreate, DriverUpdate
from app.services.exceptions import NotFoundError, ConflictError
from app.utils.search import like_pattern
import logging

logger = logging.getLogger(__name__)

class CustomerService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, customer_id: int) -> Customer:
        customer = await self.db.get(Customer, customer_id)
        if not customer:
            raise NotFoundError(f"Customer {customer_id} not found")
        return customer

    async def list(self, search: Optional[str] = None, skip: int = 0, limit: int = 100) -> List[Customer]:
        query = select(Customer)
        if search:
            pattern = like_pattern(search)
            query = query.where(or_(
                func.upper(Customer.name).like(pattern),
                func.upper(Customer.company_name).like(pattern),
                func.upper(Customer.email).like(pattern),
                func.replace(Customer.phone, "-", "").like(pattern),
                func.upper(Customer.debtor_number).like(pattern),
            ))
        result = await self.db.execute(query.order_by(Customer.name).offset(skip).limit(limit))
        return list(result.scalars().all())

    async def create(self, data: CustomerCreate, created_by: Optional[str] = None) -> Customer:
        customer = Customer(**data.model_dump(), created_by=created_by, updated_by=created_by)
        self.db.add(customer)
        await self.db.commit()
        await self.db.refresh(customer)
        logger.info(f"Customer {customer.id} ({customer.name}) created")
        return customer

    async def update(self, customer_id: int, data: CustomerUpdate, updated_by: Optional[str] = None) -> Customer:
        customer = await self.get(customer_id)
        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(customer, key, value)
        customer.updated_by = updated_by

        await self.db.commit()
        await self.db.refresh(customer)
        return customer

    async def delete(self, customer_id: int):
        """Delete a customer without live reservations; closed history is kept anonymous"""
        customer = await self.get(customer_id)

        result = await self.db.execute(
            select(Reservation).where(
                Reservation.customer_id == customer.id,
                Reservation.deleted_at.is_(None),
                Reservation.status.notin_(CLOSED_STATUSES),
            )
        )
        live = list(result.scalars().all())
        if live:
            raise ConflictError(
                f"Customer {customer.name} still has {len(live)} active reservation(s)", live
            )

        await self.db.execute(
            update(Reservation)
            .where(Reservation.customer_id == customer.id)
            .values(customer_id=None, driver_id=None)
        )
        await self.db.delete(customer)
        await self.db.commit()
        logger.info(f"Customer {customer_id} deleted")

    # Drivers
    async def get_driver(self, driver_id: int) -> Driver:
        driver = await self.db.get(Driver, driver_id)
        if not driver:
            raise NotFoundError(f"Driver {driver_id} not found")
        return driver

    async def list_drivers(self, customer_id: int) -> List[Driver]:
        await self.get(customer_id)
        result = await self.db.execute(
            select(Driver)
            .where(Driver.customer_id == customer_id)
            .order_by(Driver.is_primary_driver.desc(), Driver.display_name)
        )
        return list(result.scalars().all())

    async def _clear_primary(self, customer_id: int, keep_id: Optional[int] = None):
        query = update(Driver).where(Driver.customer_id == customer_id, Driver.is_primary_driver == True)
        if keep_id is not None:
            query = query.where(Driver.id != keep_id)
        await self.db.execute(query.values(is_primary_driver=False))

    async def create_driver(self, data: DriverCreate) -> Driver:
        await self.get(data.customer_id)
        if data.is_primary_driver:
            await self._clear_primary(data.customer_id)

        driver = Driver(**data.model_dump())
        self.db.add(driver)
        await self.db.commit()
        await self.db.refresh(driver)
        return driver

    async def update_driver(self, driver_id: int, data: DriverUpdate) -> Driver:
        driver = await self.get_driver(driver_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("is_primary_driver"):
            await self._clear_primary(driver.customer_id, keep_id=driver.id)

        for key, value in changes.items():
            setattr(driver, key, value)

        await self.db.commit()
        await self.db.refresh(driver)
        return driver

    async def delete_driver(self, driver_id: int):
        driver = await self.get_driver(driver_id)
        await self.db.execute(
            update(Reservation).where(Reservation.driver_id == driver.id).values(driver_id=None)
        )
        await self.db.delete(driver)
        await self.db.commit()
