from __future__ import annotations

from typing import Optional

from sqlalchemy import select, update

from fieldops.db.models import Customer
from .base import BaseRepository


class CustomerRepository(BaseRepository):
    """Repository for customers (registered accounts and leads)."""

    async def get_customer(self, customer_id: int) -> Optional[Customer]:
        stmt = select(Customer).where(Customer.id == customer_id)
        return await self.scalar_one_or_none(stmt)

    async def customer_exists(self, customer_id: int) -> bool:
        stmt = select(Customer.id).where(Customer.id == customer_id)
        return (await self.scalar_one_or_none(stmt)) is not None

    async def insert_customer(
        self,
        *,
        business_name: str,
        owner_name: Optional[str],
        email: str,
        password_hash: str,
        phone: Optional[str],
        address: Optional[str],
        business_type: Optional[str],
        status: str,
    ) -> Customer:
        """Stage a customer row and flush so its id is assigned."""
        row = Customer(
            business_name=business_name,
            owner_name=owner_name,
            email=email,
            password_hash=password_hash,
            phone=phone,
            address=address,
            business_type=business_type,
            status=status,
        )
        await self.add(row)
        await self.flush()
        return row

    async def set_artifact_reference(self, customer_id: int, location: str) -> int:
        """Point the customer at its stored artifact. Returns the number of rows updated."""
        stmt = (
            update(Customer)
            .where(Customer.id == customer_id)
            .values(qr_code_url=location)
            .execution_options(synchronize_session=False)
        )
        result = await self.execute(stmt)
        return result.rowcount

    async def set_location(self, customer_id: int, lat: float, lng: float) -> int:
        """Record the customer's site coordinates. Returns the number of rows updated."""
        stmt = (
            update(Customer)
            .where(Customer.id == customer_id)
            .values(location_lat=lat, location_lng=lng)
            .execution_options(synchronize_session=False)
        )
        result = await self.execute(stmt)
        return result.rowcount
