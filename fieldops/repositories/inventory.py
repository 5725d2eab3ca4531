from __future__ import annotations

from typing import Iterable, List

from sqlalchemy import select

from fieldops.db.models import InventoryItem
from .base import BaseRepository


class InventoryItemRepository(BaseRepository):
    """Repository for inventory items captured on visits."""

    async def list_for_customer(self, customer_id: int) -> List[InventoryItem]:
        stmt = (
            select(InventoryItem)
            .where(InventoryItem.customer_id == customer_id)
            .order_by(InventoryItem.id.asc())
        )
        res = await self.scalars(stmt)
        return list(res)

    async def list_for_visit(self, visit_id: int) -> List[InventoryItem]:
        stmt = (
            select(InventoryItem)
            .where(InventoryItem.visit_id == visit_id)
            .order_by(InventoryItem.id.asc())
        )
        res = await self.scalars(stmt)
        return list(res)

    async def insert_batch(self, rows: Iterable[InventoryItem]) -> List[InventoryItem]:
        """Stage all rows in one flush. Nothing is written when ``rows`` is empty."""
        staged = list(rows)
        if not staged:
            return staged
        await self.add_all(staged)
        await self.flush()
        return staged
