from __future__ import annotations

from datetime import date
from typing import Optional

from sqlalchemy import select

from fieldops.db.models import Visit
from .base import BaseRepository


class VisitRepository(BaseRepository):
    """Repository for site visits."""

    async def get_visit(self, visit_id: int) -> Optional[Visit]:
        stmt = select(Visit).where(Visit.id == visit_id)
        return await self.scalar_one_or_none(stmt)

    async def insert_visit(
        self,
        *,
        agent_id: int,
        customer_id: int,
        customer_name: Optional[str],
        business_type: Optional[str],
        notes: Optional[str],
        risk_assessment: Optional[str],
        service_recommendations: Optional[str],
        follow_up_date: Optional[date],
    ) -> int:
        """Stage a visit, flush, and return the generated id."""
        row = Visit(
            agent_id=agent_id,
            customer_id=customer_id,
            customer_name=customer_name,
            business_type=business_type,
            notes=notes,
            risk_assessment=risk_assessment,
            service_recommendations=service_recommendations,
            follow_up_date=follow_up_date,
        )
        await self.add(row)
        await self.flush()
        return row.id
