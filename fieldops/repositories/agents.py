from __future__ import annotations

from typing import Optional

from sqlalchemy import select

from fieldops.db.models import Agent
from .base import BaseRepository


class AgentRepository(BaseRepository):
    """Repository for field agents."""

    async def get_agent(self, agent_id: int) -> Optional[Agent]:
        stmt = select(Agent).where(Agent.id == agent_id)
        return await self.scalar_one_or_none(stmt)
