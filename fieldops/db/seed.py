"""
Database seeding utilities for local development.

Seeds:
- One Active field agent (demo@fieldops.local) so visits can be recorded

Usage:
  python -m fieldops.db.run_migrations upgrade head
  python -m fieldops.db.seed
"""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fieldops.db.models import Agent, AgentStatus
from fieldops.db.session import get_session_maker

logger = logging.getLogger(__name__)

DEMO_AGENT_EMAIL = "demo@fieldops.local"


# PUBLIC_INTERFACE
async def seed_all() -> int:
    """
    Seed the database with a demo agent and return its id.

    Safe to run repeatedly; an existing agent with the demo e-mail is reused.
    """
    async with get_session_maker()() as session:
        agent_id = await _ensure_demo_agent(session)
        await session.commit()
    return agent_id


async def _ensure_demo_agent(session: AsyncSession) -> int:
    res = await session.execute(select(Agent.id).where(Agent.email == DEMO_AGENT_EMAIL))
    existing = res.scalar_one_or_none()
    if existing is not None:
        return existing

    agent = Agent(
        name="Demo Agent",
        email=DEMO_AGENT_EMAIL,
        phone="000-0000",
        territory="Default",
        status=AgentStatus.ACTIVE.value,
    )
    session.add(agent)
    await session.flush()
    logger.info("Seeded demo agent id=%s", agent.id)
    return agent.id


# PUBLIC_INTERFACE
def main() -> None:
    """Entrypoint to run the asynchronous seeding."""
    agent_id = asyncio.run(seed_all())
    print(f"Demo agent id: {agent_id}")


if __name__ == "__main__":
    main()
