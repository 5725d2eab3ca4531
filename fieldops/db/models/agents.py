from __future__ import annotations

from enum import Enum
from typing import Optional

from sqlalchemy import Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from fieldops.db.base import Base, IntPkMixin, TimestampMixin


class AgentStatus(str, Enum):
    PENDING = "Pending"
    ACTIVE = "Active"
    SUSPENDED = "Suspended"


class Agent(IntPkMixin, TimestampMixin, Base):
    """Field agent. Only Active agents may record visits."""
    __tablename__ = "agents"
    __table_args__ = (
        UniqueConstraint("email", name="uq_agents_email"),
    )

    name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(Text, nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    territory: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        Text, nullable=False, default=AgentStatus.PENDING.value, server_default=AgentStatus.PENDING.value
    )
