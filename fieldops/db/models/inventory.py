from __future__ import annotations

from datetime import date
from typing import Optional

from sqlalchemy import Date, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from fieldops.db.base import Base, IntPkMixin, TimestampMixin

DEFAULT_ITEM_STATUS = "Valid"


class InventoryItem(IntPkMixin, TimestampMixin, Base):
    """Fire extinguisher (or similar unit) found on site during a visit."""
    __tablename__ = "inventory_items"

    customer_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    visit_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("visits.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(Text, nullable=False)
    capacity: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    install_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    last_refill_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    expiry_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    condition: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        Text, nullable=False, default=DEFAULT_ITEM_STATUS, server_default=DEFAULT_ITEM_STATUS
    )
