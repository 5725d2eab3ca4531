from __future__ import annotations

from enum import Enum
from typing import Optional

from sqlalchemy import Float, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from fieldops.db.base import Base, IntPkMixin, TimestampMixin


class CustomerStatus(str, Enum):
    """Customer lifecycle; listed in the only order status may move."""
    LEAD = "Lead"
    ACTIVE = "Active"
    SUSPENDED = "Suspended"


class Customer(IntPkMixin, TimestampMixin, Base):
    """Business customer, either registered or provisioned as a lead during a visit."""
    __tablename__ = "customers"
    __table_args__ = (
        UniqueConstraint("email", name="uq_customers_email"),
    )

    business_name: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    owner_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    email: Mapped[str] = mapped_column(Text, nullable=False)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(Text, nullable=True, index=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    business_type: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        Text, nullable=False, default=CustomerStatus.ACTIVE.value, server_default=CustomerStatus.ACTIVE.value
    )
    location_lat: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    location_lng: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    # Public location of the generated QR artifact; null until it is durably stored.
    qr_code_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
