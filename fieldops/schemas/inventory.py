from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field


class InventoryItemRead(BaseModel):
    """Read model for an inventory item captured on a visit."""
    id: int = Field(..., description="Item id")
    customer_id: int = Field(..., description="Owning customer")
    visit_id: int = Field(..., description="Visit during which the item was captured")
    type: str = Field(..., description="Extinguisher type")
    capacity: Optional[str] = Field(None)
    quantity: int = Field(..., description="Unit count")
    install_date: Optional[date] = Field(None)
    last_refill_date: Optional[date] = Field(None)
    expiry_date: Optional[date] = Field(None)
    condition: Optional[str] = Field(None)
    status: str = Field(..., description="Item status (Valid on capture)")
    created_at: datetime = Field(..., description="Created timestamp")

    class Config:
        from_attributes = True
