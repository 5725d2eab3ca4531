from __future__ import annotations

from datetime import date
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


def _empty_to_none(v: Any) -> Any:
    # Form clients send "" for untouched inputs.
    if isinstance(v, str) and not v.strip():
        return None
    return v


class NewCustomerFields(BaseModel):
    """Details of a customer the agent met for the first time."""
    business_name: Optional[str] = Field(None, description="Business / display name (required for a lead)")
    owner_name: Optional[str] = Field(None, description="Owner or contact person")
    email: Optional[str] = Field(None, description="Contact e-mail; a placeholder is generated when blank")
    phone: Optional[str] = Field(None, description="Contact phone (required for a lead)")
    address: Optional[str] = Field(None, description="Site address")
    business_type: Optional[str] = Field(None, description="Business category, e.g. Restaurant")


class InventoryItemDescriptor(BaseModel):
    """One line of the inventory captured on site."""
    type: str = Field(..., min_length=1, description="Extinguisher type, e.g. 'ABC Dry Powder'")
    capacity: Optional[str] = Field(None, description="Capacity label, e.g. '6kg'")
    quantity: int = Field(1, ge=1, description="Number of identical units")
    install_date: Optional[date] = Field(None)
    last_refill_date: Optional[date] = Field(None)
    expiry_date: Optional[date] = Field(None)
    condition: Optional[str] = Field(None, description="Condition noted by the agent")

    @field_validator("install_date", "last_refill_date", "expiry_date", "capacity", "condition", mode="before")
    @classmethod
    def _blank_optional(cls, v):
        return _empty_to_none(v)

    @field_validator("quantity", mode="before")
    @classmethod
    def _default_quantity(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return 1
        return v


class VisitLogRequest(BaseModel):
    """
    Payload of a visit submission.

    Either ``customer_id`` references an existing customer or ``new_customer``
    describes a lead to provision. ``inventory`` is the serialized item batch:
    a JSON string (as sent by multipart forms) or an already-decoded list.
    """
    customer_id: Optional[int] = Field(None, description="Existing customer id")
    new_customer: Optional[NewCustomerFields] = Field(None, description="Lead details when customer_id is empty")
    notes: Optional[str] = Field(None)
    risk_assessment: Optional[str] = Field(None)
    service_recommendations: Optional[str] = Field(None)
    follow_up_date: Optional[date] = Field(None)
    inventory: Any = Field(None, description="JSON string or list of inventory item descriptors")

    @field_validator("customer_id", "follow_up_date", mode="before")
    @classmethod
    def _blank_optional(cls, v):
        return _empty_to_none(v)


class VisitLogResponse(BaseModel):
    """Returned once the customer and visit are durably recorded."""
    message: str = Field("Visit logged successfully")
    customer_id: int = Field(..., description="Resolved or newly created customer id")
    visit_id: int = Field(..., description="Recorded visit id")
