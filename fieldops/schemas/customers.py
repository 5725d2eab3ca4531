from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class CustomerRead(BaseModel):
    """Customer read model."""
    id: int = Field(..., description="Customer id")
    business_name: str = Field(..., description="Business name")
    owner_name: Optional[str] = Field(None)
    email: str = Field(..., description="E-mail (may be a generated placeholder)")
    phone: Optional[str] = Field(None)
    address: Optional[str] = Field(None)
    business_type: Optional[str] = Field(None)
    status: str = Field(..., description="Lead, Active or Suspended")
    location_lat: Optional[float] = Field(None)
    location_lng: Optional[float] = Field(None)
    qr_code_url: Optional[str] = Field(None, description="Artifact location once generated")
    created_at: datetime = Field(..., description="Created timestamp")
    updated_at: datetime = Field(..., description="Updated timestamp")

    class Config:
        from_attributes = True


class CustomerRegisterRequest(BaseModel):
    """Self-registration details for a business customer."""
    business_name: str = Field(..., min_length=1, description="Business name")
    owner_name: Optional[str] = Field(None)
    email: Optional[str] = Field(None, description="Optional; a placeholder is generated when blank")
    password: str = Field(..., min_length=6, description="Account password")
    phone: Optional[str] = Field(None)
    address: Optional[str] = Field(None)
    business_type: Optional[str] = Field(None)

    @field_validator("business_name", mode="before")
    @classmethod
    def _strip_business_name(cls, v):
        # A whitespace-only name must fail min_length.
        return v.strip() if isinstance(v, str) else v


class CustomerRegisterResponse(BaseModel):
    message: str = Field("Customer registered successfully")
    id: int = Field(..., description="New customer id")
    status: str = Field(..., description="Customer status")


class ArtifactRead(BaseModel):
    """Location of a customer's generated QR artifact."""
    customer_id: int = Field(...)
    qr_code_url: str = Field(..., description="Public artifact location")


class CustomerLocationUpdate(BaseModel):
    """Site coordinates captured by an agent's device."""
    location_lat: float = Field(..., ge=-90, le=90, description="Latitude in decimal degrees")
    location_lng: float = Field(..., ge=-180, le=180, description="Longitude in decimal degrees")


class ArtifactFailureRead(BaseModel):
    """A customer whose last background artifact attempt failed."""
    customer_id: int = Field(...)
    error: str = Field(..., description="Failure reported by the generator")
