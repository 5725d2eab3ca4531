from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from fieldops.core.deps import get_current_agent, get_customer_service
from fieldops.db.session import get_async_session
from fieldops.repositories.inventory import InventoryItemRepository
from fieldops.schemas.common import MessageResponse
from fieldops.schemas.customers import (
    ArtifactFailureRead,
    ArtifactRead,
    CustomerLocationUpdate,
    CustomerRead,
    CustomerRegisterRequest,
    CustomerRegisterResponse,
)
from fieldops.schemas.inventory import InventoryItemRead
from fieldops.services.artifacts import artifact_dispatcher
from fieldops.services.customers import CustomerService

router = APIRouter(prefix="/customers", tags=["Customers"])


# PUBLIC_INTERFACE
@router.post(
    "/register",
    response_model=CustomerRegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a customer",
    description="Self-registration for a business. The QR artifact is generated in the background.",
)
async def register_customer(
    payload: CustomerRegisterRequest,
    service: CustomerService = Depends(get_customer_service),
) -> CustomerRegisterResponse:
    customer = await service.register_customer(payload)
    return CustomerRegisterResponse(id=customer.id, status=customer.status)


# PUBLIC_INTERFACE
@router.get(
    "/artifacts/failures",
    response_model=List[ArtifactFailureRead],
    summary="List failed artifact generations",
    description=(
        "Customers whose last background QR generation failed in this process. Use the "
        "regeneration endpoint to recover them."
    ),
    dependencies=[Depends(get_current_agent)],
)
async def list_artifact_failures() -> List[ArtifactFailureRead]:
    return [
        ArtifactFailureRead(customer_id=o.customer_id, error=o.error or "")
        for o in artifact_dispatcher.list_failures()
    ]


# PUBLIC_INTERFACE
@router.get(
    "/{customer_id}",
    response_model=CustomerRead,
    summary="Get a customer",
    dependencies=[Depends(get_current_agent)],
)
async def get_customer(
    customer_id: int = Path(..., description="Customer id"),
    service: CustomerService = Depends(get_customer_service),
) -> CustomerRead:
    """
    Return one customer, including the artifact location once it exists.

    Raises 404 when the customer does not exist.
    """
    customer = await service.get_customer(customer_id)
    return CustomerRead.model_validate(customer)


# PUBLIC_INTERFACE
@router.get(
    "/{customer_id}/inventory",
    response_model=List[InventoryItemRead],
    summary="List a customer's inventory",
    description="All inventory items recorded for the customer across visits, in capture order.",
    dependencies=[Depends(get_current_agent)],
)
async def list_customer_inventory(
    customer_id: int = Path(..., description="Customer id"),
    session: AsyncSession = Depends(get_async_session),
    service: CustomerService = Depends(get_customer_service),
) -> List[InventoryItemRead]:
    await service.get_customer(customer_id)
    items = await InventoryItemRepository(session).list_for_customer(customer_id)
    return [InventoryItemRead.model_validate(x) for x in items]


# PUBLIC_INTERFACE
@router.post(
    "/{customer_id}/artifact",
    response_model=ArtifactRead,
    summary="Regenerate a customer's QR artifact",
    description=(
        "Generate a new QR artifact synchronously and link it to the customer. Used to "
        "recover customers whose background generation failed."
    ),
    dependencies=[Depends(get_current_agent)],
)
async def regenerate_artifact(
    customer_id: int = Path(..., description="Customer id"),
    service: CustomerService = Depends(get_customer_service),
) -> ArtifactRead:
    location = await service.regenerate_artifact(customer_id)
    return ArtifactRead(customer_id=customer_id, qr_code_url=location)


# PUBLIC_INTERFACE
@router.post(
    "/{customer_id}/location",
    response_model=MessageResponse,
    summary="Update a customer's location",
    description="Store the site coordinates captured by the agent's device.",
    dependencies=[Depends(get_current_agent)],
)
async def update_customer_location(
    payload: CustomerLocationUpdate,
    customer_id: int = Path(..., description="Customer id"),
    service: CustomerService = Depends(get_customer_service),
) -> MessageResponse:
    await service.set_location(customer_id, payload.location_lat, payload.location_lng)
    return MessageResponse(message="Location updated")
