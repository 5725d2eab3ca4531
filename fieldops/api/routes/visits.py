from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from fieldops.core.deps import get_current_agent, get_visit_service
from fieldops.db.models import Agent
from fieldops.db.session import get_async_session
from fieldops.repositories.inventory import InventoryItemRepository
from fieldops.repositories.visits import VisitRepository
from fieldops.schemas.inventory import InventoryItemRead
from fieldops.schemas.visits import VisitLogRequest, VisitLogResponse
from fieldops.services.visits import VisitService

router = APIRouter(tags=["Visits"])


# PUBLIC_INTERFACE
@router.post(
    "/agents/visits",
    response_model=VisitLogResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Log a site visit",
    description=(
        "Record a visit for the calling agent. When customer_id is empty a Lead customer is "
        "provisioned from new_customer and its QR artifact is generated in the background. "
        "The inventory batch is written after the visit; a malformed batch does not fail the "
        "request unless atomic visit logging is enabled."
    ),
)
async def log_visit(
    payload: VisitLogRequest,
    agent: Agent = Depends(get_current_agent),
    service: VisitService = Depends(get_visit_service),
) -> VisitLogResponse:
    """
    Log a visit.

    Returns:
        VisitLogResponse: the customer the visit references and the new visit id.
    """
    outcome = await service.log_visit(agent.id, payload)
    return VisitLogResponse(customer_id=outcome.customer_id, visit_id=outcome.visit_id)


# PUBLIC_INTERFACE
@router.get(
    "/visits/{visit_id}/inventory",
    response_model=List[InventoryItemRead],
    summary="List a visit's inventory",
    description="Inventory items captured during one visit, in capture order.",
    dependencies=[Depends(get_current_agent)],
)
async def list_visit_inventory(
    visit_id: int = Path(..., description="Visit id"),
    session: AsyncSession = Depends(get_async_session),
) -> List[InventoryItemRead]:
    if await VisitRepository(session).get_visit(visit_id) is None:
        raise HTTPException(status_code=404, detail="Visit not found")
    items = await InventoryItemRepository(session).list_for_visit(visit_id)
    return [InventoryItemRead.model_validate(x) for x in items]
