from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fieldops.core.errors import FieldOpsError, WriteError
from fieldops.repositories.visits import VisitRepository
from fieldops.services.base import BaseService
from fieldops.services.customers import CustomerService
from fieldops.services.inventory import InventoryBatchWriter, InventoryResult
from fieldops.schemas.visits import VisitLogRequest

logger = logging.getLogger(__name__)

STEP_RECORD_VISIT = "record_visit"


@dataclass
class VisitOutcome:
    """Result of one visit orchestration."""
    customer_id: int
    visit_id: int
    lead_created: bool
    inventory: InventoryResult


class VisitService(BaseService):
    """
    Record an agent's site visit.

    One pass per call: resolve the customer (provisioning a lead and
    dispatching its artifact when needed), record the visit, then write the
    inventory batch. The first two steps are required and abort the call on
    failure. Inventory is best effort unless ``atomic`` is set, in which case the
    visit and its items commit or roll back together.
    """

    def __init__(
        self,
        session: AsyncSession,
        customers: CustomerService,
        *,
        atomic: bool = False,
        verify_customer: bool = False,
    ) -> None:
        super().__init__(session)
        self.customers = customers
        self.visits = VisitRepository(session)
        self.inventory = InventoryBatchWriter(session)
        self.atomic = atomic
        self.verify_customer = verify_customer

    # PUBLIC_INTERFACE
    async def log_visit(self, agent_id: int, request: VisitLogRequest) -> VisitOutcome:
        """
        Run the visit workflow for ``agent_id``.

        Returns:
            VisitOutcome with the resolved customer id and the new visit id.
        Raises:
            ValidationError, NotFoundError: bad customer input; nothing recorded.
            WriteError: a required write was rejected; ``step`` tells which.
            ParseError: atomic mode only, malformed inventory; visit rolled back.
        """
        resolved = await self.customers.resolve_customer(
            request.customer_id,
            request.new_customer,
            verify_existing=self.verify_customer,
        )
        customer_id = resolved.customer_id

        visit_id = await self._record_visit(agent_id, customer_id, request)

        if self.atomic:
            inventory = await self._write_inventory_atomic(visit_id, customer_id, request)
        else:
            inventory = await self.inventory.write(visit_id, customer_id, request.inventory)

        logger.info(
            "Visit logged visit_id=%s customer_id=%s lead_created=%s inventory=%s/%d",
            visit_id,
            customer_id,
            resolved.created,
            inventory.status,
            inventory.count,
        )
        return VisitOutcome(
            customer_id=customer_id,
            visit_id=visit_id,
            lead_created=resolved.created,
            inventory=inventory,
        )

    async def _record_visit(self, agent_id: int, customer_id: int, request: VisitLogRequest) -> int:
        new_customer = request.new_customer
        try:
            visit_id = await self.visits.insert_visit(
                agent_id=agent_id,
                customer_id=customer_id,
                customer_name=new_customer.business_name if new_customer else None,
                business_type=new_customer.business_type if new_customer else None,
                notes=request.notes,
                risk_assessment=request.risk_assessment,
                service_recommendations=request.service_recommendations,
                follow_up_date=request.follow_up_date,
            )
            if not self.atomic:
                await self.visits.commit()
        except SQLAlchemyError as exc:
            await self.visits.rollback()
            logger.error("Visit insert for customer_id=%s rejected: %s", customer_id, exc)
            raise WriteError(
                STEP_RECORD_VISIT,
                "Failed to log visit",
                integrity=isinstance(exc, IntegrityError),
            ) from exc
        return visit_id

    async def _write_inventory_atomic(
        self, visit_id: int, customer_id: int, request: VisitLogRequest
    ) -> InventoryResult:
        try:
            inventory = await self.inventory.write(visit_id, customer_id, request.inventory, atomic=True)
            await self.visits.commit()
        except FieldOpsError:
            await self.visits.rollback()
            raise
        except SQLAlchemyError as exc:
            await self.visits.rollback()
            raise WriteError(
                STEP_RECORD_VISIT,
                "Failed to log visit",
                integrity=isinstance(exc, IntegrityError),
            ) from exc
        return inventory
