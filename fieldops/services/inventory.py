from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fieldops.core.errors import ParseError, WriteError
from fieldops.db.models import DEFAULT_ITEM_STATUS, InventoryItem
from fieldops.repositories.inventory import InventoryItemRepository
from fieldops.schemas.visits import InventoryItemDescriptor
from fieldops.services.base import BaseService

logger = logging.getLogger(__name__)

STEP_WRITE_INVENTORY = "write_inventory"

_descriptor_list = TypeAdapter(List[InventoryItemDescriptor])


# PUBLIC_INTERFACE
def parse_item_descriptors(payload: Any) -> List[InventoryItemDescriptor]:
    """
    Decode the serialized inventory batch.

    Accepts None or "" (no items), a JSON array string, or an already-decoded list.

    Raises:
        ParseError: the payload is not a list of valid item descriptors.
    """
    if payload is None:
        return []
    if isinstance(payload, (str, bytes)):
        if not payload.strip():
            return []
        try:
            payload = json.loads(payload)
        except ValueError as exc:
            raise ParseError(f"Inventory payload is not valid JSON: {exc}") from exc
    if not isinstance(payload, list):
        raise ParseError(
            "Inventory payload must be a list of items",
            details={"received": type(payload).__name__},
        )
    try:
        return _descriptor_list.validate_python(payload)
    except PydanticValidationError as exc:
        raise ParseError(
            "Inventory payload contains invalid items",
            details=exc.errors(include_url=False, include_context=False),
        ) from exc


@dataclass
class InventoryResult:
    """What happened to the inventory batch of one visit."""
    status: str  # written | empty | parse_error | write_error
    count: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status in ("written", "empty")


class InventoryBatchWriter(BaseService):
    """
    Persist the inventory batch captured on a visit.

    In the default mode the batch is best effort: a malformed payload or a
    rejected insert is logged and reported on the result while the visit
    already committed stays in place. With ``atomic=True`` errors propagate and
    nothing is committed here; the caller owns the transaction.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = InventoryItemRepository(session)

    # PUBLIC_INTERFACE
    async def write(
        self,
        visit_id: int,
        customer_id: int,
        payload: Any,
        *,
        atomic: bool = False,
    ) -> InventoryResult:
        try:
            descriptors = parse_item_descriptors(payload)
        except ParseError as exc:
            if atomic:
                raise
            logger.warning("Inventory for visit_id=%s not recorded: %s", visit_id, exc.message)
            return InventoryResult(status="parse_error", error=exc.message)

        if not descriptors:
            return InventoryResult(status="empty")

        rows = [self._to_row(visit_id, customer_id, d) for d in descriptors]
        try:
            await self.repo.insert_batch(rows)
            if not atomic:
                await self.repo.commit()
        except SQLAlchemyError as exc:
            await self.repo.rollback()
            if atomic:
                raise WriteError(
                    STEP_WRITE_INVENTORY,
                    "Failed to record inventory",
                    integrity=isinstance(exc, IntegrityError),
                ) from exc
            logger.error("Inventory insert for visit_id=%s rejected: %s", visit_id, exc)
            return InventoryResult(status="write_error", error=str(exc))

        logger.info("Recorded %d inventory items for visit_id=%s", len(rows), visit_id)
        return InventoryResult(status="written", count=len(rows))

    @staticmethod
    def _to_row(visit_id: int, customer_id: int, d: InventoryItemDescriptor) -> InventoryItem:
        return InventoryItem(
            customer_id=customer_id,
            visit_id=visit_id,
            type=d.type,
            capacity=d.capacity,
            quantity=d.quantity,
            install_date=d.install_date,
            last_refill_date=d.last_refill_date,
            expiry_date=d.expiry_date,
            condition=d.condition,
            status=DEFAULT_ITEM_STATUS,
        )
