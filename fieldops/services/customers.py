from __future__ import annotations

import logging
import secrets
import time
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fieldops.core.errors import NotFoundError, ValidationError, WriteError
from fieldops.core.security import get_password_hash, placeholder_password_hash
from fieldops.db.models import Customer, CustomerStatus
from fieldops.repositories.customers import CustomerRepository
from fieldops.schemas.customers import CustomerRegisterRequest
from fieldops.schemas.visits import NewCustomerFields
from fieldops.services.artifacts import (
    KIND_CUSTOMER,
    KIND_LEAD,
    ArtifactDispatcher,
    LeadArtifactGenerator,
    artifact_dispatcher,
)
from fieldops.services.base import BaseService

logger = logging.getLogger(__name__)

STEP_RESOLVE_CUSTOMER = "resolve_customer"


# PUBLIC_INTERFACE
def fallback_email(prefix: str, domain: str) -> str:
    """Unique stand-in address for contacts who gave no e-mail."""
    return f"{prefix}-{time.time_ns() // 1_000_000}-{secrets.token_hex(4)}@{domain}"


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


@dataclass(frozen=True)
class ResolvedCustomer:
    customer_id: int
    created: bool


class CustomerService(BaseService):
    """
    Resolve or provision customer identities.

    New customers are committed before their artifact is dispatched, so the
    detached generator always finds the row it links to.
    """

    def __init__(
        self,
        session: AsyncSession,
        generator: LeadArtifactGenerator,
        *,
        lead_email_domain: str,
        dispatcher: ArtifactDispatcher = artifact_dispatcher,
    ) -> None:
        super().__init__(session)
        self.repo = CustomerRepository(session)
        self.generator = generator
        self.dispatcher = dispatcher
        self.lead_email_domain = lead_email_domain

    # PUBLIC_INTERFACE
    async def resolve_customer(
        self,
        customer_id: Optional[int],
        new_customer: Optional[NewCustomerFields],
        *,
        verify_existing: bool = False,
    ) -> ResolvedCustomer:
        """
        Return the customer id a visit should reference.

        A supplied ``customer_id`` is trusted unless ``verify_existing`` is set; a
        stale id then surfaces when the visit insert violates its foreign key.
        Without an id a Lead is created from ``new_customer``.

        Raises:
            ValidationError: lead fields missing.
            NotFoundError: ``verify_existing`` and the id is unknown.
            WriteError: the store rejected the lead insert.
        """
        if customer_id is not None:
            if verify_existing and not await self.repo.customer_exists(customer_id):
                raise NotFoundError(f"Customer {customer_id} not found", details={"customer_id": customer_id})
            return ResolvedCustomer(customer_id=customer_id, created=False)

        lead = await self.create_lead(new_customer)
        return ResolvedCustomer(customer_id=lead.id, created=True)

    # PUBLIC_INTERFACE
    async def create_lead(self, fields: Optional[NewCustomerFields]) -> Customer:
        """Insert a Lead customer and dispatch its artifact."""
        missing = self._missing_lead_fields(fields)
        if fields is None or missing:
            raise ValidationError(
                "New customer details are required when no customer_id is given",
                fields=missing,
            )

        email = fields.email.strip() if not _blank(fields.email) else fallback_email("lead", self.lead_email_domain)
        customer = await self._insert(
            business_name=fields.business_name.strip(),
            owner_name=fields.owner_name,
            email=email,
            password_hash=placeholder_password_hash(),
            phone=fields.phone.strip(),
            address=fields.address,
            business_type=fields.business_type,
            status=CustomerStatus.LEAD.value,
        )
        logger.info("Provisioned lead customer_id=%s", customer.id)
        self.dispatcher.dispatch(self.generator, customer.id, customer.business_name, KIND_LEAD)
        return customer

    # PUBLIC_INTERFACE
    async def register_customer(self, payload: CustomerRegisterRequest) -> Customer:
        """Self-registration: an Active customer with a real credential."""
        email = payload.email.strip() if not _blank(payload.email) else fallback_email(
            "no-email", self.lead_email_domain
        )
        customer = await self._insert(
            business_name=payload.business_name.strip(),
            owner_name=payload.owner_name,
            email=email,
            password_hash=get_password_hash(payload.password),
            phone=payload.phone,
            address=payload.address,
            business_type=payload.business_type,
            status=CustomerStatus.ACTIVE.value,
        )
        logger.info("Registered customer_id=%s", customer.id)
        self.dispatcher.dispatch(self.generator, customer.id, customer.business_name, KIND_CUSTOMER)
        return customer

    # PUBLIC_INTERFACE
    async def get_customer(self, customer_id: int) -> Customer:
        customer = await self.repo.get_customer(customer_id)
        if customer is None:
            raise NotFoundError(f"Customer {customer_id} not found", details={"customer_id": customer_id})
        return customer

    # PUBLIC_INTERFACE
    async def set_location(self, customer_id: int, lat: float, lng: float) -> None:
        """Store the coordinates captured on site for an existing customer."""
        try:
            updated = await self.repo.set_location(customer_id, lat, lng)
            if updated != 1:
                await self.repo.rollback()
                raise NotFoundError(f"Customer {customer_id} not found", details={"customer_id": customer_id})
            await self.repo.commit()
        except SQLAlchemyError as exc:
            await self.repo.rollback()
            raise WriteError("set_location", "Failed to update customer location") from exc
        logger.info("Location updated for customer_id=%s", customer_id)

    # PUBLIC_INTERFACE
    async def regenerate_artifact(self, customer_id: int) -> str:
        """
        Generate a fresh artifact synchronously, e.g. for a customer whose
        detached attempt failed. Raises ArtifactError on failure.
        """
        customer = await self.get_customer(customer_id)
        kind = KIND_LEAD if customer.status == CustomerStatus.LEAD.value else KIND_CUSTOMER
        location = await self.generator.generate(customer.id, customer.business_name, kind)
        self.dispatcher.record_success(customer.id)
        return location

    @staticmethod
    def _missing_lead_fields(fields: Optional[NewCustomerFields]) -> list[str]:
        if fields is None:
            return ["business_name", "phone"]
        return [name for name in ("business_name", "phone") if _blank(getattr(fields, name))]

    async def _insert(self, **values) -> Customer:
        try:
            customer = await self.repo.insert_customer(**values)
            await self.repo.commit()
        except SQLAlchemyError as exc:
            await self.repo.rollback()
            logger.error("Customer insert rejected: %s", exc)
            raise WriteError(
                STEP_RESOLVE_CUSTOMER,
                "Failed to create customer",
                integrity=isinstance(exc, IntegrityError),
            ) from exc
        return customer
