from __future__ import annotations

import asyncio
import io
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Set

import qrcode
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fieldops.core.errors import ArtifactError
from fieldops.repositories.customers import CustomerRepository
from fieldops.storage.blobs import BlobStorage

logger = logging.getLogger(__name__)

KIND_LEAD = "lead"
KIND_CUSTOMER = "customer"


# PUBLIC_INTERFACE
def build_artifact_payload(customer_id: int, display_name: str, public_app_url: str) -> Dict[str, Any]:
    """Return the document encoded in a customer's QR code."""
    return {
        "id": customer_id,
        "type": "customer",
        "name": display_name,
        "url": f"{public_app_url.rstrip('/')}/customer/{customer_id}",
    }


# PUBLIC_INTERFACE
def artifact_key(customer_id: int, kind: str = KIND_LEAD) -> str:
    """Blob key for a new artifact; the millisecond suffix keeps regenerations distinct."""
    return f"qrcodes/qr-{kind}-{customer_id}-{time.time_ns() // 1_000_000}.png"


def render_qr_png(payload: Dict[str, Any]) -> bytes:
    """Render ``payload`` as JSON inside a PNG QR code."""
    qr = qrcode.QRCode(error_correction=qrcode.constants.ERROR_CORRECT_M, box_size=10, border=4)
    qr.add_data(json.dumps(payload, separators=(",", ":")))
    qr.make(fit=True)
    image = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    image.save(buf)
    return buf.getvalue()


class LeadArtifactGenerator:
    """
    Produce a customer's scannable identity artifact and link it to the record.

    The reference on the customer row is written only after the blob is stored,
    and the blob is removed again if the reference cannot be written, so
    ``qr_code_url`` is either null or points at an existing artifact.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        storage: BlobStorage,
        public_app_url: str,
    ) -> None:
        self.session_maker = session_maker
        self.storage = storage
        self.public_app_url = public_app_url

    # PUBLIC_INTERFACE
    async def generate(self, customer_id: int, display_name: str, kind: str = KIND_LEAD) -> str:
        """
        Render, store and link the artifact. Returns the artifact location.

        Raises:
            ArtifactError: when rendering, storage or the back-reference update fails.
        """
        payload = build_artifact_payload(customer_id, display_name, self.public_app_url)
        key = artifact_key(customer_id, kind)

        try:
            png = await asyncio.to_thread(render_qr_png, payload)
            location = await self.storage.write(key, png)
        except Exception as exc:
            raise ArtifactError(customer_id, f"Artifact could not be stored: {exc}") from exc

        try:
            async with self.session_maker() as session:
                repo = CustomerRepository(session)
                updated = await repo.set_artifact_reference(customer_id, location)
                if updated != 1:
                    raise ArtifactError(customer_id, "Customer not found for artifact reference")
                await repo.commit()
        except Exception as exc:
            await self._discard(key)
            if isinstance(exc, ArtifactError):
                raise
            raise ArtifactError(customer_id, f"Artifact reference could not be saved: {exc}") from exc

        logger.info("Artifact stored for customer_id=%s at %s", customer_id, location)
        return location

    async def _discard(self, key: str) -> None:
        try:
            await self.storage.delete(key)
        except Exception:
            logger.exception("Failed to remove orphaned artifact key=%s", key)


@dataclass
class ArtifactOutcome:
    """Result of one detached generation attempt."""
    customer_id: int
    location: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ArtifactDispatcher:
    """
    Run artifact generation as detached asyncio tasks.

    Callers get control back immediately. Tasks are held until they finish so
    they are not garbage collected mid-flight; failed attempts stay listed in
    ``failures`` until a later attempt for the same customer succeeds.
    """

    def __init__(self) -> None:
        self._tasks: Set[asyncio.Task] = set()
        self.failures: Dict[int, ArtifactOutcome] = {}

    @property
    def pending(self) -> int:
        return len(self._tasks)

    # PUBLIC_INTERFACE
    def dispatch(
        self,
        generator: LeadArtifactGenerator,
        customer_id: int,
        display_name: str,
        kind: str = KIND_LEAD,
    ) -> asyncio.Task:
        """Schedule generation without awaiting it."""
        task = asyncio.create_task(
            self._run(generator, customer_id, display_name, kind),
            name=f"artifact-{kind}-{customer_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info("Dispatched artifact generation for customer_id=%s", customer_id)
        return task

    async def _run(
        self, generator: LeadArtifactGenerator, customer_id: int, display_name: str, kind: str
    ) -> ArtifactOutcome:
        try:
            location = await generator.generate(customer_id, display_name, kind)
        except ArtifactError as exc:
            logger.warning("Artifact generation failed for customer_id=%s: %s", customer_id, exc.message)
            outcome = ArtifactOutcome(customer_id=customer_id, error=exc.message)
            self.failures[customer_id] = outcome
            return outcome
        self.failures.pop(customer_id, None)
        return ArtifactOutcome(customer_id=customer_id, location=location)

    # PUBLIC_INTERFACE
    def list_failures(self) -> list[ArtifactOutcome]:
        """Failed attempts not yet superseded by a success, ordered by customer id."""
        return [self.failures[k] for k in sorted(self.failures)]

    # PUBLIC_INTERFACE
    def record_success(self, customer_id: int) -> None:
        """Clear a recorded failure after a synchronous regeneration succeeded."""
        self.failures.pop(customer_id, None)

    # PUBLIC_INTERFACE
    async def drain(self) -> list[ArtifactOutcome]:
        """Wait for every in-flight task and return their outcomes."""
        outcomes: list[ArtifactOutcome] = []
        while self._tasks:
            done = await asyncio.gather(*list(self._tasks))
            outcomes.extend(done)
        return outcomes


# Singleton instance
artifact_dispatcher = ArtifactDispatcher()
