"""Tests for QR artifact generation, detached dispatch and regeneration."""

import json
from pathlib import Path

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fieldops.core.errors import ArtifactError
from fieldops.db.models import Customer, CustomerStatus
from fieldops.services.artifacts import (
    KIND_CUSTOMER,
    ArtifactDispatcher,
    LeadArtifactGenerator,
    artifact_dispatcher,
    artifact_key,
    build_artifact_payload,
)
from fieldops.storage.blobs import BlobExistsError, LocalBlobStorage

PUBLIC_APP_URL = "https://app.example.test"
VISITS_URL = "/api/v1/agents/visits"


class FailingStorage:
    """Blob store whose writes always fail."""

    def __init__(self) -> None:
        self.deleted: list[str] = []

    async def write(self, key: str, data: bytes) -> str:
        raise OSError("disk full")

    async def delete(self, key: str) -> None:
        self.deleted.append(key)

    async def exists(self, key: str) -> bool:
        return False


async def _insert_lead(session_maker: async_sessionmaker[AsyncSession], name: str = "Acme Foods") -> int:
    async with session_maker() as session:
        customer = Customer(
            business_name=name,
            email=f"{name.lower().replace(' ', '-')}@leads.test",
            password_hash="x",
            phone="555-0123",
            status=CustomerStatus.LEAD.value,
        )
        session.add(customer)
        await session.commit()
        return customer.id


async def _qr_code_url(session_maker: async_sessionmaker[AsyncSession], customer_id: int):
    async with session_maker() as session:
        stmt = select(Customer.qr_code_url).where(Customer.id == customer_id)
        return (await session.execute(stmt)).scalar_one()


def _pngs(root: Path) -> list[Path]:
    return list(root.rglob("*.png"))


class TestArtifactPayload:
    def test_payload_is_deterministic(self) -> None:
        first = build_artifact_payload(7, "Acme Foods", "https://app.example.test/")
        second = build_artifact_payload(7, "Acme Foods", "https://app.example.test/")
        assert first == second
        assert first == {
            "id": 7,
            "type": "customer",
            "name": "Acme Foods",
            "url": "https://app.example.test/customer/7",
        }

    def test_payload_is_json_serializable(self) -> None:
        payload = build_artifact_payload(1, "Café Ünïcode", PUBLIC_APP_URL)
        assert json.loads(json.dumps(payload))["name"] == "Café Ünïcode"

    def test_key_names_kind_and_customer(self) -> None:
        key = artifact_key(12, KIND_CUSTOMER)
        assert key.startswith("qrcodes/qr-customer-12-")
        assert key.endswith(".png")


class TestLeadArtifactGenerator:
    @pytest.mark.asyncio
    async def test_generate_stores_blob_then_links_it(
        self,
        generator: LeadArtifactGenerator,
        session_maker: async_sessionmaker[AsyncSession],
        uploads_dir: Path,
    ) -> None:
        customer_id = await _insert_lead(session_maker)

        location = await generator.generate(customer_id, "Acme Foods")

        assert location.startswith(f"/uploads/qrcodes/qr-lead-{customer_id}-")
        assert await _qr_code_url(session_maker, customer_id) == location
        assert (uploads_dir / location.removeprefix("/uploads/")).is_file()

    @pytest.mark.asyncio
    async def test_storage_failure_leaves_reference_null(
        self, session_maker: async_sessionmaker[AsyncSession]
    ) -> None:
        customer_id = await _insert_lead(session_maker)
        generator = LeadArtifactGenerator(session_maker, FailingStorage(), PUBLIC_APP_URL)

        with pytest.raises(ArtifactError) as exc_info:
            await generator.generate(customer_id, "Acme Foods")

        assert exc_info.value.customer_id == customer_id
        assert await _qr_code_url(session_maker, customer_id) is None

    @pytest.mark.asyncio
    async def test_failed_link_removes_stored_blob(
        self, generator: LeadArtifactGenerator, uploads_dir: Path
    ) -> None:
        """No reference can be written for an unknown customer, so the blob is discarded."""
        with pytest.raises(ArtifactError):
            await generator.generate(9999, "Ghost Ltd")

        assert _pngs(uploads_dir) == []


class TestLocalBlobStorage:
    @pytest.mark.asyncio
    async def test_blobs_are_write_once(self, storage: LocalBlobStorage) -> None:
        await storage.write("qrcodes/a.png", b"one")
        with pytest.raises(BlobExistsError):
            await storage.write("qrcodes/a.png", b"two")
        assert await storage.exists("qrcodes/a.png")

    @pytest.mark.asyncio
    async def test_key_cannot_escape_root(self, storage: LocalBlobStorage) -> None:
        with pytest.raises(ValueError):
            await storage.write("../outside.png", b"x")


class TestArtifactDispatcher:
    @pytest.mark.asyncio
    async def test_failure_is_recorded_not_raised(
        self, session_maker: async_sessionmaker[AsyncSession]
    ) -> None:
        dispatcher = ArtifactDispatcher()
        customer_id = await _insert_lead(session_maker)
        generator = LeadArtifactGenerator(session_maker, FailingStorage(), PUBLIC_APP_URL)

        dispatcher.dispatch(generator, customer_id, "Acme Foods")
        outcomes = await dispatcher.drain()

        assert [o.ok for o in outcomes] == [False]
        assert customer_id in dispatcher.failures
        assert dispatcher.pending == 0

    @pytest.mark.asyncio
    async def test_success_clears_previous_failure(
        self, generator: LeadArtifactGenerator, session_maker: async_sessionmaker[AsyncSession]
    ) -> None:
        dispatcher = ArtifactDispatcher()
        customer_id = await _insert_lead(session_maker)
        failing = LeadArtifactGenerator(session_maker, FailingStorage(), PUBLIC_APP_URL)

        dispatcher.dispatch(failing, customer_id, "Acme Foods")
        await dispatcher.drain()
        dispatcher.dispatch(generator, customer_id, "Acme Foods")
        outcomes = await dispatcher.drain()

        assert outcomes[0].ok
        assert dispatcher.failures == {}


class TestArtifactFailureDuringVisit:
    @pytest.mark.asyncio
    async def test_visit_succeeds_when_artifact_storage_fails(
        self,
        client: AsyncClient,
        auth_headers: dict,
        override_storage: dict,
        session_maker: async_sessionmaker[AsyncSession],
    ) -> None:
        """The caller still gets 201; the lead is left without a reference."""
        override_storage["storage"] = FailingStorage()

        response = await client.post(
            VISITS_URL,
            headers=auth_headers,
            json={"new_customer": {"business_name": "Acme Foods", "phone": "555-0123"}},
        )
        await artifact_dispatcher.drain()

        assert response.status_code == 201
        customer_id = response.json()["customer_id"]
        assert await _qr_code_url(session_maker, customer_id) is None
        assert customer_id in artifact_dispatcher.failures


class TestRegenerateEndpoint:
    @pytest.mark.asyncio
    async def test_regenerates_and_links(
        self,
        client: AsyncClient,
        auth_headers: dict,
        session_maker: async_sessionmaker[AsyncSession],
        uploads_dir: Path,
    ) -> None:
        customer_id = await _insert_lead(session_maker)

        response = await client.post(f"/api/v1/customers/{customer_id}/artifact", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["customer_id"] == customer_id
        assert body["qr_code_url"].startswith(f"/uploads/qrcodes/qr-lead-{customer_id}-")
        assert await _qr_code_url(session_maker, customer_id) == body["qr_code_url"]
        assert len(_pngs(uploads_dir)) == 1

    @pytest.mark.asyncio
    async def test_storage_failure_is_reported(
        self,
        client: AsyncClient,
        auth_headers: dict,
        override_storage: dict,
        session_maker: async_sessionmaker[AsyncSession],
    ) -> None:
        customer_id = await _insert_lead(session_maker)
        override_storage["storage"] = FailingStorage()

        response = await client.post(f"/api/v1/customers/{customer_id}/artifact", headers=auth_headers)

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["type"] == "ARTIFACT_ERROR"
        assert error["details"] == {"customer_id": customer_id}

    @pytest.mark.asyncio
    async def test_unknown_customer_is_404(self, client: AsyncClient, auth_headers: dict) -> None:
        response = await client.post("/api/v1/customers/9999/artifact", headers=auth_headers)
        assert response.status_code == 404


class TestArtifactFailureList:
    @pytest.mark.asyncio
    async def test_failed_generation_is_listed(
        self,
        client: AsyncClient,
        auth_headers: dict,
        override_storage: dict,
    ) -> None:
        override_storage["storage"] = FailingStorage()
        logged = await client.post(
            VISITS_URL,
            headers=auth_headers,
            json={"new_customer": {"business_name": "Acme Foods", "phone": "555-0123"}},
        )
        await artifact_dispatcher.drain()
        customer_id = logged.json()["customer_id"]

        response = await client.get("/api/v1/customers/artifacts/failures", headers=auth_headers)

        assert response.status_code == 200
        failures = response.json()
        assert [f["customer_id"] for f in failures] == [customer_id]
        assert failures[0]["error"]

    @pytest.mark.asyncio
    async def test_regeneration_clears_the_entry(
        self,
        client: AsyncClient,
        auth_headers: dict,
        override_storage: dict,
        storage: LocalBlobStorage,
    ) -> None:
        override_storage["storage"] = FailingStorage()
        logged = await client.post(
            VISITS_URL,
            headers=auth_headers,
            json={"new_customer": {"business_name": "Acme Foods", "phone": "555-0123"}},
        )
        await artifact_dispatcher.drain()
        customer_id = logged.json()["customer_id"]

        override_storage["storage"] = storage
        regenerated = await client.post(f"/api/v1/customers/{customer_id}/artifact", headers=auth_headers)
        assert regenerated.status_code == 200

        response = await client.get("/api/v1/customers/artifacts/failures", headers=auth_headers)
        assert response.json() == []

    @pytest.mark.asyncio
    async def test_requires_agent_token(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/customers/artifacts/failures")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_list_is_ordered_by_customer(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        dispatcher = ArtifactDispatcher()
        first = await _insert_lead(session_maker, "First")
        second = await _insert_lead(session_maker, "Second")
        failing = LeadArtifactGenerator(session_maker, FailingStorage(), PUBLIC_APP_URL)

        dispatcher.dispatch(failing, second, "Second")
        dispatcher.dispatch(failing, first, "First")
        await dispatcher.drain()

        assert [o.customer_id for o in dispatcher.list_failures()] == [first, second]
