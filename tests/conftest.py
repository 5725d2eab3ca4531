"""Shared test fixtures for the fieldops test suite.

Every test gets its own SQLite database file (foreign keys enforced) and its
own blob store directory. The FastAPI app is exercised over httpx with the
session, session factory and blob store dependencies overridden.
"""

import os
from collections.abc import AsyncIterator, Callable
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event, func, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

# Startup hooks do not run under ASGITransport; keep them off regardless.
os.environ.setdefault("RUN_MIGRATIONS_ON_STARTUP", "false")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

from fieldops.api.main import app  # noqa: E402
from fieldops.core.security import create_access_token  # noqa: E402
from fieldops.db.base import Base  # noqa: E402
from fieldops.db.models import Agent, AgentStatus  # noqa: E402
from fieldops.db.session import get_async_session, get_session_maker  # noqa: E402
from fieldops.services.artifacts import LeadArtifactGenerator, artifact_dispatcher  # noqa: E402
from fieldops.storage.blobs import LocalBlobStorage, get_blob_storage  # noqa: E402

PUBLIC_APP_URL = "https://app.example.test"


@pytest_asyncio.fixture
async def engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    """File-backed SQLite engine with the full schema."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'fieldops.db'}")

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)


@pytest.fixture
def uploads_dir(tmp_path: Path) -> Path:
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture
def storage(uploads_dir: Path) -> LocalBlobStorage:
    return LocalBlobStorage(uploads_dir, "/uploads")


@pytest.fixture
def generator(
    session_maker: async_sessionmaker[AsyncSession], storage: LocalBlobStorage
) -> LeadArtifactGenerator:
    return LeadArtifactGenerator(session_maker, storage, PUBLIC_APP_URL)


@pytest_asyncio.fixture(autouse=True)
async def reset_dispatcher() -> AsyncIterator[None]:
    """Keep detached artifact tasks from leaking between tests."""
    artifact_dispatcher.failures.clear()
    yield
    await artifact_dispatcher.drain()
    artifact_dispatcher.failures.clear()


@pytest.fixture
def make_agent(session_maker: async_sessionmaker[AsyncSession]) -> Callable:
    """Factory inserting an agent and returning its id."""

    async def _make(email: str = "agent@fieldops.test", status: str = AgentStatus.ACTIVE.value) -> int:
        async with session_maker() as session:
            agent = Agent(name="Field Agent", email=email, phone="555-0100", territory="North", status=status)
            session.add(agent)
            await session.commit()
            return agent.id

    return _make


@pytest_asyncio.fixture
async def agent_id(make_agent: Callable) -> int:
    return await make_agent()


@pytest.fixture
def auth_headers(agent_id: int) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(str(agent_id))}"}


@pytest.fixture
def override_storage(storage: LocalBlobStorage):
    """Blob store handed to the app; tests may swap it before the first request."""
    holder = {"storage": storage}
    app.dependency_overrides[get_blob_storage] = lambda: holder["storage"]
    return holder


@pytest_asyncio.fixture
async def client(
    session_maker: async_sessionmaker[AsyncSession],
    override_storage: dict,
    monkeypatch: pytest.MonkeyPatch,
) -> AsyncIterator[AsyncClient]:
    monkeypatch.setenv("PUBLIC_APP_URL", PUBLIC_APP_URL)

    async def _session_override() -> AsyncIterator[AsyncSession]:
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_async_session] = _session_override
    app.dependency_overrides[get_session_maker] = lambda: session_maker

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    # Detached tasks use the test database; finish them before it goes away.
    await artifact_dispatcher.drain()
    app.dependency_overrides.clear()


@pytest.fixture
def row_count(session_maker: async_sessionmaker[AsyncSession]) -> Callable:
    """Count rows of a model in a fresh session."""

    async def _count(model, *criteria) -> int:
        async with session_maker() as session:
            stmt = select(func.count()).select_from(model)
            if criteria:
                stmt = stmt.where(*criteria)
            return (await session.execute(stmt)).scalar_one()

    return _count
