from __future__ import annotations

import threading
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .config import get_settings


_ENGINE: AsyncEngine | None = None
_SESSION_MAKER: async_sessionmaker[AsyncSession] | None = None
# Sync dependencies run in worker threads, so first use can be concurrent.
_INIT_LOCK = threading.Lock()


def _ensure_engine_initialized() -> None:
    """
    Lazily initialize the AsyncEngine and session maker.
    """
    global _ENGINE, _SESSION_MAKER
    if _SESSION_MAKER is not None:
        return
    with _INIT_LOCK:
        if _ENGINE is None:
            settings = get_settings()
            _ENGINE = create_async_engine(
                settings.async_database_url,
                echo=settings.SQL_ECHO,
                pool_pre_ping=True,
            )
        if _SESSION_MAKER is None:
            _SESSION_MAKER = async_sessionmaker(
                bind=_ENGINE, expire_on_commit=False, autoflush=False, autocommit=False
            )


# PUBLIC_INTERFACE
def get_engine() -> AsyncEngine:
    """Return the global AsyncEngine instance."""
    _ensure_engine_initialized()
    if _ENGINE is None:
        raise RuntimeError("Database engine is not initialized")
    return _ENGINE


# PUBLIC_INTERFACE
def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """
    Return the session factory.

    Work that outlives a request (artifact generation) opens its own sessions from
    this factory instead of borrowing the request's session.
    """
    _ensure_engine_initialized()
    if _SESSION_MAKER is None:
        raise RuntimeError("Database engine is not initialized")
    return _SESSION_MAKER


# PUBLIC_INTERFACE
async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Yield an AsyncSession suitable for FastAPI dependency injection.

    One session per request; it is the explicit store handle handed to services.
    """
    async with get_session_maker()() as session:
        yield session


# PUBLIC_INTERFACE
async def dispose_engine() -> None:
    """Dispose the engine's connection pool (application shutdown)."""
    global _ENGINE, _SESSION_MAKER
    if _ENGINE is not None:
        await _ENGINE.dispose()
    _ENGINE = None
    _SESSION_MAKER = None
