from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fieldops.core.logging import agent_id_var
from fieldops.core.security import decode_token
from fieldops.core.settings import get_app_settings
from fieldops.db.models import Agent, AgentStatus
from fieldops.db.session import get_async_session, get_session_maker
from fieldops.repositories.agents import AgentRepository
from fieldops.services.artifacts import LeadArtifactGenerator, artifact_dispatcher
from fieldops.services.customers import CustomerService
from fieldops.services.visits import VisitService
from fieldops.storage.blobs import BlobStorage, get_blob_storage

logger = logging.getLogger(__name__)

# Tokens are issued by the authentication service; the path is for the docs only.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


# PUBLIC_INTERFACE
async def get_current_agent(
    token: str = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_async_session),
) -> Agent:
    """
    Resolve the calling field agent from the Authorization bearer token.

    The token subject is the agent id and its role claim must be "agent".

    Raises:
        HTTPException: 401 for an invalid token or unknown agent, 403 when the
        role is wrong or the agent is not Active.
    """
    try:
        payload = decode_token(token)
    except JWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    if payload.get("role") != "agent":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Agent role required")

    subject = payload.get("sub")
    try:
        agent_id = int(subject)
    except (TypeError, ValueError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    agent = await AgentRepository(session).get_agent(agent_id)
    if not agent:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Agent not found")
    if agent.status != AgentStatus.ACTIVE.value:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Agent is not active")

    agent_id_var.set(str(agent.id))
    return agent


# PUBLIC_INTERFACE
async def get_artifact_generator(
    session_maker: async_sessionmaker[AsyncSession] = Depends(get_session_maker),
    storage: BlobStorage = Depends(get_blob_storage),
) -> LeadArtifactGenerator:
    """Artifact generator bound to the shared session factory and blob store."""
    settings = get_app_settings()
    return LeadArtifactGenerator(session_maker, storage, settings.PUBLIC_APP_URL)


# PUBLIC_INTERFACE
async def get_customer_service(
    session: AsyncSession = Depends(get_async_session),
    generator: LeadArtifactGenerator = Depends(get_artifact_generator),
) -> CustomerService:
    settings = get_app_settings()
    return CustomerService(
        session,
        generator,
        lead_email_domain=settings.LEAD_EMAIL_DOMAIN,
        dispatcher=artifact_dispatcher,
    )


# PUBLIC_INTERFACE
async def get_visit_service(
    session: AsyncSession = Depends(get_async_session),
    customers: CustomerService = Depends(get_customer_service),
) -> VisitService:
    """
    Visit orchestrator for one request.

    The customer service shares the request session (FastAPI caches the
    dependency), so every required step runs on the same store handle.
    """
    settings = get_app_settings()
    return VisitService(
        session,
        customers,
        atomic=settings.VISIT_INVENTORY_ATOMIC,
        verify_customer=settings.VALIDATE_CUSTOMER_ID,
    )
