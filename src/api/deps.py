"""FastAPI dependency injection for the store, realtime bus and actor."""

from collections.abc import AsyncGenerator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Annotated

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.logging import actor_ctx
from src.domain.roles import SUPERVISOR_ROLES, Role
from src.orchestration.workflow import RequestWorkflow
from src.payments.offline_queue import OfflineQueue
from src.payments.recording import PaymentRecorder
from src.realtime.bus import ChangeBus
from src.store.repository import PortalStore

if TYPE_CHECKING:
    import redis.asyncio as redis

DEFAULT_ACTOR_NAME = "Sistema"


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session from the app's session factory.

    Args:
        request: FastAPI request containing app state.

    Yields:
        AsyncSession for database operations with automatic commit/rollback.
    """
    async with request.app.state.async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_redis(request: Request) -> "redis.Redis":
    """Get Redis connection pool from app state.

    Args:
        request: FastAPI request containing app state.

    Returns:
        Redis connection pool used for realtime fan-out.
    """
    return request.app.state.redis


async def get_store(request: Request) -> PortalStore:
    return request.app.state.store


async def get_bus(request: Request) -> ChangeBus:
    return request.app.state.bus


async def get_offline_queue(request: Request) -> OfflineQueue:
    return request.app.state.offline_queue


@dataclass(frozen=True)
class Actor:
    """Staff member or citizen making the call."""

    name: str
    role: Role

    @property
    def is_supervisor(self) -> bool:
        return self.role in SUPERVISOR_ROLES


async def get_actor(
    x_actor_name: str | None = Header(default=None, alias="X-Actor-Name"),
    x_actor_role: str | None = Header(default=None, alias="X-Actor-Role"),
) -> Actor:
    """Identify the caller from the actor headers.

    Missing headers identify an anonymous citizen.

    Raises:
        HTTPException: If the role header names an unknown role.
    """
    try:
        role = Role((x_actor_role or Role.CONTRIBUYENTE.value).strip().upper())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown role: {x_actor_role}",
        )
    name = (x_actor_name or "").strip() or DEFAULT_ACTOR_NAME
    actor_ctx.set(name)
    return Actor(name=name, role=role)


async def require_admin(actor: Annotated[Actor, Depends(get_actor)]) -> Actor:
    """Allow supervisors only.

    Raises:
        HTTPException: 403 for any other role.
    """
    if not actor.is_supervisor:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Role {actor.role.value} cannot perform this action",
        )
    return actor


async def get_workflow(
    store: Annotated[PortalStore, Depends(get_store)],
) -> RequestWorkflow:
    return RequestWorkflow(store)


async def get_recorder(
    store: Annotated[PortalStore, Depends(get_store)],
    queue: Annotated[OfflineQueue, Depends(get_offline_queue)],
    actor: Annotated[Actor, Depends(get_actor)],
) -> PaymentRecorder:
    return PaymentRecorder(store, queue, teller_name=actor.name)
