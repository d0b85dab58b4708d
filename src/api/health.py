"""Health check endpoint for the store, Redis and the offline queue."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import get_db, get_redis
from src.core.logging import get_logger
from src.core.redis import check_redis_health

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["health"])


class HealthResponse(BaseModel):
    """Health check response model.

    ``offline_pending`` counts payments saved on this process that have not
    reached the store yet; a non-zero value means a sync is due.
    """

    status: str
    db: str
    redis: str
    offline_pending: int = 0


async def _database_status(db: AsyncSession) -> str:
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.exception("database_health_check_failed", error=str(e))
        return "disconnected"
    return "connected"


@router.get("/health", response_model=HealthResponse)
async def health_check(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> HealthResponse:
    """Report store and Redis connectivity and the offline backlog.

    Redis being down degrades realtime updates only; payments keep working.
    """
    db_status = await _database_status(db)
    redis_healthy = await check_redis_health(await get_redis(request))
    redis_status = "connected" if redis_healthy else "disconnected"

    queue = getattr(request.app.state, "offline_queue", None)
    offline_pending = len(queue) if queue is not None else 0

    healthy = db_status == "connected" and redis_status == "connected"
    return HealthResponse(
        status="ok" if healthy else "degraded",
        db=db_status,
        redis=redis_status,
        offline_pending=offline_pending,
    )
