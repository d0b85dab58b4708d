"""Async database engine and session factories for the portal store."""

from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from src.core.config import settings

# Import all models to register them with Base.metadata
from src.models import (  # noqa: F401
    AdminRequest,
    Base,
    SystemConfig,
    Taxpayer,
    Transaction,
)

# Cashier counters and websocket viewers share one pool per process.
POSTGRES_POOL_OPTIONS: dict[str, Any] = {
    "pool_size": 20,
    "max_overflow": 0,
    "pool_pre_ping": True,
}


def create_engine(
    database_url: str | None = None,
    **engine_options: Any,
) -> AsyncEngine:
    """Create the async engine behind ``PortalStore``.

    Pool sizing only applies to server databases; a ``sqlite+aiosqlite``
    URL (local runs) gets SQLAlchemy's default pool.

    Args:
        database_url: Connection URL. Defaults to settings.database_url.
        **engine_options: Overrides passed to create_async_engine.
    """
    url = make_url(database_url or settings.database_url)

    options: dict[str, Any] = {"echo": settings.debug}
    if url.get_backend_name() != "sqlite":
        options.update(POSTGRES_POOL_OPTIONS)
    options.update(engine_options)

    return create_async_engine(url, **options)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory for the store.

    Objects stay readable after commit because the store converts them to
    records only after committing.
    """
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def create_schema(engine: AsyncEngine) -> None:
    """Create missing portal tables without migrations (local sqlite runs)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
