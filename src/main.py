"""FastAPI application entry point with lifespan management."""

from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.config import router as config_router
from src.api.debts import router as debts_router
from src.api.errors import register_exception_handlers
from src.api.health import router as health_router
from src.api.middleware import RequestContextMiddleware
from src.api.payments import router as payments_router
from src.api.realtime import router as realtime_router
from src.api.requests import router as requests_router
from src.api.taxpayers import router as taxpayers_router
from src.core.config import settings
from src.core.database import create_engine, create_schema, create_session_factory
from src.core.logging import configure_logging, get_logger
from src.core.redis import create_redis_pool
from src.core.sentry import init_sentry
from src.integrations.storage import FileKeyValueStore
from src.payments.offline_queue import OfflineQueue
from src.realtime.bus import get_bus
from src.realtime.redis_bridge import RedisChangeBridge
from src.store.repository import PortalStore

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle resources.

    Startup:
        - Configure structured logging
        - Initialize Sentry error tracking
        - Create database engine and session factory
        - Establish Redis connection pool and start the change relay
        - Build the store and load the offline payment queue

    Shutdown:
        - Stop the change relay
        - Close Redis connections
        - Dispose database engine
    """
    # Configure logging first
    configure_logging()
    logger.info("Starting application", environment=settings.environment)

    # Initialize error tracking
    init_sentry()

    # Create database engine and session factory
    app.state.db_engine = create_engine()
    app.state.async_session = create_session_factory(app.state.db_engine)
    if app.state.db_engine.dialect.name == "sqlite":
        # No migrations for local sqlite files
        await create_schema(app.state.db_engine)
    logger.info("Database engine created", dialect=app.state.db_engine.dialect.name)

    # Create Redis connection pool
    app.state.redis = await create_redis_pool()
    logger.info("Redis pool created")

    # Realtime fan-out: store writes go to Redis, Redis relays into the bus
    app.state.bus = get_bus()
    app.state.change_bridge = RedisChangeBridge(
        app.state.redis, app.state.bus, settings.realtime_channel_prefix
    )
    app.state.change_bridge.start()

    app.state.store = PortalStore(
        app.state.async_session, publisher=app.state.change_bridge
    )

    app.state.offline_queue = OfflineQueue(
        FileKeyValueStore(settings.offline_queue_url)
    )
    await app.state.offline_queue.load()

    yield

    # Shutdown
    logger.info("Shutting down application")

    await app.state.change_bridge.stop()
    logger.info("Change relay stopped")

    # Close Redis connections
    await app.state.redis.aclose()
    logger.info("Redis pool closed")

    # Dispose database engine
    await app.state.db_engine.dispose()
    logger.info("Database engine disposed")


app = FastAPI(
    title="SIGMA",
    description="Municipal tax collection, debts and administrative approvals",
    version="0.1.0",
    lifespan=lifespan,
)

# Add CORS middleware for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add request context middleware
app.add_middleware(RequestContextMiddleware)

register_exception_handlers(app)

# Include routers
app.include_router(health_router)
app.include_router(taxpayers_router)
app.include_router(debts_router)
app.include_router(payments_router)
app.include_router(requests_router)
app.include_router(config_router)
app.include_router(realtime_router)
