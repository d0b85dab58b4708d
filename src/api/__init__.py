"""API module exports."""

from src.api.config import router as config_router
from src.api.debts import router as debts_router
from src.api.deps import get_db, get_redis, get_store
from src.api.health import router as health_router
from src.api.payments import router as payments_router
from src.api.realtime import router as realtime_router
from src.api.requests import router as requests_router
from src.api.taxpayers import router as taxpayers_router

__all__ = [
    "config_router",
    "debts_router",
    "get_db",
    "get_redis",
    "get_store",
    "health_router",
    "payments_router",
    "realtime_router",
    "requests_router",
    "taxpayers_router",
]
