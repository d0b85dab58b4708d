"""Pytest configuration and shared fixtures for tests."""

from collections.abc import AsyncGenerator
from datetime import datetime
from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from src.domain.records import AdminRequest, Taxpayer, Transaction
from src.integrations.storage import MemoryKeyValueStore
from src.main import app
from src.models import Base
from src.models.admin_request import RequestStatus, RequestType
from src.models.taxpayer import CommercialCategory, TaxpayerStatus, TaxpayerType
from src.models.transaction import PaymentMethod, TaxType, TransactionStatus
from src.payments.offline_queue import OfflineQueue
from src.realtime.bus import ChangeBus
from src.realtime.events import ChangeEvent
from src.store.repository import PortalStore


class RecordingPublisher:
    """Change publisher that keeps every event it receives."""

    def __init__(self) -> None:
        self.events: list[ChangeEvent] = []

    async def publish(self, event: ChangeEvent) -> None:
        self.events.append(event)

    def of_table(self, table: str) -> list[ChangeEvent]:
        return [event for event in self.events if event.table == table]


def make_taxpayer(**overrides: Any) -> Taxpayer:
    """Build an active natural-person taxpayer with no services."""
    data: dict[str, Any] = {
        "id": "tp-1",
        "taxpayer_number": "2024-0001",
        "type": TaxpayerType.NATURAL,
        "status": TaxpayerStatus.ACTIVO,
        "doc_id": "8-888-8888",
        "name": "Juan Pérez",
        "address": "Calle 1",
        "phone": "6000-0000",
        "email": "juan@example.com",
    }
    data.update(overrides)
    return Taxpayer(**data)


def make_transaction(**overrides: Any) -> Transaction:
    """Build a PAGADO cash transaction."""
    data: dict[str, Any] = {
        "id": "TX-1",
        "taxpayer_id": "tp-1",
        "tax_type": TaxType.COMERCIO,
        "amount": Decimal("25.00"),
        "date": datetime(2024, 5, 10).date(),
        "time": "10:30:00",
        "description": "Pago de COMERCIO",
        "status": TransactionStatus.PAGADO,
        "payment_method": PaymentMethod.EFECTIVO,
        "teller_name": "Cajero 1",
    }
    data.update(overrides)
    return Transaction(**data)


def make_request(**overrides: Any) -> AdminRequest:
    """Build a pending void request."""
    data: dict[str, Any] = {
        "id": "REQ-1",
        "type": RequestType.VOID_TRANSACTION,
        "status": RequestStatus.PENDING,
        "requester_name": "Cajero 1",
        "taxpayer_name": "Juan Pérez",
        "description": "Monto equivocado",
        "transaction_id": "TX-1",
        "created_at": datetime(2024, 5, 10, 9, 0, 0),
    }
    data.update(overrides)
    return AdminRequest(**data)


@pytest.fixture
def taxpayer_factory():
    return make_taxpayer


@pytest.fixture
def transaction_factory():
    return make_transaction


@pytest.fixture
def request_factory():
    return make_request


@pytest.fixture
def commercial_taxpayer() -> Taxpayer:
    """Natural person with a class B business and garbage service."""
    return make_taxpayer(
        has_commercial_activity=True,
        commercial_category=CommercialCategory.CLASE_B,
        commercial_name="Farmacia Pérez",
        has_garbage_service=True,
    )


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Create sqlite-backed session factory with every portal table."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False)
    try:
        yield factory
    finally:
        await engine.dispose()


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest_asyncio.fixture
async def store(
    session_factory: async_sessionmaker[AsyncSession],
    publisher: RecordingPublisher,
) -> PortalStore:
    return PortalStore(session_factory, publisher=publisher)


@pytest.fixture
def mock_redis() -> AsyncMock:
    """Create a mock Redis connection that succeeds.

    Returns:
        AsyncMock configured to simulate healthy Redis.
    """
    redis_mock = AsyncMock()
    redis_mock.ping.return_value = True
    return redis_mock


@pytest.fixture
def client() -> TestClient:
    """Create a test client for API testing.

    Returns:
        FastAPI TestClient instance.
    """
    return TestClient(app)


ADMIN_HEADERS = {"X-Actor-Name": "Admin Principal", "X-Actor-Role": "ADMIN"}
CASHIER_HEADERS = {"X-Actor-Name": "Cajero 1", "X-Actor-Role": "CAJERO"}


@pytest_asyncio.fixture
async def api_client(store: PortalStore) -> AsyncGenerator[AsyncClient, None]:
    """Create API client wired to the sqlite store and an in-memory queue."""
    app.state.store = store
    app.state.bus = ChangeBus()
    app.state.offline_queue = OfflineQueue(MemoryKeyValueStore())
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
    app.dependency_overrides.clear()
