"""Tests for the realtime websocket stream."""

from fastapi.testclient import TestClient

from src.domain.records import AdminRequest
from src.main import app
from src.models.admin_request import RequestStatus
from src.realtime.bus import ChangeBus
from src.realtime.events import ChangeEvent, EventType
from src.store.mapping import to_wire
from conftest import make_request


class FakeRequestStore:
    """Serves a fixed request list to inboxes."""

    def __init__(self, requests: list[AdminRequest]) -> None:
        self.requests = requests

    async def list_admin_requests(self) -> list[AdminRequest]:
        return list(self.requests)


def _setup(requests: list[AdminRequest] | None = None) -> ChangeBus:
    bus = ChangeBus()
    app.state.bus = bus
    app.state.store = FakeRequestStore(requests or [])
    return bus


def test_ping_pong(client: TestClient) -> None:
    _setup()

    with client.websocket_connect("/api/realtime/ws") as ws:
        ws.send_text("ping")
        assert ws.receive_text() == "pong"


def test_change_events_are_streamed(client: TestClient) -> None:
    bus = _setup()
    event = ChangeEvent(
        table="transactions", event_type=EventType.INSERT, new={"id": "TX-1"}
    )

    with client.websocket_connect("/api/realtime/ws") as ws:
        ws.portal.call(bus.publish, event)
        message = ws.receive_json()

    assert message == {
        "type": "change",
        "table": "transactions",
        "eventType": "INSERT",
        "new": {"id": "TX-1"},
        "old": None,
    }


def test_supervisor_receives_notification(client: TestClient) -> None:
    request = make_request()
    bus = _setup([request])
    event = ChangeEvent(
        table="admin_requests", event_type=EventType.INSERT, new=to_wire(request)
    )

    with client.websocket_connect("/api/realtime/ws?role=admin") as ws:
        ws.portal.call(bus.publish, event)
        change = ws.receive_json()
        notification = ws.receive_json()

    assert change["type"] == "change"
    assert change["table"] == "admin_requests"
    assert notification["type"] == "notification"
    assert notification["requestId"] == "REQ-1"
    assert notification["status"] == "PENDING"
    assert notification["title"] == "Nueva solicitud"


def test_requester_receives_resolution(client: TestClient) -> None:
    request = make_request()
    approved = request.model_copy(
        update={"status": RequestStatus.APPROVED, "response_note": "Listo"}
    )
    bus = _setup([approved])
    event = ChangeEvent(
        table="admin_requests",
        event_type=EventType.UPDATE,
        new=to_wire(approved),
        old=to_wire(request),
    )

    with client.websocket_connect("/api/realtime/ws?role=CAJERO") as ws:
        ws.portal.call(bus.publish, event)
        ws.receive_json()
        notification = ws.receive_json()

    assert notification["title"] == "Solicitud aprobada"
    assert notification["message"] == "Listo"


def test_subscriptions_removed_on_disconnect(client: TestClient) -> None:
    bus = _setup()

    with client.websocket_connect("/api/realtime/ws") as ws:
        ws.send_text("ping")
        ws.receive_text()
        assert bus.subscriber_count("transactions") == 1

    assert bus.subscriber_count("transactions") == 0
