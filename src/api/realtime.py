"""Websocket stream of row changes and request notifications."""

import asyncio
from typing import Any

import orjson
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from src.core.logging import get_logger
from src.domain.roles import Role
from src.realtime.bus import ChangeBus
from src.realtime.events import Channel, ChangeEvent
from src.realtime.inbox import RequestInbox, RequestNotification
from src.store.repository import PortalStore

logger = get_logger(__name__)

router = APIRouter(prefix="/api/realtime", tags=["realtime"])


def _change_message(event: ChangeEvent) -> str:
    payload: dict[str, Any] = {"type": "change", **orjson.loads(event.to_json())}
    return orjson.dumps(payload).decode("utf-8")


def _notification_message(notification: RequestNotification) -> str:
    return orjson.dumps(
        {
            "type": "notification",
            "requestId": notification.request_id,
            "status": notification.status.value,
            "title": notification.title,
            "message": notification.message,
        }
    ).decode("utf-8")


def _parse_role(raw: str | None) -> Role | None:
    if not raw:
        return None
    try:
        return Role(raw.strip().upper())
    except ValueError:
        return None


@router.websocket("/ws")
async def realtime_socket(
    websocket: WebSocket,
    role: str | None = Query(default=None),
) -> None:
    """Stream every change event; with a role, also request notifications.

    Messages are JSON objects with ``type`` ``change`` (table, eventType,
    new, old) or ``notification``. A client ``ping`` is answered ``pong``.
    """
    bus: ChangeBus = websocket.app.state.bus
    store: PortalStore = websocket.app.state.store
    outbox: asyncio.Queue[str] = asyncio.Queue()

    viewer_role = _parse_role(role)
    inbox: RequestInbox | None = None
    if viewer_role is not None:
        inbox = RequestInbox(
            viewer_role,
            store.list_admin_requests,
            notify=lambda notification: outbox.put_nowait(
                _notification_message(notification)
            ),
        )
        await inbox.load()

    async def forward(event: ChangeEvent) -> None:
        outbox.put_nowait(_change_message(event))

    async def forward_request_change(event: ChangeEvent) -> None:
        outbox.put_nowait(_change_message(event))
        if inbox is not None:
            await inbox.on_change(event)

    handlers = {channel.value: forward for channel in Channel}
    handlers[Channel.ADMIN_REQUESTS.value] = forward_request_change
    unsubscribe = bus.subscribe_many(handlers)

    await websocket.accept()
    logger.info("realtime_client_connected", role=viewer_role.value if viewer_role else None)

    async def send_loop() -> None:
        while True:
            await websocket.send_text(await outbox.get())

    async def receive_loop() -> None:
        while True:
            data = await websocket.receive_text()
            if data == "ping":
                outbox.put_nowait("pong")

    tasks = [asyncio.create_task(send_loop()), asyncio.create_task(receive_loop())]
    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                logger.warning("realtime_client_error", error=str(exc))
    finally:
        unsubscribe()
        logger.info("realtime_client_disconnected")
