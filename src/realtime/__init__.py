"""Realtime change notification: events, local bus, Redis bridge, inboxes."""

from src.realtime.bus import (
    ChangeBus,
    ChangeHandler,
    ChangePublisher,
    Unsubscribe,
    get_bus,
    reset_bus,
)
from src.realtime.events import Channel, ChangeEvent, EventType
from src.realtime.inbox import RequestInbox, RequestNotification
from src.realtime.redis_bridge import RedisChangeBridge

__all__ = [
    "ChangeBus",
    "ChangeEvent",
    "ChangeHandler",
    "ChangePublisher",
    "Channel",
    "EventType",
    "RedisChangeBridge",
    "RequestInbox",
    "RequestNotification",
    "Unsubscribe",
    "get_bus",
    "reset_bus",
]
