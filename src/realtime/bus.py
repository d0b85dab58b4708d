"""In-process publish/subscribe for row change events.

Handlers subscribe per channel (table name), so a new entity stream is just a
new channel string; subscription signatures never change.
"""

from collections import defaultdict
from collections.abc import Awaitable, Callable, Mapping
from typing import Protocol

import structlog

from src.realtime.events import ChangeEvent

logger = structlog.get_logger()

ChangeHandler = Callable[[ChangeEvent], Awaitable[None]]
Unsubscribe = Callable[[], None]


class ChangePublisher(Protocol):
    """Anything the store can hand committed changes to."""

    async def publish(self, event: ChangeEvent) -> None: ...


class ChangeBus:
    """Routes change events to the handlers subscribed to their channel.

    Usage:
        bus = ChangeBus()
        unsubscribe = bus.subscribe("admin_requests", inbox.on_change)

        await bus.publish(event)  # Fans out to every handler of event.table
        unsubscribe()

    Delivery is at-most-once per handler per event. A failing handler is
    logged and does not prevent delivery to the others.
    """

    def __init__(self) -> None:
        """Initialize bus with no subscribers."""
        self._handlers: dict[str, list[ChangeHandler]] = defaultdict(list)

    def subscribe(self, channel: str, handler: ChangeHandler) -> Unsubscribe:
        """Subscribe a handler to a channel.

        Args:
            channel: Table name (see ``Channel``)
            handler: Async callable receiving each event

        Returns:
            Callable removing this subscription. Calling it twice is harmless.

        Raises:
            ValueError: If channel is empty
        """
        if not channel:
            raise ValueError("channel cannot be empty")

        self._handlers[channel].append(handler)
        logger.debug("change_handler_subscribed", channel=channel)

        def unsubscribe() -> None:
            handlers = self._handlers.get(channel, [])
            if handler in handlers:
                handlers.remove(handler)
                logger.debug("change_handler_unsubscribed", channel=channel)

        return unsubscribe

    def subscribe_many(self, handlers: Mapping[str, ChangeHandler]) -> Unsubscribe:
        """Subscribe several channels at once (session start).

        Returns:
            A single callable tearing every subscription down (session end).
        """
        unsubscribers = [
            self.subscribe(channel, handler) for channel, handler in handlers.items()
        ]

        def unsubscribe_all() -> None:
            for unsubscribe in unsubscribers:
                unsubscribe()

        return unsubscribe_all

    def subscriber_count(self, channel: str) -> int:
        """Number of handlers on a channel."""
        return len(self._handlers.get(channel, []))

    @property
    def channels(self) -> list[str]:
        """Channels with at least one subscriber."""
        return [channel for channel, handlers in self._handlers.items() if handlers]

    async def publish(self, event: ChangeEvent) -> None:
        """Deliver an event to every handler of its channel.

        Args:
            event: Committed change
        """
        handlers = list(self._handlers.get(event.table, []))
        logger.debug(
            "change_event_published",
            table=event.table,
            event_type=event.event_type.value,
            subscribers=len(handlers),
        )

        for handler in handlers:
            try:
                await handler(event)
            except Exception:
                logger.exception(
                    "change_handler_failed",
                    table=event.table,
                    event_type=event.event_type.value,
                )


# Module-level singleton for convenience (optional usage pattern)
_default_bus: ChangeBus | None = None


def get_bus() -> ChangeBus:
    """Get or create the default change bus singleton."""
    global _default_bus
    if _default_bus is None:
        _default_bus = ChangeBus()
    return _default_bus


def reset_bus() -> None:
    """Reset the default bus. Primarily for testing."""
    global _default_bus
    _default_bus = None


__all__ = [
    "ChangeBus",
    "ChangeHandler",
    "ChangePublisher",
    "Unsubscribe",
    "get_bus",
    "reset_bus",
]
