"""Tests for the in-process change bus."""

import pytest

from src.realtime.bus import ChangeBus, get_bus, reset_bus
from src.realtime.events import Channel, ChangeEvent, EventType


def _event(table: str = "admin_requests") -> ChangeEvent:
    return ChangeEvent(table=table, event_type=EventType.INSERT, new={"id": "REQ-1"})


class TestChangeBus:
    """Tests for ChangeBus routing."""

    def setup_method(self) -> None:
        """Reset bus before each test."""
        reset_bus()

    @pytest.mark.asyncio
    async def test_publish_reaches_channel_handlers(self) -> None:
        bus = ChangeBus()
        received: list[ChangeEvent] = []

        async def handler(event: ChangeEvent) -> None:
            received.append(event)

        bus.subscribe(Channel.ADMIN_REQUESTS.value, handler)
        event = _event()

        await bus.publish(event)

        assert received == [event]

    @pytest.mark.asyncio
    async def test_other_channels_not_delivered(self) -> None:
        bus = ChangeBus()
        received: list[ChangeEvent] = []

        async def handler(event: ChangeEvent) -> None:
            received.append(event)

        bus.subscribe("transactions", handler)

        await bus.publish(_event("taxpayers"))

        assert received == []

    @pytest.mark.asyncio
    async def test_unsubscribe_stops_delivery(self) -> None:
        bus = ChangeBus()
        received: list[ChangeEvent] = []

        async def handler(event: ChangeEvent) -> None:
            received.append(event)

        unsubscribe = bus.subscribe("admin_requests", handler)
        unsubscribe()
        unsubscribe()

        await bus.publish(_event())

        assert received == []
        assert bus.subscriber_count("admin_requests") == 0

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_block_others(self) -> None:
        bus = ChangeBus()
        received: list[ChangeEvent] = []

        async def broken(event: ChangeEvent) -> None:
            raise RuntimeError("boom")

        async def handler(event: ChangeEvent) -> None:
            received.append(event)

        bus.subscribe("admin_requests", broken)
        bus.subscribe("admin_requests", handler)

        await bus.publish(_event())

        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_subscribe_many_tears_down_together(self) -> None:
        bus = ChangeBus()

        async def handler(event: ChangeEvent) -> None:
            return None

        unsubscribe_all = bus.subscribe_many(
            {channel.value: handler for channel in Channel}
        )

        assert sorted(bus.channels) == sorted(channel.value for channel in Channel)

        unsubscribe_all()

        assert bus.channels == []

    def test_empty_channel_rejected(self) -> None:
        bus = ChangeBus()

        async def handler(event: ChangeEvent) -> None:
            return None

        with pytest.raises(ValueError):
            bus.subscribe("", handler)

    def test_get_bus_singleton(self) -> None:
        assert get_bus() is get_bus()
        first = get_bus()
        reset_bus()
        assert get_bus() is not first


class TestChangeEvent:
    """Tests for the JSON form relayed between processes."""

    def test_json_round_trip(self) -> None:
        event = ChangeEvent(
            table="transactions",
            event_type=EventType.UPDATE,
            new={"id": "TX-1", "amount": "25.00"},
            old={"id": "TX-1"},
        )

        assert ChangeEvent.from_json(event.to_json()) == event

    def test_json_uses_camel_case_event_type(self) -> None:
        assert b'"eventType":"DELETE"' in ChangeEvent(
            table="taxpayers", event_type=EventType.DELETE
        ).to_json()
