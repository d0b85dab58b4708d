"""Cross-process fan-out of change events over Redis pub/sub.

Every API process publishes its committed changes to ``{prefix}:{table}``
and relays whatever arrives on ``{prefix}:*`` into its local ``ChangeBus``,
so websocket clients attached to any process see every change.
"""

import asyncio

import orjson
import redis.asyncio as redis
import structlog

from src.realtime.bus import ChangeBus
from src.realtime.events import ChangeEvent

logger = structlog.get_logger()


class RedisChangeBridge:
    """Publishes change events to Redis and relays them to the local bus.

    The relay survives Redis restarts: a dropped subscription is retried with
    exponential backoff, starting at ``reconnect_delay`` and capped at
    ``max_reconnect_delay`` seconds, and the delay resets once a new
    subscription delivers its first message.

    Usage in lifespan:
        bridge = RedisChangeBridge(app.state.redis, bus, settings.realtime_channel_prefix)
        bridge.start()
        yield
        await bridge.stop()
    """

    def __init__(
        self,
        redis_client: redis.Redis,
        bus: ChangeBus,
        prefix: str = "sigma:changes",
        reconnect_delay: float = 0.5,
        max_reconnect_delay: float = 30.0,
    ) -> None:
        self._redis = redis_client
        self._bus = bus
        self._prefix = prefix
        self._reconnect_delay = reconnect_delay
        self._max_reconnect_delay = max_reconnect_delay
        self._retry_delay = reconnect_delay
        self._task: asyncio.Task[None] | None = None

    def channel_for(self, table: str) -> str:
        return f"{self._prefix}:{table}"

    async def publish(self, event: ChangeEvent) -> None:
        """Publish an event for every process.

        When Redis is unreachable the event is still delivered to this
        process's subscribers; remote processes recover on their next reload.
        """
        try:
            await self._redis.publish(self.channel_for(event.table), event.to_json())
        except redis.RedisError as exc:
            logger.warning(
                "realtime_publish_failed",
                table=event.table,
                event_type=event.event_type.value,
                error=str(exc),
            )
            await self._bus.publish(event)

    async def relay(self) -> None:
        """Relay Redis messages into the local bus until cancelled."""
        while True:
            try:
                await self._relay_once()
            except redis.RedisError as exc:
                logger.warning(
                    "realtime_relay_disconnected",
                    prefix=self._prefix,
                    error=str(exc),
                    retry_in=self._retry_delay,
                )
            else:
                logger.warning(
                    "realtime_relay_ended",
                    prefix=self._prefix,
                    retry_in=self._retry_delay,
                )
            await asyncio.sleep(self._retry_delay)
            self._retry_delay = min(self._retry_delay * 2, self._max_reconnect_delay)

    async def _relay_once(self) -> None:
        pubsub = self._redis.pubsub()
        try:
            await pubsub.psubscribe(f"{self._prefix}:*")
            logger.info("realtime_relay_started", prefix=self._prefix)
            async for message in pubsub.listen():
                # Connection is live again
                self._retry_delay = self._reconnect_delay
                if message.get("type") != "pmessage":
                    continue
                try:
                    event = ChangeEvent.from_json(message["data"])
                except (orjson.JSONDecodeError, KeyError, ValueError) as exc:
                    logger.warning("realtime_message_malformed", error=str(exc))
                    continue
                await self._bus.publish(event)
        finally:
            try:
                await pubsub.punsubscribe()
            except redis.RedisError as exc:
                logger.debug("realtime_unsubscribe_failed", error=str(exc))
            await pubsub.aclose()
            logger.info("realtime_relay_stopped", prefix=self._prefix)

    def start(self) -> None:
        """Run the relay in a background task."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.relay())
            self._task.add_done_callback(self._log_task_exit)

    def _log_task_exit(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        if (exc := task.exception()) is not None:
            logger.error(
                "realtime_relay_crashed",
                prefix=self._prefix,
                error=str(exc),
                exc_info=exc,
            )

    async def stop(self) -> None:
        """Cancel the relay task and wait for it to finish."""
        if self._task is None:
            return
        if self._task.done():
            # Already finished; a crash was logged by the done callback
            self._task = None
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
