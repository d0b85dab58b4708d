"""Durable queue of payments recorded while the data store was unreachable.

The queue lives under one fixed key as a JSON list of transactions in their
camelCase wire form. It is read once at startup and rewritten in full after
every enqueue and after every successfully synced entry, so an interrupted
sync never replays a payment that already reached the store.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

import orjson
import pydantic
import structlog

from src.core.exceptions import PortalError
from src.domain.records import Transaction
from src.integrations.storage import KeyValueStore
from src.store.mapping import from_wire, to_wire

logger = structlog.get_logger()

OFFLINE_QUEUE_KEY = "sigma_offline_txs"

SendTransaction = Callable[[Transaction], Awaitable[Any]]


@dataclass
class DrainResult:
    """Outcome of one sync pass. Failed entries remain queued in order."""

    succeeded: list[Transaction] = field(default_factory=list)
    failed: list[Transaction] = field(default_factory=list)


class OfflineQueue:
    """FIFO of unsynced transactions backed by a key-value store.

    Usage:
        queue = OfflineQueue(FileKeyValueStore(settings.offline_queue_url))
        await queue.load()
        await queue.enqueue(transaction)
        result = await queue.drain(store.create_transaction)

    Args:
        storage: Durable key-value store
        key: Storage key holding the queue
    """

    def __init__(self, storage: KeyValueStore, key: str = OFFLINE_QUEUE_KEY) -> None:
        self._storage = storage
        self._key = key
        self._items: list[Transaction] = []
        self._lock = asyncio.Lock()

    async def load(self) -> list[Transaction]:
        """Read the queue from storage, skipping unreadable entries."""
        raw = await self._storage.get(self._key)
        items: list[Transaction] = []
        if raw:
            try:
                entries = orjson.loads(raw)
            except orjson.JSONDecodeError as exc:
                logger.error("offline_queue_unreadable", key=self._key, error=str(exc))
                entries = []
            for entry in entries:
                try:
                    items.append(from_wire(Transaction, entry))
                except pydantic.ValidationError as exc:
                    logger.error(
                        "offline_queue_entry_invalid",
                        key=self._key,
                        entry_id=entry.get("id") if isinstance(entry, dict) else None,
                        error=str(exc),
                    )
        self._items = items
        logger.info("offline_queue_loaded", key=self._key, pending=len(items))
        return self.pending

    @property
    def pending(self) -> list[Transaction]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    async def _persist(self) -> None:
        payload = orjson.dumps([to_wire(item) for item in self._items])
        await self._storage.set(self._key, payload.decode("utf-8"))

    async def enqueue(self, transaction: Transaction) -> None:
        """Append a transaction and persist the queue."""
        async with self._lock:
            self._items.append(transaction)
            await self._persist()
        logger.info(
            "offline_payment_queued",
            transaction_id=transaction.id,
            taxpayer_id=transaction.taxpayer_id,
            pending=len(self._items),
        )

    async def drain(self, send: SendTransaction) -> DrainResult:
        """Send queued transactions one at a time, in order.

        Each success is removed and the queue persisted before the next send.
        Failures stay queued, keeping their relative order.

        Args:
            send: Persists one transaction; raises PortalError on failure
        """
        result = DrainResult()
        async with self._lock:
            for transaction in list(self._items):
                try:
                    await send(transaction)
                except PortalError as exc:
                    logger.warning(
                        "offline_payment_sync_failed",
                        transaction_id=transaction.id,
                        error=str(exc),
                    )
                    result.failed.append(transaction)
                    continue
                self._items.remove(transaction)
                await self._persist()
                result.succeeded.append(transaction)

        logger.info(
            "offline_queue_drained",
            succeeded=len(result.succeeded),
            failed=len(result.failed),
        )
        return result
