"""Data store for taxpayers, the ledger, requests and the rate table.

Every write commits in its own session and then publishes a change event,
which is what drives realtime updates in connected clients. Concurrent
writers to the same row resolve by last write wins; there is no version
column.
"""

import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.core import clock
from src.core.exceptions import RecordConflictError, RecordNotFoundError, StoreError
from src.domain.records import AdminRequest, Taxpayer, Transaction
from src.models.admin_request import AdminRequest as AdminRequestRow
from src.models.system_config import SYSTEM_CONFIG_ID, SystemConfig
from src.models.taxpayer import Taxpayer as TaxpayerRow
from src.models.transaction import Transaction as TransactionRow
from src.realtime.bus import ChangePublisher
from src.realtime.events import Channel, ChangeEvent, EventType
from src.store.mapping import (
    admin_request_from_row,
    admin_request_to_row,
    apply_row,
    row_from_orm,
    taxpayer_from_row,
    taxpayer_to_row,
    to_wire,
    transaction_from_row,
    transaction_to_row,
)
from src.tax.rates import TaxConfig

logger = structlog.get_logger()

# Canonical ids are UUIDs; anything shorter was made up by a client.
CANONICAL_ID_MIN_LENGTH = 32


def is_placeholder_id(record_id: str | None) -> bool:
    """True for missing or client-invented (non-UUID) ids."""
    return not record_id or len(record_id) < CANONICAL_ID_MIN_LENGTH


class PortalStore:
    """Async repository over the portal tables.

    Args:
        session_factory: SQLAlchemy async session factory.
        publisher: Receives a ``ChangeEvent`` after each committed write.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        publisher: ChangePublisher | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._publisher = publisher

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        """Open a session and translate driver failures into StoreError."""
        try:
            async with self._session_factory() as session:
                yield session
        except (SQLAlchemyError, OSError, TimeoutError) as exc:
            detail = str(getattr(exc, "orig", None) or exc)
            logger.error("store_operation_failed", operation=operation, error=detail)
            raise StoreError(operation, detail) from exc

    async def _publish(
        self,
        channel: Channel,
        event_type: EventType,
        new: dict[str, Any] | None = None,
        old: dict[str, Any] | None = None,
    ) -> None:
        if self._publisher is None:
            return
        await self._publisher.publish(
            ChangeEvent(table=channel.value, event_type=event_type, new=new, old=old)
        )

    # ------------------------------------------------------------------
    # Taxpayers
    # ------------------------------------------------------------------

    async def list_taxpayers(self) -> list[Taxpayer]:
        async with self._session("list_taxpayers") as session:
            result = await session.execute(
                select(TaxpayerRow).order_by(TaxpayerRow.taxpayer_number)
            )
            return [taxpayer_from_row(row_from_orm(obj)) for obj in result.scalars()]

    async def get_taxpayer(self, taxpayer_id: str) -> Taxpayer:
        async with self._session("get_taxpayer") as session:
            obj = await session.get(TaxpayerRow, taxpayer_id)
            if obj is None:
                raise RecordNotFoundError("taxpayer", taxpayer_id)
            return taxpayer_from_row(row_from_orm(obj))

    async def find_taxpayer_by_name(self, name: str) -> Taxpayer | None:
        """Case-insensitive exact name lookup."""
        async with self._session("find_taxpayer_by_name") as session:
            result = await session.execute(
                select(TaxpayerRow)
                .where(func.lower(TaxpayerRow.name) == name.strip().lower())
                .limit(1)
            )
            obj = result.scalars().first()
            return taxpayer_from_row(row_from_orm(obj)) if obj else None

    async def _next_taxpayer_number(self, session: AsyncSession, year: int) -> str:
        """Next ``YYYY-NNNN`` after the highest number issued this year.

        Gaps left by deleted taxpayers are skipped, not refilled.
        """
        prefix = f"{year}-"
        result = await session.execute(
            select(TaxpayerRow.taxpayer_number).where(
                TaxpayerRow.taxpayer_number.like(f"{prefix}%")
            )
        )
        suffixes = (number.removeprefix(prefix) for number in result.scalars())
        highest = max(
            (int(s) for s in suffixes if s.isascii() and s.isdigit()), default=0
        )
        return f"{prefix}{highest + 1:04d}"

    async def create_taxpayer(self, taxpayer: Taxpayer) -> Taxpayer:
        """Insert a taxpayer.

        Placeholder ids are replaced by a UUID and a missing taxpayer number
        is assigned as ``YYYY-NNNN``.
        """
        async with self._session("create_taxpayer") as session:
            now = clock.now()
            updates: dict[str, Any] = {}
            if is_placeholder_id(taxpayer.id):
                updates["id"] = str(uuid.uuid4())
            if not taxpayer.taxpayer_number:
                updates["taxpayer_number"] = await self._next_taxpayer_number(
                    session, now.year
                )
            if taxpayer.created_at is None:
                updates["created_at"] = now
            record = taxpayer.model_copy(update=updates)

            obj = apply_row(TaxpayerRow(), taxpayer_to_row(record))
            session.add(obj)
            await session.flush()
            created = taxpayer_from_row(row_from_orm(obj))
            await session.commit()

        logger.info(
            "taxpayer_created",
            taxpayer_id=created.id,
            taxpayer_number=created.taxpayer_number,
        )
        await self._publish(Channel.TAXPAYERS, EventType.INSERT, new=to_wire(created))
        return created

    async def update_taxpayer(self, taxpayer: Taxpayer) -> Taxpayer:
        """Replace a taxpayer record, keyed by id (or taxpayer number).

        The taxpayer number never changes once assigned.
        """
        async with self._session("update_taxpayer") as session:
            obj = await session.get(TaxpayerRow, taxpayer.id) if taxpayer.id else None
            if obj is None and taxpayer.taxpayer_number:
                result = await session.execute(
                    select(TaxpayerRow).where(
                        TaxpayerRow.taxpayer_number == taxpayer.taxpayer_number
                    )
                )
                obj = result.scalars().first()
            if obj is None:
                raise RecordNotFoundError("taxpayer", taxpayer.id or taxpayer.taxpayer_number)

            previous = taxpayer_from_row(row_from_orm(obj))
            record = taxpayer.model_copy(
                update={
                    "id": previous.id,
                    "taxpayer_number": previous.taxpayer_number
                    or taxpayer.taxpayer_number,
                    "created_at": taxpayer.created_at or previous.created_at,
                }
            )
            apply_row(obj, taxpayer_to_row(record))
            await session.flush()
            updated = taxpayer_from_row(row_from_orm(obj))
            await session.commit()

        logger.info("taxpayer_updated", taxpayer_id=updated.id)
        await self._publish(
            Channel.TAXPAYERS,
            EventType.UPDATE,
            new=to_wire(updated),
            old=to_wire(previous),
        )
        return updated

    async def delete_taxpayer(self, taxpayer_id: str) -> None:
        """Delete a taxpayer that no transaction references.

        Raises:
            RecordConflictError: If the ledger references the taxpayer; set
                its status instead.
        """
        async with self._session("delete_taxpayer") as session:
            obj = await session.get(TaxpayerRow, taxpayer_id)
            if obj is None:
                raise RecordNotFoundError("taxpayer", taxpayer_id)
            result = await session.execute(
                select(func.count(TransactionRow.id)).where(
                    TransactionRow.taxpayer_id == taxpayer_id
                )
            )
            references = int(result.scalar() or 0)
            if references:
                raise RecordConflictError(
                    "delete_taxpayer",
                    f"taxpayer '{taxpayer_id}' has {references} transactions; "
                    "change its status instead",
                )
            previous = taxpayer_from_row(row_from_orm(obj))
            await session.delete(obj)
            await session.commit()

        logger.info("taxpayer_deleted", taxpayer_id=taxpayer_id)
        await self._publish(Channel.TAXPAYERS, EventType.DELETE, old=to_wire(previous))

    # ------------------------------------------------------------------
    # Ledger
    # ------------------------------------------------------------------

    async def list_transactions(self, taxpayer_id: str | None = None) -> list[Transaction]:
        """Ledger entries, newest first."""
        async with self._session("list_transactions") as session:
            stmt = select(TransactionRow).order_by(
                TransactionRow.date.desc(),
                TransactionRow.time.desc(),
                TransactionRow.created_at.desc(),
            )
            if taxpayer_id is not None:
                stmt = stmt.where(TransactionRow.taxpayer_id == taxpayer_id)
            result = await session.execute(stmt)
            return [transaction_from_row(row_from_orm(obj)) for obj in result.scalars()]

    async def find_transaction(self, transaction_id: str) -> Transaction | None:
        async with self._session("find_transaction") as session:
            obj = await session.get(TransactionRow, transaction_id)
            return transaction_from_row(row_from_orm(obj)) if obj else None

    async def get_transaction(self, transaction_id: str) -> Transaction:
        transaction = await self.find_transaction(transaction_id)
        if transaction is None:
            raise RecordNotFoundError("transaction", transaction_id)
        return transaction

    async def create_transaction(self, transaction: Transaction) -> Transaction:
        """Append a transaction under its client-generated id.

        Re-sending an id that is already stored returns the stored entry
        instead of inserting a duplicate.
        """
        async with self._session("create_transaction") as session:
            existing = await session.get(TransactionRow, transaction.id)
            if existing is not None:
                logger.info("transaction_already_stored", transaction_id=transaction.id)
                return transaction_from_row(row_from_orm(existing))

            obj = apply_row(TransactionRow(), transaction_to_row(transaction))
            session.add(obj)
            try:
                await session.flush()
                created = transaction_from_row(row_from_orm(obj))
                await session.commit()
            except IntegrityError:
                # Another writer stored the same id between the lookup and the insert
                await session.rollback()
                existing = await session.get(TransactionRow, transaction.id)
                if existing is None:
                    raise
                logger.info("transaction_already_stored", transaction_id=transaction.id)
                return transaction_from_row(row_from_orm(existing))

        await self._publish(
            Channel.TRANSACTIONS, EventType.INSERT, new=to_wire(created)
        )
        return created

    # ------------------------------------------------------------------
    # Administrative requests
    # ------------------------------------------------------------------

    async def list_admin_requests(self) -> list[AdminRequest]:
        """All requests, oldest first."""
        async with self._session("list_admin_requests") as session:
            result = await session.execute(
                select(AdminRequestRow).order_by(
                    AdminRequestRow.created_at, AdminRequestRow.id
                )
            )
            return [
                admin_request_from_row(row_from_orm(obj)) for obj in result.scalars()
            ]

    async def get_admin_request(self, request_id: str) -> AdminRequest:
        async with self._session("get_admin_request") as session:
            obj = await session.get(AdminRequestRow, request_id)
            if obj is None:
                raise RecordNotFoundError("admin_request", request_id)
            return admin_request_from_row(row_from_orm(obj))

    async def create_admin_request(self, request: AdminRequest) -> AdminRequest:
        async with self._session("create_admin_request") as session:
            obj = apply_row(AdminRequestRow(), admin_request_to_row(request))
            session.add(obj)
            await session.flush()
            created = admin_request_from_row(row_from_orm(obj))
            await session.commit()

        await self._publish(
            Channel.ADMIN_REQUESTS, EventType.INSERT, new=to_wire(created)
        )
        return created

    async def update_admin_request(self, request: AdminRequest) -> AdminRequest:
        """Replace a request record by id."""
        async with self._session("update_admin_request") as session:
            obj = await session.get(AdminRequestRow, request.id)
            if obj is None:
                raise RecordNotFoundError("admin_request", request.id)
            previous = admin_request_from_row(row_from_orm(obj))
            apply_row(obj, admin_request_to_row(request))
            await session.flush()
            updated = admin_request_from_row(row_from_orm(obj))
            await session.commit()

        await self._publish(
            Channel.ADMIN_REQUESTS,
            EventType.UPDATE,
            new=to_wire(updated),
            old=to_wire(previous),
        )
        return updated

    # ------------------------------------------------------------------
    # Rate table
    # ------------------------------------------------------------------

    async def get_config(self) -> TaxConfig:
        """Stored rate table, or the defaults when none was saved yet."""
        async with self._session("get_config") as session:
            obj = await session.get(SystemConfig, SYSTEM_CONFIG_ID)
            return TaxConfig.from_dict(obj.config if obj else None)

    async def update_config(self, config: TaxConfig) -> TaxConfig:
        async with self._session("update_config") as session:
            obj = await session.get(SystemConfig, SYSTEM_CONFIG_ID)
            if obj is None:
                obj = SystemConfig(id=SYSTEM_CONFIG_ID, config=config.to_dict())
                session.add(obj)
            else:
                obj.config = config.to_dict()
            await session.commit()

        logger.info("tax_config_updated")
        await self._publish(
            Channel.SYSTEM_CONFIG, EventType.UPDATE, new=config.to_dict()
        )
        return config
