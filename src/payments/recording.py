"""Payment recording with offline fallback.

A payment becomes a PAGADO ledger entry. When the store is unreachable the
built transaction is handed back inside PaymentPersistenceError so the
cashier can confirm saving it to the offline queue; ``sync_pending`` later
replays the queue. Replays are safe because the store ignores ids it
already holds.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

import structlog

from src.core import clock
from src.core.exceptions import PaymentPersistenceError, PaymentValidationError, StoreError
from src.domain.records import Transaction, new_record_id
from src.models.transaction import PaymentMethod, TaxType, TransactionStatus
from src.orchestration.workflow import ArrangementCharge
from src.payments.offline_queue import OfflineQueue
from src.store.repository import PortalStore
from src.tax.debts import DebtItem

logger = structlog.get_logger()


@dataclass(frozen=True)
class PaymentReceipt:
    """Recorded payment. ``queued`` marks one saved only to the offline queue."""

    transaction: Transaction
    queued: bool = False


@dataclass
class SyncResult:
    succeeded: list[Transaction] = field(default_factory=list)
    failed: list[Transaction] = field(default_factory=list)


class PaymentRecorder:
    """Records payments for one teller.

    Args:
        store: Persistence collaborator
        queue: Offline queue used when the store is unavailable
        teller_name: Name stamped on every transaction
    """

    def __init__(self, store: PortalStore, queue: OfflineQueue, teller_name: str) -> None:
        self._store = store
        self._queue = queue
        self.teller_name = teller_name

    def build_transaction(
        self,
        taxpayer_id: str,
        tax_type: TaxType,
        amount: Decimal,
        payment_method: PaymentMethod,
        description: str = "",
        metadata: dict[str, Any] | None = None,
    ) -> Transaction:
        """Build a PAGADO transaction stamped with the current date and time.

        Raises:
            PaymentValidationError: If the taxpayer is missing or the amount is zero
        """
        if not taxpayer_id:
            raise PaymentValidationError("a taxpayer must be selected")
        if amount == 0:
            raise PaymentValidationError("payment amount cannot be zero")

        now = clock.now()
        return Transaction(
            id=new_record_id("TX"),
            taxpayer_id=taxpayer_id,
            tax_type=tax_type,
            amount=amount,
            date=now.date(),
            time=now.strftime("%H:%M:%S"),
            description=description or f"Pago de {tax_type.value}",
            status=TransactionStatus.PAGADO,
            payment_method=payment_method,
            teller_name=self.teller_name,
            metadata=dict(metadata or {}),
        )

    async def record_payment(
        self,
        taxpayer_id: str,
        tax_type: TaxType,
        amount: Decimal,
        payment_method: PaymentMethod,
        description: str = "",
        metadata: dict[str, Any] | None = None,
        online: bool = True,
    ) -> PaymentReceipt:
        """Record a payment.

        Args:
            taxpayer_id: Paying taxpayer
            tax_type: Tax being paid
            amount: Amount collected
            payment_method: How it was collected
            description: Receipt text; defaults to "Pago de <tax>"
            metadata: Period keys (month/year, plateNumber) or arrangement terms
            online: False when connectivity is known to be down; the payment
                goes straight to the offline queue

        Returns:
            PaymentReceipt with the stored (or queued) transaction

        Raises:
            PaymentValidationError: If the payment is malformed
            PaymentPersistenceError: If the store rejected or could not be
                reached; carries the built transaction for ``save_offline``
        """
        transaction = self.build_transaction(
            taxpayer_id, tax_type, amount, payment_method, description, metadata
        )
        if not online:
            return await self.save_offline(transaction)

        try:
            stored = await self._store.create_transaction(transaction)
        except StoreError as exc:
            logger.warning(
                "payment_persist_failed",
                transaction_id=transaction.id,
                taxpayer_id=taxpayer_id,
                error=exc.detail,
            )
            raise PaymentPersistenceError(transaction, exc) from exc

        logger.info(
            "payment_recorded",
            transaction_id=stored.id,
            taxpayer_id=taxpayer_id,
            tax_type=tax_type.value,
            amount=str(amount),
        )
        return PaymentReceipt(transaction=stored)

    async def save_offline(self, transaction: Transaction) -> PaymentReceipt:
        await self._queue.enqueue(transaction)
        return PaymentReceipt(transaction=transaction, queued=True)

    async def record_debt_payment(
        self,
        item: DebtItem,
        payment_method: PaymentMethod,
        tax_type: TaxType | None = None,
        online: bool = True,
    ) -> PaymentReceipt:
        """Pay one debt item in full.

        The item's period metadata travels with the transaction so the debt
        engine sees the obligation as satisfied.

        Args:
            item: Debt item being paid
            payment_method: How it was collected
            tax_type: Ledger tax type for a carried balance, which has none
            online: See ``record_payment``

        Raises:
            PaymentValidationError: If the item has nothing to pay or a
                carried balance is paid without a tax type
        """
        if item.amount <= 0:
            raise PaymentValidationError(f"debt item {item.id} has nothing to pay")
        ledger_type = item.tax_type or tax_type
        if ledger_type is None:
            raise PaymentValidationError(
                "a tax type is required to pay the carried balance"
            )
        return await self.record_payment(
            taxpayer_id=item.taxpayer_id,
            tax_type=ledger_type,
            amount=item.amount,
            payment_method=payment_method,
            description=item.description,
            metadata=item.metadata,
            online=online,
        )

    async def record_arrangement_payment(
        self, charge: ArrangementCharge, online: bool = True
    ) -> PaymentReceipt:
        """Collect the initial payment of an approved arrangement.

        Raises:
            PaymentValidationError: If the taxpayer was not located or the
                arrangement has no initial payment
        """
        if charge.taxpayer is None:
            raise PaymentValidationError(
                f"taxpayer '{charge.taxpayer_name}' was not found for "
                f"arrangement {charge.request_id}"
            )
        if charge.amount <= 0:
            raise PaymentValidationError(
                f"arrangement {charge.request_id} has no initial payment to collect"
            )
        return await self.record_payment(
            taxpayer_id=charge.taxpayer.id,
            tax_type=charge.tax_type,
            amount=charge.amount,
            payment_method=charge.payment_method,
            description=charge.description,
            metadata=charge.metadata,
            online=online,
        )

    @property
    def pending_offline(self) -> list[Transaction]:
        return self._queue.pending

    async def sync_pending(self) -> SyncResult:
        """Replay the offline queue against the store."""
        drained = await self._queue.drain(self._store.create_transaction)
        return SyncResult(succeeded=drained.succeeded, failed=drained.failed)
