"""Ledger and payment API endpoints."""

from datetime import date
from decimal import Decimal
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, status
from pydantic import Field

from src.api.debts import debt_rules
from src.api.deps import get_offline_queue, get_recorder, get_store, get_workflow
from src.core import clock
from src.core.exceptions import PaymentValidationError
from src.core.logging import taxpayer_id_ctx
from src.domain.records import RecordModel, Transaction
from src.models.transaction import PaymentMethod, TaxType
from src.orchestration.workflow import RequestWorkflow
from src.payments.offline_queue import OfflineQueue
from src.payments.recording import PaymentReceipt, PaymentRecorder
from src.store.repository import PortalStore
from src.tax.debts import compute_debts

router = APIRouter(prefix="/api", tags=["payments"])


class PaymentCreateRequest(RecordModel):
    """Payload for recording a payment."""

    taxpayer_id: str = Field(min_length=1)
    tax_type: TaxType
    amount: Decimal
    payment_method: PaymentMethod
    description: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)
    online: bool = True


class DebtPaymentRequest(RecordModel):
    """Payload for paying one outstanding debt item in full."""

    taxpayer_id: str = Field(min_length=1)
    item_id: str = Field(min_length=1)
    payment_method: PaymentMethod
    tax_type: TaxType | None = None
    reference_date: date | None = None
    online: bool = True


class ArrangementPaymentRequest(RecordModel):
    request_id: str = Field(min_length=1)
    online: bool = True


class PaymentReceiptResponse(RecordModel):
    transaction: Transaction
    queued: bool


class SyncResponse(RecordModel):
    """Outcome of replaying the offline queue."""

    succeeded: list[Transaction]
    failed: list[Transaction]
    pending: int


def _to_receipt_response(receipt: PaymentReceipt) -> PaymentReceiptResponse:
    return PaymentReceiptResponse(transaction=receipt.transaction, queued=receipt.queued)


@router.get("/transactions", response_model=list[Transaction])
async def list_transactions(
    store: Annotated[PortalStore, Depends(get_store)],
    taxpayer_id: str | None = Query(default=None, alias="taxpayerId"),
) -> list[Transaction]:
    """Ledger entries, newest first."""
    return await store.list_transactions(taxpayer_id)


@router.post(
    "/payments",
    response_model=PaymentReceiptResponse,
    status_code=status.HTTP_201_CREATED,
)
async def record_payment(
    payload: PaymentCreateRequest,
    recorder: Annotated[PaymentRecorder, Depends(get_recorder)],
) -> PaymentReceiptResponse:
    """Record a payment, or queue it when the client reports being offline.

    A store failure answers 503 with the unsaved transaction so the client
    can queue it through ``POST /api/payments/offline``.
    """
    taxpayer_id_ctx.set(payload.taxpayer_id)
    receipt = await recorder.record_payment(
        taxpayer_id=payload.taxpayer_id,
        tax_type=payload.tax_type,
        amount=payload.amount,
        payment_method=payload.payment_method,
        description=payload.description,
        metadata=payload.metadata,
        online=payload.online,
    )
    return _to_receipt_response(receipt)


@router.post(
    "/payments/debt",
    response_model=PaymentReceiptResponse,
    status_code=status.HTTP_201_CREATED,
)
async def record_debt_payment(
    payload: DebtPaymentRequest,
    store: Annotated[PortalStore, Depends(get_store)],
    recorder: Annotated[PaymentRecorder, Depends(get_recorder)],
) -> PaymentReceiptResponse:
    """Pay an item of the taxpayer's current debt list."""
    taxpayer_id_ctx.set(payload.taxpayer_id)
    taxpayer = await store.get_taxpayer(payload.taxpayer_id)
    ledger = await store.list_transactions(payload.taxpayer_id)
    config = await store.get_config()
    items = compute_debts(
        taxpayer,
        ledger,
        config,
        payload.reference_date or clock.today(),
        **debt_rules(include_moroso=True),
    )
    item = next((item for item in items if item.id == payload.item_id), None)
    if item is None:
        raise PaymentValidationError(f"debt item {payload.item_id} is not owed")

    receipt = await recorder.record_debt_payment(
        item, payload.payment_method, tax_type=payload.tax_type, online=payload.online
    )
    return _to_receipt_response(receipt)


@router.post(
    "/payments/arrangement",
    response_model=PaymentReceiptResponse,
    status_code=status.HTTP_201_CREATED,
)
async def record_arrangement_payment(
    payload: ArrangementPaymentRequest,
    workflow: Annotated[RequestWorkflow, Depends(get_workflow)],
    recorder: Annotated[PaymentRecorder, Depends(get_recorder)],
) -> PaymentReceiptResponse:
    """Collect the initial payment of an approved arrangement."""
    charge = await workflow.arrangement_charge(payload.request_id)
    receipt = await recorder.record_arrangement_payment(charge, online=payload.online)
    return _to_receipt_response(receipt)


@router.get("/payments/offline", response_model=list[Transaction])
async def list_offline_payments(
    queue: Annotated[OfflineQueue, Depends(get_offline_queue)],
) -> list[Transaction]:
    """Payments waiting to be synced."""
    return queue.pending


@router.post(
    "/payments/offline",
    response_model=PaymentReceiptResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def save_offline_payment(
    transaction: Transaction,
    recorder: Annotated[PaymentRecorder, Depends(get_recorder)],
) -> PaymentReceiptResponse:
    """Queue a transaction the store could not accept."""
    receipt = await recorder.save_offline(transaction)
    return _to_receipt_response(receipt)


@router.post("/payments/sync", response_model=SyncResponse)
async def sync_offline_payments(
    recorder: Annotated[PaymentRecorder, Depends(get_recorder)],
) -> SyncResponse:
    """Replay queued payments in order."""
    result = await recorder.sync_pending()
    return SyncResponse(
        succeeded=result.succeeded,
        failed=result.failed,
        pending=len(recorder.pending_offline),
    )
