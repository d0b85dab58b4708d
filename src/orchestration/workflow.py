"""Administrative request workflow.

Operators raise requests (void a transaction, negotiate a payment plan,
edit taxpayer data); a supervisor approves or rejects them. Approval runs
the side effect for the request type before the request is marked
approved, so a failed side effect leaves the request pending.
"""

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, assert_never
from weakref import WeakValueDictionary

import structlog

from src.core import clock
from src.core.exceptions import RecordNotFoundError, RequestValidationError
from src.domain.records import AdminRequest, Taxpayer, Transaction, new_record_id
from src.models.admin_request import RequestStatus, RequestType
from src.models.transaction import PaymentMethod, TaxType, TransactionStatus
from src.orchestration.resolutions import (
    ARRANGEMENT_APPROVED_NOTE,
    DEFAULT_REJECTION_NOTE,
    TAXPAYER_EDIT_APPROVED_NOTE,
    VOID_APPROVED_NOTE,
    ArrangementApproval,
    PaymentArrangementDetails,
    Resolution,
    TaxpayerEditApproval,
    TaxpayerEditDetails,
    VoidApproval,
    VoidTransactionDetails,
    check_resolution,
    details_from_extra,
    details_of,
    resolution_for,
)
from src.orchestration.state_machine import create_state_machine

if TYPE_CHECKING:
    from src.store.repository import PortalStore

logger = structlog.get_logger()

VOID_TELLER_NAME = "ADMIN"
ARRANGEMENT_TAX_TYPE = TaxType.COMERCIO

# One resolution at a time per request within this process
_resolution_locks: WeakValueDictionary[str, asyncio.Lock] = WeakValueDictionary()


def _resolution_lock(request_id: str) -> asyncio.Lock:
    lock = _resolution_locks.get(request_id)
    if lock is None:
        lock = asyncio.Lock()
        _resolution_locks[request_id] = lock
    return lock


def counter_entry_id(request_id: str) -> str:
    """Ledger id of the counter-entry written when a void request is approved.

    Derived from the request so a repeated approval (another supervisor, or a
    retry after the request update failed) finds the entry instead of adding
    a second one.
    """
    return f"VOID-{request_id}"


@dataclass(frozen=True)
class ApprovalOutcome:
    """Result of an approval.

    Attributes:
        request: The request as stored after approval.
        counter_entry: Ledger entry written by a void, if any.
        warnings: Anomalies that did not block the approval.
    """

    request: AdminRequest
    counter_entry: Transaction | None = None
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class RequestBoard:
    """Pending requests oldest first; resolved ones newest first."""

    pending: list[AdminRequest]
    history: list[AdminRequest]


@dataclass(frozen=True)
class ArrangementCharge:
    """An approved payment arrangement loaded into collection.

    The charge is what the cashier collects as the initial payment; the
    ledger entry is written only when the payment is recorded.
    """

    request_id: str
    taxpayer: Taxpayer | None
    taxpayer_name: str
    amount: Decimal
    total_debt: Decimal | None
    installments: int | None
    description: str
    tax_type: TaxType = ARRANGEMENT_TAX_TYPE
    payment_method: PaymentMethod = PaymentMethod.ARREGLO_PAGO
    metadata: dict[str, Any] = field(default_factory=dict)
    warnings: tuple[str, ...] = ()


def _edit_payload(request: AdminRequest) -> Taxpayer:
    match details_of(request):
        case TaxpayerEditDetails(payload=payload):
            return payload
        case other:
            raise RequestValidationError(
                f"Request {request.id} carries {type(other).__name__}, "
                "not a taxpayer edit"
            )


def _now_stamp() -> tuple[datetime, str]:
    now = clock.now()
    return now, now.strftime("%H:%M:%S")


class RequestWorkflow:
    """Creates, resolves and lists administrative requests.

    Args:
        store: Persistence collaborator. Every write publishes a change event
            so connected viewers reload.
    """

    def __init__(self, store: "PortalStore") -> None:
        self._store = store

    async def get_request(self, request_id: str) -> AdminRequest:
        return await self._store.get_admin_request(request_id)

    async def create_request(
        self,
        request_type: RequestType,
        requester_name: str,
        taxpayer_name: str,
        description: str = "",
        extra: Mapping[str, Any] | None = None,
        taxpayer_id: str | None = None,
    ) -> AdminRequest:
        """Raise a new PENDING request.

        Args:
            request_type: Kind of request
            requester_name: Operator raising it
            taxpayer_name: Taxpayer the request concerns
            description: Operator's justification
            extra: Type-specific fields (``transactionId``, ``totalDebt`` or
                ``payload``)
            taxpayer_id: Taxpayer id when known

        Returns:
            The stored request

        Raises:
            RequestValidationError: If a required field is missing or the
                extra fields do not fit the request type
        """
        if not requester_name.strip():
            raise RequestValidationError("requester name is required")
        if not taxpayer_name.strip():
            raise RequestValidationError("taxpayer name is required")

        details = details_from_extra(request_type, extra)
        request = AdminRequest(
            id=new_record_id("REQ"),
            type=request_type,
            status=RequestStatus.PENDING,
            requester_name=requester_name.strip(),
            taxpayer_name=taxpayer_name.strip(),
            taxpayer_id=taxpayer_id,
            description=description,
            created_at=clock.now(),
        )

        match details:
            case VoidTransactionDetails(transaction_id=transaction_id):
                request.transaction_id = transaction_id
            case PaymentArrangementDetails(total_debt=total_debt):
                request.total_debt = total_debt
            case TaxpayerEditDetails(payload=payload):
                request.payload = payload
                request.taxpayer_id = payload.id
            case _:
                assert_never(details)

        created = await self._store.create_admin_request(request)
        logger.info(
            "admin_request_created",
            request_id=created.id,
            request_type=request_type.value,
            requester=created.requester_name,
        )
        return created

    async def approve(
        self, request_id: str, resolution: Resolution | None = None
    ) -> ApprovalOutcome:
        """Approve a pending request and run its side effect.

        Args:
            request_id: Request to approve
            resolution: Type-specific approval; defaults are used when omitted

        Returns:
            ApprovalOutcome with the stored request and any warnings

        Raises:
            RecordNotFoundError: If the request does not exist
            TransitionNotAllowed: If the request is no longer pending
            RequestValidationError: If the resolution does not fit the request
        """
        async with _resolution_lock(request_id):
            stored = await self._store.get_admin_request(request_id)
            if resolution is None:
                resolution = resolution_for(stored.type)
            check_resolution(stored, resolution)

            request = stored.model_copy(deep=True)
            machine = create_state_machine(request)
            counter_entry: Transaction | None = None
            warnings: list[str] = []

            match resolution:
                case VoidApproval():
                    machine.approve(note=VOID_APPROVED_NOTE)
                    counter_entry = await self._void_transaction(request, warnings)
                case ArrangementApproval(
                    initial_payment=initial_payment,
                    installment_count=installment_count,
                ):
                    request.approved_amount = initial_payment
                    request.installments = installment_count
                    request.approved_total_debt = request.total_debt
                    machine.approve(note=ARRANGEMENT_APPROVED_NOTE)
                case TaxpayerEditApproval():
                    machine.approve(note=TAXPAYER_EDIT_APPROVED_NOTE)
                    await self._store.update_taxpayer(_edit_payload(request))
                case _:
                    assert_never(resolution)

            updated = await self._store.update_admin_request(request)
        return ApprovalOutcome(
            request=updated, counter_entry=counter_entry, warnings=tuple(warnings)
        )

    async def _void_transaction(
        self, request: AdminRequest, warnings: list[str]
    ) -> Transaction | None:
        match details_of(request):
            case VoidTransactionDetails(transaction_id=transaction_id):
                pass
            case other:
                raise RequestValidationError(
                    f"Request {request.id} carries {type(other).__name__}, "
                    "not a transaction to void"
                )

        original = await self._store.find_transaction(transaction_id)
        if original is None:
            warnings.append(
                f"Transaction {transaction_id} was not found; "
                "no counter-entry was written"
            )
            logger.warning(
                "void_target_missing",
                request_id=request.id,
                transaction_id=transaction_id,
            )
            return None

        now, time = _now_stamp()
        counter_entry = Transaction(
            id=counter_entry_id(request.id),
            taxpayer_id=original.taxpayer_id,
            tax_type=original.tax_type,
            amount=-original.amount,
            date=now.date(),
            time=time,
            description=f"ANULACIÓN de Transacción #{original.id}",
            status=TransactionStatus.ANULADO,
            payment_method=original.payment_method,
            teller_name=VOID_TELLER_NAME,
            metadata={"voidedTransactionId": original.id},
        )
        stored = await self._store.create_transaction(counter_entry)
        logger.info(
            "transaction_voided",
            request_id=request.id,
            transaction_id=original.id,
            counter_entry_id=stored.id,
        )
        return stored

    async def reject(self, request_id: str, reason: str | None = None) -> AdminRequest:
        """Reject a pending request.

        Args:
            request_id: Request to reject
            reason: Free-text reason; a default note is used when blank

        Raises:
            RecordNotFoundError: If the request does not exist
            TransitionNotAllowed: If the request is no longer pending
        """
        async with _resolution_lock(request_id):
            stored = await self._store.get_admin_request(request_id)
            request = stored.model_copy(deep=True)
            note = (reason or "").strip() or DEFAULT_REJECTION_NOTE
            create_state_machine(request).reject(note=note)
            return await self._store.update_admin_request(request)

    async def list_requests(self) -> RequestBoard:
        requests = await self._store.list_admin_requests()
        pending = sorted(
            (request for request in requests if request.is_pending),
            key=lambda request: request.created_at,
        )
        history = sorted(
            (request for request in requests if not request.is_pending),
            key=lambda request: request.resolved_at or request.created_at,
            reverse=True,
        )
        return RequestBoard(pending=pending, history=history)

    async def arrangement_charge(self, request_id: str) -> ArrangementCharge:
        """Load an approved arrangement into collection.

        The taxpayer is located by id, or by case-insensitive name for
        requests raised without one.

        Raises:
            RequestValidationError: If the request is not an approved
                payment arrangement
        """
        request = await self._store.get_admin_request(request_id)
        if request.type != RequestType.PAYMENT_ARRANGEMENT:
            raise RequestValidationError(
                f"Request {request_id} is a {request.type.value} request, "
                "not a payment arrangement"
            )
        if request.status != RequestStatus.APPROVED:
            raise RequestValidationError(
                f"Payment arrangement {request_id} is {request.status.value}, "
                "only approved arrangements can be collected"
            )

        taxpayer = await self._locate_taxpayer(request)
        warnings: list[str] = []
        if taxpayer is None:
            warnings.append(
                f"Taxpayer '{request.taxpayer_name}' was not found; "
                "select the taxpayer before collecting"
            )
            logger.warning(
                "arrangement_taxpayer_missing",
                request_id=request.id,
                taxpayer_name=request.taxpayer_name,
            )

        installments = request.installments
        return ArrangementCharge(
            request_id=request.id,
            taxpayer=taxpayer,
            taxpayer_name=taxpayer.name if taxpayer else request.taxpayer_name,
            amount=request.approved_amount or Decimal("0"),
            total_debt=request.approved_total_debt,
            installments=installments,
            description=(
                f"Abono inicial Arreglo de Pago {request.id} ({installments} letras)"
            ),
            metadata={
                "isArrangement": True,
                "requestId": request.id,
                "approvedTotalDebt": str(request.approved_total_debt or Decimal("0")),
                "installments": installments,
            },
            warnings=tuple(warnings),
        )

    async def _locate_taxpayer(self, request: AdminRequest) -> Taxpayer | None:
        if request.taxpayer_id:
            try:
                return await self._store.get_taxpayer(request.taxpayer_id)
            except RecordNotFoundError:
                logger.info(
                    "arrangement_taxpayer_id_stale",
                    request_id=request.id,
                    taxpayer_id=request.taxpayer_id,
                )
        return await self._store.find_taxpayer_by_name(request.taxpayer_name)


__all__ = [
    "ApprovalOutcome",
    "ArrangementCharge",
    "RequestBoard",
    "RequestWorkflow",
]
