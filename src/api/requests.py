"""Administrative request API endpoints."""

from decimal import Decimal
from typing import Annotated, Any

from fastapi import APIRouter, Depends, status
from pydantic import Field

from src.api.deps import Actor, get_actor, get_workflow, require_admin
from src.domain.records import AdminRequest, RecordModel, Taxpayer, Transaction
from src.models.admin_request import RequestType
from src.models.transaction import PaymentMethod, TaxType
from src.orchestration.resolutions import resolution_for
from src.orchestration.workflow import RequestWorkflow

router = APIRouter(prefix="/api/requests", tags=["requests"])


class RequestCreatePayload(RecordModel):
    """Payload for raising a request.

    Exactly one of the type-specific fields is expected: ``transactionId``
    for voids, ``totalDebt`` for arrangements, ``payload`` for edits.
    """

    type: RequestType
    taxpayer_name: str = Field(min_length=1)
    taxpayer_id: str | None = None
    description: str = ""
    transaction_id: str | None = None
    total_debt: Decimal | None = None
    payload: Taxpayer | None = None

    def extra(self) -> dict[str, Any]:
        fields = {
            "transaction_id": self.transaction_id,
            "total_debt": self.total_debt,
            "payload": self.payload,
        }
        return {key: value for key, value in fields.items() if value is not None}


class ApprovePayload(RecordModel):
    """Arrangement terms; ignored for other request types."""

    initial_payment: Decimal | None = None
    installment_count: int | None = None


class RejectPayload(RecordModel):
    reason: str = ""


class RequestBoardResponse(RecordModel):
    pending: list[AdminRequest]
    history: list[AdminRequest]


class ApprovalResponse(RecordModel):
    request: AdminRequest
    counter_entry: Transaction | None
    warnings: list[str]


class ArrangementChargeResponse(RecordModel):
    """Initial arrangement payment ready to collect."""

    request_id: str
    taxpayer: Taxpayer | None
    taxpayer_name: str
    amount: Decimal
    total_debt: Decimal | None
    installments: int | None
    description: str
    tax_type: TaxType
    payment_method: PaymentMethod
    metadata: dict[str, Any]
    warnings: list[str]


@router.get("", response_model=RequestBoardResponse)
async def list_requests(
    workflow: Annotated[RequestWorkflow, Depends(get_workflow)],
) -> RequestBoardResponse:
    """Pending requests oldest first and resolved requests newest first."""
    board = await workflow.list_requests()
    return RequestBoardResponse(pending=board.pending, history=board.history)


@router.post("", response_model=AdminRequest, status_code=status.HTTP_201_CREATED)
async def create_request(
    payload: RequestCreatePayload,
    workflow: Annotated[RequestWorkflow, Depends(get_workflow)],
    actor: Annotated[Actor, Depends(get_actor)],
) -> AdminRequest:
    """Raise a request on behalf of the calling operator."""
    return await workflow.create_request(
        request_type=payload.type,
        requester_name=actor.name,
        taxpayer_name=payload.taxpayer_name,
        description=payload.description,
        extra=payload.extra(),
        taxpayer_id=payload.taxpayer_id,
    )


@router.post(
    "/{request_id}/approve",
    response_model=ApprovalResponse,
    dependencies=[Depends(require_admin)],
)
async def approve_request(
    request_id: str,
    workflow: Annotated[RequestWorkflow, Depends(get_workflow)],
    payload: ApprovePayload | None = None,
) -> ApprovalResponse:
    """Approve a pending request (supervisors only)."""
    request = await workflow.get_request(request_id)
    terms = payload.model_dump(exclude_none=True) if payload else {}
    resolution = resolution_for(request.type, terms)
    outcome = await workflow.approve(request_id, resolution)
    return ApprovalResponse(
        request=outcome.request,
        counter_entry=outcome.counter_entry,
        warnings=list(outcome.warnings),
    )


@router.post(
    "/{request_id}/reject",
    response_model=AdminRequest,
    dependencies=[Depends(require_admin)],
)
async def reject_request(
    request_id: str,
    workflow: Annotated[RequestWorkflow, Depends(get_workflow)],
    payload: RejectPayload | None = None,
) -> AdminRequest:
    """Reject a pending request (supervisors only)."""
    return await workflow.reject(request_id, payload.reason if payload else None)


@router.post("/{request_id}/arrangement-charge", response_model=ArrangementChargeResponse)
async def load_arrangement_charge(
    request_id: str,
    workflow: Annotated[RequestWorkflow, Depends(get_workflow)],
) -> ArrangementChargeResponse:
    """Load an approved arrangement into collection."""
    charge = await workflow.arrangement_charge(request_id)
    return ArrangementChargeResponse(
        request_id=charge.request_id,
        taxpayer=charge.taxpayer,
        taxpayer_name=charge.taxpayer_name,
        amount=charge.amount,
        total_debt=charge.total_debt,
        installments=charge.installments,
        description=charge.description,
        tax_type=charge.tax_type,
        payment_method=charge.payment_method,
        metadata=charge.metadata,
        warnings=list(charge.warnings),
    )
