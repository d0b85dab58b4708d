"""Typed request details and supervisor resolutions.

Each request type carries its own details and is resolved by its own
approval variant, so the workflow dispatches on types rather than on
loosely keyed payload fields.
"""

from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Literal

import pydantic
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.core.exceptions import RequestValidationError
from src.domain.records import AdminRequest, Taxpayer
from src.models.admin_request import RequestType

VOID_APPROVED_NOTE = "Anulación Autorizada y Procesada"
ARRANGEMENT_APPROVED_NOTE = "Arreglo de Pago Aprobado"
TAXPAYER_EDIT_APPROVED_NOTE = "Edición de Contribuyente Aprobada"
DEFAULT_REJECTION_NOTE = "Rechazado sin motivo específico"

DEFAULT_INSTALLMENTS = 12


class _Variant(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


# ----------------------------------------------------------------------
# Request details
# ----------------------------------------------------------------------


class VoidTransactionDetails(_Variant):
    """Reverse a ledger entry."""

    kind: Literal["void"] = "void"
    transaction_id: str = Field(min_length=1)


class PaymentArrangementDetails(_Variant):
    """Settle an outstanding debt in installments."""

    kind: Literal["arrangement"] = "arrangement"
    total_debt: Decimal = Field(gt=0)


class TaxpayerEditDetails(_Variant):
    """Replace a taxpayer record with the proposed one."""

    kind: Literal["taxpayer_edit"] = "taxpayer_edit"
    payload: Taxpayer

    @pydantic.field_validator("payload")
    @classmethod
    def _payload_has_id(cls, payload: Taxpayer) -> Taxpayer:
        if not payload.id:
            raise ValueError("proposed taxpayer record must carry its id")
        return payload


RequestDetails = VoidTransactionDetails | PaymentArrangementDetails | TaxpayerEditDetails

_DETAILS_BY_TYPE: dict[RequestType, type[_Variant]] = {
    RequestType.VOID_TRANSACTION: VoidTransactionDetails,
    RequestType.PAYMENT_ARRANGEMENT: PaymentArrangementDetails,
    RequestType.UPDATE_TAXPAYER: TaxpayerEditDetails,
}


def details_from_extra(
    request_type: RequestType, extra: Mapping[str, Any] | None
) -> RequestDetails:
    """Validate the type-specific fields of a new request.

    Args:
        request_type: Kind of request being raised
        extra: Type-specific fields, camelCase or snake_case

    Returns:
        Details variant matching the request type

    Raises:
        RequestValidationError: If a required field is missing or invalid
    """
    model = _DETAILS_BY_TYPE[request_type]
    data = {key: value for key, value in (extra or {}).items() if key != "kind"}
    try:
        return model.model_validate(data)  # type: ignore[return-value]
    except pydantic.ValidationError as exc:
        raise RequestValidationError(
            f"Invalid {request_type.value} request: {_summarize(exc)}"
        ) from exc


def details_of(request: AdminRequest) -> RequestDetails:
    """Rebuild the details variant from a stored request."""
    match request.type:
        case RequestType.VOID_TRANSACTION:
            extra = {"transaction_id": request.transaction_id}
        case RequestType.PAYMENT_ARRANGEMENT:
            extra = {"total_debt": request.total_debt}
        case RequestType.UPDATE_TAXPAYER:
            extra = {"payload": request.payload}
    return details_from_extra(request.type, extra)


# ----------------------------------------------------------------------
# Resolutions
# ----------------------------------------------------------------------


class VoidApproval(_Variant):
    kind: Literal["void"] = "void"


class ArrangementApproval(_Variant):
    """Terms the supervisor grants for a payment arrangement."""

    kind: Literal["arrangement"] = "arrangement"
    initial_payment: Decimal = Field(default=Decimal("0"), ge=0)
    installment_count: int = Field(default=DEFAULT_INSTALLMENTS, ge=1)


class TaxpayerEditApproval(_Variant):
    kind: Literal["taxpayer_edit"] = "taxpayer_edit"


Resolution = VoidApproval | ArrangementApproval | TaxpayerEditApproval

_RESOLUTION_BY_TYPE: dict[RequestType, type[_Variant]] = {
    RequestType.VOID_TRANSACTION: VoidApproval,
    RequestType.PAYMENT_ARRANGEMENT: ArrangementApproval,
    RequestType.UPDATE_TAXPAYER: TaxpayerEditApproval,
}


def resolution_for(
    request_type: RequestType, data: Mapping[str, Any] | None = None
) -> Resolution:
    """Build the resolution variant for a request type.

    Args:
        request_type: Kind of request being approved
        data: Resolution fields (only arrangements take any)

    Raises:
        RequestValidationError: If the terms are out of range
    """
    model = _RESOLUTION_BY_TYPE[request_type]
    fields = {key: value for key, value in (data or {}).items() if key != "kind"}
    try:
        return model.model_validate(fields)  # type: ignore[return-value]
    except pydantic.ValidationError as exc:
        raise RequestValidationError(
            f"Invalid {request_type.value} resolution: {_summarize(exc)}"
        ) from exc


def check_resolution(request: AdminRequest, resolution: Resolution) -> None:
    """Reject a resolution that does not belong to the request's type."""
    expected = _RESOLUTION_BY_TYPE[request.type]
    if not isinstance(resolution, expected):
        raise RequestValidationError(
            f"{type(resolution).__name__} cannot resolve a "
            f"{request.type.value} request"
        )


def _summarize(exc: pydantic.ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error["loc"]) or "request"
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)


__all__ = [
    "ARRANGEMENT_APPROVED_NOTE",
    "DEFAULT_INSTALLMENTS",
    "DEFAULT_REJECTION_NOTE",
    "TAXPAYER_EDIT_APPROVED_NOTE",
    "VOID_APPROVED_NOTE",
    "ArrangementApproval",
    "PaymentArrangementDetails",
    "RequestDetails",
    "Resolution",
    "TaxpayerEditApproval",
    "TaxpayerEditDetails",
    "VoidApproval",
    "VoidTransactionDetails",
    "check_resolution",
    "details_from_extra",
    "details_of",
    "resolution_for",
]
