"""In-memory records shared by the debt engine, workflow and API.

Attributes are snake_case like the storage rows; every record also accepts
and emits the camelCase field names used by UI clients and realtime events
(``model_dump(by_alias=True)``). Monetary fields use Decimal.
"""

from __future__ import annotations

import datetime as dt
import uuid
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.models.admin_request import RequestStatus, RequestType
from src.models.taxpayer import CommercialCategory, TaxpayerStatus, TaxpayerType
from src.models.transaction import PaymentMethod, TaxType, TransactionStatus


def new_record_id(prefix: str) -> str:
    """Client-side id such as ``TX-3F2A9C1B7E04``."""
    return f"{prefix}-{uuid.uuid4().hex[:12].upper()}"


class RecordModel(BaseModel):
    """Base model with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class VehicleInfo(RecordModel):
    """Vehicle owned by a taxpayer. The plate keys the yearly renewal."""

    plate: str
    brand: str = ""
    model: str = ""
    year: str = ""
    color: str = ""
    motor_serial: str = ""
    chassis_serial: str = ""
    has_transfer_documents: bool = False


class Taxpayer(RecordModel):
    """Taxpayer identity and service flags."""

    id: str = ""
    taxpayer_number: str = ""
    type: TaxpayerType = TaxpayerType.NATURAL
    status: TaxpayerStatus = TaxpayerStatus.ACTIVO

    doc_id: str
    dv: str | None = None
    name: str

    address: str = ""
    corregimiento: str | None = None
    phone: str = ""
    email: str = ""

    has_commercial_activity: bool = False
    commercial_category: CommercialCategory | None = None
    commercial_name: str | None = None
    has_construction: bool = False
    has_garbage_service: bool = False

    vehicles: list[VehicleInfo] = Field(default_factory=list)
    balance: Decimal = Field(default=Decimal("0"), ge=0)
    created_at: dt.datetime | None = None

    @property
    def is_commercial(self) -> bool:
        """Legal entities pay the commercial garbage rate."""
        return self.type == TaxpayerType.JURIDICA


class Transaction(RecordModel):
    """Ledger entry. Never mutated once created."""

    model_config = ConfigDict(frozen=True)

    id: str
    taxpayer_id: str
    tax_type: TaxType
    amount: Decimal
    date: dt.date
    time: str
    description: str = ""
    status: TransactionStatus
    payment_method: PaymentMethod
    teller_name: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class AdminRequest(RecordModel):
    """Administrative request routed from an operator to a supervisor."""

    id: str
    type: RequestType
    status: RequestStatus = RequestStatus.PENDING
    requester_name: str
    taxpayer_name: str
    taxpayer_id: str | None = None
    description: str = ""

    transaction_id: str | None = None
    total_debt: Decimal | None = None
    payload: Taxpayer | None = None

    response_note: str | None = None
    approved_amount: Decimal | None = None
    approved_total_debt: Decimal | None = None
    installments: int | None = None

    created_at: dt.datetime
    resolved_at: dt.datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING
