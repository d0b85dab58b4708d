"""Administrative request SQLAlchemy model and its enumerations."""

import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Enum, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, JSONType, UTCDateTime


class RequestType(str, enum.Enum):
    """Kinds of requests an operator can send for approval."""

    VOID_TRANSACTION = "VOID_TRANSACTION"
    PAYMENT_ARRANGEMENT = "PAYMENT_ARRANGEMENT"
    UPDATE_TAXPAYER = "UPDATE_TAXPAYER"


class RequestStatus(str, enum.Enum):
    """Approval workflow states.

    ARCHIVED is a per-viewer dismissal and is never written to the shared row.
    """

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    ARCHIVED = "ARCHIVED"


class AdminRequest(Base):
    """Operator request awaiting (or resolved by) a supervisor."""

    __tablename__ = "admin_requests"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    type: Mapped[RequestType] = mapped_column(Enum(RequestType), nullable=False)
    status: Mapped[RequestStatus] = mapped_column(
        Enum(RequestStatus), default=RequestStatus.PENDING, nullable=False, index=True
    )
    requester_name: Mapped[str] = mapped_column(String(255), nullable=False)
    taxpayer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    taxpayer_id: Mapped[str | None] = mapped_column(String(36))
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)

    # Type-specific request data
    transaction_id: Mapped[str | None] = mapped_column(String(64))
    total_debt: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    payload: Mapped[dict | None] = mapped_column(JSONType)

    # Resolution, written once when leaving PENDING
    response_note: Mapped[str | None] = mapped_column(Text)
    approved_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    approved_total_debt: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    installments: Mapped[int | None] = mapped_column(Integer)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    resolved_at: Mapped[datetime | None] = mapped_column(UTCDateTime)
