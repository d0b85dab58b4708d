"""Ledger transaction SQLAlchemy model and its enumerations."""

import enum
from datetime import date
from decimal import Decimal

from sqlalchemy import Date, Enum, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, JSONType, TimestampMixin


class TaxType(str, enum.Enum):
    """Municipal tax kinds."""

    VEHICULO = "VEHICULO"
    CONSTRUCCION = "CONSTRUCCION"
    BASURA = "BASURA"
    COMERCIO = "COMERCIO"


class TransactionStatus(str, enum.Enum):
    """Status of a ledger entry."""

    PAGADO = "PAGADO"
    PENDIENTE = "PENDIENTE"
    ANULADO = "ANULADO"


class PaymentMethod(str, enum.Enum):
    """How a payment was collected."""

    EFECTIVO = "EFECTIVO"
    TARJETA = "TARJETA"
    CHEQUE = "CHEQUE"
    ONLINE = "ONLINE"
    ARREGLO_PAGO = "ARREGLO_PAGO"


class Transaction(Base, TimestampMixin):
    """Immutable ledger entry.

    Ids are generated by the client (``TX-...``) and accepted as-is so that
    offline payments can be replayed without duplicating rows. Voids are new
    rows with a negated amount, never updates.
    """

    __tablename__ = "transactions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    taxpayer_id: Mapped[str] = mapped_column(
        ForeignKey("taxpayers.id"), nullable=False, index=True
    )
    tax_type: Mapped[TaxType] = mapped_column(Enum(TaxType), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    time: Mapped[str] = mapped_column(String(8), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    status: Mapped[TransactionStatus] = mapped_column(
        Enum(TransactionStatus), nullable=False
    )
    payment_method: Mapped[PaymentMethod] = mapped_column(
        Enum(PaymentMethod), nullable=False
    )
    teller_name: Mapped[str] = mapped_column(String(255), nullable=False)
    # "metadata" is reserved on declarative classes
    metadata_: Mapped[dict] = mapped_column(
        "metadata", JSONType, default=dict, nullable=False
    )
