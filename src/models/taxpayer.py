"""Taxpayer SQLAlchemy model and its enumerations."""

import enum
from decimal import Decimal

from sqlalchemy import Boolean, Enum, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, JSONType, TimestampMixin


class TaxpayerType(str, enum.Enum):
    """Natural person or legal entity."""

    NATURAL = "NATURAL"
    JURIDICA = "JURIDICA"


class TaxpayerStatus(str, enum.Enum):
    """Administrative status of a taxpayer.

    Kept apart from TransactionStatus even though both are status words.
    """

    ACTIVO = "ACTIVO"
    SUSPENDIDO = "SUSPENDIDO"
    BLOQUEADO = "BLOQUEADO"
    MOROSO = "MOROSO"


class CommercialCategory(str, enum.Enum):
    """Commercial tax tier."""

    NONE = "NONE"
    CLASE_A = "CLASE_A"  # Banks, supermarkets
    CLASE_B = "CLASE_B"  # Stores, pharmacies
    CLASE_C = "CLASE_C"  # Small kiosks


class Taxpayer(Base, TimestampMixin):
    """Registered taxpayer with service flags and owned vehicles.

    Vehicles have no lifecycle of their own and are stored as an ordered
    JSON list on the taxpayer row.
    """

    __tablename__ = "taxpayers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    taxpayer_number: Mapped[str] = mapped_column(
        String(20), unique=True, nullable=False
    )
    type: Mapped[TaxpayerType] = mapped_column(Enum(TaxpayerType), nullable=False)
    status: Mapped[TaxpayerStatus] = mapped_column(
        Enum(TaxpayerStatus), default=TaxpayerStatus.ACTIVO, nullable=False
    )

    doc_id: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    dv: Mapped[str | None] = mapped_column(String(4))
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    address: Mapped[str] = mapped_column(String(500), default="", nullable=False)
    corregimiento: Mapped[str | None] = mapped_column(String(100))
    phone: Mapped[str] = mapped_column(String(50), default="", nullable=False)
    email: Mapped[str] = mapped_column(String(255), default="", nullable=False)

    has_commercial_activity: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    commercial_category: Mapped[CommercialCategory | None] = mapped_column(
        Enum(CommercialCategory)
    )
    commercial_name: Mapped[str | None] = mapped_column(String(255))
    has_construction: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    has_garbage_service: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    vehicles: Mapped[list[dict]] = mapped_column(
        JSONType, default=list, nullable=False
    )
    balance: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0"), nullable=False
    )
