"""SQLAlchemy models for the tax portal."""

from src.models.admin_request import AdminRequest, RequestStatus, RequestType
from src.models.base import Base
from src.models.system_config import SYSTEM_CONFIG_ID, SystemConfig
from src.models.taxpayer import (
    CommercialCategory,
    Taxpayer,
    TaxpayerStatus,
    TaxpayerType,
)
from src.models.transaction import (
    PaymentMethod,
    TaxType,
    Transaction,
    TransactionStatus,
)

__all__ = [
    "Base",
    "Taxpayer",
    "TaxpayerType",
    "TaxpayerStatus",
    "CommercialCategory",
    "Transaction",
    "TaxType",
    "TransactionStatus",
    "PaymentMethod",
    "AdminRequest",
    "RequestType",
    "RequestStatus",
    "SystemConfig",
    "SYSTEM_CONFIG_ID",
]
