"""Domain records for taxpayers, the ledger and administrative requests."""

from src.domain.records import (
    AdminRequest,
    RecordModel,
    Taxpayer,
    Transaction,
    VehicleInfo,
    new_record_id,
)
from src.domain.roles import REQUESTER_ROLES, SUPERVISOR_ROLES, Role

__all__ = [
    "REQUESTER_ROLES",
    "SUPERVISOR_ROLES",
    "AdminRequest",
    "RecordModel",
    "Role",
    "Taxpayer",
    "Transaction",
    "VehicleInfo",
    "new_record_id",
]
