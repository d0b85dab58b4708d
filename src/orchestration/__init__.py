"""Orchestration module for administrative request resolution."""

from src.orchestration.resolutions import (
    ArrangementApproval,
    PaymentArrangementDetails,
    RequestDetails,
    Resolution,
    TaxpayerEditApproval,
    TaxpayerEditDetails,
    VoidApproval,
    VoidTransactionDetails,
    check_resolution,
    details_from_extra,
    resolution_for,
)
from src.orchestration.state_machine import (
    AdminRequestStateMachine,
    TransitionNotAllowed,
    create_state_machine,
)
from src.orchestration.workflow import (
    ApprovalOutcome,
    ArrangementCharge,
    RequestBoard,
    RequestWorkflow,
)

__all__ = [
    # Resolutions
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
    "resolution_for",
    # State machine
    "AdminRequestStateMachine",
    "TransitionNotAllowed",
    "create_state_machine",
    # Workflow
    "ApprovalOutcome",
    "ArrangementCharge",
    "RequestBoard",
    "RequestWorkflow",
]
