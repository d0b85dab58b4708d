"""Administrative request state machine.

Declarative transitions for request resolution, with callbacks stamping
the resolution fields on the request record.
"""

import structlog
from statemachine import State, StateMachine
from statemachine.exceptions import TransitionNotAllowed

from src.core import clock
from src.domain.records import AdminRequest
from src.models.admin_request import RequestStatus

logger = structlog.get_logger()


class AdminRequestStateMachine(StateMachine):
    """State machine for the administrative request lifecycle.

    States match RequestStatus:
    - pending: Raised by an operator, awaiting a supervisor
    - approved: Accepted by a supervisor
    - rejected: Declined by a supervisor
    - archived: Hidden from the viewer's history (final)

    Transitions:
    - approve: pending -> approved
    - reject: pending -> rejected
    - archive: approved/rejected -> archived

    There is no way back to pending.
    """

    pending = State(initial=True, value=RequestStatus.PENDING)
    approved = State(value=RequestStatus.APPROVED)
    rejected = State(value=RequestStatus.REJECTED)
    archived = State(final=True, value=RequestStatus.ARCHIVED)

    approve = pending.to(approved)
    reject = pending.to(rejected)
    archive = approved.to(archived) | rejected.to(archived)

    def __init__(self, request: AdminRequest) -> None:
        """Initialize the machine from the request's current status.

        Args:
            request: Request record the callbacks update in place
        """
        self.request = request
        super().__init__(start_value=request.status)

    @property
    def current_status(self) -> RequestStatus:
        return RequestStatus(self.current_state.value)

    def on_approve(self, note: str) -> None:
        """Stamp the approval.

        Args:
            note: Confirmation note shown to the requester
        """
        self.request.status = RequestStatus.APPROVED
        self.request.response_note = note
        self.request.resolved_at = clock.now()
        logger.info(
            "admin_request_approved",
            request_id=self.request.id,
            request_type=self.request.type.value,
        )

    def on_reject(self, note: str) -> None:
        """Stamp the rejection.

        Args:
            note: Reason shown to the requester
        """
        self.request.status = RequestStatus.REJECTED
        self.request.response_note = note
        self.request.resolved_at = clock.now()
        logger.info(
            "admin_request_rejected",
            request_id=self.request.id,
            request_type=self.request.type.value,
        )

    def on_archive(self) -> None:
        self.request.status = RequestStatus.ARCHIVED
        logger.debug("admin_request_archived", request_id=self.request.id)

    def archive_once(self) -> None:
        """Archive, treating an already archived request as done."""
        if self.current_state == self.archived:
            return
        self.archive()


def create_state_machine(request: AdminRequest) -> AdminRequestStateMachine:
    """Factory function to create a state machine for a request.

    Args:
        request: Request record

    Returns:
        AdminRequestStateMachine positioned at the request's status
    """
    return AdminRequestStateMachine(request)


__all__ = [
    "AdminRequestStateMachine",
    "TransitionNotAllowed",
    "create_state_machine",
]
