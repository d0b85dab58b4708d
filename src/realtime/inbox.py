"""Per-viewer view of administrative requests.

An inbox belongs to one connected viewer. It never trusts event payloads as
state: every change event triggers a full reload of the request list, and
the payload is only used to decide whether the viewer should be notified.
Archiving is local to the inbox; the shared request is never modified.
"""

import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import structlog

from src.core.exceptions import RecordNotFoundError
from src.domain.records import AdminRequest
from src.domain.roles import REQUESTER_ROLES, SUPERVISOR_ROLES, Role
from src.models.admin_request import RequestStatus, RequestType
from src.orchestration.state_machine import create_state_machine
from src.realtime.events import ChangeEvent, EventType

logger = structlog.get_logger()

RequestLoader = Callable[[], Awaitable[list[AdminRequest]]]

_TYPE_LABELS = {
    RequestType.VOID_TRANSACTION: "anulación",
    RequestType.PAYMENT_ARRANGEMENT: "arreglo de pago",
    RequestType.UPDATE_TAXPAYER: "edición de datos",
}

_RESOLVED_STATUSES = frozenset({RequestStatus.APPROVED, RequestStatus.REJECTED})


@dataclass(frozen=True)
class RequestNotification:
    """Advisory notice for a viewer. Losing one never loses state."""

    request_id: str
    status: RequestStatus
    title: str
    message: str


NotifyCallback = Callable[[RequestNotification], Awaitable[None] | None]


def _status_of(record: dict[str, Any] | None) -> RequestStatus | None:
    if not record or not record.get("status"):
        return None
    try:
        return RequestStatus(record["status"])
    except ValueError:
        return None


class RequestInbox:
    """Request list and notifications for one viewer role.

    Usage:
        inbox = RequestInbox(Role.ADMIN, store.list_admin_requests, show_toast)
        await inbox.load()
        unsubscribe = bus.subscribe(Channel.ADMIN_REQUESTS, inbox.on_change)

    Args:
        role: Role of the viewer; decides which transitions notify.
        loader: Returns the authoritative request list.
        notify: Receives notifications; may be sync or async.
    """

    def __init__(
        self,
        role: Role,
        loader: RequestLoader,
        notify: NotifyCallback | None = None,
    ) -> None:
        self.role = role
        self._loader = loader
        self._notify = notify
        self._requests: dict[str, AdminRequest] = {}
        self._archived: set[str] = set()
        self._notified: set[tuple[str, RequestStatus]] = set()

    async def load(self) -> list[AdminRequest]:
        """Replace the local snapshot with the authoritative list."""
        requests = await self._loader()
        self._requests = {request.id: request for request in requests}
        return self.requests

    async def on_change(self, event: ChangeEvent) -> None:
        """React to a change on the request stream."""
        notification = self._notification_for(event)
        await self.load()
        if notification is None:
            return

        key = (notification.request_id, notification.status)
        if key in self._notified:
            return
        self._notified.add(key)
        logger.debug(
            "request_notification",
            role=self.role.value,
            request_id=notification.request_id,
            status=notification.status.value,
        )
        if self._notify is not None:
            result = self._notify(notification)
            if inspect.isawaitable(result):
                await result

    def _notification_for(self, event: ChangeEvent) -> RequestNotification | None:
        new = event.new or {}
        request_id = new.get("id")
        new_status = _status_of(new)
        if not request_id or new_status is None:
            return None

        if (
            event.event_type == EventType.INSERT
            and new_status == RequestStatus.PENDING
            and self.role in SUPERVISOR_ROLES
        ):
            label = _TYPE_LABELS.get(_request_type(new), "solicitud")
            return RequestNotification(
                request_id=request_id,
                status=new_status,
                title="Nueva solicitud",
                message=(
                    f"{new.get('requesterName', '')} solicita {label} "
                    f"para {new.get('taxpayerName', '')}"
                ),
            )

        if (
            event.event_type == EventType.UPDATE
            and new_status in _RESOLVED_STATUSES
            and self.role in REQUESTER_ROLES
        ):
            previous_status = _status_of(event.old)
            if previous_status is None:
                known = self._requests.get(request_id)
                previous_status = known.status if known else None
            if previous_status != RequestStatus.PENDING:
                return None
            approved = new_status == RequestStatus.APPROVED
            return RequestNotification(
                request_id=request_id,
                status=new_status,
                title="Solicitud aprobada" if approved else "Solicitud rechazada",
                message=new.get("responseNote") or "",
            )

        return None

    @property
    def requests(self) -> list[AdminRequest]:
        """Every request, with locally archived ones shown as ARCHIVED."""
        return [self._present(request) for request in self._requests.values()]

    def _present(self, request: AdminRequest) -> AdminRequest:
        if request.id in self._archived:
            return request.model_copy(update={"status": RequestStatus.ARCHIVED})
        return request

    def pending(self) -> list[AdminRequest]:
        """Pending requests, oldest first."""
        return sorted(
            (request for request in self._requests.values() if request.is_pending),
            key=lambda request: request.created_at,
        )

    def history(self) -> list[AdminRequest]:
        """Resolved requests not archived here, newest first."""
        return sorted(
            (
                request
                for request in self._requests.values()
                if not request.is_pending and request.id not in self._archived
            ),
            key=lambda request: request.resolved_at or request.created_at,
            reverse=True,
        )

    def archived(self) -> list[AdminRequest]:
        return [
            self._present(request)
            for request in self._requests.values()
            if request.id in self._archived
        ]

    def archive(self, request_id: str) -> None:
        """Hide a resolved request from this viewer's history.

        Archiving twice is harmless.

        Raises:
            RecordNotFoundError: If the request is not in the snapshot
            TransitionNotAllowed: If the request is still pending
        """
        if request_id in self._archived:
            return
        request = self._requests.get(request_id)
        if request is None:
            raise RecordNotFoundError("admin_request", request_id)
        create_state_machine(request.model_copy()).archive_once()
        self._archived.add(request_id)


def _request_type(record: dict[str, Any]) -> RequestType | None:
    try:
        return RequestType(record.get("type"))
    except ValueError:
        return None


__all__ = [
    "NotifyCallback",
    "RequestInbox",
    "RequestLoader",
    "RequestNotification",
]
