"""Tests for per-viewer request inboxes and their notifications."""

from datetime import datetime

import pytest
from statemachine.exceptions import TransitionNotAllowed

from src.core.exceptions import RecordNotFoundError
from src.domain.records import AdminRequest
from src.domain.roles import Role
from src.models.admin_request import RequestStatus
from src.realtime.events import ChangeEvent, EventType
from src.realtime.inbox import RequestInbox, RequestNotification
from src.store.mapping import to_wire
from conftest import make_request


class FakeRequestSource:
    """Loader returning whatever the test put in ``requests``."""

    def __init__(self, requests: list[AdminRequest] | None = None) -> None:
        self.requests = list(requests or [])
        self.loads = 0

    async def __call__(self) -> list[AdminRequest]:
        self.loads += 1
        return list(self.requests)


def _inserted(request: AdminRequest) -> ChangeEvent:
    return ChangeEvent(
        table="admin_requests", event_type=EventType.INSERT, new=to_wire(request)
    )


def _resolved(before: AdminRequest, after: AdminRequest, with_old: bool = True) -> ChangeEvent:
    return ChangeEvent(
        table="admin_requests",
        event_type=EventType.UPDATE,
        new=to_wire(after),
        old=to_wire(before) if with_old else None,
    )


def _approved(request: AdminRequest) -> AdminRequest:
    return request.model_copy(
        update={
            "status": RequestStatus.APPROVED,
            "response_note": "Anulación Autorizada y Procesada",
            "resolved_at": datetime(2024, 5, 10, 11, 0),
        }
    )


class TestNotifications:
    """Which transitions notify which viewers."""

    @pytest.mark.asyncio
    async def test_supervisor_notified_of_new_request(self) -> None:
        request = make_request()
        source = FakeRequestSource([request])
        received: list[RequestNotification] = []
        inbox = RequestInbox(Role.ADMIN, source, received.append)

        await inbox.on_change(_inserted(request))

        assert len(received) == 1
        assert received[0].title == "Nueva solicitud"
        assert received[0].status == RequestStatus.PENDING
        assert "Cajero 1" in received[0].message
        assert [item.id for item in inbox.pending()] == ["REQ-1"]

    @pytest.mark.asyncio
    async def test_requester_not_notified_of_new_request(self) -> None:
        request = make_request()
        received: list[RequestNotification] = []
        inbox = RequestInbox(Role.CAJERO, FakeRequestSource([request]), received.append)

        await inbox.on_change(_inserted(request))

        assert received == []

    @pytest.mark.asyncio
    async def test_requester_notified_of_approval(self) -> None:
        request = make_request()
        approved = _approved(request)
        source = FakeRequestSource([request])
        received: list[RequestNotification] = []
        inbox = RequestInbox(Role.CAJERO, source, received.append)
        await inbox.load()
        source.requests = [approved]

        await inbox.on_change(_resolved(request, approved))

        assert [notice.title for notice in received] == ["Solicitud aprobada"]
        assert received[0].message == "Anulación Autorizada y Procesada"
        assert inbox.history()[0].status == RequestStatus.APPROVED

    @pytest.mark.asyncio
    async def test_rejection_uses_snapshot_when_old_is_missing(self) -> None:
        request = make_request()
        rejected = request.model_copy(
            update={"status": RequestStatus.REJECTED, "response_note": "No procede"}
        )
        source = FakeRequestSource([request])
        received: list[RequestNotification] = []
        inbox = RequestInbox(Role.REGISTRO, source, received.append)
        await inbox.load()
        source.requests = [rejected]

        await inbox.on_change(_resolved(request, rejected, with_old=False))

        assert [notice.title for notice in received] == ["Solicitud rechazada"]
        assert received[0].message == "No procede"

    @pytest.mark.asyncio
    async def test_supervisor_not_notified_of_resolution(self) -> None:
        request = make_request()
        received: list[RequestNotification] = []
        inbox = RequestInbox(Role.ADMIN, FakeRequestSource([request]), received.append)

        await inbox.on_change(_resolved(request, _approved(request)))

        assert received == []

    @pytest.mark.asyncio
    async def test_duplicate_event_notifies_once(self) -> None:
        request = make_request()
        approved = _approved(request)
        received: list[RequestNotification] = []
        inbox = RequestInbox(
            Role.CAJERO, FakeRequestSource([approved]), received.append
        )
        event = _resolved(request, approved)

        await inbox.on_change(event)
        await inbox.on_change(event)

        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_update_not_from_pending_is_silent(self) -> None:
        approved = _approved(make_request())
        received: list[RequestNotification] = []
        inbox = RequestInbox(
            Role.CAJERO, FakeRequestSource([approved]), received.append
        )

        await inbox.on_change(_resolved(approved, approved))

        assert received == []

    @pytest.mark.asyncio
    async def test_async_notify_is_awaited(self) -> None:
        request = make_request()
        received: list[RequestNotification] = []

        async def notify(notification: RequestNotification) -> None:
            received.append(notification)

        inbox = RequestInbox(Role.ADMIN, FakeRequestSource([request]), notify)

        await inbox.on_change(_inserted(request))

        assert len(received) == 1


class TestReload:
    """Events are hints; the loader is the source of truth."""

    @pytest.mark.asyncio
    async def test_every_event_reloads(self) -> None:
        source = FakeRequestSource([make_request()])
        inbox = RequestInbox(Role.AUDITOR, source)

        await inbox.on_change(_inserted(make_request()))
        await inbox.on_change(
            ChangeEvent(table="admin_requests", event_type=EventType.DELETE)
        )

        assert source.loads == 2

    @pytest.mark.asyncio
    async def test_payload_does_not_override_loaded_state(self) -> None:
        request = make_request()
        source = FakeRequestSource([request])
        inbox = RequestInbox(Role.ADMIN, source)

        await inbox.on_change(_resolved(request, _approved(request)))

        assert inbox.requests[0].status == RequestStatus.PENDING


class TestArchive:
    """Archiving is local to one inbox."""

    @pytest.mark.asyncio
    async def test_archive_moves_request_out_of_history(self) -> None:
        approved = _approved(make_request())
        source = FakeRequestSource([approved])
        inbox = RequestInbox(Role.CAJERO, source)
        other = RequestInbox(Role.ADMIN, source)
        await inbox.load()
        await other.load()

        inbox.archive(approved.id)
        inbox.archive(approved.id)

        assert inbox.history() == []
        assert [request.status for request in inbox.archived()] == [
            RequestStatus.ARCHIVED
        ]
        assert [request.id for request in other.history()] == [approved.id]
        assert source.requests[0].status == RequestStatus.APPROVED

    @pytest.mark.asyncio
    async def test_archive_survives_reload(self) -> None:
        approved = _approved(make_request())
        inbox = RequestInbox(Role.CAJERO, FakeRequestSource([approved]))
        await inbox.load()
        inbox.archive(approved.id)

        await inbox.load()

        assert inbox.requests[0].status == RequestStatus.ARCHIVED

    @pytest.mark.asyncio
    async def test_pending_cannot_be_archived(self) -> None:
        inbox = RequestInbox(Role.CAJERO, FakeRequestSource([make_request()]))
        await inbox.load()

        with pytest.raises(TransitionNotAllowed):
            inbox.archive("REQ-1")

        assert inbox.archived() == []

    @pytest.mark.asyncio
    async def test_unknown_request(self) -> None:
        inbox = RequestInbox(Role.CAJERO, FakeRequestSource())
        await inbox.load()

        with pytest.raises(RecordNotFoundError):
            inbox.archive("REQ-404")
