"""Row-level change events pushed to connected clients."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

import orjson


class EventType(str, enum.Enum):
    """Kind of row change."""

    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class Channel(str, enum.Enum):
    """Entity streams. Values are table names."""

    TAXPAYERS = "taxpayers"
    TRANSACTIONS = "transactions"
    ADMIN_REQUESTS = "admin_requests"
    SYSTEM_CONFIG = "system_config"


@dataclass(frozen=True)
class ChangeEvent:
    """A committed change to one row.

    ``new`` and ``old`` hold camelCase records. Receivers must treat the
    event as a hint to reload, not as the authoritative state.
    """

    table: str
    event_type: EventType
    new: dict[str, Any] | None = None
    old: dict[str, Any] | None = None

    def to_json(self) -> bytes:
        return orjson.dumps(
            {
                "table": self.table,
                "eventType": self.event_type.value,
                "new": self.new,
                "old": self.old,
            }
        )

    @classmethod
    def from_json(cls, raw: bytes | str) -> ChangeEvent:
        data = orjson.loads(raw)
        return cls(
            table=data["table"],
            event_type=EventType(data["eventType"]),
            new=data.get("new"),
            old=data.get("old"),
        )
