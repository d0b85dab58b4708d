"""Translation between storage rows, ORM objects and records.

Storage rows are plain dicts keyed by snake_case column names. The wire form
(API bodies, realtime events, the offline queue file) uses camelCase keys.
Both directions are total: every field survives a round trip, including
Decimal balances, ``None`` optionals, nested vehicles and metadata maps.
"""

from collections.abc import Mapping
from decimal import Decimal
from typing import Any, TypeVar

from sqlalchemy import inspect

from src.domain.records import AdminRequest, RecordModel, Taxpayer, Transaction
from src.models.base import Base

R = TypeVar("R", bound=RecordModel)


def row_from_orm(obj: Base) -> dict[str, Any]:
    """Read an ORM object into a row dict keyed by column name."""
    mapper = inspect(obj).mapper
    return {
        attr.columns[0].name: getattr(obj, attr.key) for attr in mapper.column_attrs
    }


def apply_row(obj: Base, row: Mapping[str, Any]) -> Base:
    """Write a row dict onto an ORM object, ignoring unknown columns."""
    mapper = inspect(type(obj))
    for attr in mapper.column_attrs:
        column_name = attr.columns[0].name
        if column_name in row:
            setattr(obj, attr.key, row[column_name])
    return obj


def to_wire(record: RecordModel) -> dict[str, Any]:
    """Serialize a record to its camelCase JSON-compatible form."""
    return record.model_dump(mode="json", by_alias=True)


def from_wire(model: type[R], data: Mapping[str, Any]) -> R:
    """Parse a camelCase (or snake_case) dict into a record."""
    return model.model_validate(dict(data))


def taxpayer_to_row(taxpayer: Taxpayer) -> dict[str, Any]:
    """Taxpayer record to storage row."""
    row = taxpayer.model_dump(exclude={"vehicles"})
    row["vehicles"] = [vehicle.model_dump() for vehicle in taxpayer.vehicles]
    return row


def taxpayer_from_row(row: Mapping[str, Any]) -> Taxpayer:
    """Storage row to Taxpayer record."""
    data = dict(row)
    data["vehicles"] = data.get("vehicles") or []
    if data.get("balance") is None:
        data["balance"] = Decimal("0")
    return Taxpayer.model_validate(data)


def transaction_to_row(transaction: Transaction) -> dict[str, Any]:
    """Transaction record to storage row."""
    row = transaction.model_dump()
    row["metadata"] = dict(transaction.metadata)
    return row


def transaction_from_row(row: Mapping[str, Any]) -> Transaction:
    """Storage row to Transaction record."""
    data = dict(row)
    data["metadata"] = data.get("metadata") or {}
    return Transaction.model_validate(data)


def admin_request_to_row(request: AdminRequest) -> dict[str, Any]:
    """AdminRequest record to storage row.

    The proposed taxpayer payload is kept in its wire form inside the JSON
    column so that it reads back exactly as the operator submitted it.
    """
    row = request.model_dump(exclude={"payload"})
    row["payload"] = to_wire(request.payload) if request.payload else None
    return row


def admin_request_from_row(row: Mapping[str, Any]) -> AdminRequest:
    """Storage row to AdminRequest record."""
    return AdminRequest.model_validate(dict(row))
