"""Tests for row and wire mapping of records."""

from datetime import date, datetime
from decimal import Decimal

from src.domain.records import AdminRequest, Taxpayer, Transaction, VehicleInfo
from src.models.admin_request import RequestType
from src.models.taxpayer import Taxpayer as TaxpayerRow
from src.models.taxpayer import TaxpayerType
from src.models.transaction import Transaction as TransactionRow
from src.store.mapping import (
    admin_request_from_row,
    admin_request_to_row,
    apply_row,
    from_wire,
    row_from_orm,
    taxpayer_from_row,
    taxpayer_to_row,
    to_wire,
    transaction_from_row,
    transaction_to_row,
)
from conftest import make_request, make_taxpayer, make_transaction


class TestWireForm:
    """Tests for the camelCase form used by clients."""

    def test_taxpayer_keys_are_camel_case(self) -> None:
        taxpayer = make_taxpayer(
            has_garbage_service=True,
            vehicles=[VehicleInfo(plate="123457", motor_serial="M-1")],
        )

        data = to_wire(taxpayer)

        assert data["taxpayerNumber"] == "2024-0001"
        assert data["hasGarbageService"] is True
        assert data["docId"] == "8-888-8888"
        assert data["vehicles"][0]["motorSerial"] == "M-1"
        assert "taxpayer_number" not in data

    def test_wire_form_parses_back(self) -> None:
        taxpayer = make_taxpayer(
            balance=Decimal("12.50"),
            vehicles=[VehicleInfo(plate="A1"), VehicleInfo(plate="B2")],
        )

        parsed = from_wire(Taxpayer, to_wire(taxpayer))

        assert parsed == taxpayer
        assert [vehicle.plate for vehicle in parsed.vehicles] == ["A1", "B2"]

    def test_from_wire_accepts_snake_case(self) -> None:
        parsed = from_wire(
            Taxpayer, {"doc_id": "1", "name": "Ana", "taxpayer_number": "2024-0009"}
        )

        assert parsed.taxpayer_number == "2024-0009"

    def test_transaction_metadata_survives(self) -> None:
        transaction = make_transaction(metadata={"plateNumber": "123457", "year": 2024})

        parsed = from_wire(Transaction, to_wire(transaction))

        assert parsed.metadata == {"plateNumber": "123457", "year": 2024}
        assert parsed.amount == Decimal("25.00")


class TestStorageRows:
    """Tests for the snake_case storage rows."""

    def test_taxpayer_row_round_trip(self) -> None:
        taxpayer = make_taxpayer(
            type=TaxpayerType.JURIDICA,
            dv="45",
            corregimiento=None,
            vehicles=[VehicleInfo(plate="123457", brand="Kia")],
            created_at=datetime(2024, 1, 2, 3, 4, 5),
        )

        row = taxpayer_to_row(taxpayer)

        assert row["vehicles"] == [taxpayer.vehicles[0].model_dump()]
        assert row["corregimiento"] is None
        assert taxpayer_from_row(row) == taxpayer

    def test_taxpayer_from_row_fills_missing_balance(self) -> None:
        row = taxpayer_to_row(make_taxpayer())
        row["balance"] = None
        row["vehicles"] = None

        taxpayer = taxpayer_from_row(row)

        assert taxpayer.balance == Decimal("0")
        assert taxpayer.vehicles == []

    def test_transaction_row_round_trip(self) -> None:
        transaction = make_transaction(amount=Decimal("-25.00"), metadata={"month": 5})

        assert transaction_from_row(transaction_to_row(transaction)) == transaction

    def test_request_payload_stored_in_wire_form(self) -> None:
        request = make_request(
            type=RequestType.UPDATE_TAXPAYER,
            transaction_id=None,
            payload=make_taxpayer(name="Juan P. Pérez"),
        )

        row = admin_request_to_row(request)

        assert row["payload"]["taxpayerNumber"] == "2024-0001"
        assert admin_request_from_row(row) == request

    def test_request_without_payload(self) -> None:
        row = admin_request_to_row(make_request())

        assert row["payload"] is None
        assert isinstance(admin_request_from_row(row), AdminRequest)


class TestOrmRows:
    """Tests for reading and writing ORM objects."""

    def test_apply_row_uses_column_names(self) -> None:
        transaction = make_transaction(metadata={"plateNumber": "X"})

        obj = apply_row(TransactionRow(), transaction_to_row(transaction))

        assert obj.metadata_ == {"plateNumber": "X"}
        assert row_from_orm(obj)["metadata"] == {"plateNumber": "X"}

    def test_apply_row_ignores_unknown_keys(self) -> None:
        obj = apply_row(TaxpayerRow(), {"name": "Ana", "nickname": "Anita"})

        assert obj.name == "Ana"
        assert not hasattr(obj, "nickname")

    def test_row_from_orm_reads_every_column(self) -> None:
        obj = apply_row(
            TransactionRow(),
            transaction_to_row(make_transaction(date=date(2024, 6, 1))),
        )

        row = row_from_orm(obj)

        assert row["date"] == date(2024, 6, 1)
        assert set(row) >= {"id", "taxpayer_id", "tax_type", "created_at"}
