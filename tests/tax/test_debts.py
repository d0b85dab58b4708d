"""Tests for debt derivation.

Reference dates are fixed so period matching never depends on the clock.
"""

from datetime import date
from decimal import Decimal

import pytest

from src.domain.records import Taxpayer, VehicleInfo
from src.models.taxpayer import CommercialCategory, TaxpayerStatus, TaxpayerType
from src.models.transaction import TaxType, TransactionStatus
from src.tax.debts import (
    compute_debts,
    delinquent_taxpayers,
    is_in_good_standing,
    renewal_month,
    sort_for_display,
    total_debt,
)
from src.tax.rates import TaxConfig
from conftest import make_taxpayer, make_transaction

MAY_10 = date(2024, 5, 10)
MAY_20 = date(2024, 5, 20)


@pytest.fixture
def config() -> TaxConfig:
    return TaxConfig(
        commercial_rates={CommercialCategory.CLASE_B: Decimal("75")},
        garbage_residential_rate=Decimal("5"),
    )


class TestRenewalMonth:
    """Tests for the plate digit to month mapping."""

    @pytest.mark.parametrize(
        ("plate", "month"),
        [
            ("123457", 7),
            ("ABC-1", 1),
            ("99990", 10),
            ("PLACA-X", 1),
            ("", 1),
            ("AB²", 1),
            ("AB٣", 1),
        ],
    )
    def test_renewal_month(self, plate: str, month: int) -> None:
        assert renewal_month(plate) == month


class TestMonthlyTaxes:
    """Tests for commercial and garbage items."""

    def test_unpaid_commercial_and_garbage(
        self, commercial_taxpayer: Taxpayer, config: TaxConfig
    ) -> None:
        """A natural person with a business owes 75 commercial plus 5 garbage."""
        items = compute_debts(commercial_taxpayer, [], config, MAY_10)

        assert [item.tax_type for item in items] == [TaxType.COMERCIO, TaxType.BASURA]
        assert total_debt(items) == Decimal("80.00")

    def test_paid_commercial_leaves_only_garbage(
        self, commercial_taxpayer: Taxpayer, config: TaxConfig
    ) -> None:
        ledger = [make_transaction(date=date(2024, 5, 2), tax_type=TaxType.COMERCIO)]

        items = compute_debts(commercial_taxpayer, ledger, config, MAY_10)

        assert [item.tax_type for item in items] == [TaxType.BASURA]
        assert total_debt(items) == Decimal("5.00")

    def test_paid_garbage_suppresses_garbage_item(
        self, commercial_taxpayer: Taxpayer, config: TaxConfig
    ) -> None:
        ledger = [make_transaction(date=date(2024, 5, 1), tax_type=TaxType.BASURA)]

        items = compute_debts(commercial_taxpayer, ledger, config, MAY_10)

        assert TaxType.BASURA not in {item.tax_type for item in items}

    def test_payment_in_previous_month_does_not_count(
        self, commercial_taxpayer: Taxpayer, config: TaxConfig
    ) -> None:
        ledger = [make_transaction(date=date(2024, 4, 30), tax_type=TaxType.COMERCIO)]

        items = compute_debts(commercial_taxpayer, ledger, config, MAY_10)

        assert TaxType.COMERCIO in {item.tax_type for item in items}

    def test_same_month_previous_year_does_not_count(
        self, commercial_taxpayer: Taxpayer, config: TaxConfig
    ) -> None:
        ledger = [make_transaction(date=date(2023, 5, 3), tax_type=TaxType.COMERCIO)]

        items = compute_debts(commercial_taxpayer, ledger, config, MAY_10)

        assert TaxType.COMERCIO in {item.tax_type for item in items}

    @pytest.mark.parametrize(
        "status", [TransactionStatus.PENDIENTE, TransactionStatus.ANULADO]
    )
    def test_unpaid_statuses_do_not_satisfy(
        self,
        commercial_taxpayer: Taxpayer,
        config: TaxConfig,
        status: TransactionStatus,
    ) -> None:
        ledger = [make_transaction(date=date(2024, 5, 2), status=status)]

        items = compute_debts(commercial_taxpayer, ledger, config, MAY_10)

        assert TaxType.COMERCIO in {item.tax_type for item in items}

    def test_other_taxpayer_payment_ignored(
        self, commercial_taxpayer: Taxpayer, config: TaxConfig
    ) -> None:
        ledger = [make_transaction(taxpayer_id="tp-2", date=date(2024, 5, 2))]

        items = compute_debts(commercial_taxpayer, ledger, config, MAY_10)

        assert TaxType.COMERCIO in {item.tax_type for item in items}

    def test_uncategorized_business_owes_base_rate(self, config: TaxConfig) -> None:
        taxpayer = make_taxpayer(
            has_commercial_activity=True, commercial_category=CommercialCategory.NONE
        )

        items = compute_debts(taxpayer, [], config, MAY_10)

        assert items[0].amount == config.commercial_base_rate

    def test_legal_entity_pays_commercial_garbage_rate(self, config: TaxConfig) -> None:
        taxpayer = make_taxpayer(type=TaxpayerType.JURIDICA, has_garbage_service=True)

        items = compute_debts(taxpayer, [], config, MAY_10)

        assert items[0].amount == config.garbage_commercial_rate
        assert items[0].description.endswith("COMERCIAL")

    def test_overdue_after_grace_day(
        self, commercial_taxpayer: Taxpayer, config: TaxConfig
    ) -> None:
        before = compute_debts(commercial_taxpayer, [], config, MAY_10)
        after = compute_debts(commercial_taxpayer, [], config, MAY_20)
        on_grace_day = compute_debts(
            commercial_taxpayer, [], config, date(2024, 5, 15)
        )

        assert not any(item.is_overdue for item in before)
        assert all(item.is_overdue for item in after)
        assert not any(item.is_overdue for item in on_grace_day)

    def test_custom_grace_day(
        self, commercial_taxpayer: Taxpayer, config: TaxConfig
    ) -> None:
        items = compute_debts(commercial_taxpayer, [], config, MAY_10, grace_day=5)

        assert all(item.is_overdue for item in items)

    def test_item_carries_period_metadata(
        self, commercial_taxpayer: Taxpayer, config: TaxConfig
    ) -> None:
        item = compute_debts(commercial_taxpayer, [], config, MAY_10)[0]

        assert item.metadata == {"month": 5, "year": 2024}
        assert item.due_date == date(2024, 5, 31)
        assert item.id == "tp-1:COMERCIO:2024-05"


class TestVehicles:
    """Tests for yearly plate renewal."""

    def _owner(self, plate: str) -> Taxpayer:
        return make_taxpayer(vehicles=[VehicleInfo(plate=plate, brand="Toyota")])

    def test_not_due_before_renewal_month(self, config: TaxConfig) -> None:
        """Plate ending in 7 is not owed in May."""
        items = compute_debts(self._owner("123457"), [], config, MAY_10)

        assert items == []

    def test_non_ascii_digit_plate_renews_in_january(self, config: TaxConfig) -> None:
        """Superscript and Arabic-Indic digits count as special plates."""
        owner = make_taxpayer(
            vehicles=[
                VehicleInfo(plate="AB²", brand="Toyota"),
                VehicleInfo(plate="AB٣", brand="Kia"),
            ]
        )

        items = compute_debts(owner, [], config, MAY_10)

        assert len(items) == 2
        assert all(item.is_overdue for item in items)

    def test_due_from_renewal_month(self, config: TaxConfig) -> None:
        items = compute_debts(self._owner("123457"), [], config, date(2024, 7, 1))

        assert len(items) == 1
        assert items[0].tax_type == TaxType.VEHICULO
        assert items[0].amount == config.plate_cost
        assert items[0].metadata["plateNumber"] == "123457"
        assert "julio" in items[0].description
        assert not items[0].is_overdue

    def test_overdue_after_renewal_month(self, config: TaxConfig) -> None:
        items = compute_debts(self._owner("123457"), [], config, date(2024, 8, 1))

        assert items[0].is_overdue

    def test_plate_ending_in_zero_renews_in_october(self, config: TaxConfig) -> None:
        owner = self._owner("123450")

        assert compute_debts(owner, [], config, date(2024, 9, 30)) == []
        assert len(compute_debts(owner, [], config, date(2024, 10, 1))) == 1

    def test_special_plate_renews_in_january(self, config: TaxConfig) -> None:
        items = compute_debts(self._owner("GOB-X"), [], config, date(2024, 1, 5))

        assert len(items) == 1
        assert items[0].metadata["renewalMonth"] == 1

    def test_paid_plate_this_year(self, config: TaxConfig) -> None:
        ledger = [
            make_transaction(
                tax_type=TaxType.VEHICULO,
                date=date(2024, 2, 1),
                metadata={"plateNumber": "123457"},
            )
        ]

        items = compute_debts(self._owner("123457"), ledger, config, date(2024, 9, 1))

        assert items == []

    def test_payment_for_other_plate_does_not_count(self, config: TaxConfig) -> None:
        ledger = [
            make_transaction(
                tax_type=TaxType.VEHICULO,
                date=date(2024, 2, 1),
                metadata={"plateNumber": "999997"},
            )
        ]

        items = compute_debts(self._owner("123457"), ledger, config, date(2024, 9, 1))

        assert len(items) == 1

    def test_pending_plate_payment_does_not_renew(self, config: TaxConfig) -> None:
        ledger = [
            make_transaction(
                tax_type=TaxType.VEHICULO,
                status=TransactionStatus.PENDIENTE,
                date=date(2024, 2, 1),
                metadata={"plateNumber": "123457"},
            )
        ]
        owner = self._owner("123457")

        assert len(compute_debts(owner, ledger, config, date(2024, 9, 1))) == 1
        assert (
            compute_debts(
                owner, ledger, config, date(2024, 9, 1), vehicle_requires_paid=False
            )
            == []
        )


class TestBalanceAndStatus:
    """Tests for the carried balance and taxpayer status gating."""

    def test_balance_first_and_overdue(
        self, commercial_taxpayer: Taxpayer, config: TaxConfig
    ) -> None:
        taxpayer = commercial_taxpayer.model_copy(update={"balance": Decimal("40")})

        items = compute_debts(taxpayer, [], config, MAY_10)

        assert items[0].is_carried_balance
        assert items[0].is_overdue
        assert items[0].amount == Decimal("40")
        assert total_debt(items) == Decimal("120")

    @pytest.mark.parametrize(
        "status",
        [TaxpayerStatus.SUSPENDIDO, TaxpayerStatus.BLOQUEADO, TaxpayerStatus.MOROSO],
    )
    def test_inactive_taxpayer_only_owes_balance(
        self,
        commercial_taxpayer: Taxpayer,
        config: TaxConfig,
        status: TaxpayerStatus,
    ) -> None:
        taxpayer = commercial_taxpayer.model_copy(
            update={"status": status, "balance": Decimal("10")}
        )

        items = compute_debts(taxpayer, [], config, MAY_10)

        assert [item.is_carried_balance for item in items] == [True]

    def test_inactive_without_balance_owes_nothing(
        self, commercial_taxpayer: Taxpayer, config: TaxConfig
    ) -> None:
        taxpayer = commercial_taxpayer.model_copy(
            update={"status": TaxpayerStatus.SUSPENDIDO}
        )

        assert compute_debts(taxpayer, [], config, MAY_10) == []

    def test_include_moroso_treats_moroso_as_active(
        self, commercial_taxpayer: Taxpayer, config: TaxConfig
    ) -> None:
        taxpayer = commercial_taxpayer.model_copy(
            update={"status": TaxpayerStatus.MOROSO}
        )

        items = compute_debts(taxpayer, [], config, MAY_10, include_moroso=True)

        assert total_debt(items) == Decimal("80")

    def test_taxpayer_without_services_owes_nothing(self, config: TaxConfig) -> None:
        assert compute_debts(make_taxpayer(), [], config, MAY_10) == []


class TestAggregates:
    """Tests for dashboards built on compute_debts."""

    def test_delinquent_taxpayers(
        self, commercial_taxpayer: Taxpayer, config: TaxConfig
    ) -> None:
        clean = make_taxpayer(id="tp-2", taxpayer_number="2024-0002")

        entries = delinquent_taxpayers([commercial_taxpayer, clean], [], config, MAY_20)

        assert [entry.taxpayer.id for entry in entries] == ["tp-1"]
        assert entries[0].total == Decimal("80")
        assert entries[0].has_overdue

    def test_delinquent_taxpayers_groups_ledger(
        self, commercial_taxpayer: Taxpayer, config: TaxConfig
    ) -> None:
        ledger = [
            make_transaction(id="TX-1", date=date(2024, 5, 2), tax_type=TaxType.COMERCIO),
            make_transaction(id="TX-2", date=date(2024, 5, 2), tax_type=TaxType.BASURA),
        ]

        assert delinquent_taxpayers([commercial_taxpayer], ledger, config, MAY_10) == []

    def test_good_standing(self, commercial_taxpayer: Taxpayer, config: TaxConfig) -> None:
        assert is_in_good_standing(make_taxpayer(), [], config, MAY_10)
        assert not is_in_good_standing(commercial_taxpayer, [], config, MAY_10)

    def test_sort_for_display_puts_overdue_first(
        self, commercial_taxpayer: Taxpayer, config: TaxConfig
    ) -> None:
        taxpayer = commercial_taxpayer.model_copy(update={"balance": Decimal("5")})
        items = compute_debts(taxpayer, [], config, MAY_10)

        ordered = sort_for_display(list(reversed(items)))

        assert ordered[0].is_carried_balance
