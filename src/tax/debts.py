"""Debt derivation for municipal taxpayers.

Derives what a taxpayer owes for the current period from the profile, the
ledger and the rate table. Nothing is cached: callers recompute after every
ledger change.

Rules, applied in this order:

1. Carried balance: a positive manual balance is always owed and always
   overdue, whatever the taxpayer status or service flags.
2. Commercial tax (monthly): owed by active taxpayers with commercial
   activity unless a PAGADO COMERCIO transaction is dated in the reference
   month.
3. Garbage tax (monthly): same check against BASURA; legal entities pay the
   commercial garbage rate, everyone else the residential one.
4. Vehicle plates (yearly): the plate's last digit is the renewal month
   (0 means October, anything non-numeric means January). Owed from the
   renewal month onward unless a VEHICULO transaction for that plate is
   dated in the reference year.

Monthly items become overdue after the grace day; a plate becomes overdue
once the renewal month has passed.
"""

from __future__ import annotations

import calendar
import string
from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any

from src.domain.records import Taxpayer, Transaction, VehicleInfo
from src.models.taxpayer import CommercialCategory, TaxpayerStatus
from src.models.transaction import TaxType, TransactionStatus
from src.tax.rates import TaxConfig

ZERO = Decimal("0")

DEFAULT_GRACE_DAY = 15

ACTIVE_STATUSES = frozenset({TaxpayerStatus.ACTIVO})
MOROSITY_STATUSES = ACTIVE_STATUSES | {TaxpayerStatus.MOROSO}

MONTH_NAMES = (
    "enero",
    "febrero",
    "marzo",
    "abril",
    "mayo",
    "junio",
    "julio",
    "agosto",
    "septiembre",
    "octubre",
    "noviembre",
    "diciembre",
)

_CATEGORY_LABELS = {
    CommercialCategory.CLASE_A: "Clase A",
    CommercialCategory.CLASE_B: "Clase B",
    CommercialCategory.CLASE_C: "Clase C",
}


@dataclass(frozen=True)
class DebtItem:
    """A single obligation currently owed. Not a ledger record.

    Args:
        id: Deterministic id (taxpayer, tax and period).
        taxpayer_id: Owner of the obligation.
        tax_type: Tax being owed; None for the carried balance.
        label: Short heading for listings.
        description: Human readable detail, reused as the payment description.
        amount: Amount owed.
        due_date: Display-only due date.
        is_overdue: Whether the obligation is past its grace period.
        metadata: Period keys copied onto the payment (month/year, plateNumber).
    """

    id: str
    taxpayer_id: str
    tax_type: TaxType | None
    label: str
    description: str
    amount: Decimal
    due_date: date
    is_overdue: bool
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_carried_balance(self) -> bool:
        return self.tax_type is None


@dataclass
class DelinquencyEntry:
    """A taxpayer with at least one outstanding item."""

    taxpayer: Taxpayer
    items: list[DebtItem]

    @property
    def total(self) -> Decimal:
        return total_debt(self.items)

    @property
    def has_overdue(self) -> bool:
        return any(item.is_overdue for item in self.items)


def renewal_month(plate: str) -> int:
    """Month (1-12) in which a plate must be renewed.

    Args:
        plate: Plate number as registered.

    Returns:
        The last digit as a month, 10 for a trailing 0, and 1 when the last
        character is not a digit (special plates).
    """
    last_char = plate.strip()[-1:]
    if not last_char or last_char not in string.digits:
        return 1
    digit = int(last_char)
    return 10 if digit == 0 else digit


def _end_of_month(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


def _paid_this_month(
    transactions: Iterable[Transaction],
    tax_type: TaxType,
    reference_date: date,
) -> bool:
    return any(
        tx.tax_type == tax_type
        and tx.status == TransactionStatus.PAGADO
        and tx.date.year == reference_date.year
        and tx.date.month == reference_date.month
        for tx in transactions
    )


def _plate_paid_this_year(
    transactions: Iterable[Transaction],
    plate: str,
    year: int,
    require_paid: bool,
) -> bool:
    for tx in transactions:
        if tx.tax_type != TaxType.VEHICULO or tx.date.year != year:
            continue
        if tx.metadata.get("plateNumber") != plate:
            continue
        if require_paid and tx.status != TransactionStatus.PAGADO:
            continue
        return True
    return False


def _balance_item(taxpayer: Taxpayer, reference_date: date) -> DebtItem:
    return DebtItem(
        id=f"{taxpayer.id}:BALANCE",
        taxpayer_id=taxpayer.id,
        tax_type=None,
        label="Saldo Pendiente",
        description="Deuda anterior / saldo pendiente",
        amount=taxpayer.balance,
        # Placeholder date; the balance has no real deadline.
        due_date=date(reference_date.year, 1, 1),
        is_overdue=True,
        metadata={"carriedBalance": True},
    )


def _monthly_item(
    taxpayer: Taxpayer,
    tax_type: TaxType,
    label: str,
    description: str,
    amount: Decimal,
    reference_date: date,
    grace_day: int,
) -> DebtItem:
    year, month = reference_date.year, reference_date.month
    return DebtItem(
        id=f"{taxpayer.id}:{tax_type.value}:{year}-{month:02d}",
        taxpayer_id=taxpayer.id,
        tax_type=tax_type,
        label=label,
        description=description,
        amount=amount,
        due_date=_end_of_month(year, month),
        is_overdue=reference_date.day > grace_day,
        metadata={"month": month, "year": year},
    )


def _vehicle_item(
    taxpayer: Taxpayer,
    vehicle: VehicleInfo,
    renewal: int,
    amount: Decimal,
    reference_date: date,
) -> DebtItem:
    year = reference_date.year
    month_name = MONTH_NAMES[renewal - 1]
    brand = f" ({vehicle.brand})" if vehicle.brand else ""
    return DebtItem(
        id=f"{taxpayer.id}:{TaxType.VEHICULO.value}:{vehicle.plate}:{year}",
        taxpayer_id=taxpayer.id,
        tax_type=TaxType.VEHICULO,
        label="Impuesto de Circulación",
        description=f"Placa {vehicle.plate}{brand} - Mes: {month_name}",
        amount=amount,
        due_date=_end_of_month(year, renewal),
        is_overdue=reference_date.month > renewal,
        metadata={
            "plateNumber": vehicle.plate,
            "year": year,
            "renewalMonth": renewal,
        },
    )


def compute_debts(
    taxpayer: Taxpayer,
    ledger: Iterable[Transaction],
    config: TaxConfig,
    reference_date: date,
    *,
    include_moroso: bool = False,
    grace_day: int = DEFAULT_GRACE_DAY,
    vehicle_requires_paid: bool = True,
) -> list[DebtItem]:
    """Derive the obligations a taxpayer owes at a reference date.

    Args:
        taxpayer: Taxpayer profile.
        ledger: Transactions; entries of other taxpayers are ignored.
        config: Rate table.
        reference_date: "Today" for period matching.
        include_moroso: Treat MOROSO taxpayers as active (morosity dashboard).
        grace_day: Day of month after which monthly items are overdue.
        vehicle_requires_paid: Only PAGADO transactions renew a plate.

    Returns:
        Items in insertion order: balance, commercial, garbage, vehicles.
        Empty when nothing is owed.
    """
    own = [tx for tx in ledger if tx.taxpayer_id == taxpayer.id]
    active_statuses = MOROSITY_STATUSES if include_moroso else ACTIVE_STATUSES
    is_active = taxpayer.status in active_statuses

    items: list[DebtItem] = []

    if taxpayer.balance > ZERO:
        items.append(_balance_item(taxpayer, reference_date))

    if not is_active:
        return items

    if taxpayer.has_commercial_activity and not _paid_this_month(
        own, TaxType.COMERCIO, reference_date
    ):
        category = taxpayer.commercial_category or CommercialCategory.NONE
        category_label = _CATEGORY_LABELS.get(category, "Sin categoría")
        items.append(
            _monthly_item(
                taxpayer,
                TaxType.COMERCIO,
                label="Impuesto Comercial",
                description=f"Impuesto Comercial Mensual ({category_label})",
                amount=config.commercial_rate(taxpayer.commercial_category),
                reference_date=reference_date,
                grace_day=grace_day,
            )
        )

    if taxpayer.has_garbage_service and not _paid_this_month(
        own, TaxType.BASURA, reference_date
    ):
        kind = "COMERCIAL" if taxpayer.is_commercial else "RESIDENCIAL"
        items.append(
            _monthly_item(
                taxpayer,
                TaxType.BASURA,
                label="Tasa de Aseo",
                description=f"Tasa de Aseo / Basura - {kind}",
                amount=config.garbage_rate(taxpayer.is_commercial),
                reference_date=reference_date,
                grace_day=grace_day,
            )
        )

    for vehicle in taxpayer.vehicles:
        renewal = renewal_month(vehicle.plate)
        if reference_date.month < renewal:
            continue
        if _plate_paid_this_year(
            own, vehicle.plate, reference_date.year, vehicle_requires_paid
        ):
            continue
        items.append(
            _vehicle_item(taxpayer, vehicle, renewal, config.plate_cost, reference_date)
        )

    return items


def total_debt(items: Iterable[DebtItem]) -> Decimal:
    """Sum of item amounts."""
    return sum((item.amount for item in items), ZERO)


def sort_for_display(items: Sequence[DebtItem]) -> list[DebtItem]:
    """Overdue items first, otherwise keep insertion order."""
    return sorted(items, key=lambda item: not item.is_overdue)


def _ledger_by_taxpayer(
    ledger: Iterable[Transaction],
) -> Mapping[str, list[Transaction]]:
    grouped: dict[str, list[Transaction]] = defaultdict(list)
    for tx in ledger:
        grouped[tx.taxpayer_id].append(tx)
    return grouped


def delinquent_taxpayers(
    taxpayers: Iterable[Taxpayer],
    ledger: Iterable[Transaction],
    config: TaxConfig,
    reference_date: date,
    **rules: Any,
) -> list[DelinquencyEntry]:
    """Taxpayers with a non-empty debt list, for aggregate dashboards.

    Args:
        taxpayers: All taxpayers to evaluate.
        ledger: Full ledger.
        config: Rate table.
        reference_date: "Today" for period matching.
        **rules: Forwarded to ``compute_debts`` (include_moroso, grace_day,
            vehicle_requires_paid).

    Returns:
        One entry per delinquent taxpayer, in input order.
    """
    grouped = _ledger_by_taxpayer(ledger)
    entries: list[DelinquencyEntry] = []
    for taxpayer in taxpayers:
        items = compute_debts(
            taxpayer, grouped.get(taxpayer.id, []), config, reference_date, **rules
        )
        if items:
            entries.append(DelinquencyEntry(taxpayer=taxpayer, items=items))
    return entries


def is_in_good_standing(
    taxpayer: Taxpayer,
    ledger: Iterable[Transaction],
    config: TaxConfig,
    reference_date: date,
    **rules: Any,
) -> bool:
    """True when nothing is owed (eligible for a Paz y Salvo certificate)."""
    return not compute_debts(taxpayer, ledger, config, reference_date, **rules)
