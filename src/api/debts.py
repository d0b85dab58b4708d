"""Debt API endpoints."""

from datetime import date
from decimal import Decimal
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query

from src.api.deps import get_store
from src.core import clock
from src.core.config import settings
from src.domain.records import RecordModel, Taxpayer
from src.models.transaction import TaxType
from src.store.repository import PortalStore
from src.tax.debts import DebtItem, delinquent_taxpayers, sort_for_display, total_debt

router = APIRouter(prefix="/api/debts", tags=["debts"])


class DebtItemResponse(RecordModel):
    """Outstanding obligation."""

    id: str
    taxpayer_id: str
    tax_type: TaxType | None
    label: str
    description: str
    amount: Decimal
    due_date: date
    is_overdue: bool
    metadata: dict[str, Any]


class TaxpayerDebtsResponse(RecordModel):
    """Debts of one taxpayer, overdue first."""

    taxpayer_id: str
    items: list[DebtItemResponse]
    total: Decimal
    in_good_standing: bool


class DelinquentTaxpayerResponse(RecordModel):
    taxpayer: Taxpayer
    items: list[DebtItemResponse]
    total: Decimal
    has_overdue: bool


class DelinquencyReportResponse(RecordModel):
    """Morosity dashboard."""

    reference_date: date
    entries: list[DelinquentTaxpayerResponse]
    total: Decimal


def debt_rules(include_moroso: bool = False) -> dict[str, Any]:
    """Keyword rules forwarded to the debt engine."""
    return {
        "include_moroso": include_moroso,
        "grace_day": settings.monthly_grace_day,
        "vehicle_requires_paid": settings.vehicle_debt_requires_paid,
    }


def to_item_response(item: DebtItem) -> DebtItemResponse:
    return DebtItemResponse(
        id=item.id,
        taxpayer_id=item.taxpayer_id,
        tax_type=item.tax_type,
        label=item.label,
        description=item.description,
        amount=item.amount,
        due_date=item.due_date,
        is_overdue=item.is_overdue,
        metadata=item.metadata,
    )


def to_debts_response(taxpayer_id: str, items: list[DebtItem]) -> TaxpayerDebtsResponse:
    return TaxpayerDebtsResponse(
        taxpayer_id=taxpayer_id,
        items=[to_item_response(item) for item in sort_for_display(items)],
        total=total_debt(items),
        in_good_standing=not items,
    )


@router.get("", response_model=DelinquencyReportResponse)
async def list_delinquent_taxpayers(
    store: Annotated[PortalStore, Depends(get_store)],
    include_moroso: bool = Query(default=False),
    reference_date: date | None = Query(default=None),
) -> DelinquencyReportResponse:
    """Taxpayers owing anything at the reference date (today by default)."""
    today = reference_date or clock.today()
    taxpayers = await store.list_taxpayers()
    ledger = await store.list_transactions()
    config = await store.get_config()

    entries = delinquent_taxpayers(
        taxpayers, ledger, config, today, **debt_rules(include_moroso)
    )
    return DelinquencyReportResponse(
        reference_date=today,
        entries=[
            DelinquentTaxpayerResponse(
                taxpayer=entry.taxpayer,
                items=[to_item_response(item) for item in sort_for_display(entry.items)],
                total=entry.total,
                has_overdue=entry.has_overdue,
            )
            for entry in entries
        ],
        total=sum((entry.total for entry in entries), Decimal("0")),
    )
