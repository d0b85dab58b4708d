"""Taxpayer API endpoints."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status

from src.api.debts import TaxpayerDebtsResponse, debt_rules, to_debts_response
from src.api.deps import get_actor, get_store
from src.core import clock
from src.core.logging import taxpayer_id_ctx
from src.domain.records import Taxpayer
from src.store.repository import PortalStore
from src.tax.debts import compute_debts

router = APIRouter(
    prefix="/api/taxpayers", tags=["taxpayers"], dependencies=[Depends(get_actor)]
)


@router.get("", response_model=list[Taxpayer])
async def list_taxpayers(
    store: Annotated[PortalStore, Depends(get_store)],
    search: str | None = Query(default=None, min_length=1),
) -> list[Taxpayer]:
    """List taxpayers, optionally filtered by name, document or number."""
    taxpayers = await store.list_taxpayers()
    if not search:
        return taxpayers
    needle = search.strip().lower()
    return [
        taxpayer
        for taxpayer in taxpayers
        if needle in taxpayer.name.lower()
        or needle in taxpayer.doc_id.lower()
        or needle in taxpayer.taxpayer_number.lower()
    ]


@router.post("", response_model=Taxpayer, status_code=status.HTTP_201_CREATED)
async def create_taxpayer(
    payload: Taxpayer,
    store: Annotated[PortalStore, Depends(get_store)],
) -> Taxpayer:
    """Register a taxpayer. The store assigns its id and taxpayer number."""
    return await store.create_taxpayer(payload)


@router.get("/{taxpayer_id}", response_model=Taxpayer)
async def get_taxpayer(
    taxpayer_id: str,
    store: Annotated[PortalStore, Depends(get_store)],
) -> Taxpayer:
    taxpayer_id_ctx.set(taxpayer_id)
    return await store.get_taxpayer(taxpayer_id)


@router.put("/{taxpayer_id}", response_model=Taxpayer)
async def update_taxpayer(
    taxpayer_id: str,
    payload: Taxpayer,
    store: Annotated[PortalStore, Depends(get_store)],
) -> Taxpayer:
    """Replace a taxpayer record in full."""
    taxpayer_id_ctx.set(taxpayer_id)
    return await store.update_taxpayer(payload.model_copy(update={"id": taxpayer_id}))


@router.delete("/{taxpayer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_taxpayer(
    taxpayer_id: str,
    store: Annotated[PortalStore, Depends(get_store)],
) -> Response:
    """Delete a taxpayer without ledger history."""
    taxpayer_id_ctx.set(taxpayer_id)
    await store.delete_taxpayer(taxpayer_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{taxpayer_id}/debts", response_model=TaxpayerDebtsResponse)
async def get_taxpayer_debts(
    taxpayer_id: str,
    store: Annotated[PortalStore, Depends(get_store)],
    include_moroso: bool = Query(default=False),
    reference_date: date | None = Query(default=None),
) -> TaxpayerDebtsResponse:
    """What the taxpayer owes at the reference date (today by default)."""
    taxpayer_id_ctx.set(taxpayer_id)
    taxpayer = await store.get_taxpayer(taxpayer_id)
    ledger = await store.list_transactions(taxpayer_id)
    config = await store.get_config()
    items = compute_debts(
        taxpayer,
        ledger,
        config,
        reference_date or clock.today(),
        **debt_rules(include_moroso),
    )
    return to_debts_response(taxpayer_id, items)
