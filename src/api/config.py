"""Rate table API endpoints."""

from decimal import Decimal
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends
from pydantic import Field

from src.api.deps import get_store, require_admin
from src.domain.records import RecordModel
from src.models.taxpayer import CommercialCategory
from src.store.repository import PortalStore
from src.tax.rates import TaxConfig

router = APIRouter(prefix="/api/config", tags=["config"])

NonNegative = Annotated[Decimal, Field(ge=0)]


class TaxConfigPayload(RecordModel):
    """Complete rate table; every rate must be non-negative."""

    plate_cost: NonNegative
    construction_rate_per_sqm: NonNegative
    garbage_residential_rate: NonNegative
    garbage_commercial_rate: NonNegative
    commercial_base_rate: NonNegative
    liquor_license_rate: NonNegative
    advertisement_rate: NonNegative
    commercial_rates: dict[CommercialCategory, NonNegative] = Field(default_factory=dict)

    def to_config(self) -> TaxConfig:
        return TaxConfig.from_dict(self.model_dump(mode="json", by_alias=True))


@router.get("")
async def get_config(
    store: Annotated[PortalStore, Depends(get_store)],
) -> dict[str, Any]:
    """Current rate table in its stored camelCase shape."""
    config = await store.get_config()
    return config.to_dict()


@router.put("", dependencies=[Depends(require_admin)])
async def update_config(
    store: Annotated[PortalStore, Depends(get_store)],
    payload: Annotated[TaxConfigPayload, Body()],
) -> dict[str, Any]:
    """Replace the rate table (supervisors only)."""
    config = await store.update_config(payload.to_config())
    return config.to_dict()
