"""Municipal rate table.

This module centralizes the per-tax rates (commercial tiers, garbage, plate
renewal, construction, licenses) so the debt engine and the cashier never
hardcode amounts. The table is edited by an administrator and stored as
camelCase JSON in the ``system_config`` row.

Example:
    >>> from src.models.taxpayer import CommercialCategory
    >>> from src.tax.rates import DEFAULT_TAX_CONFIG
    >>> DEFAULT_TAX_CONFIG.commercial_rate(CommercialCategory.CLASE_B)
    Decimal('75.00')
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any

from src.models.taxpayer import CommercialCategory


def _default_commercial_rates() -> dict[CommercialCategory, Decimal]:
    return {
        CommercialCategory.NONE: Decimal("0"),
        CommercialCategory.CLASE_A: Decimal("150.00"),  # Supermarkets, banks
        CommercialCategory.CLASE_B: Decimal("75.00"),  # Standard stores
        CommercialCategory.CLASE_C: Decimal("25.00"),  # Small shops
    }


# Stored JSON key -> dataclass attribute
_FIELD_KEYS: dict[str, str] = {
    "plateCost": "plate_cost",
    "constructionRatePerSqm": "construction_rate_per_sqm",
    "garbageResidentialRate": "garbage_residential_rate",
    "garbageCommercialRate": "garbage_commercial_rate",
    "commercialBaseRate": "commercial_base_rate",
    "liquorLicenseRate": "liquor_license_rate",
    "advertisementRate": "advertisement_rate",
}


@dataclass(frozen=True)
class TaxConfig:
    """Flat rate table for a single municipality.

    All monetary values are Decimal. The dataclass is frozen; use
    ``with_rates`` to derive an edited copy.

    Attributes:
        plate_cost: Yearly vehicle plate renewal.
        construction_rate_per_sqm: Construction permit rate per square meter.
        garbage_residential_rate: Monthly garbage collection, households.
        garbage_commercial_rate: Monthly garbage collection, businesses.
        commercial_base_rate: Monthly commercial tax for uncategorized businesses.
        liquor_license_rate: Flat liquor license fee.
        advertisement_rate: Flat advertisement fee.
        commercial_rates: Monthly commercial tax by category.
    """

    plate_cost: Decimal = Decimal("25.00")
    construction_rate_per_sqm: Decimal = Decimal("1.50")
    garbage_residential_rate: Decimal = Decimal("5.00")
    garbage_commercial_rate: Decimal = Decimal("15.00")
    commercial_base_rate: Decimal = Decimal("10.00")
    liquor_license_rate: Decimal = Decimal("150.00")
    advertisement_rate: Decimal = Decimal("20.00")
    commercial_rates: dict[CommercialCategory, Decimal] = field(
        default_factory=_default_commercial_rates
    )

    def commercial_rate(self, category: CommercialCategory | None) -> Decimal:
        """Monthly commercial tax for a category.

        A registered business without a category (absent or NONE) still owes
        the base rate.
        """
        if category is None or category == CommercialCategory.NONE:
            return self.commercial_base_rate
        rate = self.commercial_rates.get(category)
        if rate is None:
            return self.commercial_base_rate
        return rate

    def garbage_rate(self, commercial: bool) -> Decimal:
        """Monthly garbage rate for a commercial or residential taxpayer."""
        if commercial:
            return self.garbage_commercial_rate
        return self.garbage_residential_rate

    def construction_cost(self, area_sqm: Decimal) -> Decimal:
        """Construction permit cost for an area in square meters."""
        return area_sqm * self.construction_rate_per_sqm

    def with_rates(self, **changes: Any) -> TaxConfig:
        """Return a copy with some rates replaced."""
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the stored camelCase JSON shape (amounts as floats)."""
        data: dict[str, Any] = {
            key: float(getattr(self, attr)) for key, attr in _FIELD_KEYS.items()
        }
        data["commercialRates"] = {
            category.value: float(rate)
            for category, rate in self.commercial_rates.items()
        }
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> TaxConfig:
        """Build a config from stored JSON.

        Unknown keys are ignored and missing keys keep their defaults, so a
        partially filled row never breaks debt computation.
        """
        if not data:
            return cls()

        values: dict[str, Any] = {}
        for key, attr in _FIELD_KEYS.items():
            raw = data.get(key, data.get(attr))
            if raw is not None:
                values[attr] = Decimal(str(raw))

        rates = _default_commercial_rates()
        raw_rates = data.get("commercialRates", data.get("commercial_rates")) or {}
        for raw_category, raw_rate in raw_rates.items():
            try:
                category = CommercialCategory(raw_category)
            except ValueError:
                continue
            rates[category] = Decimal(str(raw_rate))
        values["commercial_rates"] = rates

        return cls(**values)


DEFAULT_TAX_CONFIG = TaxConfig()
