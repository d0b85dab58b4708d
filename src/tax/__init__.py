"""Municipal rate table and debt derivation."""

from src.tax.debts import (
    DebtItem,
    DelinquencyEntry,
    compute_debts,
    delinquent_taxpayers,
    is_in_good_standing,
    renewal_month,
    sort_for_display,
    total_debt,
)
from src.tax.rates import DEFAULT_TAX_CONFIG, TaxConfig

__all__ = [
    "DEFAULT_TAX_CONFIG",
    "DebtItem",
    "DelinquencyEntry",
    "TaxConfig",
    "compute_debts",
    "delinquent_taxpayers",
    "is_in_good_standing",
    "renewal_month",
    "sort_for_display",
    "total_debt",
]
