"""Single clock for ledger dates and request timestamps.

All "now" readings go through this module so that a payment's ledger date,
the debt engine's default reference date and the resolution stamp of a
request agree on the municipality's calendar day.
"""

from datetime import UTC, date, datetime
from zoneinfo import ZoneInfo

from src.core.config import settings


def local_zone() -> ZoneInfo:
    """Zone configured by ``TIMEZONE``."""
    return ZoneInfo(settings.timezone)


def now() -> datetime:
    """Current time as an aware datetime in the municipality's zone."""
    return datetime.now(local_zone())


def today() -> date:
    """Current calendar day in the municipality's zone."""
    return now().date()


def as_utc(value: datetime) -> datetime:
    """Normalize to aware UTC; naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
