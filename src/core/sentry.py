"""Sentry error tracking integration."""

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from src.core.config import settings
from src.core.exceptions import StoreError


def init_sentry() -> None:
    """Initialize Sentry error tracking if DSN is configured.

    Integrates with FastAPI and Starlette for automatic error capture.
    Only captures 5xx errors and samples 10% of traces for performance.
    PII is never sent; taxpayer records stay out of error reports.
    """
    if not settings.sentry_dsn:
        return  # Skip gracefully if no DSN

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        traces_sample_rate=0.1,
        send_default_pii=False,  # Never send taxpayer PII
        integrations=[
            StarletteIntegration(transaction_style="endpoint"),
            FastApiIntegration(
                transaction_style="endpoint",
                failed_request_status_codes={*range(500, 600)},
            ),
        ],
    )


def capture_store_failure(exc: StoreError) -> None:
    """Report a data store failure that was answered with a handled 503.

    Handled responses never reach the FastAPI integration, so store outages
    are reported explicitly, tagged with the failing operation.
    """
    with sentry_sdk.new_scope() as scope:
        scope.set_tag("store.operation", exc.operation)
        sentry_sdk.capture_exception(exc)
