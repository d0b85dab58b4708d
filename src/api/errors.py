"""Mapping of portal errors to JSON HTTP responses."""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from statemachine.exceptions import TransitionNotAllowed

from src.core.exceptions import (
    PaymentPersistenceError,
    RecordConflictError,
    RecordNotFoundError,
    StoreError,
    ValidationError,
)
from src.core.logging import get_logger
from src.core.sentry import capture_store_failure
from src.store.mapping import to_wire

logger = get_logger(__name__)


def _error(status_code: int, detail: str, **extra: object) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail, **extra})


async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, str(exc))


async def _not_found(request: Request, exc: RecordNotFoundError) -> JSONResponse:
    return _error(status.HTTP_404_NOT_FOUND, exc.detail)


async def _conflict(request: Request, exc: RecordConflictError) -> JSONResponse:
    return _error(status.HTTP_409_CONFLICT, exc.detail)


async def _transition_not_allowed(
    request: Request, exc: TransitionNotAllowed
) -> JSONResponse:
    return _error(status.HTTP_409_CONFLICT, str(exc))


async def _store_unavailable(request: Request, exc: StoreError) -> JSONResponse:
    logger.error(
        "store_unavailable",
        operation=exc.operation,
        path=request.url.path,
        error=exc.detail,
    )
    capture_store_failure(exc)
    return _error(status.HTTP_503_SERVICE_UNAVAILABLE, exc.detail)


async def _payment_not_persisted(
    request: Request, exc: PaymentPersistenceError
) -> JSONResponse:
    # The unsaved transaction is returned so the client can queue it offline.
    return _error(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        str(exc),
        transaction=to_wire(exc.transaction),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install handlers; Starlette picks the most specific class first."""
    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(RecordNotFoundError, _not_found)
    app.add_exception_handler(RecordConflictError, _conflict)
    app.add_exception_handler(TransitionNotAllowed, _transition_not_allowed)
    app.add_exception_handler(StoreError, _store_unavailable)
    app.add_exception_handler(PaymentPersistenceError, _payment_not_persisted)
