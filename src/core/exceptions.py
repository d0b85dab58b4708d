"""Exception hierarchy for the tax portal.

Validation errors are raised before any persistence call. Store errors wrap
failures of the remote data store and keep the driver message so it can be
shown to the operator.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.domain.records import Transaction


class PortalError(Exception):
    """Base class for all portal errors."""


class ValidationError(PortalError):
    """Input rejected before reaching the store."""


class RequestValidationError(ValidationError):
    """Administrative request or resolution payload is malformed."""


class PaymentValidationError(ValidationError):
    """Payment cannot be recorded as entered."""


class StoreError(PortalError):
    """The data store call failed or timed out."""

    def __init__(self, operation: str, detail: str) -> None:
        self.operation = operation
        self.detail = detail
        super().__init__(f"{operation} failed: {detail}")


class RecordNotFoundError(StoreError):
    """Requested record does not exist."""

    def __init__(self, entity: str, record_id: str) -> None:
        self.entity = entity
        self.record_id = record_id
        super().__init__(f"get_{entity}", f"{entity} '{record_id}' not found")


class RecordConflictError(StoreError):
    """Write rejected because it would break a referential rule."""


class PaymentPersistenceError(PortalError):
    """Payment could not be persisted remotely.

    The built transaction travels with the error so the caller can offer
    the offline fallback without re-entering the payment.
    """

    def __init__(self, transaction: "Transaction", cause: StoreError) -> None:
        self.transaction = transaction
        self.cause = cause
        super().__init__(
            f"Transaction {transaction.id} was not saved: {cause.detail}"
        )
