"""Payment recording and the offline payment queue."""

from src.payments.offline_queue import OFFLINE_QUEUE_KEY, DrainResult, OfflineQueue
from src.payments.recording import PaymentReceipt, PaymentRecorder, SyncResult

__all__ = [
    "OFFLINE_QUEUE_KEY",
    "DrainResult",
    "OfflineQueue",
    "PaymentReceipt",
    "PaymentRecorder",
    "SyncResult",
]
