"""Core domain entities."""

from taxbridge_sync.core.entities.invoice import (
    InvoiceItem,
    InvoiceRecord,
    InvoiceStatus,
    utcnow,
)
from taxbridge_sync.core.entities.sync import (
    NetworkStatus,
    SkipReason,
    SyncOutcome,
    SyncResult,
    SyncTrigger,
)

__all__ = [
    # Invoice
    "InvoiceItem",
    "InvoiceRecord",
    "InvoiceStatus",
    "utcnow",
    # Sync
    "NetworkStatus",
    "SkipReason",
    "SyncOutcome",
    "SyncResult",
    "SyncTrigger",
]
