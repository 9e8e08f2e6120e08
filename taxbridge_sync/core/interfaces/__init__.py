"""Core interfaces (ports) for dependency injection."""

from taxbridge_sync.core.interfaces.network import (
    IReachability,
    ISyncNotifier,
    ReachabilityListener,
)
from taxbridge_sync.core.interfaces.remote import IInvoiceEndpoint, RemoteInvoiceReceipt
from taxbridge_sync.core.interfaces.storage import IInvoiceRecordStore, ISettingsStore

__all__ = [
    # Storage interfaces
    "IInvoiceRecordStore",
    "ISettingsStore",
    # Remote interfaces
    "IInvoiceEndpoint",
    "RemoteInvoiceReceipt",
    # Network interfaces
    "IReachability",
    "ISyncNotifier",
    "ReachabilityListener",
]
