"""Core services - sync state machine, retry policy and storage pressure."""

from taxbridge_sync.core.services.auto_sync import AutoSyncTrigger
from taxbridge_sync.core.services.retry_policy import (
    RetryPolicy,
    is_retryable_error,
    is_retryable_status,
)
from taxbridge_sync.core.services.storage_pressure import StoragePressureManager
from taxbridge_sync.core.services.sync_orchestrator import SyncOrchestrator

__all__ = [
    "AutoSyncTrigger",
    "RetryPolicy",
    "StoragePressureManager",
    "SyncOrchestrator",
    "is_retryable_error",
    "is_retryable_status",
]
