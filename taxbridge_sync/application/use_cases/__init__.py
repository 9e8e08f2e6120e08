"""Application use cases."""

from taxbridge_sync.application.use_cases.api_base_url import (
    API_BASE_URL_KEY,
    GetApiBaseUrlUseCase,
    SetApiBaseUrlUseCase,
    load_stored_base_url,
    validate_base_url,
)
from taxbridge_sync.application.use_cases.queue_invoice import (
    QueueInvoiceResult,
    QueueInvoiceUseCase,
)
from taxbridge_sync.application.use_cases.retry_invoice import RetryInvoiceUseCase
from taxbridge_sync.application.use_cases.run_sync import (
    GetSyncStatusUseCase,
    RunSyncResult,
    RunSyncUseCase,
)

__all__ = [
    "API_BASE_URL_KEY",
    "GetApiBaseUrlUseCase",
    "SetApiBaseUrlUseCase",
    "load_stored_base_url",
    "validate_base_url",
    "QueueInvoiceResult",
    "QueueInvoiceUseCase",
    "RetryInvoiceUseCase",
    "GetSyncStatusUseCase",
    "RunSyncResult",
    "RunSyncUseCase",
]
