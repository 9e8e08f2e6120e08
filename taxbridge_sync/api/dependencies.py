"""
Dependency injection container for FastAPI.

Provides service instances to route handlers.
"""

from functools import lru_cache

from taxbridge_sync.application.services import (
    get_reachability_monitor,
    get_sync_notifier,
    get_sync_orchestrator,
)
from taxbridge_sync.application.use_cases import (
    GetApiBaseUrlUseCase,
    QueueInvoiceUseCase,
    RetryInvoiceUseCase,
    RunSyncUseCase,
    SetApiBaseUrlUseCase,
)
from taxbridge_sync.config import Settings, get_settings
from taxbridge_sync.core.services import SyncOrchestrator
from taxbridge_sync.infrastructure.network import LogSyncNotifier, ReachabilityMonitor
from taxbridge_sync.infrastructure.storage.sqlite import (
    SQLiteInvoiceRecordStore,
    get_record_store,
)


@lru_cache
def get_app_settings() -> Settings:
    """Get cached application settings."""
    return get_settings()


# Store dependencies
async def get_store() -> SQLiteInvoiceRecordStore:
    return await get_record_store()


# Service dependencies
async def get_orchestrator() -> SyncOrchestrator:
    return await get_sync_orchestrator()


def get_monitor() -> ReachabilityMonitor:
    return get_reachability_monitor()


def get_notifier() -> LogSyncNotifier:
    return get_sync_notifier()


# Use case dependencies
async def get_queue_invoice_use_case() -> QueueInvoiceUseCase:
    return QueueInvoiceUseCase(store=await get_record_store())


async def get_retry_invoice_use_case() -> RetryInvoiceUseCase:
    return RetryInvoiceUseCase(store=await get_record_store())


async def get_run_sync_use_case() -> RunSyncUseCase:
    return RunSyncUseCase(
        orchestrator=await get_sync_orchestrator(),
        notifier=get_sync_notifier(),
    )


async def get_api_base_url_use_case() -> GetApiBaseUrlUseCase:
    return GetApiBaseUrlUseCase(store=await get_record_store())


async def set_api_base_url_use_case() -> SetApiBaseUrlUseCase:
    return SetApiBaseUrlUseCase(store=await get_record_store())
