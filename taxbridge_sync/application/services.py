"""
Service factory functions for dependency injection.

This module wires infrastructure implementations to the core sync services.
API handlers, the lifespan and the CLI import from here.

Clean Architecture: Application layer orchestrates DI, not core layer.
"""

from pathlib import Path

from taxbridge_sync.config import get_logger, get_settings
from taxbridge_sync.core.services import AutoSyncTrigger, RetryPolicy, SyncOrchestrator
from taxbridge_sync.infrastructure.network import LogSyncNotifier, ReachabilityMonitor
from taxbridge_sync.infrastructure.remote import HttpInvoiceEndpoint
from taxbridge_sync.infrastructure.storage.sqlite import (
    SQLiteInvoiceRecordStore,
    get_record_store,
)

logger = get_logger(__name__)

ACCESS_TOKEN_KEY = "auth:accessToken"

# Singleton service instances
_reachability_monitor: ReachabilityMonitor | None = None
_sync_notifier: LogSyncNotifier | None = None
_invoice_endpoint: HttpInvoiceEndpoint | None = None
_sync_orchestrator: SyncOrchestrator | None = None
_auto_sync_trigger: AutoSyncTrigger | None = None


async def init_db(db_path: Path | None = None) -> int:
    """
    Apply pending migrations, then drop synced records past retention.

    Returns:
        Number of expired synced records removed
    """
    from taxbridge_sync.infrastructure.storage.sqlite.migrations import run_migrations

    results = await run_migrations(db_path)
    failed = [r for r in results if not r.success]
    if failed:
        from taxbridge_sync.core.exceptions import DatabaseError

        raise DatabaseError("migrate", failed[0].error or f"v{failed[0].version} failed")

    store = await get_record_store()
    removed = await store.pressure.prune_expired()
    logger.info("database_ready", migrations_applied=len(results), expired_removed=removed)
    return removed


def get_reachability_monitor() -> ReachabilityMonitor:
    """Get or create the reachability monitor."""
    global _reachability_monitor
    if _reachability_monitor is None:
        _reachability_monitor = ReachabilityMonitor()
    return _reachability_monitor


def get_sync_notifier() -> LogSyncNotifier:
    global _sync_notifier
    if _sync_notifier is None:
        _sync_notifier = LogSyncNotifier()
    return _sync_notifier


async def get_access_token(store: SQLiteInvoiceRecordStore | None = None) -> str | None:
    """Bearer token stored on the device, if any."""
    store = store or await get_record_store()
    return await store.get_setting(ACCESS_TOKEN_KEY)


async def has_credentials() -> bool:
    return bool(await get_access_token())


async def get_invoice_endpoint() -> HttpInvoiceEndpoint:
    """
    Get or create the remote invoice endpoint.

    A base URL stored on the device overrides ``REMOTE_BASE_URL``.
    """
    global _invoice_endpoint
    if _invoice_endpoint is None:
        from taxbridge_sync.application.use_cases.api_base_url import load_stored_base_url

        store = await get_record_store()

        async def base_url_provider() -> str | None:
            return await load_stored_base_url(store)

        async def token_provider() -> str | None:
            return await get_access_token(store)

        _invoice_endpoint = HttpInvoiceEndpoint(
            base_url_provider=base_url_provider,
            token_provider=token_provider,
        )
    return _invoice_endpoint


async def get_sync_orchestrator() -> SyncOrchestrator:
    """
    Get or create the sync orchestrator.

    There must be exactly one per process: its lock is what keeps manual,
    reconnect and periodic passes from overlapping.
    """
    global _sync_orchestrator
    if _sync_orchestrator is None:
        _sync_orchestrator = SyncOrchestrator(
            store=await get_record_store(),
            endpoint=await get_invoice_endpoint(),
            reachability=get_reachability_monitor(),
            policy=RetryPolicy.from_settings(),
        )
    return _sync_orchestrator


async def get_auto_sync_trigger() -> AutoSyncTrigger:
    """Get or create the auto-sync trigger (not started)."""
    global _auto_sync_trigger
    if _auto_sync_trigger is None:
        sync = get_settings().sync
        _auto_sync_trigger = AutoSyncTrigger(
            orchestrator=await get_sync_orchestrator(),
            reachability=get_reachability_monitor(),
            notifier=get_sync_notifier(),
            credentials_check=has_credentials if sync.require_credentials else None,
            periodic_interval=sync.periodic_interval_seconds,
        )
    return _auto_sync_trigger


def reset_services() -> None:
    """Reset all service singletons (for testing)."""
    global _reachability_monitor, _sync_notifier, _invoice_endpoint
    global _sync_orchestrator, _auto_sync_trigger

    from taxbridge_sync.infrastructure.storage.sqlite import reset_record_store

    _reachability_monitor = None
    _sync_notifier = None
    _invoice_endpoint = None
    _sync_orchestrator = None
    _auto_sync_trigger = None
    reset_record_store()
