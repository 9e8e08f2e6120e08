"""Sync endpoints."""

from fastapi import APIRouter, Depends

from taxbridge_sync.api.dependencies import (
    get_monitor,
    get_notifier,
    get_orchestrator,
    get_run_sync_use_case,
    get_store,
)
from taxbridge_sync.application.dto.responses import SyncResultResponse, SyncStatusResponse
from taxbridge_sync.application.use_cases import GetSyncStatusUseCase, RunSyncUseCase
from taxbridge_sync.core.services import SyncOrchestrator
from taxbridge_sync.infrastructure.network import LogSyncNotifier, ReachabilityMonitor
from taxbridge_sync.infrastructure.storage.sqlite import SQLiteInvoiceRecordStore

router = APIRouter(prefix="/api/sync", tags=["sync"])


@router.post("/run", response_model=SyncResultResponse)
async def run_sync(
    use_case: RunSyncUseCase = Depends(get_run_sync_use_case),
) -> SyncResultResponse:
    """
    Run one sync pass now.

    Returns zero counts with a ``skipped`` reason when offline or when a
    pass is already running.
    """
    result = await use_case.execute()
    return use_case.to_response(result)


@router.get("/status", response_model=SyncStatusResponse)
async def sync_status(
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
    store: SQLiteInvoiceRecordStore = Depends(get_store),
    monitor: ReachabilityMonitor = Depends(get_monitor),
    notifier: LogSyncNotifier = Depends(get_notifier),
) -> SyncStatusResponse:
    use_case = GetSyncStatusUseCase(
        orchestrator=orchestrator,
        store=store,
        is_reachable=monitor.is_reachable,
        notifications=notifier.recent,
    )
    return await use_case.execute()
