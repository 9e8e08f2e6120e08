"""Run Sync Use Case - manual sync pass and sync status."""

from dataclasses import dataclass

from taxbridge_sync.application.dto.responses import SyncResultResponse, SyncStatusResponse
from taxbridge_sync.config import get_logger
from taxbridge_sync.core.entities import SyncResult, SyncTrigger
from taxbridge_sync.core.interfaces import IInvoiceRecordStore, ISyncNotifier
from taxbridge_sync.core.services import SyncOrchestrator

logger = get_logger(__name__)


@dataclass
class RunSyncResult:
    result: SyncResult
    trigger: SyncTrigger = SyncTrigger.MANUAL


class RunSyncUseCase:
    """User-initiated sync pass; shares the orchestrator lock with auto-sync."""

    def __init__(
        self,
        orchestrator: SyncOrchestrator | None = None,
        notifier: ISyncNotifier | None = None,
    ):
        self._orchestrator = orchestrator
        self._notifier = notifier

    async def _get_orchestrator(self) -> SyncOrchestrator:
        if self._orchestrator is None:
            from taxbridge_sync.application.services import get_sync_orchestrator

            self._orchestrator = await get_sync_orchestrator()
        return self._orchestrator

    async def execute(self) -> RunSyncResult:
        orchestrator = await self._get_orchestrator()
        result = await orchestrator.run_sync_pass()
        logger.info("manual_sync_finished", skipped=result.skipped, **result.counts())
        if result.skipped is None and self._notifier is not None:
            self._notifier.notify(result, SyncTrigger.MANUAL)
        return RunSyncResult(result=result)

    def to_response(self, result: RunSyncResult) -> SyncResultResponse:
        return SyncResultResponse.from_result(result.result)


class GetSyncStatusUseCase:
    """Snapshot of queue size, last pass and reachability."""

    def __init__(
        self,
        orchestrator: SyncOrchestrator,
        store: IInvoiceRecordStore,
        is_reachable: bool,
        notifications: list[dict] | None = None,
    ):
        self._orchestrator = orchestrator
        self._store = store
        self._is_reachable = is_reachable
        self._notifications = notifications or []

    async def execute(self) -> SyncStatusResponse:
        last = self._orchestrator.last_result
        return SyncStatusResponse(
            is_running=self._orchestrator.is_running,
            is_reachable=self._is_reachable,
            unsynced=await self._store.count_unsynced(),
            total=await self._store.count_all(),
            last_completed_at=self._orchestrator.last_completed_at,
            last_result=SyncResultResponse.from_result(last) if last else None,
            notifications=self._notifications,
        )
