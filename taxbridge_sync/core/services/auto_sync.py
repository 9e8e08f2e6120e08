"""
Auto-Sync Trigger.

Watches the reachability estimate and runs one sync pass whenever the
device goes from unreachable to reachable. Optionally also runs a pass on
a fixed interval so deferred records are retried without user action.
"""

import asyncio
from collections.abc import Awaitable, Callable

from taxbridge_sync.config import get_logger
from taxbridge_sync.core.entities import SkipReason, SyncResult, SyncTrigger
from taxbridge_sync.core.interfaces import IReachability, ISyncNotifier
from taxbridge_sync.core.services.sync_orchestrator import SyncOrchestrator

logger = get_logger(__name__)

CredentialsCheck = Callable[[], Awaitable[bool]]


class AutoSyncTrigger:
    """Fires background sync passes on reconnect and, optionally, periodically."""

    def __init__(
        self,
        orchestrator: SyncOrchestrator,
        reachability: IReachability,
        notifier: ISyncNotifier | None = None,
        credentials_check: CredentialsCheck | None = None,
        periodic_interval: float = 0.0,
    ) -> None:
        self._orchestrator = orchestrator
        self._reachability = reachability
        self._notifier = notifier
        self._credentials_check = credentials_check
        self._periodic_interval = periodic_interval

        self._previous: bool | None = None
        self._unsubscribe: Callable[[], None] | None = None
        self._periodic_task: asyncio.Task | None = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def is_started(self) -> bool:
        return self._unsubscribe is not None

    def start(self) -> None:
        """Subscribe to reachability changes (and start the periodic loop)."""
        if self._unsubscribe is not None:
            return
        self._previous = self._reachability.is_reachable
        self._unsubscribe = self._reachability.subscribe(self._on_reachability_change)
        if self._periodic_interval > 0:
            self._periodic_task = asyncio.create_task(self._periodic_loop())
        logger.info(
            "auto_sync_started",
            reachable=self._previous,
            periodic_interval=self._periodic_interval,
        )

    async def stop(self) -> None:
        """Unsubscribe, stop the periodic loop and wait for in-flight passes."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._periodic_task is not None:
            self._periodic_task.cancel()
            try:
                await self._periodic_task
            except asyncio.CancelledError:
                pass
            self._periodic_task = None
        await self.wait_idle()
        logger.info("auto_sync_stopped")

    async def wait_idle(self) -> None:
        """Wait for background passes scheduled by this trigger."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def _on_reachability_change(self, reachable: bool) -> None:
        previous, self._previous = self._previous, reachable
        if not (reachable and previous is False):
            return

        if self._orchestrator.is_running:
            logger.info("auto_sync_skipped", reason=SkipReason.IN_PROGRESS.value)
            return

        task = asyncio.create_task(self.run_once(SyncTrigger.RECONNECT))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def run_once(self, trigger: SyncTrigger) -> SyncResult:
        """Run a single gated pass and surface aggregate notifications."""
        if self._credentials_check is not None and not await self._credentials_check():
            logger.info("auto_sync_skipped", reason=SkipReason.CREDENTIALS_MISSING.value)
            return SyncResult.skip(SkipReason.CREDENTIALS_MISSING)

        try:
            result = await self._orchestrator.run_sync_pass()
        except Exception as e:
            logger.error("auto_sync_error", trigger=trigger.value, error=str(e))
            return SyncResult()

        if result.skipped is None and self._notifier is not None:
            self._notifier.notify(result, trigger)
        return result

    async def _periodic_loop(self) -> None:
        while True:
            await asyncio.sleep(self._periodic_interval)
            if self._orchestrator.is_running:
                continue
            await self.run_once(SyncTrigger.PERIODIC)
