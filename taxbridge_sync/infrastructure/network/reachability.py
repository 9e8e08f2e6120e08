"""
Reachability monitor.

Keeps a cached "can we reach the public internet" estimate, fed by OS
connectivity reports and verified by short HTTP probes. The OS saying
"connected to wifi" is not trusted on its own: captive portals and dead
uplinks are common, so an association without an explicit reachability
flag only schedules a probe.
"""

import asyncio
from collections.abc import Callable
from datetime import datetime

import httpx

from taxbridge_sync.config import get_logger, get_settings
from taxbridge_sync.core.entities import NetworkStatus, utcnow
from taxbridge_sync.core.interfaces import IReachability, ReachabilityListener

logger = get_logger(__name__)

REACHABLE_STATUSES = frozenset({200, 204})


class ReachabilityMonitor(IReachability):
    """
    Probe-backed reachability estimate with change notifications.

    The estimate starts as unreachable, so the first successful probe is
    reported as a change.
    """

    def __init__(
        self,
        probe_url: str | None = None,
        probe_timeout: float | None = None,
        probe_interval: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.probe_url = probe_url or settings.network.probe_url
        self.probe_timeout = probe_timeout or settings.network.probe_timeout
        self.probe_interval = probe_interval or settings.network.probe_interval
        self._transport = transport

        self._reachable = False
        self._is_connected: bool | None = None
        self._connection_type: str | None = None
        self._checked_at: datetime | None = None
        self._listeners: list[ReachabilityListener] = []
        self._probe_task: asyncio.Task | None = None
        self._pending_probes: set[asyncio.Task] = set()

    @property
    def is_reachable(self) -> bool:
        return self._reachable

    @property
    def is_running(self) -> bool:
        return self._probe_task is not None and not self._probe_task.done()

    def status(self) -> NetworkStatus:
        return NetworkStatus(
            is_connected=self._is_connected,
            is_reachable=self._reachable,
            connection_type=self._connection_type,
            checked_at=self._checked_at,
        )

    def subscribe(self, listener: ReachabilityListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def force_check(self) -> bool:
        """Probe now and update the estimate. Never raises."""
        reachable = await self._probe()
        self._checked_at = utcnow()
        self._set_reachable(reachable, source="probe")
        return reachable

    async def _probe(self) -> bool:
        try:
            async with httpx.AsyncClient(
                timeout=self.probe_timeout,
                transport=self._transport,
                follow_redirects=False,
            ) as client:
                response = await asyncio.wait_for(
                    client.get(self.probe_url, headers={"Cache-Control": "no-cache"}),
                    timeout=self.probe_timeout,
                )
            return response.status_code in REACHABLE_STATUSES
        except (httpx.HTTPError, asyncio.TimeoutError, OSError) as e:
            logger.debug("reachability_probe_failed", url=self.probe_url, error=str(e))
            return False

    def on_os_connectivity_change(
        self,
        is_connected: bool | None,
        is_internet_reachable: bool | None = None,
        connection_type: str | None = None,
    ) -> None:
        """
        Merge an OS connectivity report into the estimate.

        Disconnected means unreachable. An explicit internet-reachable flag is
        taken as is. A bare association keeps the estimate and triggers a
        verifying probe.
        """
        self._is_connected = is_connected
        self._connection_type = connection_type

        if is_connected is False:
            self._set_reachable(False, source="os")
        elif is_internet_reachable is not None:
            self._set_reachable(is_internet_reachable, source="os")
        else:
            self._schedule_probe()

    def _schedule_probe(self) -> None:
        try:
            task = asyncio.get_running_loop().create_task(self.force_check())
        except RuntimeError:
            logger.debug("reachability_probe_not_scheduled", reason="no_running_loop")
            return
        self._pending_probes.add(task)
        task.add_done_callback(self._pending_probes.discard)

    def _set_reachable(self, reachable: bool, source: str) -> None:
        if reachable == self._reachable:
            return
        self._reachable = reachable
        logger.info("reachability_changed", reachable=reachable, source=source)
        for listener in list(self._listeners):
            try:
                listener(reachable)
            except Exception as e:
                logger.error("reachability_listener_failed", error=str(e))

    def start(self) -> None:
        """Start the periodic background probe."""
        if self.is_running:
            return
        self._probe_task = asyncio.create_task(self._probe_loop())
        logger.info(
            "reachability_monitor_started",
            probe_url=self.probe_url,
            interval=self.probe_interval,
        )

    async def stop(self) -> None:
        """Stop probing and wait for outstanding probes."""
        tasks = list(self._pending_probes)
        if self._probe_task is not None:
            tasks.append(self._probe_task)
            self._probe_task.cancel()
            self._probe_task = None
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("reachability_monitor_stopped")

    async def _probe_loop(self) -> None:
        while True:
            await self.force_check()
            await asyncio.sleep(self.probe_interval)
