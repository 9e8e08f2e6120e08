"""Fixtures for API tests: the real app with in-memory services."""

import random
from collections.abc import AsyncGenerator

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from taxbridge_sync.api.dependencies import (
    get_api_base_url_use_case,
    get_monitor,
    get_notifier,
    get_orchestrator,
    get_queue_invoice_use_case,
    get_retry_invoice_use_case,
    get_run_sync_use_case,
    get_store,
    set_api_base_url_use_case,
)
from taxbridge_sync.api.main import app
from taxbridge_sync.application.services import reset_services
from taxbridge_sync.application.use_cases import (
    GetApiBaseUrlUseCase,
    QueueInvoiceUseCase,
    RetryInvoiceUseCase,
    RunSyncUseCase,
    SetApiBaseUrlUseCase,
)
from taxbridge_sync.core.services import RetryPolicy, SyncOrchestrator
from taxbridge_sync.infrastructure.network import LogSyncNotifier, ReachabilityMonitor
from taxbridge_sync.infrastructure.storage.sqlite import close_pool


class ProbeAnswer:
    """Switchable answer for the reachability probe."""

    def __init__(self, status: int = 204):
        self.status = status

    def __call__(self, request: httpx.Request) -> httpx.Response:
        return httpx.Response(self.status)


@pytest.fixture
def probe() -> ProbeAnswer:
    return ProbeAnswer()


@pytest.fixture
def monitor(probe: ProbeAnswer) -> ReachabilityMonitor:
    return ReachabilityMonitor(
        probe_url="https://probe.test/generate_204",
        probe_timeout=1.0,
        transport=httpx.MockTransport(probe),
    )


@pytest.fixture
def notifier() -> LogSyncNotifier:
    return LogSyncNotifier()


@pytest.fixture
def orchestrator(memory_store, endpoint, monitor, clock) -> SyncOrchestrator:
    return SyncOrchestrator(
        store=memory_store,
        endpoint=endpoint,
        reachability=monitor,
        policy=RetryPolicy(jitter_seconds=0, rng=random.Random(1)),
        clock=clock,
    )


@pytest.fixture
async def api_client(
    memory_store, orchestrator, monitor, notifier
) -> AsyncGenerator[AsyncClient, None]:
    """Async client over the app with every service dependency overridden."""
    app.dependency_overrides[get_store] = lambda: memory_store
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_monitor] = lambda: monitor
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_queue_invoice_use_case] = lambda: QueueInvoiceUseCase(memory_store)
    app.dependency_overrides[get_retry_invoice_use_case] = lambda: RetryInvoiceUseCase(memory_store)
    app.dependency_overrides[get_run_sync_use_case] = lambda: RunSyncUseCase(orchestrator, notifier)
    app.dependency_overrides[get_api_base_url_use_case] = lambda: GetApiBaseUrlUseCase(memory_store)
    app.dependency_overrides[set_api_base_url_use_case] = lambda: SetApiBaseUrlUseCase(memory_store)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    await close_pool()
    reset_services()
