"""
Health check endpoints.
"""

import time

from fastapi import APIRouter, Depends

from taxbridge_sync import __version__
from taxbridge_sync.api.dependencies import get_monitor
from taxbridge_sync.application.dto.responses import ComponentHealthResponse, HealthResponse
from taxbridge_sync.infrastructure.network import ReachabilityMonitor
from taxbridge_sync.infrastructure.storage.sqlite import get_connection

router = APIRouter(prefix="/api/health", tags=["health"])

# Track startup time
_start_time = time.time()


@router.get("", response_model=HealthResponse)
async def health_check(
    monitor: ReachabilityMonitor = Depends(get_monitor),
) -> HealthResponse:
    """
    Health of the local store and the reachability estimate.

    Being offline is normal for this service, so it only degrades the
    status when the database cannot be queried.
    """
    try:
        start = time.time()
        async with get_connection() as conn:
            await conn.execute("SELECT 1")
        database = ComponentHealthResponse(
            name="sqlite",
            available=True,
            latency_ms=(time.time() - start) * 1000,
        )
    except Exception as e:
        database = ComponentHealthResponse(name="sqlite", available=False, error=str(e))

    network = ComponentHealthResponse(name="internet", available=monitor.is_reachable)

    return HealthResponse(
        status="healthy" if database.available else "degraded",
        version=__version__,
        uptime_seconds=time.time() - _start_time,
        database=database,
        network=network,
    )
