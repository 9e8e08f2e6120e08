"""Reachability endpoints."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from taxbridge_sync.api.dependencies import get_monitor
from taxbridge_sync.application.dto.responses import NetworkStatusResponse
from taxbridge_sync.infrastructure.network import ReachabilityMonitor

router = APIRouter(prefix="/api/network", tags=["network"])


class ConnectivityReport(BaseModel):
    """Connectivity change reported by the OS through the UI shell."""

    is_connected: bool | None = None
    is_internet_reachable: bool | None = None
    connection_type: str | None = None


@router.get("", response_model=NetworkStatusResponse)
async def network_status(
    monitor: ReachabilityMonitor = Depends(get_monitor),
) -> NetworkStatusResponse:
    """Cached reachability estimate; does not probe."""
    return NetworkStatusResponse.from_status(monitor.status())


@router.post("/check", response_model=NetworkStatusResponse)
async def force_check(
    monitor: ReachabilityMonitor = Depends(get_monitor),
) -> NetworkStatusResponse:
    """Probe now and return the updated estimate."""
    await monitor.force_check()
    return NetworkStatusResponse.from_status(monitor.status())


@router.post("/os-event", response_model=NetworkStatusResponse)
async def os_connectivity_event(
    report: ConnectivityReport,
    monitor: ReachabilityMonitor = Depends(get_monitor),
) -> NetworkStatusResponse:
    """Merge an OS connectivity report into the estimate."""
    monitor.on_os_connectivity_change(
        report.is_connected,
        report.is_internet_reachable,
        report.connection_type,
    )
    return NetworkStatusResponse.from_status(monitor.status())
