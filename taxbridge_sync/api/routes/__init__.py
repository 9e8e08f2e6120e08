"""API route modules."""

from taxbridge_sync.api.routes.health import router as health_router
from taxbridge_sync.api.routes.invoices import router as invoices_router
from taxbridge_sync.api.routes.network import router as network_router
from taxbridge_sync.api.routes.settings import router as settings_router
from taxbridge_sync.api.routes.sync import router as sync_router

__all__ = [
    "health_router",
    "invoices_router",
    "network_router",
    "settings_router",
    "sync_router",
]
