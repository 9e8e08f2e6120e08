"""
Local HTTP API for the on-device UI shell.

Startup brings the database to the latest schema, prunes expired synced
invoices, then starts the auto-sync trigger and the reachability monitor.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from taxbridge_sync import __version__
from taxbridge_sync.api.middleware import ErrorHandlerMiddleware, LoggingMiddleware
from taxbridge_sync.api.middleware.error_handler import setup_exception_handlers
from taxbridge_sync.api.routes import (
    health_router,
    invoices_router,
    network_router,
    settings_router,
    sync_router,
)
from taxbridge_sync.application.services import (
    get_auto_sync_trigger,
    get_reachability_monitor,
    init_db,
)
from taxbridge_sync.config import configure_logging, get_logger, get_settings
from taxbridge_sync.infrastructure.storage.sqlite import close_pool

logger = get_logger(__name__)

ROUTERS = (health_router, invoices_router, sync_router, network_router, settings_router)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    configure_logging()
    api = get_settings().api
    logger.info("api_starting", host=api.host, port=api.port, version=__version__)

    try:
        expired = await init_db()
    except Exception:
        logger.exception("database_startup_failed")
        await close_pool()
        raise

    monitor = get_reachability_monitor()
    trigger = await get_auto_sync_trigger()
    # The trigger must be listening before the first probe reports online
    trigger.start()
    monitor.start()
    logger.info("api_ready", expired_removed=expired, online=monitor.is_reachable)

    try:
        yield
    finally:
        await monitor.stop()
        await trigger.stop()
        await close_pool()
        logger.info("api_stopped")


def create_app() -> FastAPI:
    api = get_settings().api

    app = FastAPI(
        title="TaxBridge Offline Sync API",
        description="Offline invoice queue and background sync for the TaxBridge app",
        version=__version__,
        docs_url="/docs" if api.debug else None,
        redoc_url=None,
        lifespan=lifespan,
    )

    app.add_middleware(LoggingMiddleware)
    app.add_middleware(ErrorHandlerMiddleware)
    if api.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=api.cors_origins,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    setup_exception_handlers(app)

    for router in ROUTERS:
        app.include_router(router)

    @app.get("/health", include_in_schema=False)
    async def liveness() -> dict[str, str]:
        return {"status": "healthy", "version": __version__}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    api = get_settings().api
    uvicorn.run("taxbridge_sync.api.main:app", host=api.host, port=api.port, reload=api.debug)
