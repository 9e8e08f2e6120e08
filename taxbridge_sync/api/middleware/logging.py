"""
Request logging middleware.

Every request gets a short request id (reused from the UI shell's
``X-Request-ID`` when it sends one) bound into the structlog context, so
sync and storage events logged while serving it carry the same id.
"""

import time
import uuid
from collections.abc import Callable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from taxbridge_sync.config import get_logger

logger = get_logger(__name__)

# Polled constantly by the UI shell; logged at debug only
QUIET_PATHS = frozenset({"/health", "/api/health", "/api/network", "/api/sync/status"})


class LoggingMiddleware(BaseHTTPMiddleware):
    """Logs request completion with timing and tags responses with the request id."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable,
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]
        request.state.request_id = request_id

        path = request.url.path
        log = logger.debug if path in QUIET_PATHS else logger.info
        start = time.time()

        with structlog.contextvars.bound_contextvars(request_id=request_id):
            try:
                response = await call_next(request)
            except Exception as e:
                logger.error(
                    "request_failed",
                    method=request.method,
                    path=path,
                    error=str(e),
                    duration_ms=round((time.time() - start) * 1000, 2),
                )
                raise

            duration_ms = (time.time() - start) * 1000
            log(
                "request_completed",
                method=request.method,
                path=path,
                status=response.status_code,
                duration_ms=round(duration_ms, 2),
            )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"
        return response
