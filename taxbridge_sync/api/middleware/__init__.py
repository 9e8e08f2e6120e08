"""API middleware."""

from taxbridge_sync.api.middleware.error_handler import ErrorHandlerMiddleware
from taxbridge_sync.api.middleware.logging import LoggingMiddleware

__all__ = ["LoggingMiddleware", "ErrorHandlerMiddleware"]
