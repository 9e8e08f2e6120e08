"""
Error responses for the device API.

Every error body is an ``ErrorResponse``: a machine-readable ``error_code``,
a message, a recovery ``hint`` and the request path.
"""

from collections.abc import Awaitable, Callable

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from taxbridge_sync.application.dto.responses import ErrorResponse
from taxbridge_sync.config import get_logger
from taxbridge_sync.core.exceptions import (
    InvoiceNotFoundError,
    RemoteError,
    StorageExhaustedError,
    TaxBridgeError,
    ValidationError,
)

logger = get_logger(__name__)

# Checked in order, so subclasses must precede their bases
STATUS_BY_EXCEPTION: tuple[tuple[type[Exception], int], ...] = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (InvoiceNotFoundError, status.HTTP_404_NOT_FOUND),
    (StorageExhaustedError, status.HTTP_507_INSUFFICIENT_STORAGE),
    (RemoteError, status.HTTP_503_SERVICE_UNAVAILABLE),
)

HINTS: dict[str, str] = {
    "INVOICE_NOT_FOUND": "Check the invoice ID or list invoices with GET /api/invoices.",
    "STORAGE_EXHAUSTED": "Sync pending invoices or clear app cache to free space.",
    "STORAGE_FULL": "Local storage is full. Sync pending invoices to free space.",
    "DATABASE_ERROR": "A database operation failed. Check device logs.",
    "REMOTE_UNAVAILABLE": "The TaxBridge API is unreachable. Invoices stay queued until it is back.",
    "REMOTE_API_ERROR": "The TaxBridge API rejected the request. Check the invoice data.",
    "REMOTE_RESPONSE_ERROR": "The TaxBridge API returned an unexpected response. Retry later.",
    "VALIDATION_ERROR": "Check the request body against the API schema.",
}

# HTTPException status -> error code, when raised directly by a route
HTTP_ERROR_CODES: dict[int, str] = {
    400: "BAD_REQUEST",
    404: "NOT_FOUND",
    409: "CONFLICT",
    422: "UNPROCESSABLE_ENTITY",
}

FALLBACK_HINTS: dict[int, str] = {
    400: "Check the request parameters and body.",
    404: "The requested resource was not found.",
    500: "An internal error occurred. Check device logs.",
    503: "The service is temporarily unavailable. Retry later.",
}


def _hint(error_code: str, status_code: int) -> str | None:
    return HINTS.get(error_code) or FALLBACK_HINTS.get(status_code)


def _error_json(
    request: Request,
    status_code: int,
    error_code: str,
    message: str,
    detail: str | None = None,
    hint: str | None = None,
) -> JSONResponse:
    body = ErrorResponse(
        error_code=error_code,
        message=message,
        hint=hint or _hint(error_code, status_code),
        detail=detail,
        path=request.url.path,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def error_response_for(request: Request, exc: Exception) -> JSONResponse:
    """Translate an exception into the standard error body and status."""
    status_code = next(
        (code for exc_type, code in STATUS_BY_EXCEPTION if isinstance(exc, exc_type)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    if isinstance(exc, TaxBridgeError):
        error_code, message = exc.code, exc.message
    else:
        error_code, message = "INTERNAL_ERROR", "An unexpected error occurred"

    fields = {
        "request_id": getattr(request.state, "request_id", None),
        "path": request.url.path,
        "error_code": error_code,
        "status_code": status_code,
    }
    if status_code >= 500:
        logger.error("request_failed", exc_info=exc, **fields)
    else:
        logger.warning("request_rejected", error=message, **fields)

    return _error_json(request, status_code, error_code, message)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Last line of defence for exceptions that escape route handlers."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            return error_response_for(request, e)


def setup_exception_handlers(app: FastAPI) -> None:
    """Register handlers for domain, validation and HTTP errors."""

    @app.exception_handler(TaxBridgeError)
    async def domain_error(request: Request, exc: TaxBridgeError) -> JSONResponse:
        return error_response_for(request, exc)

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        problems = [
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        ]
        return _error_json(
            request,
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "VALIDATION_ERROR",
            "Request validation failed",
            detail="; ".join(problems),
        )

    @app.exception_handler(HTTPException)
    async def http_error(request: Request, exc: HTTPException) -> JSONResponse:
        return _error_json(
            request,
            exc.status_code,
            HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR"),
            str(exc.detail or "An error occurred"),
        )
