"""
Exceptions raised by the sync subsystem.

Each carries a stable ``code`` for API error bodies and a ``details`` dict
for logs. Storage errors come from the device database, remote errors from
the TaxBridge invoice API.
"""

from typing import Any


class TaxBridgeError(Exception):
    """Root of the hierarchy; ``code`` defaults to the class name."""

    default_code: str | None = None

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code or type(self).__name__
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message, "details": self.details}


class StorageError(TaxBridgeError):
    """Local record store failure."""


class InvoiceNotFoundError(StorageError):
    default_code = "INVOICE_NOT_FOUND"

    def __init__(self, invoice_id: str):
        super().__init__(f"Invoice not found: {invoice_id}", details={"invoice_id": invoice_id})


class DatabaseError(StorageError):
    default_code = "DATABASE_ERROR"

    def __init__(self, operation: str, error: str):
        super().__init__(
            f"Database error during {operation}: {error}",
            details={"operation": operation, "error": error},
        )


class StorageFullError(StorageError):
    """SQLite refused a write because the quota (max_page_count or disk) is reached."""

    default_code = "STORAGE_FULL"

    def __init__(self, operation: str, error: str):
        super().__init__(
            f"Storage full during {operation}: {error}",
            details={"operation": operation, "error": error},
        )


class StorageExhaustedError(StorageError):
    """Pressure relief ran every stage and the write still does not fit.

    The message is shown to the user as-is.
    """

    default_code = "STORAGE_EXHAUSTED"

    def __init__(self, operation: str, unsynced: int):
        super().__init__(
            "Storage quota exceeded. Please clear app cache and retry.",
            details={"operation": operation, "unsynced_records": unsynced},
        )


class RemoteError(TaxBridgeError):
    """Failure talking to the TaxBridge invoice API."""


class RemoteAPIError(RemoteError):
    """Non-2xx answer. ``retry_after`` is the parsed Retry-After header, in seconds."""

    default_code = "REMOTE_API_ERROR"

    def __init__(
        self,
        status_code: int,
        message: str = "",
        retry_after: float | None = None,
    ):
        text = f"API error {status_code}: {message}" if message else f"API error {status_code}"
        super().__init__(text, details={"status_code": status_code, "retry_after": retry_after})
        self.status_code = status_code
        self.retry_after = retry_after


class RemoteUnavailableError(RemoteError):
    """Connection failure or timeout; no HTTP status was received."""

    default_code = "REMOTE_UNAVAILABLE"

    def __init__(self, reason: str):
        super().__init__(f"Remote API unavailable: {reason}", details={"reason": reason})


class RemoteResponseError(RemoteError):
    """2xx answer whose body could not be used."""

    default_code = "REMOTE_RESPONSE_ERROR"

    def __init__(self, reason: str, response: str | None = None):
        preview = (response or "")[:200]
        super().__init__(
            f"Invalid remote response: {reason}",
            details={"reason": reason, "response_preview": preview},
        )


class ValidationError(TaxBridgeError):
    default_code = "VALIDATION_ERROR"

    def __init__(self, field: str, message: str, value: Any = None):
        super().__init__(
            f"Validation error for '{field}': {message}",
            details={
                "field": field,
                "message": message,
                "value": str(value)[:100] if value else None,
            },
        )
