"""Data Transfer Objects for API layer.

Request DTOs: Validate and parse incoming API requests.
Response DTOs: Structure and serialize API responses.

These are the ONLY contracts between API handlers and use cases.
"""

from taxbridge_sync.application.dto.requests import (
    InvoiceItemRequest,
    QueueInvoiceRequest,
    SetApiBaseUrlRequest,
)
from taxbridge_sync.application.dto.responses import (
    ApiBaseUrlResponse,
    ComponentHealthResponse,
    ErrorResponse,
    HealthResponse,
    InvoiceItemResponse,
    InvoiceListResponse,
    InvoiceResponse,
    NetworkStatusResponse,
    SyncResultResponse,
    SyncStatusResponse,
)

__all__ = [
    # Requests
    "InvoiceItemRequest",
    "QueueInvoiceRequest",
    "SetApiBaseUrlRequest",
    # Responses
    "ApiBaseUrlResponse",
    "ComponentHealthResponse",
    "ErrorResponse",
    "HealthResponse",
    "InvoiceItemResponse",
    "InvoiceListResponse",
    "InvoiceResponse",
    "NetworkStatusResponse",
    "SyncResultResponse",
    "SyncStatusResponse",
]
