"""Response DTOs for API endpoints."""

from datetime import datetime

from pydantic import BaseModel, Field

from taxbridge_sync.core.entities import InvoiceRecord, NetworkStatus, SyncResult


class InvoiceItemResponse(BaseModel):
    description: str
    quantity: float
    unit_price: float
    line_total: float


class InvoiceResponse(BaseModel):
    """An invoice record as seen by the UI."""

    id: str
    server_id: str | None = None
    customer_name: str | None = None
    status: str
    synced: bool
    subtotal: float
    vat: float
    total: float
    items: list[InvoiceItemResponse] = Field(default_factory=list)
    created_at: datetime
    attempts: int = 0
    next_retry_at: datetime | None = None

    @classmethod
    def from_record(cls, record: InvoiceRecord) -> "InvoiceResponse":
        return cls(
            id=record.id,
            server_id=record.server_id,
            customer_name=record.customer_name,
            status=record.status.value,
            synced=record.synced,
            subtotal=record.subtotal,
            vat=record.vat,
            total=record.total,
            items=[
                InvoiceItemResponse(
                    description=item.description,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    line_total=item.line_total,
                )
                for item in record.items
            ],
            created_at=record.created_at,
            attempts=record.attempts,
            next_retry_at=record.next_retry_at,
        )


class InvoiceListResponse(BaseModel):
    invoices: list[InvoiceResponse]
    total: int
    unsynced: int


class SyncResultResponse(BaseModel):
    """Counts for a single sync pass."""

    synced: int = 0
    deferred: int = 0
    failed: int = 0
    skipped: str | None = Field(
        default=None,
        description="Why the pass did nothing: offline, in_progress, credentials_missing",
    )

    @classmethod
    def from_result(cls, result: SyncResult) -> "SyncResultResponse":
        return cls(
            synced=result.synced,
            deferred=result.deferred,
            failed=result.failed,
            skipped=result.skipped.value if result.skipped else None,
        )


class SyncStatusResponse(BaseModel):
    is_running: bool
    is_reachable: bool
    unsynced: int
    total: int
    last_completed_at: datetime | None = None
    last_result: SyncResultResponse | None = None
    notifications: list[dict] = Field(default_factory=list)


class NetworkStatusResponse(BaseModel):
    is_connected: bool | None = None
    is_reachable: bool
    connection_type: str | None = None
    checked_at: datetime | None = None

    @classmethod
    def from_status(cls, status: NetworkStatus) -> "NetworkStatusResponse":
        return cls(**status.model_dump())


class ApiBaseUrlResponse(BaseModel):
    url: str
    source: str = Field(description="'device' when stored locally, else 'default'")


class ComponentHealthResponse(BaseModel):
    """Health of a single component."""

    name: str
    available: bool
    latency_ms: float | None = None
    error: str | None = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str = "1.0.0"
    uptime_seconds: float
    database: ComponentHealthResponse | None = None
    network: ComponentHealthResponse | None = None


class ErrorResponse(BaseModel):
    """Standardized error response DTO.

    Every error response includes:
    - error_code: machine-readable code (e.g. INVOICE_NOT_FOUND)
    - message: human-readable description
    - hint: suggested recovery action
    - path: request path that triggered the error
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error description")
    hint: str | None = Field(default=None, description="Suggested recovery action")
    detail: str | None = Field(default=None, description="Additional details")
    path: str | None = Field(default=None, description="Request path")
