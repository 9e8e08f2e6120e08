"""Invoice queue endpoints."""

from fastapi import APIRouter, Depends, Query, status

from taxbridge_sync.api.dependencies import (
    get_queue_invoice_use_case,
    get_retry_invoice_use_case,
    get_store,
)
from taxbridge_sync.application.dto.requests import QueueInvoiceRequest
from taxbridge_sync.application.dto.responses import (
    ErrorResponse,
    InvoiceListResponse,
    InvoiceResponse,
)
from taxbridge_sync.application.use_cases import QueueInvoiceUseCase, RetryInvoiceUseCase
from taxbridge_sync.core.exceptions import InvoiceNotFoundError
from taxbridge_sync.infrastructure.storage.sqlite import SQLiteInvoiceRecordStore

router = APIRouter(prefix="/api/invoices", tags=["invoices"])


@router.post(
    "",
    response_model=InvoiceResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        422: {"model": ErrorResponse},
        507: {"model": ErrorResponse},
    },
)
async def queue_invoice(
    request: QueueInvoiceRequest,
    use_case: QueueInvoiceUseCase = Depends(get_queue_invoice_use_case),
) -> InvoiceResponse:
    """Create an invoice on the device; it is delivered on the next sync pass."""
    result = await use_case.execute(request)
    return use_case.to_response(result)


@router.get("", response_model=InvoiceListResponse)
async def list_invoices(
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    store: SQLiteInvoiceRecordStore = Depends(get_store),
) -> InvoiceListResponse:
    """List invoices on the device, newest first."""
    records = await store.list_all(limit=limit, offset=offset)
    return InvoiceListResponse(
        invoices=[InvoiceResponse.from_record(r) for r in records],
        total=await store.count_all(),
        unsynced=await store.count_unsynced(),
    )


@router.get(
    "/{invoice_id}",
    response_model=InvoiceResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_invoice(
    invoice_id: str,
    store: SQLiteInvoiceRecordStore = Depends(get_store),
) -> InvoiceResponse:
    record = await store.get(invoice_id)
    if record is None:
        raise InvoiceNotFoundError(invoice_id)
    return InvoiceResponse.from_record(record)


@router.post(
    "/{invoice_id}/retry",
    response_model=InvoiceResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)
async def retry_invoice(
    invoice_id: str,
    use_case: RetryInvoiceUseCase = Depends(get_retry_invoice_use_case),
) -> InvoiceResponse:
    """Put a failed invoice back in the queue."""
    record = await use_case.execute(invoice_id)
    return InvoiceResponse.from_record(record)
