"""Queue Invoice Use Case - create an invoice on the device and queue it for sync."""

from dataclasses import dataclass

from taxbridge_sync.application.dto.requests import QueueInvoiceRequest
from taxbridge_sync.application.dto.responses import InvoiceResponse
from taxbridge_sync.config import get_logger
from taxbridge_sync.core.entities import InvoiceItem, InvoiceRecord
from taxbridge_sync.core.interfaces import IInvoiceRecordStore

logger = get_logger(__name__)

# Nigerian standard VAT rate
VAT_RATE = 0.075


@dataclass
class QueueInvoiceResult:
    """Result of queueing an invoice."""

    record: InvoiceRecord


class QueueInvoiceUseCase:
    """
    Persist a new invoice record in ``queued`` state.

    The record is durable before this returns; delivery happens on the next
    sync pass.
    """

    def __init__(self, store: IInvoiceRecordStore | None = None):
        self._store = store

    async def _get_store(self) -> IInvoiceRecordStore:
        if self._store is None:
            from taxbridge_sync.infrastructure.storage.sqlite import get_record_store

            self._store = await get_record_store()
        return self._store

    async def execute(self, request: QueueInvoiceRequest) -> QueueInvoiceResult:
        store = await self._get_store()

        items = [
            InvoiceItem(
                description=item.description,
                quantity=item.quantity,
                unit_price=item.unit_price,
            )
            for item in request.items
        ]
        subtotal = round(sum(item.line_total for item in items), 2)
        vat = round(subtotal * VAT_RATE, 2)

        record = InvoiceRecord(
            customer_name=request.customer_name,
            items=items,
            subtotal=subtotal,
            vat=vat,
            total=round(subtotal + vat, 2),
        )
        await store.append(record)

        logger.info(
            "invoice_queued",
            invoice_id=record.id,
            items=len(items),
            total=record.total,
        )
        return QueueInvoiceResult(record=record)

    def to_response(self, result: QueueInvoiceResult) -> InvoiceResponse:
        return InvoiceResponse.from_record(result.record)
