"""Retry Invoice Use Case - return a failed invoice to the sync queue."""

from taxbridge_sync.config import get_logger
from taxbridge_sync.core.entities import InvoiceRecord, InvoiceStatus
from taxbridge_sync.core.exceptions import InvoiceNotFoundError, ValidationError
from taxbridge_sync.core.interfaces import IInvoiceRecordStore

logger = get_logger(__name__)


class RetryInvoiceUseCase:
    """
    Explicit user retry of a failed record.

    The record goes back to ``queued`` and unsynced. The attempt counter is
    kept, so a record that exhausted its retries gets one more delivery
    attempt.
    """

    def __init__(self, store: IInvoiceRecordStore | None = None):
        self._store = store

    async def _get_store(self) -> IInvoiceRecordStore:
        if self._store is None:
            from taxbridge_sync.infrastructure.storage.sqlite import get_record_store

            self._store = await get_record_store()
        return self._store

    async def execute(self, invoice_id: str) -> InvoiceRecord:
        store = await self._get_store()

        record = await store.get(invoice_id)
        if record is None:
            raise InvoiceNotFoundError(invoice_id)
        if record.status != InvoiceStatus.FAILED:
            raise ValidationError(
                "status",
                f"only failed invoices can be retried (current: {record.status.value})",
                record.status.value,
            )

        # A remote rejection left a server id behind; it must not count as delivered
        await store.requeue(invoice_id)
        logger.info(
            "invoice_retry_requested",
            invoice_id=invoice_id,
            attempts=record.attempts,
            rejected_server_id=record.server_id,
        )

        record.status = InvoiceStatus.QUEUED
        record.server_id = None
        record.next_retry_at = None
        return record
