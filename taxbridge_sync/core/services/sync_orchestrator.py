"""
Sync Orchestrator.

Drives queued invoice records toward the remote API, one delivery attempt
per due record per pass:

    queued -> processing -> stamped | queued (deferred) | failed

A pass never sleeps and never retries a record it already attempted;
retryable failures are rescheduled by persisting ``next_retry_at`` and are
picked up by a later pass (manual, reconnect or periodic).
"""

import asyncio
from collections.abc import Callable
from datetime import datetime

from taxbridge_sync.config import get_logger
from taxbridge_sync.core.entities import (
    InvoiceRecord,
    InvoiceStatus,
    SkipReason,
    SyncOutcome,
    SyncResult,
    utcnow,
)
from taxbridge_sync.core.interfaces import IInvoiceEndpoint, IInvoiceRecordStore, IReachability
from taxbridge_sync.core.services.retry_policy import (
    RetryPolicy,
    is_retryable_error,
    retry_after_hint,
)

logger = get_logger(__name__)


class SyncOrchestrator:
    """
    Retry/backoff state machine over the durable record store.

    Only one pass runs at a time; a concurrent ``run_sync_pass`` returns a
    zero result immediately instead of waiting.
    """

    def __init__(
        self,
        store: IInvoiceRecordStore,
        endpoint: IInvoiceEndpoint,
        reachability: IReachability,
        policy: RetryPolicy | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._endpoint = endpoint
        self._reachability = reachability
        self.policy = policy or RetryPolicy.from_settings()
        self._clock = clock
        self._lock = asyncio.Lock()

        self.last_completed_at: datetime | None = None
        self.last_result: SyncResult | None = None

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    async def run_sync_pass(self) -> SyncResult:
        """Run one pass over all due records and return aggregate counts."""
        # No await between the check and the acquire, so this is atomic
        # within the event loop.
        if self._lock.locked():
            logger.info("sync_pass_skipped", reason=SkipReason.IN_PROGRESS.value)
            return SyncResult.skip(SkipReason.IN_PROGRESS)

        async with self._lock:
            if not await self._reachability.force_check():
                logger.info("sync_pass_skipped", reason=SkipReason.OFFLINE.value)
                return SyncResult.skip(SkipReason.OFFLINE)

            due = await self._store.list_due(self._clock())
            logger.info("sync_pass_started", due=len(due))

            result = SyncResult()
            for record in due:
                result.record(await self._sync_record(record))

            self.last_completed_at = self._clock()
            self.last_result = result
            logger.info("sync_pass_completed", **result.counts())
            return result

    async def _sync_record(self, record: InvoiceRecord) -> SyncOutcome:
        """Make one delivery attempt; the outcome never escapes as an exception."""
        try:
            await self._store.set_status(record.id, InvoiceStatus.PROCESSING)

            try:
                receipt = await self._endpoint.create_invoice(
                    items=record.items,
                    idempotency_key=record.id,
                    customer_name=record.customer_name,
                )
            except Exception as e:
                return await self._handle_delivery_failure(record, e)

            remote_status = InvoiceStatus.from_remote(receipt.status)
            await self._store.mark_synced(record.id, receipt.invoice_id, remote_status)
            if remote_status == InvoiceStatus.FAILED:
                # Accepted but rejected by the tax authority; keeps its server id
                logger.warning(
                    "invoice_rejected_remotely",
                    invoice_id=record.id,
                    server_id=receipt.invoice_id,
                )
                return SyncOutcome.FAILED
            logger.info(
                "invoice_synced",
                invoice_id=record.id,
                server_id=receipt.invoice_id,
                remote_status=receipt.status,
            )
            return SyncOutcome.SYNCED

        except Exception as e:
            # Local failure (storage, serialization): isolate it to this record
            logger.error(
                "invoice_sync_crashed",
                invoice_id=record.id,
                error_type=e.__class__.__name__,
                error=str(e),
            )
            await self._mark_failed_best_effort(record.id)
            return SyncOutcome.FAILED

    async def _handle_delivery_failure(
        self, record: InvoiceRecord, error: Exception
    ) -> SyncOutcome:
        attempt = record.attempts + 1
        retryable = is_retryable_error(error)

        if not retryable or self.policy.is_exhausted(attempt):
            await self._store.set_retry_metadata(record.id, attempt, None)
            await self._store.set_status(record.id, InvoiceStatus.FAILED)
            logger.warning(
                "invoice_sync_failed",
                invoice_id=record.id,
                attempts=attempt,
                retryable=retryable,
                error=str(error),
            )
            return SyncOutcome.FAILED

        delay = self.policy.backoff(attempt, retry_after_hint(error))
        next_retry_at = self._clock() + delay
        await self._store.set_retry_metadata(record.id, attempt, next_retry_at)
        await self._store.set_status(record.id, InvoiceStatus.QUEUED)
        logger.info(
            "invoice_sync_deferred",
            invoice_id=record.id,
            attempts=attempt,
            next_retry_at=next_retry_at.isoformat(),
            error=str(error),
        )
        return SyncOutcome.DEFERRED

    async def _mark_failed_best_effort(self, invoice_id: str) -> None:
        try:
            await self._store.set_status(invoice_id, InvoiceStatus.FAILED)
        except Exception as e:
            logger.error("invoice_mark_failed_error", invoice_id=invoice_id, error=str(e))
