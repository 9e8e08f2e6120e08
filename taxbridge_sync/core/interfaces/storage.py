"""
Abstract interfaces for on-device storage.

Defines the durable record store contract the sync orchestrator and the
storage pressure manager rely on.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from taxbridge_sync.core.entities import InvoiceRecord, InvoiceStatus


class IInvoiceRecordStore(ABC):
    """
    Durable store of invoice records.

    Every mutation is atomic for a single record and is persisted before
    the coroutine returns.
    """

    @abstractmethod
    async def append(self, record: InvoiceRecord) -> InvoiceRecord:
        """Persist a newly created record."""
        pass

    @abstractmethod
    async def get(self, invoice_id: str) -> InvoiceRecord | None:
        """Get a record by its local id."""
        pass

    @abstractmethod
    async def list_all(self, limit: int | None = None, offset: int = 0) -> list[InvoiceRecord]:
        """List records, newest first."""
        pass

    @abstractmethod
    async def list_due(self, now: datetime) -> list[InvoiceRecord]:
        """
        List unsynced records due for delivery at ``now``.

        Ordered by ``created_at`` ascending so the oldest invoice goes first.
        """
        pass

    @abstractmethod
    async def mark_synced(self, invoice_id: str, server_id: str, status: InvoiceStatus) -> None:
        """Record remote acceptance; resets attempts and clears the retry deadline."""
        pass

    @abstractmethod
    async def set_retry_metadata(
        self, invoice_id: str, attempts: int, next_retry_at: datetime | None
    ) -> None:
        """Persist the attempt counter and the next retry deadline."""
        pass

    @abstractmethod
    async def set_status(self, invoice_id: str, status: InvoiceStatus) -> None:
        """Update the lifecycle status."""
        pass

    @abstractmethod
    async def requeue(self, invoice_id: str) -> None:
        """
        Put a record back on the queue for redelivery.

        Clears ``server_id`` and ``next_retry_at`` so the record is unsynced
        and due at once; ``attempts`` is kept.
        """
        pass

    @abstractmethod
    async def prune_synced(self, older_than: datetime) -> int:
        """Delete synced records created before ``older_than``. Returns rows removed."""
        pass

    @abstractmethod
    async def retain_recent_synced(self, keep: int) -> int:
        """Delete all but the ``keep`` most recent synced records. Returns rows removed."""
        pass

    @abstractmethod
    async def count_all(self) -> int:
        """Total number of records."""
        pass

    @abstractmethod
    async def count_unsynced(self) -> int:
        """Number of records not yet accepted remotely."""
        pass


class ISettingsStore(ABC):
    """Key/value settings persisted next to the invoice records."""

    @abstractmethod
    async def get_setting(self, key: str) -> str | None:
        """Get a setting value, or None when unset."""
        pass

    @abstractmethod
    async def set_setting(self, key: str, value: str) -> None:
        """Insert or replace a setting value."""
        pass

    @abstractmethod
    async def delete_setting(self, key: str) -> bool:
        """Remove a setting. Returns True if it existed."""
        pass
