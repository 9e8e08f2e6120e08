"""
Storage pressure relief for the durable record store.

When a write is rejected because the on-device quota is reached, synced
records (whose remote copy is now authoritative) are removed in escalating
stages and the write is attempted again after each stage. Unsynced records
are never removed.
"""

from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from typing import TypeVar

from taxbridge_sync.config import get_logger, get_settings
from taxbridge_sync.config.settings import StorageSettings
from taxbridge_sync.core.entities import utcnow
from taxbridge_sync.core.exceptions import StorageExhaustedError, StorageFullError
from taxbridge_sync.core.interfaces import IInvoiceRecordStore

logger = get_logger(__name__)

T = TypeVar("T")


class StoragePressureManager:
    """
    Runs store writes under the pressure relief cascade.

    Stages, each followed by a retry of the original write:
    1. drop synced records older than the retention window
    2. cap the total at ``soft_cap`` by dropping the oldest synced records
    3. keep only the ``emergency_keep_synced`` most recent synced records
    Then give up with StorageExhaustedError.
    """

    def __init__(
        self,
        store: IInvoiceRecordStore,
        retention_days: int = 30,
        soft_cap: int = 150,
        emergency_keep_synced: int = 50,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self.retention_days = retention_days
        self.soft_cap = soft_cap
        self.emergency_keep_synced = emergency_keep_synced
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        store: IInvoiceRecordStore,
        settings: StorageSettings | None = None,
    ) -> "StoragePressureManager":
        storage = settings or get_settings().storage
        return cls(
            store,
            retention_days=storage.retention_days,
            soft_cap=storage.soft_cap,
            emergency_keep_synced=storage.emergency_keep_synced,
        )

    async def run(self, operation: str, write: Callable[[], Awaitable[T]]) -> T:
        """
        Execute ``write``, relieving storage pressure if it is rejected.

        Raises:
            StorageExhaustedError: the write still fails after every stage
        """
        try:
            return await write()
        except StorageFullError as e:
            logger.warning("storage_write_rejected", operation=operation, error=e.message)

        stages: list[tuple[str, Callable[[], Awaitable[int]]]] = [
            ("prune_expired", self.prune_expired),
            ("cap_total", self._cap_total),
            ("emergency", self._emergency),
        ]
        for stage, relieve in stages:
            removed = await relieve()
            logger.warning(
                "storage_pressure_relief",
                operation=operation,
                stage=stage,
                removed=removed,
            )
            try:
                return await write()
            except StorageFullError:
                continue

        unsynced = await self._store.count_unsynced()
        logger.error("storage_exhausted", operation=operation, unsynced=unsynced)
        raise StorageExhaustedError(operation, unsynced)

    async def prune_expired(self) -> int:
        """Remove synced records older than the retention window."""
        cutoff = self._clock() - timedelta(days=self.retention_days)
        return await self._store.prune_synced(cutoff)

    async def _cap_total(self) -> int:
        unsynced = await self._store.count_unsynced()
        return await self._store.retain_recent_synced(max(0, self.soft_cap - unsynced))

    async def _emergency(self) -> int:
        return await self._store.retain_recent_synced(self.emergency_keep_synced)
