"""SQLite implementation of the durable invoice record store."""

import json
import sqlite3
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import aiosqlite

from taxbridge_sync.config import get_logger
from taxbridge_sync.core.entities import InvoiceItem, InvoiceRecord, InvoiceStatus
from taxbridge_sync.core.exceptions import (
    DatabaseError,
    InvoiceNotFoundError,
    StorageFullError,
)
from taxbridge_sync.core.interfaces import IInvoiceRecordStore, ISettingsStore
from taxbridge_sync.core.services.storage_pressure import StoragePressureManager
from taxbridge_sync.infrastructure.storage.sqlite.connection import ConnectionPool, get_pool

logger = get_logger(__name__)

# Fixed width, so string comparison in SQL is chronological
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.strptime(value, TIMESTAMP_FORMAT).replace(tzinfo=UTC)


def is_capacity_error(error: Exception) -> bool:
    """Whether SQLite rejected a write because the database is full."""
    if getattr(error, "sqlite_errorcode", None) == sqlite3.SQLITE_FULL:
        return True
    return "database or disk is full" in str(error).lower()


class SQLiteInvoiceRecordStore(IInvoiceRecordStore, ISettingsStore):
    """
    SQLite implementation of invoice record and settings storage.

    Record writes run through a StoragePressureManager: a write rejected
    for capacity frees synced records and is retried before any error
    reaches the caller. Deletes and reads bypass it.
    """

    def __init__(
        self,
        pool: ConnectionPool | None = None,
        pressure: StoragePressureManager | None = None,
    ):
        self._pool = pool
        self._pressure = pressure or StoragePressureManager.from_settings(self)

    @property
    def pressure(self) -> StoragePressureManager:
        return self._pressure

    async def _get_pool(self) -> ConnectionPool:
        if self._pool is None:
            return await get_pool()
        return self._pool

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[aiosqlite.Connection]:
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            yield conn

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncIterator[aiosqlite.Connection]:
        """Single-record transaction; translates SQLite failures into domain errors."""
        pool = await self._get_pool()
        try:
            async with pool.transaction() as conn:
                yield conn
        except aiosqlite.Error as e:
            if is_capacity_error(e):
                raise StorageFullError(operation, str(e)) from e
            logger.error("database_write_failed", operation=operation, error=str(e))
            raise DatabaseError(operation, str(e)) from e

    # Records

    async def append(self, record: InvoiceRecord) -> InvoiceRecord:
        """Persist a newly created record."""

        async def write() -> InvoiceRecord:
            async with self._transaction("append") as conn:
                await conn.execute(
                    """
                    INSERT INTO invoices (
                        id, server_id, customer_name, status,
                        subtotal, vat, total, items, created_at,
                        synced, attempts, next_retry_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        record.id,
                        record.server_id,
                        record.customer_name,
                        record.status.value,
                        record.subtotal,
                        record.vat,
                        record.total,
                        json.dumps([item.model_dump() for item in record.items]),
                        format_timestamp(record.created_at),
                        1 if record.synced else 0,
                        record.attempts,
                        format_timestamp(record.next_retry_at) if record.next_retry_at else None,
                    ),
                )
            return record

        await self._pressure.run("append", write)
        logger.info(
            "invoice_record_appended",
            invoice_id=record.id,
            items=len(record.items),
            total=record.total,
        )
        return record

    async def get(self, invoice_id: str) -> InvoiceRecord | None:
        """Get a record by its local id."""
        async with self._connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM invoices WHERE id = ?",
                (invoice_id,),
            )
            row = await cursor.fetchone()
            return self._row_to_record(row) if row else None

    async def list_all(self, limit: int | None = None, offset: int = 0) -> list[InvoiceRecord]:
        """List records, newest first."""
        async with self._connection() as conn:
            cursor = await conn.execute(
                """
                SELECT * FROM invoices
                ORDER BY created_at DESC, rowid DESC
                LIMIT ? OFFSET ?
                """,
                (limit if limit is not None else -1, offset),
            )
            rows = await cursor.fetchall()
            return [self._row_to_record(row) for row in rows]

    async def list_due(self, now: datetime) -> list[InvoiceRecord]:
        """
        List unsynced, non-failed records whose retry deadline has passed.

        Records left in ``processing`` by an interrupted pass are included.
        """
        async with self._connection() as conn:
            cursor = await conn.execute(
                """
                SELECT * FROM invoices
                WHERE synced = 0
                  AND status != ?
                  AND (next_retry_at IS NULL OR next_retry_at <= ?)
                ORDER BY created_at ASC, rowid ASC
                """,
                (InvoiceStatus.FAILED.value, format_timestamp(now)),
            )
            rows = await cursor.fetchall()
            return [self._row_to_record(row) for row in rows]

    async def mark_synced(self, invoice_id: str, server_id: str, status: InvoiceStatus) -> None:
        """Record remote acceptance; resets attempts and clears the retry deadline."""
        synced = 0 if status == InvoiceStatus.FAILED else 1
        await self._update(
            "mark_synced",
            invoice_id,
            """
            UPDATE invoices
            SET server_id = ?, status = ?, synced = ?, attempts = 0, next_retry_at = NULL
            WHERE id = ?
            """,
            (server_id, status.value, synced, invoice_id),
        )

    async def set_retry_metadata(
        self, invoice_id: str, attempts: int, next_retry_at: datetime | None
    ) -> None:
        """Persist the attempt counter and the next retry deadline."""
        await self._update(
            "set_retry_metadata",
            invoice_id,
            "UPDATE invoices SET attempts = ?, next_retry_at = ? WHERE id = ?",
            (
                attempts,
                format_timestamp(next_retry_at) if next_retry_at else None,
                invoice_id,
            ),
        )

    async def set_status(self, invoice_id: str, status: InvoiceStatus) -> None:
        """Update the lifecycle status, keeping the synced flag consistent."""
        await self._update(
            "set_status",
            invoice_id,
            """
            UPDATE invoices
            SET status = ?,
                synced = CASE WHEN server_id IS NOT NULL AND ? != ? THEN 1 ELSE 0 END
            WHERE id = ?
            """,
            (status.value, status.value, InvoiceStatus.FAILED.value, invoice_id),
        )

    async def requeue(self, invoice_id: str) -> None:
        """Back to queued and unsynced; a remote rejection's server id is dropped."""
        await self._update(
            "requeue",
            invoice_id,
            """
            UPDATE invoices
            SET status = ?, server_id = NULL, synced = 0, next_retry_at = NULL
            WHERE id = ?
            """,
            (InvoiceStatus.QUEUED.value, invoice_id),
        )

    async def _update(self, operation: str, invoice_id: str, sql: str, params: tuple) -> None:
        async def write() -> None:
            async with self._transaction(operation) as conn:
                cursor = await conn.execute(sql, params)
                if cursor.rowcount == 0:
                    raise InvoiceNotFoundError(invoice_id)

        await self._pressure.run(operation, write)

    async def prune_synced(self, older_than: datetime) -> int:
        """Delete synced records created before ``older_than``."""
        async with self._transaction("prune_synced") as conn:
            cursor = await conn.execute(
                "DELETE FROM invoices WHERE synced = 1 AND created_at < ?",
                (format_timestamp(older_than),),
            )
            removed = cursor.rowcount
        if removed:
            logger.info("synced_records_pruned", removed=removed, older_than=older_than.isoformat())
        return removed

    async def retain_recent_synced(self, keep: int) -> int:
        """Delete all but the ``keep`` most recent synced records."""
        async with self._transaction("retain_recent_synced") as conn:
            cursor = await conn.execute(
                """
                DELETE FROM invoices
                WHERE synced = 1
                  AND id NOT IN (
                      SELECT id FROM invoices
                      WHERE synced = 1
                      ORDER BY created_at DESC, rowid DESC
                      LIMIT ?
                  )
                """,
                (max(0, keep),),
            )
            removed = cursor.rowcount
        if removed:
            logger.info("synced_records_trimmed", removed=removed, kept=keep)
        return removed

    async def count_all(self) -> int:
        async with self._connection() as conn:
            cursor = await conn.execute("SELECT COUNT(*) FROM invoices")
            row = await cursor.fetchone()
            return row[0] if row else 0

    async def count_unsynced(self) -> int:
        async with self._connection() as conn:
            cursor = await conn.execute("SELECT COUNT(*) FROM invoices WHERE synced = 0")
            row = await cursor.fetchone()
            return row[0] if row else 0

    # Settings

    async def get_setting(self, key: str) -> str | None:
        async with self._connection() as conn:
            cursor = await conn.execute("SELECT value FROM settings WHERE key = ?", (key,))
            row = await cursor.fetchone()
            return row["value"] if row else None

    async def set_setting(self, key: str, value: str) -> None:
        async def write() -> None:
            async with self._transaction("set_setting") as conn:
                await conn.execute(
                    "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
                    (key, value),
                )

        await self._pressure.run("set_setting", write)
        logger.info("setting_updated", key=key)

    async def delete_setting(self, key: str) -> bool:
        async with self._transaction("delete_setting") as conn:
            cursor = await conn.execute("DELETE FROM settings WHERE key = ?", (key,))
            return cursor.rowcount > 0

    # Helper methods

    def _row_to_record(self, row: aiosqlite.Row) -> InvoiceRecord:
        """Convert database row to InvoiceRecord."""
        return InvoiceRecord(
            id=row["id"],
            server_id=row["server_id"],
            customer_name=row["customer_name"],
            status=InvoiceStatus(row["status"]),
            subtotal=row["subtotal"],
            vat=row["vat"],
            total=row["total"],
            items=[InvoiceItem(**item) for item in json.loads(row["items"] or "[]")],
            created_at=parse_timestamp(row["created_at"]),
            attempts=row["attempts"],
            next_retry_at=parse_timestamp(row["next_retry_at"]),
        )
