"""SQLite storage implementations."""

from taxbridge_sync.infrastructure.storage.sqlite.connection import (
    ConnectionPool,
    close_pool,
    get_connection,
    get_pool,
    get_transaction,
)
from taxbridge_sync.infrastructure.storage.sqlite.record_store import SQLiteInvoiceRecordStore

# Type alias for convenience
InvoiceRecordStore = SQLiteInvoiceRecordStore

# Singleton instance
_record_store: SQLiteInvoiceRecordStore | None = None


async def get_record_store() -> SQLiteInvoiceRecordStore:
    """Get singleton invoice record store instance."""
    global _record_store
    if _record_store is None:
        _record_store = SQLiteInvoiceRecordStore()
    return _record_store


def reset_record_store() -> None:
    """Drop the singleton (tests, pool rebuilds)."""
    global _record_store
    _record_store = None


__all__ = [
    # Connection
    "ConnectionPool",
    "get_pool",
    "close_pool",
    "get_connection",
    "get_transaction",
    # Store
    "SQLiteInvoiceRecordStore",
    "InvoiceRecordStore",
    "get_record_store",
    "reset_record_store",
]
