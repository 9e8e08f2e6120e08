"""Pytest fixtures for SQLite storage tests."""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest

from taxbridge_sync.core.services import StoragePressureManager
from taxbridge_sync.infrastructure.storage.sqlite import ConnectionPool, SQLiteInvoiceRecordStore
from taxbridge_sync.infrastructure.storage.sqlite.migrations import run_migrations


@pytest.fixture
def temp_db_path(tmp_path: Path) -> Path:
    """Create a temporary database path."""
    return tmp_path / "test.db"


@pytest.fixture
async def initialized_db(temp_db_path: Path) -> Path:
    """Temporary database with every migration applied."""
    await run_migrations(temp_db_path, create_backup_before=False)
    return temp_db_path


@pytest.fixture
async def pool(initialized_db: Path) -> AsyncGenerator[ConnectionPool, None]:
    """Single-connection pool over the migrated database."""
    pool = ConnectionPool(initialized_db, pool_size=1, busy_timeout=5000)
    await pool.initialize()
    yield pool
    await pool.close()


@pytest.fixture
def store(pool: ConnectionPool, clock) -> SQLiteInvoiceRecordStore:
    """Record store bound to the test pool, with pressure relief on the test clock."""
    store = SQLiteInvoiceRecordStore(pool=pool)
    store._pressure = StoragePressureManager(store, clock=clock)
    return store
