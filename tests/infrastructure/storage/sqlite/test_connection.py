"""Unit tests for SQLite connection pool."""

import asyncio
from pathlib import Path

import pytest

from taxbridge_sync.config import reset_settings
from taxbridge_sync.infrastructure.storage.sqlite.connection import (
    ConnectionPool,
    close_pool,
    get_connection,
    get_pool,
    get_transaction,
)


class TestConnectionPoolInit:
    """Tests for ConnectionPool initialization."""

    def test_defaults(self, temp_db_path: Path):
        """Pool stores its configuration and starts empty."""
        pool = ConnectionPool(temp_db_path)

        assert pool.db_path == temp_db_path
        assert pool.pool_size == 2
        assert pool.busy_timeout == 30000
        assert pool.max_page_count is None
        assert pool.is_initialized is False


class TestConnectionPoolInitialize:
    """Tests for ConnectionPool.initialize()."""

    @pytest.mark.asyncio
    async def test_initialize_creates_directory(self, tmp_path: Path):
        """Initialize creates database directory if not exists."""
        db_path = tmp_path / "subdir" / "nested" / "test.db"
        pool = ConnectionPool(db_path, pool_size=1)

        await pool.initialize()
        try:
            assert db_path.parent.exists()
            assert pool.is_initialized
        finally:
            await pool.close()

    @pytest.mark.asyncio
    async def test_initialize_idempotent(self, temp_db_path: Path):
        """Calling initialize twice does not add connections."""
        pool = ConnectionPool(temp_db_path, pool_size=2)
        await pool.initialize()
        await pool.initialize()
        try:
            assert len(pool._connections) == 2
        finally:
            await pool.close()


class TestConnectionPragmas:
    """Durability and quota settings applied to each connection."""

    @pytest.mark.asyncio
    async def test_wal_and_full_sync(self, temp_db_path: Path):
        pool = ConnectionPool(temp_db_path, pool_size=1)
        try:
            async with pool.acquire() as conn:
                cursor = await conn.execute("PRAGMA journal_mode")
                assert (await cursor.fetchone())[0] == "wal"
                cursor = await conn.execute("PRAGMA synchronous")
                # 2 == FULL
                assert (await cursor.fetchone())[0] == 2
        finally:
            await pool.close()

    @pytest.mark.asyncio
    async def test_max_page_count(self, temp_db_path: Path):
        pool = ConnectionPool(temp_db_path, pool_size=1, max_page_count=64)
        try:
            async with pool.acquire() as conn:
                cursor = await conn.execute("PRAGMA max_page_count")
                assert (await cursor.fetchone())[0] == 64
        finally:
            await pool.close()


class TestConnectionPoolAcquire:
    """Tests for ConnectionPool.acquire() and transaction()."""

    @pytest.mark.asyncio
    async def test_acquire_blocks_when_pool_exhausted(self, temp_db_path: Path):
        """A second acquire waits until the first connection is returned."""
        pool = ConnectionPool(temp_db_path, pool_size=1)
        try:
            async with pool.acquire():
                with pytest.raises(asyncio.TimeoutError):
                    async with asyncio.timeout(0.05):
                        async with pool.acquire():
                            pass
            async with pool.acquire() as conn:
                assert conn is not None
        finally:
            await pool.close()

    @pytest.mark.asyncio
    async def test_transaction_rolls_back_on_exception(self, pool: ConnectionPool):
        """Rows written inside a failed transaction are discarded."""
        with pytest.raises(RuntimeError):
            async with pool.transaction() as conn:
                await conn.execute("INSERT INTO settings (key, value) VALUES ('k', 'v')")
                raise RuntimeError("abort")

        async with pool.acquire() as conn:
            cursor = await conn.execute("SELECT COUNT(*) FROM settings")
            assert (await cursor.fetchone())[0] == 0

    @pytest.mark.asyncio
    async def test_close_resets_pool(self, temp_db_path: Path):
        """A closed pool can be initialized again."""
        pool = ConnectionPool(temp_db_path, pool_size=1)
        await pool.initialize()
        await pool.close()

        assert pool.is_initialized is False
        assert pool._connections == []

        async with pool.acquire() as conn:
            assert conn is not None
        await pool.close()


class TestGlobalPool:
    """Tests for the settings-driven global pool helpers."""

    @pytest.mark.asyncio
    async def test_get_pool_from_settings(self, isolated_settings: Path, monkeypatch):
        monkeypatch.setenv("STORAGE_POOL_SIZE", "1")
        monkeypatch.setenv("STORAGE_MAX_PAGE_COUNT", "4096")
        reset_settings()

        pool = await get_pool()
        try:
            assert pool is await get_pool()
            assert pool.db_path == isolated_settings / "taxbridge.db"
            assert pool.pool_size == 1
            assert pool.max_page_count == 4096

            async with get_transaction() as conn:
                await conn.execute("CREATE TABLE t (x INTEGER)")
                await conn.execute("INSERT INTO t VALUES (1)")
            async with get_connection() as conn:
                cursor = await conn.execute("SELECT x FROM t")
                assert (await cursor.fetchone())[0] == 1
        finally:
            await close_pool()

    @pytest.mark.asyncio
    async def test_close_pool_safe_when_none(self):
        await close_pool()
