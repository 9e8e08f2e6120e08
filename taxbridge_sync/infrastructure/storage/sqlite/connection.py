"""
Pooled aiosqlite connections for the device database.

Every connection is opened with the same durability pragmas. The optional
``max_page_count`` is how the storage quota is modelled: once the file hits
that many pages SQLite fails writes with SQLITE_FULL, and the record store
turns that into pressure relief.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import aiosqlite

from taxbridge_sync.config import get_logger, get_settings
from taxbridge_sync.config.settings import StorageSettings

logger = get_logger(__name__)


class ConnectionPool:
    """A fixed set of connections handed out one caller at a time."""

    def __init__(
        self,
        db_path: Path,
        pool_size: int = 2,
        busy_timeout: int = 30000,
        max_page_count: int | None = None,
    ):
        self.db_path = db_path
        self.pool_size = pool_size
        self.busy_timeout = busy_timeout
        self.max_page_count = max_page_count

        self._idle: asyncio.Queue[aiosqlite.Connection] = asyncio.Queue()
        self._connections: list[aiosqlite.Connection] = []
        self._init_lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, storage: StorageSettings) -> "ConnectionPool":
        return cls(
            db_path=storage.db_path,
            pool_size=storage.pool_size,
            busy_timeout=storage.busy_timeout,
            max_page_count=storage.max_page_count,
        )

    @property
    def is_initialized(self) -> bool:
        return bool(self._connections)

    def _pragmas(self) -> list[str]:
        pragmas = [
            "PRAGMA journal_mode=WAL",
            # FULL fsyncs on commit so an acknowledged invoice survives power loss
            "PRAGMA synchronous=FULL",
            f"PRAGMA busy_timeout={int(self.busy_timeout)}",
        ]
        if self.max_page_count:
            pragmas.append(f"PRAGMA max_page_count={int(self.max_page_count)}")
        return pragmas

    async def _open(self) -> aiosqlite.Connection:
        conn = await aiosqlite.connect(self.db_path)
        for pragma in self._pragmas():
            await conn.execute(pragma)
        conn.row_factory = aiosqlite.Row
        return conn

    async def initialize(self) -> None:
        """Open ``pool_size`` connections. Calling again is a no-op."""
        async with self._init_lock:
            if self.is_initialized:
                return
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            for _ in range(self.pool_size):
                conn = await self._open()
                self._connections.append(conn)
                self._idle.put_nowait(conn)

        logger.info(
            "connection_pool_initialized",
            db_path=str(self.db_path),
            pool_size=self.pool_size,
            max_page_count=self.max_page_count,
        )

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[aiosqlite.Connection]:
        """Borrow a connection, waiting while all of them are in use."""
        if not self.is_initialized:
            await self.initialize()
        conn = await self._idle.get()
        try:
            yield conn
        finally:
            self._idle.put_nowait(conn)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Borrow a connection and commit on exit, or roll back if the block raised."""
        async with self.acquire() as conn:
            try:
                yield conn
            except BaseException:
                await conn.rollback()
                raise
            await conn.commit()

    async def close(self) -> None:
        async with self._init_lock:
            connections, self._connections = self._connections, []
            self._idle = asyncio.Queue()
            for conn in connections:
                await conn.close()
        if connections:
            logger.info("connection_pool_closed", db_path=str(self.db_path))


_pool: ConnectionPool | None = None


async def get_pool() -> ConnectionPool:
    """Process-wide pool built from ``STORAGE_*`` settings on first use."""
    global _pool
    if _pool is None:
        _pool = ConnectionPool.from_settings(get_settings().storage)
    await _pool.initialize()
    return _pool


async def close_pool() -> None:
    global _pool
    pool, _pool = _pool, None
    if pool is not None:
        await pool.close()


@asynccontextmanager
async def get_connection() -> AsyncIterator[aiosqlite.Connection]:
    pool = await get_pool()
    async with pool.acquire() as conn:
        yield conn


@asynccontextmanager
async def get_transaction() -> AsyncIterator[aiosqlite.Connection]:
    pool = await get_pool()
    async with pool.transaction() as conn:
        yield conn
