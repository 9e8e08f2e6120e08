"""Tests for the SQLite invoice record store."""

from datetime import UTC, datetime, timedelta, timezone
from pathlib import Path

import aiosqlite
import pytest

from taxbridge_sync.core.entities import InvoiceStatus
from taxbridge_sync.core.exceptions import (
    DatabaseError,
    InvoiceNotFoundError,
    StorageExhaustedError,
    StorageFullError,
)
from taxbridge_sync.infrastructure.storage.sqlite import ConnectionPool, SQLiteInvoiceRecordStore
from taxbridge_sync.infrastructure.storage.sqlite.record_store import (
    format_timestamp,
    is_capacity_error,
    parse_timestamp,
)


class TestTimestamps:
    """Tests for the stored timestamp format."""

    def test_round_trip_keeps_microseconds(self):
        value = datetime(2025, 3, 1, 9, 0, 0, 123456, tzinfo=UTC)
        assert parse_timestamp(format_timestamp(value)) == value

    def test_naive_is_treated_as_utc(self):
        assert format_timestamp(datetime(2025, 3, 1, 9, 0)) == "2025-03-01T09:00:00.000000Z"

    def test_other_offsets_are_normalized(self):
        lagos = datetime(2025, 3, 1, 10, 0, tzinfo=timezone(timedelta(hours=1)))
        assert format_timestamp(lagos) == "2025-03-01T09:00:00.000000Z"

    def test_lexical_order_is_chronological(self):
        earlier = format_timestamp(datetime(2025, 3, 1, 9, 0, 0, tzinfo=UTC))
        later = format_timestamp(datetime(2025, 3, 1, 9, 0, 0, 1, tzinfo=UTC))
        assert earlier < later

    def test_parse_none(self):
        assert parse_timestamp(None) is None


class TestCapacityError:
    """Tests for SQLITE_FULL detection."""

    def test_detects_message(self):
        assert is_capacity_error(aiosqlite.OperationalError("database or disk is full"))

    def test_other_errors(self):
        assert not is_capacity_error(aiosqlite.OperationalError("no such table: invoices"))


class TestAppendAndGet:
    """Tests for append() and get()."""

    @pytest.mark.asyncio
    async def test_append_persists_all_fields(self, store, record_factory, clock):
        record = record_factory(customer_name="Mama Nkechi Stores")

        await store.append(record)
        loaded = await store.get(record.id)

        assert loaded == record
        assert loaded.created_at == clock.now
        assert loaded.items[0].description == "Bag of rice"
        assert loaded.status == InvoiceStatus.QUEUED

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, store):
        assert await store.get("nope") is None

    @pytest.mark.asyncio
    async def test_duplicate_id_raises_database_error(self, store, record_factory):
        record = record_factory()
        await store.append(record)

        with pytest.raises(DatabaseError):
            await store.append(record)

    @pytest.mark.asyncio
    async def test_survives_reopen(self, initialized_db: Path, store, record_factory):
        record = await store.append(record_factory())

        reopened = ConnectionPool(initialized_db, pool_size=1)
        try:
            loaded = await SQLiteInvoiceRecordStore(pool=reopened).get(record.id)
        finally:
            await reopened.close()

        assert loaded == record


class TestListing:
    """Tests for list_all() and list_due()."""

    @pytest.mark.asyncio
    async def test_list_all_newest_first(self, store, record_factory, clock):
        old = await store.append(record_factory(created_at=clock.now - timedelta(hours=2)))
        new = await store.append(record_factory(created_at=clock.now))

        records = await store.list_all()

        assert [r.id for r in records] == [new.id, old.id]

    @pytest.mark.asyncio
    async def test_list_all_paginates(self, store, record_factory, clock):
        for i in range(5):
            await store.append(record_factory(created_at=clock.now - timedelta(minutes=i)))

        assert len(await store.list_all(limit=2)) == 2
        assert len(await store.list_all(limit=2, offset=4)) == 1

    @pytest.mark.asyncio
    async def test_list_due_oldest_first(self, store, record_factory, clock):
        ids = []
        for minutes in (5, 30, 10):
            record = await store.append(record_factory(created_at=clock.now - timedelta(minutes=minutes)))
            ids.append((minutes, record.id))

        due = await store.list_due(clock.now)

        assert [r.id for r in due] == [rid for _, rid in sorted(ids, reverse=True)]

    @pytest.mark.asyncio
    async def test_list_due_respects_deadline(self, store, record_factory, clock):
        record = await store.append(record_factory())
        await store.set_retry_metadata(record.id, 1, clock.now + timedelta(seconds=30))

        assert await store.list_due(clock.now) == []
        assert [r.id for r in await store.list_due(clock.now + timedelta(seconds=30))] == [record.id]

    @pytest.mark.asyncio
    async def test_list_due_skips_synced_and_failed(self, store, record_factory):
        synced = await store.append(record_factory())
        failed = await store.append(record_factory())
        processing = await store.append(record_factory())
        await store.mark_synced(synced.id, "srv-1", InvoiceStatus.STAMPED)
        await store.set_status(failed.id, InvoiceStatus.FAILED)
        await store.set_status(processing.id, InvoiceStatus.PROCESSING)

        due = await store.list_due(datetime.now(UTC) + timedelta(days=1))

        assert [r.id for r in due] == [processing.id]


class TestUpdates:
    """Tests for the status and retry metadata writes."""

    @pytest.mark.asyncio
    async def test_mark_synced_resets_retry_state(self, store, record_factory, clock):
        record = await store.append(record_factory())
        await store.set_retry_metadata(record.id, 3, clock.now + timedelta(minutes=1))

        await store.mark_synced(record.id, "srv-9", InvoiceStatus.STAMPED)

        loaded = await store.get(record.id)
        assert loaded.synced
        assert loaded.server_id == "srv-9"
        assert loaded.attempts == 0
        assert loaded.next_retry_at is None
        assert await store.count_unsynced() == 0

    @pytest.mark.asyncio
    async def test_mark_synced_with_failed_status_stays_unsynced(self, store, record_factory):
        record = await store.append(record_factory())

        await store.mark_synced(record.id, "srv-9", InvoiceStatus.FAILED)

        loaded = await store.get(record.id)
        assert not loaded.synced
        assert await store.count_unsynced() == 1

    @pytest.mark.asyncio
    async def test_requeue_drops_rejected_server_id(self, store, record_factory, clock):
        record = await store.append(record_factory(attempts=2))
        await store.mark_synced(record.id, "srv-9", InvoiceStatus.FAILED)

        await store.requeue(record.id)

        loaded = await store.get(record.id)
        assert loaded.status == InvoiceStatus.QUEUED
        assert loaded.server_id is None
        assert not loaded.synced
        assert await store.count_unsynced() == 1
        assert [r.id for r in await store.list_due(clock.now)] == [record.id]

    @pytest.mark.asyncio
    async def test_retry_metadata_round_trip(self, store, record_factory, clock):
        record = await store.append(record_factory())
        deadline = clock.now + timedelta(seconds=4.5)

        await store.set_retry_metadata(record.id, 2, deadline)

        loaded = await store.get(record.id)
        assert loaded.attempts == 2
        assert loaded.next_retry_at == deadline

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "call",
        [
            lambda s: s.set_status("missing", InvoiceStatus.FAILED),
            lambda s: s.set_retry_metadata("missing", 1, None),
            lambda s: s.mark_synced("missing", "srv-1", InvoiceStatus.STAMPED),
            lambda s: s.requeue("missing"),
        ],
    )
    async def test_unknown_id_raises(self, store, call):
        with pytest.raises(InvoiceNotFoundError):
            await call(store)


class TestRetention:
    """Tests for pruning synced records."""

    async def _seed(self, store, record_factory, clock, *, synced_ages, unsynced_ages=()):
        for days in synced_ages:
            record = await store.append(record_factory(created_at=clock.now - timedelta(days=days)))
            await store.mark_synced(record.id, f"srv-{record.id[:6]}", InvoiceStatus.STAMPED)
        for days in unsynced_ages:
            await store.append(record_factory(created_at=clock.now - timedelta(days=days)))

    @pytest.mark.asyncio
    async def test_prune_synced_only_removes_old_synced(self, store, record_factory, clock):
        await self._seed(store, record_factory, clock, synced_ages=(40, 35, 5), unsynced_ages=(90,))

        removed = await store.prune_synced(clock.now - timedelta(days=30))

        assert removed == 2
        assert await store.count_all() == 2
        assert await store.count_unsynced() == 1

    @pytest.mark.asyncio
    async def test_retain_recent_synced(self, store, record_factory, clock):
        await self._seed(store, record_factory, clock, synced_ages=(1, 2, 3, 4), unsynced_ages=(10,))

        removed = await store.retain_recent_synced(2)

        remaining = await store.list_all()
        assert removed == 2
        assert [r.created_at for r in remaining if r.synced] == [
            clock.now - timedelta(days=1),
            clock.now - timedelta(days=2),
        ]
        assert await store.count_unsynced() == 1

    @pytest.mark.asyncio
    async def test_retain_zero_removes_all_synced(self, store, record_factory, clock):
        await self._seed(store, record_factory, clock, synced_ages=(1, 2), unsynced_ages=(3,))

        assert await store.retain_recent_synced(0) == 2
        assert await store.count_all() == 1


class TestSettings:
    """Tests for the device settings key/value store."""

    @pytest.mark.asyncio
    async def test_set_get_delete(self, store):
        assert await store.get_setting("api:baseUrl") is None

        await store.set_setting("api:baseUrl", "https://a.example")
        await store.set_setting("api:baseUrl", "https://b.example")

        assert await store.get_setting("api:baseUrl") == "https://b.example"
        assert await store.delete_setting("api:baseUrl") is True
        assert await store.delete_setting("api:baseUrl") is False


class TestCapacity:
    """Writes against a database capped with max_page_count."""

    @pytest.fixture
    async def capped_store(self, initialized_db: Path, clock):
        async with aiosqlite.connect(initialized_db) as conn:
            cursor = await conn.execute("PRAGMA page_count")
            (pages,) = await cursor.fetchone()

        pool = ConnectionPool(initialized_db, pool_size=1, max_page_count=pages + 12)
        store = SQLiteInvoiceRecordStore(pool=pool)
        store.pressure._clock = clock
        yield store
        await pool.close()

    @pytest.mark.asyncio
    async def test_unsynced_writes_exhaust_storage(self, capped_store, record_factory):
        written = 0
        with pytest.raises(StorageExhaustedError):
            for _ in range(500):
                await capped_store.append(record_factory(customer_name="x" * 3000))
                written += 1

        assert written > 0
        assert await capped_store.count_unsynced() == written

    @pytest.mark.asyncio
    async def test_old_synced_records_make_room(
        self, initialized_db: Path, store, record_factory, clock
    ):
        for i in range(20):
            record = await store.append(
                record_factory(
                    created_at=clock.now - timedelta(days=60, minutes=i),
                    customer_name="x" * 3000,
                )
            )
            await store.mark_synced(record.id, f"srv-{i}", InvoiceStatus.STAMPED)

        async with store._connection() as conn:
            cursor = await conn.execute("PRAGMA page_count")
            (pages,) = await cursor.fetchone()

        # Already at the cap, so the next row cannot grow the file
        pool = ConnectionPool(initialized_db, pool_size=1, max_page_count=pages)
        capped = SQLiteInvoiceRecordStore(pool=pool)
        capped.pressure._clock = clock
        try:
            fresh = record_factory(customer_name="y" * 3000)
            await capped.append(fresh)

            assert await capped.get(fresh.id) == fresh
            assert await capped.count_all() == 1
        finally:
            await pool.close()

    @pytest.mark.asyncio
    async def test_full_error_without_relief(self, initialized_db: Path, record_factory):
        class NoRelief:
            async def run(self, operation, write):
                return await write()

        async with aiosqlite.connect(initialized_db) as conn:
            cursor = await conn.execute("PRAGMA page_count")
            (pages,) = await cursor.fetchone()

        pool = ConnectionPool(initialized_db, pool_size=1, max_page_count=pages + 4)
        store = SQLiteInvoiceRecordStore(pool=pool, pressure=NoRelief())
        try:
            with pytest.raises(StorageFullError):
                for _ in range(200):
                    await store.append(record_factory(customer_name="x" * 3000))
        finally:
            await pool.close()
