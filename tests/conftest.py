"""Pytest configuration and shared fakes."""

import asyncio
from collections.abc import Callable, Generator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from taxbridge_sync.config import reset_settings
from taxbridge_sync.core.entities import (
    InvoiceItem,
    InvoiceRecord,
    InvoiceStatus,
    NetworkStatus,
)
from taxbridge_sync.core.exceptions import InvoiceNotFoundError, RemoteUnavailableError
from taxbridge_sync.core.interfaces import (
    IInvoiceEndpoint,
    IInvoiceRecordStore,
    IReachability,
    ISettingsStore,
    ReachabilityListener,
    RemoteInvoiceReceipt,
)

T0 = datetime(2025, 3, 1, 9, 0, 0, tzinfo=UTC)


class Clock:
    """Manually advanced clock."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


class MemoryRecordStore(IInvoiceRecordStore, ISettingsStore):
    """Dict-backed store with the same due/prune semantics as the SQLite one."""

    def __init__(self) -> None:
        self.records: dict[str, InvoiceRecord] = {}
        self.settings: dict[str, str] = {}
        self.status_history: dict[str, list[InvoiceStatus]] = {}

    def _require(self, invoice_id: str) -> InvoiceRecord:
        if invoice_id not in self.records:
            raise InvoiceNotFoundError(invoice_id)
        return self.records[invoice_id]

    async def append(self, record: InvoiceRecord) -> InvoiceRecord:
        self.records[record.id] = record.model_copy(deep=True)
        return record

    async def get(self, invoice_id: str) -> InvoiceRecord | None:
        record = self.records.get(invoice_id)
        return record.model_copy(deep=True) if record else None

    async def list_all(self, limit: int | None = None, offset: int = 0) -> list[InvoiceRecord]:
        ordered = sorted(self.records.values(), key=lambda r: r.created_at, reverse=True)
        end = None if limit is None else offset + limit
        return [r.model_copy(deep=True) for r in ordered[offset:end]]

    async def list_due(self, now: datetime) -> list[InvoiceRecord]:
        due = [r for r in self.records.values() if r.is_due(now)]
        return [r.model_copy(deep=True) for r in sorted(due, key=lambda r: r.created_at)]

    async def mark_synced(self, invoice_id: str, server_id: str, status: InvoiceStatus) -> None:
        record = self._require(invoice_id)
        record.server_id = server_id
        record.status = status
        record.attempts = 0
        record.next_retry_at = None
        self.status_history.setdefault(invoice_id, []).append(status)

    async def set_retry_metadata(
        self, invoice_id: str, attempts: int, next_retry_at: datetime | None
    ) -> None:
        record = self._require(invoice_id)
        record.attempts = attempts
        record.next_retry_at = next_retry_at

    async def set_status(self, invoice_id: str, status: InvoiceStatus) -> None:
        self._require(invoice_id).status = status
        self.status_history.setdefault(invoice_id, []).append(status)

    async def requeue(self, invoice_id: str) -> None:
        record = self._require(invoice_id)
        record.status = InvoiceStatus.QUEUED
        record.server_id = None
        record.next_retry_at = None
        self.status_history.setdefault(invoice_id, []).append(InvoiceStatus.QUEUED)

    async def prune_synced(self, older_than: datetime) -> int:
        doomed = [r.id for r in self.records.values() if r.synced and r.created_at < older_than]
        for invoice_id in doomed:
            del self.records[invoice_id]
        return len(doomed)

    async def retain_recent_synced(self, keep: int) -> int:
        synced = sorted(
            (r for r in self.records.values() if r.synced),
            key=lambda r: r.created_at,
            reverse=True,
        )
        doomed = [r.id for r in synced[max(0, keep):]]
        for invoice_id in doomed:
            del self.records[invoice_id]
        return len(doomed)

    async def count_all(self) -> int:
        return len(self.records)

    async def count_unsynced(self) -> int:
        return sum(1 for r in self.records.values() if not r.synced)

    async def get_setting(self, key: str) -> str | None:
        return self.settings.get(key)

    async def set_setting(self, key: str, value: str) -> None:
        self.settings[key] = value

    async def delete_setting(self, key: str) -> bool:
        return self.settings.pop(key, None) is not None


class FakeReachability(IReachability):
    """Reachability whose probe result is set by the test."""

    def __init__(self, reachable: bool = True):
        self.probe_result = reachable
        self._reachable = reachable
        self.checks = 0
        self._listeners: list[ReachabilityListener] = []

    @property
    def is_reachable(self) -> bool:
        return self._reachable

    async def force_check(self) -> bool:
        self.checks += 1
        self.set(self.probe_result)
        return self._reachable

    def status(self) -> NetworkStatus:
        return NetworkStatus(is_reachable=self._reachable)

    def subscribe(self, listener: ReachabilityListener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def set(self, reachable: bool) -> None:
        if reachable != self._reachable:
            self._reachable = reachable
            for listener in list(self._listeners):
                listener(reachable)


class FakeEndpoint(IInvoiceEndpoint):
    """
    Idempotent remote: one server invoice per idempotency key.

    ``script`` maps an idempotency key to a list of exceptions to raise on
    successive calls (None means succeed).
    """

    def __init__(self, status: str = "stamped"):
        self.status = status
        self.calls: list[str] = []
        self.created: dict[str, str] = {}
        self.script: dict[str, list[Exception | None]] = {}
        self.lose_response_for: set[str] = set()
        self.on_call: Callable[[str], None] | None = None
        self.gate: asyncio.Event | None = None
        self.entered = asyncio.Event()

    async def create_invoice(
        self,
        items: list[InvoiceItem],
        idempotency_key: str,
        customer_name: str | None = None,
    ) -> RemoteInvoiceReceipt:
        self.calls.append(idempotency_key)
        if self.on_call is not None:
            self.on_call(idempotency_key)
        self.entered.set()
        if self.gate is not None:
            await self.gate.wait()

        planned = self.script.get(idempotency_key)
        if planned:
            error = planned.pop(0)
            if error is not None:
                raise error

        server_id = self.created.setdefault(idempotency_key, f"srv-{len(self.created) + 1}")
        if idempotency_key in self.lose_response_for:
            self.lose_response_for.discard(idempotency_key)
            raise RemoteUnavailableError("connection reset after request was sent")
        return RemoteInvoiceReceipt(invoice_id=server_id, status=self.status)


def make_record(
    created_at: datetime = T0,
    description: str = "Bag of rice",
    **kwargs,
) -> InvoiceRecord:
    """Queued record with one line item."""
    return InvoiceRecord(
        items=[InvoiceItem(description=description, quantity=2, unit_price=1500.0)],
        subtotal=3000.0,
        vat=225.0,
        total=3225.0,
        created_at=created_at,
        **kwargs,
    )


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[Path, None, None]:
    """Point storage at a temp directory and rebuild settings for every test."""
    data_dir = tmp_path / "data"
    monkeypatch.setenv("STORAGE_DATA_DIR", str(data_dir))
    monkeypatch.setenv("ENVIRONMENT", "development")
    reset_settings()
    yield data_dir
    reset_settings()


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def memory_store() -> MemoryRecordStore:
    return MemoryRecordStore()


@pytest.fixture
def reachability() -> FakeReachability:
    return FakeReachability(reachable=True)


@pytest.fixture
def endpoint() -> FakeEndpoint:
    return FakeEndpoint()


@pytest.fixture
def record_factory() -> Callable[..., InvoiceRecord]:
    return make_record
