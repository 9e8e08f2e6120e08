"""Sync pass and network state entities."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class SyncOutcome(str, Enum):
    """Outcome of one delivery attempt for one record."""

    SYNCED = "synced"
    DEFERRED = "deferred"
    FAILED = "failed"


class SkipReason(str, Enum):
    """Why a sync pass did not touch any record."""

    OFFLINE = "offline"
    IN_PROGRESS = "in_progress"
    CREDENTIALS_MISSING = "credentials_missing"


class SyncTrigger(str, Enum):
    """What started a sync pass."""

    MANUAL = "manual"
    RECONNECT = "reconnect"
    PERIODIC = "periodic"


class SyncResult(BaseModel):
    """Aggregate counters for one sync pass."""

    synced: int = 0
    deferred: int = 0
    failed: int = 0
    skipped: SkipReason | None = None

    @classmethod
    def skip(cls, reason: SkipReason) -> "SyncResult":
        return cls(skipped=reason)

    def record(self, outcome: SyncOutcome) -> None:
        if outcome == SyncOutcome.SYNCED:
            self.synced += 1
        elif outcome == SyncOutcome.DEFERRED:
            self.deferred += 1
        else:
            self.failed += 1

    @property
    def total(self) -> int:
        return self.synced + self.deferred + self.failed

    def counts(self) -> dict[str, int]:
        return {"synced": self.synced, "deferred": self.deferred, "failed": self.failed}


class NetworkStatus(BaseModel):
    """Snapshot of the reachability estimate."""

    is_connected: bool | None = None
    is_reachable: bool = False
    connection_type: str | None = None
    checked_at: datetime | None = None
