"""
Invoice record entities with Pydantic v2 validation.

An InvoiceRecord is the unit of synchronization: created locally, queued,
and driven toward the remote API by the sync orchestrator.
"""

from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(UTC)


class InvoiceStatus(str, Enum):
    """Local lifecycle status of an invoice record."""

    QUEUED = "queued"
    PROCESSING = "processing"
    STAMPED = "stamped"
    FAILED = "failed"

    @classmethod
    def from_remote(cls, value: str | None) -> "InvoiceStatus":
        """
        Map a status string returned by the remote API.

        Only the terminal outcomes carry over. Anything else, including the
        remote's own ``processing``, means accepted but not yet stamped and
        maps to queued; ``processing`` locally marks an in-flight attempt.
        """
        remote = (value or "").strip().lower()
        if remote in (cls.STAMPED.value, cls.FAILED.value):
            return cls(remote)
        return cls.QUEUED


class InvoiceItem(BaseModel):
    """A single line on an invoice."""

    description: str
    quantity: float = Field(default=1.0, gt=0)
    unit_price: float = Field(default=0.0, ge=0)

    @property
    def line_total(self) -> float:
        return self.quantity * self.unit_price


class InvoiceRecord(BaseModel):
    """
    Locally persisted invoice awaiting (or past) remote delivery.

    ``id`` doubles as the idempotency key presented to the remote API.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    server_id: str | None = None
    customer_name: str | None = None
    status: InvoiceStatus = InvoiceStatus.QUEUED
    subtotal: float = 0.0
    vat: float = 0.0
    total: float = 0.0
    items: list[InvoiceItem] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    attempts: int = Field(default=0, ge=0)
    next_retry_at: datetime | None = None

    @field_validator("created_at", "next_retry_at")
    @classmethod
    def ensure_utc(cls, v: datetime | None) -> datetime | None:
        """Naive timestamps are taken to be UTC."""
        if v is None:
            return None
        if v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v.astimezone(UTC)

    @property
    def synced(self) -> bool:
        """Durably accepted remotely and not failed."""
        return self.server_id is not None and self.status != InvoiceStatus.FAILED

    def is_due(self, now: datetime) -> bool:
        """Whether a sync pass running at ``now`` should attempt this record."""
        if self.synced or self.status == InvoiceStatus.FAILED:
            return False
        return self.next_retry_at is None or self.next_retry_at <= now
