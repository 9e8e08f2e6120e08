"""
Failure classification and backoff scheduling for invoice delivery.

Retry timing is expressed as a deadline persisted on the record, never as
an in-process sleep; the next sync pass picks the record up once due.
"""

import random
from dataclasses import dataclass, field
from datetime import timedelta

from taxbridge_sync.config import get_settings
from taxbridge_sync.config.settings import SyncSettings
from taxbridge_sync.core.exceptions import (
    RemoteAPIError,
    RemoteResponseError,
    RemoteUnavailableError,
)

# Request timeout and rate limiting are the only retryable 4xx codes
RETRYABLE_CLIENT_STATUSES = frozenset({408, 429})


def is_retryable_status(status_code: int) -> bool:
    """Server errors, timeouts and rate limiting are worth another attempt."""
    if status_code >= 500:
        return True
    return status_code in RETRYABLE_CLIENT_STATUSES


def is_retryable_error(exc: BaseException) -> bool:
    """
    Classify a delivery failure.

    Network failures and malformed success bodies are retryable: the
    idempotency key makes a resend safe even if the server already
    accepted the invoice. Anything unrecognised is terminal.
    """
    if isinstance(exc, RemoteAPIError):
        return is_retryable_status(exc.status_code)
    return isinstance(exc, (RemoteUnavailableError, RemoteResponseError))


def retry_after_hint(exc: BaseException) -> float | None:
    """Server-supplied delay, if the failure carried one."""
    if isinstance(exc, RemoteAPIError):
        return exc.retry_after
    return None


@dataclass
class RetryPolicy:
    """Capped exponential backoff with jitter and a maximum attempt count."""

    max_attempts: int = 5
    base_seconds: float = 1.0
    cap_seconds: float = 300.0
    jitter_seconds: float = 1.0
    rng: random.Random = field(default_factory=random.Random)

    @classmethod
    def from_settings(cls, settings: SyncSettings | None = None) -> "RetryPolicy":
        sync = settings or get_settings().sync
        return cls(
            max_attempts=sync.max_attempts,
            base_seconds=sync.backoff_base_seconds,
            cap_seconds=sync.backoff_cap_seconds,
            jitter_seconds=sync.backoff_jitter_seconds,
        )

    def is_exhausted(self, attempts: int) -> bool:
        """True once ``attempts`` delivery attempts leave no retry budget."""
        return attempts >= self.max_attempts

    def backoff(self, attempt: int, retry_after: float | None = None) -> timedelta:
        """
        Delay before the next attempt.

        Args:
            attempt: 1-based number of the attempt that just failed
            retry_after: optional server hint in seconds, replaces the
                exponential term (still capped)
        """
        if retry_after is not None:
            delay = min(self.cap_seconds, max(0.0, retry_after))
        else:
            delay = min(self.cap_seconds, self.base_seconds * 2 ** max(0, attempt - 1))

        jitter = self.rng.uniform(0, self.jitter_seconds) if self.jitter_seconds > 0 else 0.0
        return timedelta(seconds=delay + jitter)
