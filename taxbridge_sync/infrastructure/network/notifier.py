"""Aggregate sync notifications."""

from collections import deque

from taxbridge_sync.config import get_logger
from taxbridge_sync.core.entities import SyncResult, SyncTrigger, utcnow
from taxbridge_sync.core.interfaces import ISyncNotifier

logger = get_logger(__name__)


def summarize(result: SyncResult) -> list[str]:
    """User-facing one-liners for a pass; nothing for an empty pass."""
    messages = []
    if result.synced:
        noun = "invoice" if result.synced == 1 else "invoices"
        messages.append(f"{result.synced} {noun} synced")
    if result.failed:
        noun = "invoice" if result.failed == 1 else "invoices"
        messages.append(f"{result.failed} {noun} failed")
    return messages


class LogSyncNotifier(ISyncNotifier):
    """Logs pass summaries and keeps the most recent ones for the UI to poll."""

    def __init__(self, history: int = 20):
        self._recent: deque[dict] = deque(maxlen=history)

    @property
    def recent(self) -> list[dict]:
        return list(self._recent)

    def notify(self, result: SyncResult, trigger: SyncTrigger) -> None:
        for message in summarize(result):
            self._recent.append(
                {
                    "message": message,
                    "trigger": trigger.value,
                    "at": utcnow().isoformat(),
                }
            )
            logger.info("sync_notification", message=message, trigger=trigger.value)
