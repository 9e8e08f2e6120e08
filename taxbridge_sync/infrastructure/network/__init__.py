"""Network reachability and user notifications."""

from taxbridge_sync.infrastructure.network.notifier import LogSyncNotifier
from taxbridge_sync.infrastructure.network.reachability import ReachabilityMonitor

__all__ = ["LogSyncNotifier", "ReachabilityMonitor"]
