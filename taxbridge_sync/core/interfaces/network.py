"""Abstract interfaces for reachability and sync notifications."""

from abc import ABC, abstractmethod
from collections.abc import Callable

from taxbridge_sync.core.entities import NetworkStatus, SyncResult, SyncTrigger

ReachabilityListener = Callable[[bool], None]


class IReachability(ABC):
    """
    Best-effort "can reach the public network" signal.

    Implementations: ReachabilityMonitor
    """

    @property
    @abstractmethod
    def is_reachable(self) -> bool:
        """Current cached estimate."""
        pass

    @abstractmethod
    async def force_check(self) -> bool:
        """Run a short, time-bounded probe, update the estimate and return it."""
        pass

    @abstractmethod
    def status(self) -> NetworkStatus:
        """Snapshot of the current network state."""
        pass

    @abstractmethod
    def subscribe(self, listener: ReachabilityListener) -> Callable[[], None]:
        """
        Register a listener called with the new estimate on every change.

        Returns a callable that removes the listener.
        """
        pass


class ISyncNotifier(ABC):
    """Non-blocking, aggregate user notifications about sync passes."""

    @abstractmethod
    def notify(self, result: SyncResult, trigger: SyncTrigger) -> None:
        """Report the outcome of a pass. Must not raise or block."""
        pass
