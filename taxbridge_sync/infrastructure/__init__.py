"""Infrastructure layer implementations."""

from taxbridge_sync.infrastructure import network, remote, storage

__all__ = ["network", "remote", "storage"]
