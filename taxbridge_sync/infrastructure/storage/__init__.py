"""Storage implementations."""

from taxbridge_sync.infrastructure.storage import sqlite

__all__ = ["sqlite"]
