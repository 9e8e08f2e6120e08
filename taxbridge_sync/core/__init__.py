"""Core domain layer - entities, interfaces, services and exceptions."""

from taxbridge_sync.core import entities, exceptions, interfaces

__all__ = ["entities", "interfaces", "exceptions"]
