"""
Application layer - Use cases, DTOs, and service factories.

This layer orchestrates the sync subsystem by:
1. Defining request/response DTOs for API contracts
2. Implementing use cases that coordinate core services
3. Providing factory functions for dependency injection

Use cases are the only entry point for API handlers.
"""

from taxbridge_sync.application.services import (
    get_auto_sync_trigger,
    get_invoice_endpoint,
    get_reachability_monitor,
    get_sync_notifier,
    get_sync_orchestrator,
    init_db,
    reset_services,
)

__all__ = [
    "get_auto_sync_trigger",
    "get_invoice_endpoint",
    "get_reachability_monitor",
    "get_sync_notifier",
    "get_sync_orchestrator",
    "init_db",
    "reset_services",
]
