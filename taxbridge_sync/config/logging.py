"""
Structured logging for the sync service.

Events are snake_case names with key/value context. Development gets a
console renderer; every other environment gets one JSON object per line so
device logs can be shipped and grepped.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from taxbridge_sync.config.settings import Settings, get_settings

# Third-party loggers whose request-level chatter duplicates our own events
QUIET_LOGGERS = ("httpx", "httpcore", "aiosqlite", "uvicorn.access")

_configured = False


def service_context(settings: Settings) -> Processor:
    """Processor stamping every event with app name, version and environment."""
    context = {
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }

    def add_service_context(
        logger: WrappedLogger, method_name: str, event_dict: EventDict
    ) -> EventDict:
        for key, value in context.items():
            event_dict.setdefault(key, value)
        return event_dict

    return add_service_context


def add_component(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Short component name (``sync_orchestrator``) from the dotted logger name."""
    name = event_dict.get("logger")
    if name and name.startswith("taxbridge_sync."):
        event_dict["component"] = name.rsplit(".", 1)[-1]
    return event_dict


def _renderer(settings: Settings) -> list[Processor]:
    if settings.environment == "development":
        return [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]
    return [
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ]


def configure_logging(force: bool = False) -> None:
    """
    Configure structlog over stdlib logging.

    Safe to call from both the API lifespan and the CLI; only the first call
    takes effect unless ``force`` is set.
    """
    global _configured
    if _configured and not force:
        return

    settings = get_settings()

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_component,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        service_context(settings),
        *_renderer(settings),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level),
        force=True,
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True


def get_logger(name: str | None = None, **initial_values: Any) -> structlog.stdlib.BoundLogger:
    """Get a structured logger, optionally pre-bound with context."""
    return structlog.get_logger(name, **initial_values)
