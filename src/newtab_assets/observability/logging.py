"""Structured logging configuration using structlog."""

from __future__ import annotations

import logging
from collections.abc import Iterator, MutableMapping
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog
from structlog.contextvars import (
    bind_contextvars,
    bound_contextvars,
    clear_contextvars,
    merge_contextvars,
)

if TYPE_CHECKING:
    from newtab_core.config.settings import Settings

_QUIET_LOGGERS = ("httpx", "httpcore", "PIL", "sqlalchemy.engine", "diskcache")


def summarize_payloads(
    _logger: Any, _method: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Replace raw image bytes in an event with their length."""
    for key, value in event_dict.items():
        if isinstance(value, bytes | bytearray | memoryview):
            event_dict[key] = f"<{len(value)} bytes>"
    return event_dict


def configure_logging(settings: Settings) -> None:
    """Configure structlog with JSON or console rendering.

    Routes stdlib logging through structlog so third-party records share
    the same renderer, and picks the output format from settings. Binary
    payloads never reach the renderer.
    """
    shared_processors: list[structlog.types.Processor] = [
        merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        summarize_payloads,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    level = _resolve_level(settings.log_level)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=shared_processors,
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def bind_command_context(command: str, **context: str | None) -> None:
    """Bind the CLI command name and any non-empty extras to later log entries."""
    bind_contextvars(
        command=command, **{key: value for key, value in context.items() if value is not None}
    )


def clear_command_context() -> None:
    """Clear all bound context variables."""
    clear_contextvars()


@contextmanager
def cache_log_context(namespace: str, kv_backend: str) -> Iterator[None]:
    """Tag every entry logged inside the block with the cache it touches.

    The previous values are restored on exit, so nested blocks for the
    icon and image caches do not leak into each other.
    """
    with bound_contextvars(cache_namespace=namespace, kv_backend=kv_backend):
        yield


def _resolve_level(level_name: str) -> int:
    """Convert a level name string to a logging level int."""
    mapping: dict[str, int] = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    return mapping.get(level_name.upper(), logging.INFO)
