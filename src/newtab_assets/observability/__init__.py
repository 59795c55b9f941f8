"""Observability: structured logging."""

from newtab_assets.observability.logging import (
    bind_command_context,
    cache_log_context,
    clear_command_context,
    configure_logging,
    summarize_payloads,
)

__all__ = [
    "bind_command_context",
    "cache_log_context",
    "clear_command_context",
    "configure_logging",
    "summarize_payloads",
]
