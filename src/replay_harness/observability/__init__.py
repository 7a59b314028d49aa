"""Observability exports: structured JSON-lines logging and correlation scopes."""

from replay_harness.observability.logging import (
    LoggingConfig,
    StructuredLoggingHandle,
    correlation_scope,
    get_active_logging_handle,
    get_correlation_context,
    setup_structured_logging,
    shutdown_logging,
)

__all__ = [
    "LoggingConfig",
    "StructuredLoggingHandle",
    "correlation_scope",
    "get_active_logging_handle",
    "get_correlation_context",
    "setup_structured_logging",
    "shutdown_logging",
]
