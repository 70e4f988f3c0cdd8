"""Utility functions for logging context and performance tracking."""

from .logging_context import (
    bind_session_context,
    bind_form_event_context,
    unbind_context,
    log_context,
    log_performance,
    get_logger_with_context,
)

__all__ = [
    "bind_session_context",
    "bind_form_event_context",
    "unbind_context",
    "log_context",
    "log_performance",
    "get_logger_with_context",
]
