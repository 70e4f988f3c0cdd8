"""
Logging Context Management Utilities

Helpers for adding and removing context in structured logs.
Bound context automatically appears in every log statement within the scope.
"""

import time
from contextlib import contextmanager
from typing import Optional

import structlog
from structlog.contextvars import bind_contextvars, unbind_contextvars


def bind_session_context(
    session_id: Optional[str] = None,
    user_id: Optional[str] = None,
    form_kind: Optional[str] = None,
    **kwargs
):
    """
    Bind draft-session context to all logs.

    Args:
        session_id: Draft session identifier
        user_id: Value of the X-User-Id header
        form_kind: ein, llc, licenses or banking
        **kwargs: Additional context key-value pairs

    Example:
        ```python
        bind_session_context(session_id="550e8400-...", user_id="user-42", form_kind="llc")
        logger.info("zip_changed")  # Includes session_id, user_id, form_kind
        ```
    """
    context = {}

    if session_id:
        context["session_id"] = session_id
    if user_id:
        context["user_id"] = user_id
    if form_kind:
        context["form_kind"] = form_kind

    context.update(kwargs)
    bind_contextvars(**context)


def bind_form_event_context(event: str, **kwargs):
    """
    Bind the name of the form event being applied.

    Example:
        ```python
        bind_form_event_context("member_removed", member_index=2)
        ```
    """
    bind_contextvars(form_event=event, **kwargs)


def unbind_context(*keys: str):
    """Remove specific keys from logging context."""
    unbind_contextvars(*keys)


@contextmanager
def log_context(**context_vars):
    """
    Context manager for temporary logging context.

    Context is added on enter and removed on exit.

    Example:
        ```python
        with log_context(phase="startup"):
            logger.info("validating reference data")
        ```
    """
    bind_contextvars(**context_vars)

    try:
        yield
    finally:
        unbind_contextvars(*context_vars.keys())


@contextmanager
def log_performance(operation_name: str, logger=None):
    """
    Context manager for logging operation duration.

    Example:
        ```python
        with log_performance("license_search"):
            session = await controller.search(session)
        # Logs: license_search_started, license_search_completed (duration_ms)
        ```
    """
    if logger is None:
        logger = structlog.get_logger()

    start_time = time.time()

    logger.info(f"{operation_name}_started", operation=operation_name)

    try:
        yield
    finally:
        duration_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"{operation_name}_completed",
            operation=operation_name,
            duration_ms=duration_ms
        )


def get_logger_with_context(name: str, **context) -> structlog.BoundLogger:
    """
    Get a logger with pre-bound context.

    Example:
        ```python
        logger = get_logger_with_context(__name__, component="http")
        ```
    """
    return structlog.get_logger(name).bind(**context)
