"""
Logging Middleware for Correlation ID and Request Tracking

Generates or extracts a correlation ID for every request and binds the form
route context (form kind, draft session, user) for the rest of the request.
"""

import re
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from structlog.contextvars import bind_contextvars, clear_contextvars

from ..utils.logging_context import bind_session_context, get_logger_with_context

logger = get_logger_with_context(__name__, component="http")

_FORM_ROUTE = re.compile(r"^/api/v1/forms/(?P<form_kind>[a-z]+)/sessions(?:/(?P<session_id>[^/]+))?")


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware to inject correlation IDs and request context into all logs.

    Features:
    - Generates unique correlation_id for each request
    - Accepts correlation_id from X-Correlation-ID header
    - Adds correlation_id to response headers
    - Logs request/response timing
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """
        Process each request and inject logging context.

        Returns:
            Response with correlation_id header added
        """
        clear_contextvars()

        correlation_id = request.headers.get("X-Correlation-ID")
        if not correlation_id:
            correlation_id = str(uuid.uuid4())

        client_ip = request.client.host if request.client else "unknown"

        bind_contextvars(
            correlation_id=correlation_id,
            request_method=request.method,
            request_path=request.url.path,
            client_ip=client_ip,
        )

        start_time = time.time()

        logger.info(
            "request_started",
            method=request.method,
            path=request.url.path,
            query_params=dict(request.query_params),
        )

        try:
            response = await call_next(request)

            duration_ms = int((time.time() - start_time) * 1000)
            response.headers["X-Correlation-ID"] = correlation_id

            logger.info(
                "request_completed",
                status_code=response.status_code,
                duration_ms=duration_ms,
            )

            return response

        except Exception as e:
            duration_ms = int((time.time() - start_time) * 1000)

            logger.error(
                "request_failed",
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=duration_ms,
                exc_info=True,
            )
            raise

        finally:
            clear_contextvars()


class SessionContextMiddleware(BaseHTTPMiddleware):
    """
    Middleware to bind form route context to logs.

    Runs after LoggingMiddleware. The form kind and session id come from the
    URL path and the user from the X-User-Id header; the request body is not read.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        match = _FORM_ROUTE.match(request.url.path)

        bind_session_context(
            session_id=match.group("session_id") if match else None,
            form_kind=match.group("form_kind") if match else None,
            user_id=request.headers.get("X-User-Id"),
        )

        return await call_next(request)
