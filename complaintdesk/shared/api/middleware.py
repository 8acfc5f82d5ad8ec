"""
Shared API Middleware
======================

Common middleware and exception handlers for the FastAPI application.

Register ``LoggingMiddleware`` before ``CorrelationIDMiddleware`` so the
correlation ID is already assigned when the request is logged.
"""

import time
import uuid
from typing import Callable
from datetime import datetime, timezone

from fastapi import Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware
from fastapi.responses import JSONResponse

from complaintdesk.core import (
    ApplicationException,
    ValidationException,
    ResourceNotFoundException,
    ForbiddenException,
    ConflictException,
)
from complaintdesk.shared.infrastructure.logging import correlation_id_var, get_logger

logger = get_logger(__name__)


# Typed domain errors and the HTTP status each one maps to
STATUS_BY_EXCEPTION = (
    (ValidationException, status.HTTP_400_BAD_REQUEST),
    (ResourceNotFoundException, status.HTTP_404_NOT_FOUND),
    (ForbiddenException, status.HTTP_403_FORBIDDEN),
    (ConflictException, status.HTTP_409_CONFLICT),
)


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Assigns each request a correlation ID (or adopts the caller's).

    The ID is exposed on ``request.state``, bound to the logging context
    and echoed in the ``X-Correlation-ID`` response header.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        token = correlation_id_var.set(correlation_id)
        try:
            response = await call_next(request)
        finally:
            correlation_id_var.reset(token)

        response.headers["X-Correlation-ID"] = correlation_id
        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs one line per request with its status and duration.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()
        context = {
            "method": request.method,
            "path": request.url.path,
            "client": request.client.host if request.client else None
        }

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                extra={
                    **context,
                    "correlation_id": getattr(request.state, "correlation_id", "unknown"),
                    "error": str(e),
                    "response_time_ms": int((time.perf_counter() - start_time) * 1000)
                }
            )
            raise

        logger.info(
            "Request completed",
            extra={
                **context,
                "correlation_id": getattr(request.state, "correlation_id", "unknown"),
                "status_code": response.status_code,
                "response_time_ms": int((time.perf_counter() - start_time) * 1000)
            }
        )
        return response


def status_code_for(exc: ApplicationException) -> int:
    """Return the HTTP status for an application exception (500 if untyped)."""
    for exc_type, status_code in STATUS_BY_EXCEPTION:
        if isinstance(exc, exc_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def application_exception_handler(
    request: Request,
    exc: ApplicationException
) -> JSONResponse:
    """
    Map typed application errors to JSON responses.

    The body always carries the machine-readable ``error`` code and, for
    validation and access errors, the ``reason``.
    """
    correlation_id = getattr(request.state, "correlation_id", "unknown")
    status_code = status_code_for(exc)

    log = logger.error if status_code >= 500 else logger.warning
    log(
        "Request rejected",
        extra={
            "correlation_id": correlation_id,
            "path": request.url.path,
            "error_code": exc.code,
            "reason": getattr(exc, "reason", None),
            "error_message": exc.message
        }
    )

    return JSONResponse(
        status_code=status_code,
        content={
            "error": exc.code,
            "reason": getattr(exc, "reason", None),
            "detail": exc.message,
            "correlation_id": correlation_id
        }
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler for unhandled exceptions.

    Returns consistent error responses for all exceptions.
    """
    correlation_id = getattr(request.state, "correlation_id", "unknown")

    logger.error(
        "Unhandled exception",
        extra={
            "correlation_id": correlation_id,
            "path": request.url.path,
            "method": request.method,
            "error_type": type(exc).__name__,
            "error_message": str(exc)
        }
    )

    is_dev = getattr(getattr(request.app.state, "settings", None), "environment", None) == "development"

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal",
            "detail": "Internal server error",
            "correlation_id": correlation_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "debug_info": str(exc) if is_dev else None
        }
    )
