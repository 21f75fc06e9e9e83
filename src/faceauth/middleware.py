"""
Custom middleware for the face authentication service.
"""

import time
import uuid
from datetime import datetime, timezone
from typing import Callable

import structlog
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from faceauth.observability import get_trace_context

logger = structlog.get_logger()

CORRELATION_HEADER = "X-Request-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for request/response logging with correlation ID support.

    Unhandled exceptions are logged and turned into a generic 500 so no
    backend detail reaches the client.
    """

    def __init__(self, app, exclude_paths: set = None):
        super().__init__(app)
        self.exclude_paths = exclude_paths or {"/healthz", "/docs", "/redoc", "/openapi.json"}

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or f"req_{uuid.uuid4().hex[:12]}"
        request.state.correlation_id = correlation_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(correlation_id=correlation_id, **get_trace_context())

        quiet = request.url.path in self.exclude_paths
        start_time = time.time()
        if not quiet:
            logger.info(
                "Request started",
                method=request.method,
                path=request.url.path,
                user_agent=request.headers.get("User-Agent", "unknown")
            )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                error=str(e),
                error_type=type(e).__name__,
                process_time_ms=round((time.time() - start_time) * 1000, 2)
            )
            return JSONResponse(
                status_code=500,
                content={
                    "error": "InternalServerError",
                    "message": "An unexpected error occurred",
                    "correlationId": correlation_id,
                    "timestamp": datetime.now(timezone.utc).isoformat()
                },
                headers={CORRELATION_HEADER: correlation_id}
            )

        if not quiet:
            logger.info(
                "Request completed",
                status_code=response.status_code,
                process_time_ms=round((time.time() - start_time) * 1000, 2)
            )

        response.headers[CORRELATION_HEADER] = correlation_id
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add security headers to responses.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers.update({
            "X-Content-Type-Options": "nosniff",
            "X-Frame-Options": "DENY",
            "Referrer-Policy": "strict-origin-when-cross-origin",
            "Cache-Control": response.headers.get("Cache-Control", "no-store"),
        })

        return response
