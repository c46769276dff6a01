"""
Request logging middleware with correlation IDs.

Every request gets an 8-character correlation ID bound to the structlog
context and echoed in the X-Correlation-ID response header. A well-formed
ID sent by an upstream proxy is reused so log lines can be joined.

Request bodies are never logged: bot create and update payloads carry
plaintext tokens.
"""

import re
import secrets
import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

CORRELATION_HEADER = "X-Correlation-ID"
_CORRELATION_ID_RE = re.compile(r"^[0-9a-f]{8}$")


def generate_correlation_id() -> str:
    """Generate an 8-character correlation ID."""
    return secrets.token_hex(4)


def resolve_correlation_id(request: Request) -> str:
    incoming = request.headers.get(CORRELATION_HEADER, "")
    if _CORRELATION_ID_RE.match(incoming):
        return incoming
    return generate_correlation_id()


class LoggingMiddleware(BaseHTTPMiddleware):
    """Log request start and completion, tagged with the correlation ID."""

    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = resolve_correlation_id(request)
        started = time.perf_counter()

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(correlation_id=correlation_id)
        logger = structlog.get_logger()

        # Path only; query strings are not logged
        logger.info("request_started", method=request.method, path=request.url.path)

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_failed",
                method=request.method,
                path=request.url.path,
                error_type=type(e).__name__,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            raise

        logger.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        response.headers[CORRELATION_HEADER] = correlation_id
        return response
