"""Per-request log context and access logging."""

from __future__ import annotations

import time
import uuid

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

logger = structlog.get_logger()

REQUEST_ID_HEADER = "X-Request-ID"
SLOW_REQUEST_MS = 2000.0


class LoggingMiddleware(BaseHTTPMiddleware):
    """Bind a request id for every log line of the request and log its outcome.

    `get_credentials` adds `user_id` and `session_id` to the same context
    once the bearer token is resolved.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        start = time.monotonic()

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                "request_failed",
                error=str(exc),
                duration_ms=round((time.monotonic() - start) * 1000, 2),
            )
            raise

        elapsed_ms = round((time.monotonic() - start) * 1000, 2)
        log = logger.warning if elapsed_ms >= SLOW_REQUEST_MS else logger.info
        log("request_completed", status=response.status_code, duration_ms=elapsed_ms)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
