"""
HTTP request logging middleware.

Binds a request id (taken from ``x-request-id`` or generated) into structlog
contextvars so tracker and ranking logs emitted while serving a request carry
it, then writes one access line per request. Health probes log at DEBUG.
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.stdlib.get_logger("bridgewatch.http")

REQUEST_ID_HEADER = "x-request-id"
QUIET_PATHS = frozenset({"/", "/healthz"})


def _log_method(status_code: int, path: str):
    if status_code >= 500:
        return logger.error
    if status_code >= 400:
        return logger.warning
    if path in QUIET_PATHS:
        return logger.debug
    return logger.info


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Access log with request id correlation."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
        path = request.url.path

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id, path=path)

        started = time.perf_counter()
        response: Response | None = None
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            status_code = response.status_code if response is not None else 500
            _log_method(status_code, path)(
                "http_request",
                method=request.method,
                status=status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 1),
            )
