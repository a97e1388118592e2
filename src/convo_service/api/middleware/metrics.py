"""Request timing middleware: one access-log line per request."""
from __future__ import annotations

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from convo_service.config import settings

logger = logging.getLogger(__name__)

QUIET_PATHS = frozenset({"/healthz", "/readyz"})


class RequestTimingMiddleware(BaseHTTPMiddleware):
    """Logs method, path, status and latency; slow or failed requests at WARNING."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        response.headers["Server-Timing"] = f"app;dur={elapsed_ms:.1f}"

        path = request.url.path
        if path in QUIET_PATHS and response.status_code < 500:
            return response
        slow = elapsed_ms >= settings.SLOW_REQUEST_MS
        level = logging.WARNING if slow or response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            "%s %s %s %.1fms%s",
            request.method,
            path,
            response.status_code,
            elapsed_ms,
            " (slow)" if slow else "",
        )
        return response
