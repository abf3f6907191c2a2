"""
CivicBridge Backend: Access Log Middleware
==========================================

What:  One log line per request on the "civicbridge.access" logger.
How:   Measures the time spent below this middleware and picks the level
       from the status class: 5xx → ERROR, 4xx → WARNING, else INFO.
       /health is skipped.

Logged: method, path, status, duration, request id, client IP, user id.
Not logged: bodies, attachments, query strings.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from civicbridge.config import settings
from civicbridge.middleware.request_id import request_id_var

logger = logging.getLogger("civicbridge.access")

SKIPPED_PATHS = frozenset({"/health"})


def _level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in SKIPPED_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        rid = request_id_var.get("")
        client_ip = request.client.host if request.client else "unknown"
        user_id = request.headers.get(settings.user_id_header, "-")
        status = response.status_code

        logger.log(
            _level_for(status),
            "%s %s %d %.1fms [%s] from %s user=%s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            user_id,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
