"""
Request timing middleware.

Stamps every response with X-Request-ID / X-Request-Duration-Ms and
writes one access-log line per request.  Chat submissions log at INFO so
conversation traffic is visible at the production log level; slow and
5xx requests escalate to WARNING / ERROR.
"""

import logging
import time
import uuid

from flask import Flask, g, request

logger = logging.getLogger(__name__)

_SKIP_PREFIX = "/api/v1/health"

SLOW_THRESHOLD_MS = 1000


def _level_for(status: int, duration_ms: float) -> int:
    if status >= 500:
        return logging.ERROR
    if duration_ms > SLOW_THRESHOLD_MS:
        return logging.WARNING
    if request.blueprint == "chat" and request.method == "POST":
        return logging.INFO
    return logging.DEBUG


def init_request_timing(app: Flask):
    """Register before/after hooks for request timing."""

    @app.before_request
    def _start_timer():
        g.request_start = time.perf_counter()
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]

    @app.after_request
    def _log_request(response):
        start = getattr(g, "request_start", None)
        if start is None:
            return response

        duration_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Request-ID"] = g.request_id
        response.headers["X-Request-Duration-Ms"] = f"{duration_ms:.1f}"

        if request.path.startswith(_SKIP_PREFIX):
            return response

        logger.log(
            _level_for(response.status_code, duration_ms),
            "%s %s %d (%.0fms)",
            request.method, request.path, response.status_code, duration_ms,
            extra={
                "method": request.method,
                "path": request.path,
                "status": response.status_code,
                "duration_ms": duration_ms,
                "remote_addr": request.remote_addr,
            },
        )
        return response
