"""
Request timing.

Every response carries X-Request-ID and X-Request-Duration-Ms. Requests
slower than SLOW_REQUEST_MS are logged at WARNING, 5xx responses at ERROR.
"""

import logging
import time
import uuid

from flask import Flask, g, request

logger = logging.getLogger(__name__)

# Polled by load balancers, or streams file bodies
_QUIET_ENDPOINTS = frozenset({"health.ready", "files.download"})


def _log_level(status: int, duration_ms: float, slow_ms: int) -> int:
    if status >= 500:
        return logging.ERROR
    if duration_ms > slow_ms:
        return logging.WARNING
    return logging.DEBUG


def init_request_timing(app: Flask):
    slow_ms = int(app.config.get("SLOW_REQUEST_MS", 1000))

    @app.before_request
    def _start_timer():
        g.request_start = time.perf_counter()
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]

    @app.after_request
    def _stamp_response(response):
        started = g.pop("request_start", None)
        if started is None:
            return response

        duration_ms = (time.perf_counter() - started) * 1000
        response.headers["X-Request-ID"] = g.request_id
        response.headers["X-Request-Duration-Ms"] = f"{duration_ms:.1f}"

        if request.endpoint in _QUIET_ENDPOINTS:
            return response

        level = _log_level(response.status_code, duration_ms, slow_ms)
        logger.log(
            level, "%s %s -> %d (%.0fms)",
            request.method, request.path, response.status_code, duration_ms,
            extra={
                "method": request.method,
                "path": request.path,
                "endpoint": request.endpoint,
                "status": response.status_code,
                "duration_ms": duration_ms,
                "request_id": g.request_id,
            },
        )
        return response
