"""
Per-request timing and correlation id.

Every response carries ``X-Request-ID`` (echoed from the caller when sent)
and ``X-Request-Duration-Ms``. One log line per request, at WARNING when
slower than ``SLOW_REQUEST_MS``, ERROR for 5xx, DEBUG otherwise. Health
probes are timed but not logged.
"""

import logging
import time
import uuid

from flask import Flask, g, request

logger = logging.getLogger(__name__)

SLOW_REQUEST_MS = 1000
_UNLOGGED_PATHS = frozenset({"/api/v1/health/ready", "/api/v1/health/live"})


def _log_level(status, elapsed_ms):
    if elapsed_ms > SLOW_REQUEST_MS:
        return logging.WARNING
    if status >= 500:
        return logging.ERROR
    return logging.DEBUG


def _request_context(response, elapsed_ms):
    user = getattr(g, "current_user", None)
    return {
        "request_id": g.request_id,
        "method": request.method,
        "path": request.path,
        "status": response.status_code,
        "duration_ms": elapsed_ms,
        "remote_addr": request.remote_addr,
        "user_id": getattr(user, "id", None),
        "user_role": getattr(user, "role", None),
    }


def init_request_timing(app: Flask):
    @app.before_request
    def _stamp_request():
        g.request_started = time.perf_counter()
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]

    @app.after_request
    def _finish_request(response):
        started = g.get("request_started")
        if started is None:
            return response

        elapsed_ms = (time.perf_counter() - started) * 1000
        response.headers["X-Request-ID"] = g.request_id
        response.headers["X-Request-Duration-Ms"] = f"{elapsed_ms:.1f}"

        if request.path not in _UNLOGGED_PATHS:
            level = _log_level(response.status_code, elapsed_ms)
            logger.log(level, "%s %s -> %d in %.0fms",
                       request.method, request.path, response.status_code, elapsed_ms,
                       extra=_request_context(response, elapsed_ms))
        return response
