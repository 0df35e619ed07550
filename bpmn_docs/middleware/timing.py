"""
Per-request access log and timing headers.

Every response carries ``X-Request-ID`` (echoed from the client when sent)
and ``X-Request-Duration-Ms``. One access record is written per API call:
DEBUG normally, WARNING above ``SLOW_THRESHOLD_MS`` and ERROR for 5xx.
"""

import logging
import time
import uuid

from flask import Flask, g, request

logger = logging.getLogger(__name__)

QUIET_PATHS = frozenset({"/api/v1/health"})
SLOW_THRESHOLD_MS = 1000


def _request_user_id():
    """userId the request acts for: JWT subject, else the query string.

    The body is never read here; it may be over MAX_CONTENT_LENGTH.
    """
    return getattr(g, "jwt_user_id", None) or request.args.get("userId")


def _access_level(status, duration_ms):
    if status >= 500:
        return logging.ERROR, "Server error"
    if duration_ms > SLOW_THRESHOLD_MS:
        return logging.WARNING, "Slow request"
    return logging.DEBUG, "Request"


def init_request_timing(app: Flask):
    @app.before_request
    def _start_clock():
        g.request_started = time.perf_counter()
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]

    @app.after_request
    def _stamp_and_log(response):
        started = getattr(g, "request_started", None)
        if started is None:
            return response

        elapsed = (time.perf_counter() - started) * 1000
        response.headers["X-Request-ID"] = g.request_id
        response.headers["X-Request-Duration-Ms"] = f"{elapsed:.1f}"

        if request.path in QUIET_PATHS:
            return response

        level, label = _access_level(response.status_code, elapsed)
        logger.log(
            level, "%s: %s %s %d (%.0fms)", label,
            request.method, request.path, response.status_code, elapsed,
            extra={
                "method": request.method,
                "path": request.path,
                "status": response.status_code,
                "duration_ms": elapsed,
                "remote_addr": request.remote_addr,
                "request_id": g.request_id,
                "user_id": _request_user_id(),
                "node_id": request.args.get("nodeId"),
                "bytes_in": request.content_length,
            },
        )
        return response
