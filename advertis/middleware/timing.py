"""
Request timing middleware.

Every response gets ``X-Request-ID`` (echoed from the caller or generated)
and ``X-Request-Duration-Ms``. Requests slower than ``SLOW_REQUEST_MS`` are
logged at WARNING, 5xx responses at ERROR, the rest at DEBUG. Health probes
are not logged.
"""

import logging
import time
import uuid

from flask import Flask, g, request

logger = logging.getLogger(__name__)

_UNLOGGED_PREFIX = "/api/v1/health"


def init_request_timing(app: Flask):
    """Register before/after hooks for request timing."""
    slow_ms = app.config.get("SLOW_REQUEST_MS", 1000)

    @app.before_request
    def _start_timer():
        g.request_start = time.perf_counter()
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]

    @app.after_request
    def _log_request(response):
        start = getattr(g, "request_start", None)
        if start is None:
            return response

        duration_ms = round((time.perf_counter() - start) * 1000, 1)
        response.headers["X-Request-Duration-Ms"] = str(duration_ms)
        response.headers["X-Request-ID"] = g.request_id

        if request.path.startswith(_UNLOGGED_PREFIX):
            return response

        view_args = request.view_args or {}
        extra = {
            "method": request.method,
            "path": request.path,
            "status": response.status_code,
            "duration_ms": duration_ms,
            "strategy_id": view_args.get("strategy_id"),
        }
        if response.status_code >= 500:
            log = logger.error
        elif duration_ms > slow_ms:
            log = logger.warning
        else:
            log = logger.debug
        log("%s %s -> %d in %.0fms", request.method, request.path,
            response.status_code, duration_ms, extra=extra)

        return response
