"""
Request id + duration middleware.

Each request gets ``g.request_id`` (taken from an incoming ``X-Request-ID``
or generated) which the log filter attaches to every record. The response
echoes it together with ``X-Request-Duration-Ms``.
"""

import logging
import time
import uuid

from flask import Flask, g, request

logger = logging.getLogger("portal.request")

DEFAULT_SLOW_REQUEST_MS = 1000


def init_request_timing(app: Flask):
    slow_ms = app.config.get("SLOW_REQUEST_MS", DEFAULT_SLOW_REQUEST_MS)

    @app.before_request
    def _begin():
        g.request_started = time.perf_counter()
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]

    @app.after_request
    def _finish(response):
        started = g.pop("request_started", None)
        if started is None:
            return response

        elapsed = (time.perf_counter() - started) * 1000
        response.headers["X-Request-ID"] = g.request_id
        response.headers["X-Request-Duration-Ms"] = f"{elapsed:.1f}"

        # Probes hit this every few seconds.
        if request.path.startswith("/api/v1/health"):
            return response

        if response.status_code >= 500:
            level = logging.ERROR
        elif elapsed > slow_ms:
            level = logging.WARNING
        else:
            level = logging.INFO
        logger.log(
            level,
            "%s %s -> %d in %.0fms%s",
            request.method, request.path, response.status_code, elapsed,
            " (slow)" if elapsed > slow_ms else "",
            extra={
                "method": request.method,
                "path": request.path,
                "status": response.status_code,
                "duration_ms": round(elapsed, 1),
            },
        )
        return response
