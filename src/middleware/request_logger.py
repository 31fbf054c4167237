"""Request/response logging middleware for Flask."""

import time
import uuid
from typing import Any

from flask import Flask, g, request

from logging_config import APP_LOGGER_NAME, get_logger


class RequestLoggerMiddleware:
    """
    Middleware that logs request/response details.

    Logs:
    - Request method, path, query params
    - Response status code
    - Request duration (ms)
    - Caller's user ID (from the X-User-Id header)
    - Unique request ID for tracing
    """

    # Paths to skip logging (health checks)
    SKIP_PATHS = frozenset([
        "/health",
        "/favicon.ico",
    ])

    SLOW_REQUEST_MS = 1000

    def __init__(self, app: Flask | None = None, logger_name: str = APP_LOGGER_NAME):
        self.logger = get_logger(logger_name)
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask):
        """Initialize middleware with Flask app."""
        app.before_request(self._before_request)
        app.after_request(self._after_request)
        app.teardown_request(self._teardown_request)

    def _before_request(self):
        g.request_id = str(uuid.uuid4())[:8]
        g.request_start_time = time.perf_counter()
        g.skip_logging = request.path in self.SKIP_PATHS

    def _after_request(self, response):
        if getattr(g, "skip_logging", True):
            return response

        duration_ms = 0
        if hasattr(g, "request_start_time"):
            duration_ms = round((time.perf_counter() - g.request_start_time) * 1000, 2)

        log_data: dict[str, Any] = {
            "request_id": getattr(g, "request_id", "unknown"),
            "method": request.method,
            "path": request.path,
            "status": response.status_code,
            "duration_ms": duration_ms,
            "user_id": getattr(g, "user_id", None),
            "ip": request.remote_addr,
        }
        if request.args:
            log_data["query"] = dict(request.args)

        if response.status_code >= 500:
            self.logger.error("Request failed", extra={"extra": log_data})
        elif response.status_code >= 400:
            self.logger.warning("Request error", extra={"extra": log_data})
        elif duration_ms > self.SLOW_REQUEST_MS:
            self.logger.warning("Slow request", extra={"extra": log_data})
        else:
            self.logger.info("Request completed", extra={"extra": log_data})

        response.headers["X-Request-ID"] = getattr(g, "request_id", "unknown")
        return response

    def _teardown_request(self, exception):
        """Called after request is complete, even if exception occurred."""
        if exception and not getattr(g, "skip_logging", True):
            self.logger.error(
                "Request exception",
                exc_info=exception,
                extra={
                    "extra": {
                        "request_id": getattr(g, "request_id", "unknown"),
                        "method": request.method,
                        "path": request.path,
                        "error": str(exception),
                    }
                }
            )


def init_request_logging(app: Flask, logger_name: str = APP_LOGGER_NAME):
    """Initialize request logging middleware for a Flask app."""
    return RequestLoggerMiddleware(app, logger_name)
