"""
ACTIVITY TRACKING
=================
Structured request logging for monitoring.

FLOW:
- Middleware logs each request with request id and timing.
- Added to the FastAPI middleware stack in app/main.py.

WHY:
- Provides traceability for the demo API.

HOW:
- Writes structured request logs to <LOG_DIR>/security.log.
"""

from __future__ import annotations

import logging
import os
import time
from logging.handlers import RotatingFileHandler

from starlette.middleware.base import BaseHTTPMiddleware
from Security.secrets_redaction import redact
from Security.security_config import APP_SETTINGS


def _get_logger(log_dir: str | None = None) -> logging.Logger:
    logger = logging.getLogger("security.activity")
    if logger.handlers:
        return logger

    log_dir = log_dir or APP_SETTINGS["LOG_DIR"]
    os.makedirs(log_dir, exist_ok=True)
    handler = RotatingFileHandler(os.path.join(log_dir, "security.log"), maxBytes=2_000_000, backupCount=3)
    formatter = logging.Formatter("%(asctime)s %(levelname)s %(message)s")
    handler.setFormatter(formatter)

    logger.setLevel(logging.INFO)
    logger.addHandler(handler)
    return logger


class ActivityLoggingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, log_dir: str | None = None):
        super().__init__(app)
        self.logger = _get_logger(log_dir)

    async def dispatch(self, request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        duration = (time.perf_counter() - start) * 1000
        request_id = getattr(request.state, "request_id", None)
        query = request.url.query
        if query:
            query = redact(query)
        self.logger.info(
            "method=%s path=%s query=%s status=%s request_id=%s ip=%s duration_ms=%.2f",
            request.method,
            request.url.path,
            query or "",
            response.status_code,
            request_id or "",
            request.client.host if request.client else "unknown",
            duration,
        )
        return response
