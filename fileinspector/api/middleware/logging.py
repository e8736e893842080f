"""Per-request JSON logging for the FileInspector API.

Each request produces one ``scan_api_request`` entry.  Requests that ran a
scan also carry the scan's ID and aggregate response name, which
``POST /v1/scan`` leaves on ``request.state``; both are ``null`` for other
requests and for refused scans.  Entries for rejected scans (any response
other than ``OK``) and for 4xx answers are logged at ``WARNING``, 5xx and
unhandled exceptions at ``ERROR``.

The correlation ID comes from ``X-Correlation-ID`` or ``X-Request-ID`` and
falls back to a fresh UUID.  It is echoed back in ``X-Correlation-ID``.

::

    {
      "event": "scan_api_request",
      "correlation_id": "req-42",
      "method": "POST",
      "path": "/v1/scan",
      "status_code": 200,
      "duration_ms": 12.31,
      "scan_id": "1d2c...",
      "scan_response": "EXTENSION"
    }
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from typing import Any, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

_CORRELATION_HEADERS: tuple[str, ...] = ("x-correlation-id", "x-request-id")


def correlation_id_for(request: Request) -> str:
    for header in _CORRELATION_HEADERS:
        value = request.headers.get(header, "").strip()
        if value:
            return value
    return str(uuid.uuid4())


def _level_for(status_code: int, scan_response: str | None) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400 or scan_response not in (None, "OK"):
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request, with scan outcome fields when a scan ran."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = correlation_id_for(request)
        request.state.correlation_id = correlation_id
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            self._log(request, correlation_id, 500, started)
            raise

        self._log(request, correlation_id, response.status_code, started)
        response.headers["X-Correlation-ID"] = correlation_id
        return response

    @staticmethod
    def _log(request: Request, correlation_id: str, status_code: int, started: float) -> None:
        scan_response = getattr(request.state, "scan_response", None)
        entry: dict[str, Any] = {
            "event": "scan_api_request",
            "correlation_id": correlation_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": status_code,
            "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            "scan_id": getattr(request.state, "scan_id", None),
            "scan_response": scan_response,
        }
        logger.log(_level_for(status_code, scan_response), json.dumps(entry))
