"""Access logging middleware (pure ASGI)."""

from __future__ import annotations

import logging
import re
import time

from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from careplan.services.metrics import metrics
from careplan.services.request_context import (
    generate_request_id,
    request_id_var,
    short_request_id,
)

logger = logging.getLogger("careplan.access")

# Caller-supplied IDs end up in log lines, so only a conservative charset passes.
_REQUEST_ID_RE = re.compile(r"[A-Za-z0-9._\-]{1,64}")

# Liveness probes hit this every few seconds.
QUIET_PATHS = frozenset({"/health"})

# Responses echo personal health metrics back to the caller.
NO_STORE_PATHS = frozenset({"/api/predict-risk"})


def incoming_request_id(scope: Scope) -> str | None:
    """Return the caller's ``X-Request-ID`` if it is safe to reuse."""
    for name, value in scope.get("headers", []):
        if name == b"x-request-id":
            candidate = value.decode("latin-1").strip()
            if _REQUEST_ID_RE.fullmatch(candidate):
                return candidate
            return None
    return None


class RequestLoggingMiddleware:
    """Log ``method path status latency`` once per HTTP request.

    Binds the request ID contextvar for the duration of the request and
    echoes it back with ``X-Response-Time-Ms``. Request bodies and query
    strings are never logged.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        rid = incoming_request_id(scope) or generate_request_id()
        token = request_id_var.set(rid)
        path = scope.get("path", "")
        start = time.perf_counter()
        status_code = 500

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
                headers = MutableHeaders(scope=message)
                headers.append("x-request-id", rid)
                headers.append("x-response-time-ms", f"{_elapsed_ms(start)}")
                if path in NO_STORE_PATHS:
                    headers["cache-control"] = "no-store"
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            elapsed = _elapsed_ms(start)
            logger.log(
                logging.DEBUG if path in QUIET_PATHS else logging.INFO,
                "%s %s %s %.2fms [%s]",
                scope.get("method", ""),
                path,
                status_code,
                elapsed,
                short_request_id(),
            )
            metrics.inc_request(status_code)
            metrics.record_latency(elapsed)
            request_id_var.reset(token)


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)
