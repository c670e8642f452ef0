"""Per-request correlation ID shared by the access log and formatters."""

from __future__ import annotations

import uuid
from contextvars import ContextVar

request_id_var: ContextVar[str] = ContextVar("careplan_request_id", default="")

SHORT_ID_LENGTH = 12


def generate_request_id() -> str:
    return uuid.uuid4().hex


def get_request_id() -> str:
    return request_id_var.get()


def short_request_id() -> str:
    """Truncated request ID for human-readable log lines ("" outside a request)."""
    return request_id_var.get()[:SHORT_ID_LENGTH]
