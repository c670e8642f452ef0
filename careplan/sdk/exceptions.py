"""Exceptions raised by the CarePlan SDK clients."""

from __future__ import annotations

from typing import Any


class CarePlanError(Exception):
    """Any non-2xx response from the API."""

    def __init__(self, status_code: int, error: str, detail: Any = None) -> None:
        self.status_code = status_code
        self.error = error
        self.detail = detail
        message = f"{status_code}: {error}"
        if detail is not None:
            message += f" ({detail})"
        super().__init__(message)


class InvalidRequestError(CarePlanError):
    """400 or 422: the API rejected the submitted values."""


class NotFoundError(CarePlanError):
    """404."""


class ServerError(CarePlanError):
    """5xx, e.g. reference data could not be loaded."""
