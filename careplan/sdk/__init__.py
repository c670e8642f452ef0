"""Python SDK: typed clients for the CarePlan Risk API."""

from __future__ import annotations

from careplan.sdk.client import AsyncCarePlanClient, CarePlanClient
from careplan.sdk.exceptions import (
    CarePlanError,
    InvalidRequestError,
    NotFoundError,
    ServerError,
)

__all__ = [
    "AsyncCarePlanClient",
    "CarePlanClient",
    "CarePlanError",
    "InvalidRequestError",
    "NotFoundError",
    "ServerError",
]
