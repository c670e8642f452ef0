"""Exception handlers that keep every error response JSON-shaped."""

from __future__ import annotations

import logging
import traceback

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from careplan.exceptions import InvalidInputError, RiskEstimationError
from careplan.services.metrics import metrics

logger = logging.getLogger("careplan.errors")

PREDICT_FAILURE = "Failed to predict risk"


def _error(status_code: int, error: str, detail=None, headers=None) -> JSONResponse:
    content = {"error": error, "status_code": status_code}
    if detail is not None:
        content["detail"] = detail
    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    # Keeps Allow on 405s.
    return _error(exc.status_code, str(exc.detail), headers=exc.headers)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """422 for bodies FastAPI itself rejects (malformed JSON, not an object)."""
    return _error(422, "Invalid request", jsonable_encoder(exc.errors()))


async def risk_estimation_error_handler(
    request: Request, exc: RiskEstimationError
) -> JSONResponse:
    """Map estimator errors to the generic prediction failure.

    Bad input is the caller's problem (400, with the offending field in
    ``detail``); data problems are ours (500, details only in the log).
    """
    metrics.inc_estimate_failure(type(exc).__name__)

    if isinstance(exc, InvalidInputError):
        return _error(400, PREDICT_FAILURE, exc.detail)

    logger.error(
        "%s on %s %s: %s",
        type(exc).__name__,
        request.method,
        request.url.path,
        exc.detail,
    )
    return _error(500, PREDICT_FAILURE)


async def unhandled_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """Log the traceback server-side; the client gets a bare 500."""
    logger.error(
        "Unhandled exception on %s %s:\n%s",
        request.method,
        request.url.path,
        "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
    )
    return _error(500, "Internal server error")
