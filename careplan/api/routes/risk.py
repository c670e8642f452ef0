"""POST /api/predict-risk and GET /api/reference-data."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Body, HTTPException

from careplan.api.schemas import (
    RISK_REQUEST_EXAMPLE,
    ErrorResponse,
    ReferenceDataResponse,
    ReferenceRowOut,
    RiskResponse,
)
from careplan.config import settings
from careplan.exceptions import DataLoadError
from careplan.services import reference_data
from careplan.services.estimator import RiskInput, estimate_risk
from careplan.services.metrics import metrics

logger = logging.getLogger("careplan.api.risk")

router = APIRouter(prefix="/api", tags=["risk"])


async def _bounded(func, *args):
    """Run blocking *func* in the threadpool, capped at the load timeout."""
    timeout = settings.reference_load_timeout
    try:
        return await asyncio.wait_for(asyncio.to_thread(func, *args), timeout=timeout)
    except asyncio.TimeoutError:
        raise DataLoadError(
            f"Reference data not available within {timeout}s"
        ) from None


@router.post(
    "/predict-risk",
    summary="Estimate health risk",
    description=(
        "Combine six personal health metrics into a heuristic risk, average it "
        "with the published rate of the closest age group, and return the "
        "risk tier with one recommendation per elevated factor.\n\n"
        "`smoking` and `physical_activity` accept `0`/`1` or booleans."
    ),
    response_model=RiskResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid input"},
        422: {"model": ErrorResponse, "description": "Body is not a JSON object"},
        500: {"model": ErrorResponse, "description": "Reference data unavailable"},
    },
)
async def predict_risk(
    payload: dict[str, Any] = Body(..., examples=[RISK_REQUEST_EXAMPLE]),
):
    data = RiskInput.from_payload(payload)
    table = reference_data.reference_table

    # Only a cold cache does I/O; the arithmetic itself never blocks.
    if not table.loaded:
        await _bounded(table.ensure_loaded, settings.reference_load_timeout)

    result = estimate_risk(data, table)
    metrics.inc_estimate(result.risk_level.value)
    return result.to_dict()


@router.get(
    "/reference-data",
    summary="Age-group reference rates",
    description=(
        "List the reference rows the estimator searches, in dataset order: "
        f"year {reference_data.ELIGIBLE_YEAR}, grouping category "
        f"'{reference_data.ELIGIBLE_CATEGORY}'."
    ),
    response_model=ReferenceDataResponse,
    responses={500: {"model": ErrorResponse, "description": "Reference data unavailable"}},
)
async def get_reference_data():
    table = reference_data.reference_table
    try:
        if not table.loaded:
            await _bounded(table.ensure_loaded, settings.reference_load_timeout)
        rows = table.eligible_rows()
    except DataLoadError as exc:
        logger.error("Reference data unavailable: %s", exc.detail)
        raise HTTPException(status_code=500, detail="Reference data unavailable")

    return ReferenceDataResponse(
        year=reference_data.ELIGIBLE_YEAR,
        grouping_category=reference_data.ELIGIBLE_CATEGORY,
        count=len(rows),
        rows=[
            ReferenceRowOut(
                outcome=r.outcome,
                group=r.group,
                lower_age=r.lower_age,
                percentage=r.percentage,
            )
            for r in rows
        ],
    )
