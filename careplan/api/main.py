from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from careplan.api.exception_handlers import (
    http_exception_handler,
    risk_estimation_error_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from careplan.api.middleware import RequestLoggingMiddleware
from careplan.api.routes.clinics import router as clinics_router
from careplan.api.routes.risk import router as risk_router
from careplan.api.schemas import HealthResponse
from careplan.config import settings
from careplan.exceptions import DataLoadError, RiskEstimationError
from careplan.logging_config import setup_logging
from careplan.services import reference_data
from careplan.services.metrics import metrics

logger = logging.getLogger("careplan")

_DESCRIPTION = """\
Backend for the CarePlan marketing site.

### Health-risk estimator

`POST /api/predict-risk` turns six personal metrics (age, BMI, systolic
blood pressure, cholesterol, smoking, physical activity) into a **low /
moderate / high** risk tier. The score is a fixed heuristic averaged with
the published rate for the closest age group; it is an illustration for
prospective members, **not medical advice**.

### Clinic locator

`GET /api/clinics` lists partner clinics for the map, optionally filtered
by a specialty keyword.
"""

_OPENAPI_TAGS = [
    {"name": "system", "description": "Health checks and operational endpoints."},
    {
        "name": "risk",
        "description": "Health-risk estimate and the age-group reference data behind it.",
    },
    {"name": "clinics", "description": "Partner clinics shown on the locator map."},
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.log_level, settings.log_format)

    if settings.preload_reference_data:
        try:
            await asyncio.to_thread(
                reference_data.reference_table.ensure_loaded,
                settings.reference_load_timeout,
            )
        except DataLoadError as exc:
            # Keep serving; the first request will retry the load.
            logger.warning("Reference data preload failed: %s", exc.detail)
    yield


app = FastAPI(
    title="CarePlan Risk API",
    version="0.1.0",
    summary="Health-risk estimator and clinic directory for the CarePlan site",
    description=_DESCRIPTION,
    openapi_tags=_OPENAPI_TAGS,
    license_info={"name": "MIT", "identifier": "MIT"},
    lifespan=lifespan,
)

app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(RiskEstimationError, risk_estimation_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

origins = [o.strip() for o in settings.cors_origins.split(",")]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)

app.include_router(risk_router)
app.include_router(clinics_router)


@app.get(
    "/health",
    tags=["system"],
    summary="Health check",
    description="Liveness probe. Also reports whether the reference table "
    "has been loaded yet; a cold cache is not an error.",
    response_model=HealthResponse,
)
async def health():
    table = reference_data.reference_table
    return {
        "status": "ok",
        "reference_data": {"loaded": table.loaded, "rows": len(table.rows)},
        "uptime_seconds": metrics.uptime_seconds(),
    }


@app.get(
    "/metrics",
    tags=["system"],
    summary="Application metrics",
    description="Request counters, latency percentiles, estimates per risk "
    "level and reference-data load counts.",
)
async def get_metrics():
    return metrics.snapshot()
