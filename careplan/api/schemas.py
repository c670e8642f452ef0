"""Pydantic response models for the CarePlan API."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------


class ErrorResponse(BaseModel):
    """Body of every non-2xx response."""

    error: str = Field(..., description="Short, client-safe error message")
    status_code: int = Field(..., description="HTTP status code")
    detail: Any | None = Field(
        None, description="Extra context, e.g. which input field was rejected"
    )


# ---------------------------------------------------------------------------
# /health
# ---------------------------------------------------------------------------


class ReferenceDataHealth(BaseModel):
    loaded: bool = Field(..., description="Whether the reference table is cached")
    rows: int = Field(..., description="Number of cached reference rows")


class HealthResponse(BaseModel):
    status: str = Field(..., description="Always 'ok' when the process is serving")
    reference_data: ReferenceDataHealth
    uptime_seconds: float = Field(..., description="Seconds since the process started")


# ---------------------------------------------------------------------------
# /api/predict-risk
# ---------------------------------------------------------------------------

RISK_REQUEST_EXAMPLE = {
    "age": 30,
    "bmi": 25,
    "blood_pressure": 120,
    "cholesterol": 180,
    "smoking": 0,
    "physical_activity": 1,
}


class RiskResponse(BaseModel):
    """Estimated risk tier, blended probability and advice."""

    risk_level: Literal["low", "moderate", "high"] = Field(
        ..., description="Tier of the blended probability (<0.10 low, <0.30 moderate)"
    )
    probability: float = Field(
        ..., description="Average of the heuristic risk and the age-group reference rate"
    )
    recommendations: list[str] = Field(
        default_factory=list,
        description="One advisory line per elevated factor, in a fixed order",
    )
    age_group_risk: float = Field(
        ..., description="Reference percentage (0-100) of the closest age group"
    )
    base_risk: float = Field(..., description="Same value as probability")


# ---------------------------------------------------------------------------
# /api/reference-data
# ---------------------------------------------------------------------------


class ReferenceRowOut(BaseModel):
    outcome: str
    group: str
    lower_age: int | None = Field(None, description="Leading age bound of the group")
    percentage: float


class ReferenceDataResponse(BaseModel):
    """Reference rows that take part in the age-group lookup."""

    year: int
    grouping_category: str
    count: int
    rows: list[ReferenceRowOut]


# ---------------------------------------------------------------------------
# /api/clinics
# ---------------------------------------------------------------------------


class MapCenter(BaseModel):
    lat: float
    lon: float


class ClinicOut(BaseModel):
    object_id: int
    name: str
    lat: float
    lon: float
    attributes: dict[str, Any] = Field(default_factory=dict)


class ClinicsResponse(BaseModel):
    center: MapCenter
    zoom: int
    specialty: str | None = Field(None, description="Keyword the list was filtered by")
    count: int
    clinics: list[ClinicOut]
