"""Async and sync HTTP clients for the CarePlan Risk API."""

from __future__ import annotations

from typing import Any

import httpx

from careplan.api.schemas import (
    ClinicsResponse,
    HealthResponse,
    ReferenceDataResponse,
    RiskResponse,
)
from careplan.sdk.exceptions import (
    CarePlanError,
    InvalidRequestError,
    NotFoundError,
    ServerError,
)

_STATUS_MAP: dict[int, type[CarePlanError]] = {
    400: InvalidRequestError,
    404: NotFoundError,
    422: InvalidRequestError,
}


def _build_exception(response: httpx.Response) -> CarePlanError:
    """Turn an error response into the matching :class:`CarePlanError`."""
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        error = str(body.get("error", response.reason_phrase))
        detail = body.get("detail")
    else:
        error, detail = response.text or response.reason_phrase, None

    status = response.status_code
    exc_cls = _STATUS_MAP.get(status, ServerError if status >= 500 else CarePlanError)
    return exc_cls(status, error, detail)


def _risk_body(
    age: int,
    bmi: float,
    blood_pressure: float,
    cholesterol: float,
    smoking: bool,
    physical_activity: bool,
) -> dict[str, Any]:
    return {
        "age": age,
        "bmi": bmi,
        "blood_pressure": blood_pressure,
        "cholesterol": cholesterol,
        "smoking": int(bool(smoking)),
        "physical_activity": int(bool(physical_activity)),
    }


def _clinic_params(specialty: str | None, limit: int | None) -> dict[str, Any]:
    params: dict[str, Any] = {}
    if specialty is not None:
        params["specialty"] = specialty
    if limit is not None:
        params["limit"] = limit
    return params


# ---------------------------------------------------------------------------
# Async client
# ---------------------------------------------------------------------------


class AsyncCarePlanClient:
    """Async client backed by ``httpx.AsyncClient``."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        *,
        _transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        kwargs: dict[str, Any] = {"base_url": base_url, "timeout": timeout}
        if _transport is not None:
            kwargs["transport"] = _transport
        self._client = httpx.AsyncClient(**kwargs)
        self.last_request_id: str | None = None

    async def __aenter__(self) -> AsyncCarePlanClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    def _handle_response(self, response: httpx.Response) -> None:
        self.last_request_id = response.headers.get("x-request-id")
        if response.status_code >= 400:
            raise _build_exception(response)

    async def health(self) -> HealthResponse:
        resp = await self._client.get("/health")
        self._handle_response(resp)
        return HealthResponse.model_validate(resp.json())

    async def predict_risk(
        self,
        *,
        age: int,
        bmi: float,
        blood_pressure: float,
        cholesterol: float,
        smoking: bool,
        physical_activity: bool,
    ) -> RiskResponse:
        body = _risk_body(age, bmi, blood_pressure, cholesterol, smoking, physical_activity)
        resp = await self._client.post("/api/predict-risk", json=body)
        self._handle_response(resp)
        return RiskResponse.model_validate(resp.json())

    async def reference_data(self) -> ReferenceDataResponse:
        resp = await self._client.get("/api/reference-data")
        self._handle_response(resp)
        return ReferenceDataResponse.model_validate(resp.json())

    async def clinics(
        self,
        *,
        specialty: str | None = None,
        limit: int | None = None,
    ) -> ClinicsResponse:
        resp = await self._client.get(
            "/api/clinics", params=_clinic_params(specialty, limit)
        )
        self._handle_response(resp)
        return ClinicsResponse.model_validate(resp.json())


# ---------------------------------------------------------------------------
# Sync client
# ---------------------------------------------------------------------------


class CarePlanClient:
    """Synchronous client backed by ``httpx.Client``."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        *,
        _transport: httpx.BaseTransport | None = None,
    ) -> None:
        kwargs: dict[str, Any] = {"base_url": base_url, "timeout": timeout}
        if _transport is not None:
            kwargs["transport"] = _transport
        self._client = httpx.Client(**kwargs)
        self.last_request_id: str | None = None

    def __enter__(self) -> CarePlanClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def _handle_response(self, response: httpx.Response) -> None:
        self.last_request_id = response.headers.get("x-request-id")
        if response.status_code >= 400:
            raise _build_exception(response)

    def health(self) -> HealthResponse:
        resp = self._client.get("/health")
        self._handle_response(resp)
        return HealthResponse.model_validate(resp.json())

    def predict_risk(
        self,
        *,
        age: int,
        bmi: float,
        blood_pressure: float,
        cholesterol: float,
        smoking: bool,
        physical_activity: bool,
    ) -> RiskResponse:
        body = _risk_body(age, bmi, blood_pressure, cholesterol, smoking, physical_activity)
        resp = self._client.post("/api/predict-risk", json=body)
        self._handle_response(resp)
        return RiskResponse.model_validate(resp.json())

    def reference_data(self) -> ReferenceDataResponse:
        resp = self._client.get("/api/reference-data")
        self._handle_response(resp)
        return ReferenceDataResponse.model_validate(resp.json())

    def clinics(
        self,
        *,
        specialty: str | None = None,
        limit: int | None = None,
    ) -> ClinicsResponse:
        resp = self._client.get("/api/clinics", params=_clinic_params(specialty, limit))
        self._handle_response(resp)
        return ClinicsResponse.model_validate(resp.json())
