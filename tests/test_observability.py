"""Integration tests for /health, /metrics and X-Request-ID."""

from __future__ import annotations

from careplan.services.metrics import metrics

HEALTHY_30 = {
    "age": 30,
    "bmi": 25,
    "blood_pressure": 120,
    "cholesterol": 180,
    "smoking": 0,
    "physical_activity": 1,
}


async def test_health_cold_cache(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["reference_data"] == {"loaded": False, "rows": 0}
    assert data["uptime_seconds"] >= 0


async def test_health_after_first_estimate(client):
    await client.post("/api/predict-risk", json=HEALTHY_30)
    resp = await client.get("/health")
    assert resp.json()["reference_data"] == {"loaded": True, "rows": 6}


async def test_metrics_endpoint_structure(client):
    resp = await client.get("/metrics")
    assert resp.status_code == 200
    data = resp.json()
    assert "total_requests" in data
    assert "status_codes" in data
    assert set(data["estimates"]) == {"by_risk_level", "failures"}
    assert set(data["reference_data"]) == {"loads", "load_failures"}
    assert "p50" in data["latency_ms"]
    assert "uptime_seconds" in data


async def test_metrics_reflect_estimates(client):
    await client.post("/api/predict-risk", json=HEALTHY_30)
    await client.post("/api/predict-risk", json={**HEALTHY_30, "bmi": "x"})
    data = (await client.get("/metrics")).json()
    assert data["estimates"]["by_risk_level"] == {"low": 1}
    assert data["estimates"]["failures"] == {"InvalidInputError": 1}
    assert data["reference_data"]["loads"] == 1


async def test_request_id_generated(client):
    resp = await client.get("/metrics")
    rid = resp.headers.get("x-request-id")
    assert rid is not None
    assert len(rid) == 32


async def test_request_id_echoed(client):
    resp = await client.get("/health", headers={"x-request-id": "form-submit-42"})
    assert resp.headers.get("x-request-id") == "form-submit-42"


async def test_middleware_increments_metrics(client):
    before = metrics.total_requests
    await client.get("/health")
    assert metrics.total_requests == before + 1
    assert metrics.status_codes[200] >= 1
