"""Tests for the request logging middleware."""

from __future__ import annotations

import logging

import pytest

from careplan.api.middleware import incoming_request_id

_VALID_BODY = {
    "age": 30, "bmi": 41.7, "blood_pressure": 120, "cholesterol": 180,
    "smoking": 0, "physical_activity": 1,
}


def _scope(*headers: tuple[bytes, bytes]) -> dict:
    return {"type": "http", "headers": list(headers)}


class TestIncomingRequestId:
    def test_absent(self):
        assert incoming_request_id(_scope()) is None

    def test_accepted(self):
        assert incoming_request_id(_scope((b"x-request-id", b"trace-42.a_b"))) == "trace-42.a_b"

    @pytest.mark.parametrize(
        "value",
        [b"", b"has space", b"line\nbreak", b"x" * 65, b"\xc3\xa9t\xc3\xa9"],
    )
    def test_rejected(self, value):
        assert incoming_request_id(_scope((b"x-request-id", value))) is None


async def test_response_time_header_on_success(client):
    resp = await client.get("/health")
    assert "X-Response-Time-Ms" in resp.headers
    float(resp.headers["X-Response-Time-Ms"])


async def test_response_time_header_on_404(client):
    resp = await client.get("/nonexistent")
    assert resp.status_code == 404
    assert "X-Response-Time-Ms" in resp.headers


async def test_response_time_header_on_error_response(client):
    resp = await client.post("/api/predict-risk", json={"age": 30})
    assert resp.status_code == 400
    assert "X-Response-Time-Ms" in resp.headers


async def test_unsafe_request_id_replaced(client):
    resp = await client.get("/health", headers={"x-request-id": "bad id"})
    assert resp.headers["X-Request-ID"] != "bad id"
    assert len(resp.headers["X-Request-ID"]) == 32


async def test_predict_risk_not_cacheable(client):
    resp = await client.post("/api/predict-risk", json=_VALID_BODY)
    assert resp.status_code == 200
    assert resp.headers["Cache-Control"] == "no-store"


async def test_other_routes_leave_cache_control_alone(client):
    resp = await client.get("/api/reference-data")
    assert "Cache-Control" not in resp.headers


async def test_access_log_line(client, caplog):
    with caplog.at_level(logging.INFO, logger="careplan.access"):
        await client.get("/api/reference-data", headers={"x-request-id": "abcdef1234567890"})

    records = [r for r in caplog.records if r.name == "careplan.access"]
    assert len(records) == 1
    assert records[0].levelno == logging.INFO
    message = records[0].getMessage()
    assert message.startswith("GET /api/reference-data 200 ")
    assert message.endswith("[abcdef123456]")


async def test_health_check_logged_at_debug(client, caplog):
    with caplog.at_level(logging.DEBUG, logger="careplan.access"):
        await client.get("/health")

    records = [r for r in caplog.records if r.name == "careplan.access"]
    assert [r.levelno for r in records] == [logging.DEBUG]


async def test_request_body_not_logged(client, caplog):
    with caplog.at_level(logging.DEBUG):
        await client.post("/api/predict-risk", json=_VALID_BODY)
    access = [r.getMessage() for r in caplog.records if r.name == "careplan.access"]
    assert access and all("41.7" not in m for m in access)
