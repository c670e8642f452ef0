"""Tests for JSON and text log formatters and setup_logging."""

from __future__ import annotations

import json
import logging
import sys

from careplan.logging_config import JSONFormatter, TextFormatter, setup_logging
from careplan.services.request_context import request_id_var


def _make_record(msg: str = "hello", level: int = logging.INFO, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="careplan.test",
        level=level,
        pathname="test.py",
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_output_structure():
    data = json.loads(JSONFormatter().format(_make_record("test message")))
    assert data["level"] == "INFO"
    assert data["logger"] == "careplan.test"
    assert data["message"] == "test message"
    assert "timestamp" in data


def test_json_includes_extra_fields_only():
    data = json.loads(JSONFormatter().format(_make_record("loaded", rows=6)))
    assert data["rows"] == 6
    assert "lineno" not in data
    assert "pathname" not in data


def test_json_includes_request_id():
    token = request_id_var.set("abc123def456")
    try:
        data = json.loads(JSONFormatter().format(_make_record("with id")))
        assert data["request_id"] == "abc123def456"
    finally:
        request_id_var.reset(token)


def test_json_excludes_empty_request_id():
    token = request_id_var.set("")
    try:
        data = json.loads(JSONFormatter().format(_make_record("no id")))
        assert "request_id" not in data
    finally:
        request_id_var.reset(token)


def test_json_exception_formatting():
    try:
        raise ValueError("boom")
    except ValueError:
        record = _make_record("error")
        record.exc_info = sys.exc_info()
    data = json.loads(JSONFormatter().format(record))
    assert "ValueError: boom" in data["exception"]


def test_text_format_with_request_id():
    token = request_id_var.set("aabbccdd1122334455")
    try:
        output = TextFormatter().format(_make_record("hello text"))
        assert "[aabbccdd1122]" in output
        assert "careplan.test - hello text" in output
    finally:
        request_id_var.reset(token)


def test_text_format_without_request_id():
    token = request_id_var.set("")
    try:
        output = TextFormatter().format(_make_record("no rid"))
        assert "[" not in output
        assert output.endswith("careplan.test - no rid")
    finally:
        request_id_var.reset(token)


def test_setup_logging_replaces_handlers():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    uvicorn_access = logging.getLogger("uvicorn.access")
    saved_access_level = uvicorn_access.level
    try:
        setup_logging("debug", "json")
        setup_logging("warning", "json")
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)
        assert root.level == logging.WARNING
        assert uvicorn_access.level == logging.WARNING

        setup_logging("INFO", "text")
        assert isinstance(root.handlers[0].formatter, TextFormatter)
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
        uvicorn_access.setLevel(saved_access_level)


def test_json_redacts_health_metrics():
    data = json.loads(
        JSONFormatter().format(_make_record("estimate", bmi=41.7, smoking=True, risk_level="high"))
    )
    assert data["bmi"] == "[redacted]"
    assert data["smoking"] == "[redacted]"
    assert data["risk_level"] == "high"
