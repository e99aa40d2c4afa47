"""Unit tests for the HTTP logging middleware.

We assert structured log fields via `caplog` (not message strings) and verify:
- X-Request-ID is generated or propagated
- Successful requests emit exactly one INFO log entry with metadata only
- Server error responses are logged at WARNING
- Unhandled exceptions emit an ERROR log entry with a stack trace and return 500
"""

from __future__ import annotations

import logging

import pytest
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient

from care_nav.core.middleware.http_logging import HttpLoggingMiddleware


def _make_app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(HttpLoggingMiddleware)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/unavailable")
    async def unavailable() -> JSONResponse:
        return JSONResponse(status_code=500, content={"detail": "config"})

    @app.get("/boom")
    async def boom() -> None:
        raise RuntimeError("boom")

    return app


def _get_http_log_records(caplog: pytest.LogCaptureFixture) -> list[logging.LogRecord]:
    return [r for r in caplog.records if r.name == "care_nav.http"]


def test_successful_request_sets_request_id_and_logs_one_info(
    caplog: pytest.LogCaptureFixture,
) -> None:
    caplog.set_level(logging.INFO, logger="care_nav.http")
    app = _make_app()

    with TestClient(app) as client:
        res = client.get("/health?memory_changes=severe")

    assert res.status_code == 200
    assert res.headers["x-request-id"]

    info_records = [r for r in _get_http_log_records(caplog) if r.levelno == logging.INFO]
    assert len(info_records) == 1

    record = info_records[0]
    assert record.__dict__["request_id"] == res.headers["x-request-id"]
    assert record.__dict__["http_method"] == "GET"
    # Query string values are answers in disguise; only the route template is logged.
    assert record.__dict__["request_path"] == "/health"
    assert record.__dict__["status_code"] == 200
    assert record.__dict__["duration_ms"] >= 0


def test_propagates_valid_request_id(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="care_nav.http")
    app = _make_app()

    with TestClient(app) as client:
        res = client.get("/health", headers={"X-Request-ID": "req_abc-123"})

    assert res.headers["x-request-id"] == "req_abc-123"
    info_records = [r for r in _get_http_log_records(caplog) if r.levelno == logging.INFO]
    assert info_records[0].__dict__["request_id"] == "req_abc-123"


def test_replaces_unsafe_request_id() -> None:
    app = _make_app()

    with TestClient(app) as client:
        res = client.get("/health", headers={"X-Request-ID": "bad id; drop"})

    assert res.headers["x-request-id"] != "bad id; drop"
    assert len(res.headers["x-request-id"]) == 32


def test_server_error_response_logged_as_warning(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="care_nav.http")
    app = _make_app()

    with TestClient(app) as client:
        res = client.get("/unavailable")

    assert res.status_code == 500
    records = _get_http_log_records(caplog)
    assert [r.levelno for r in records] == [logging.WARNING]
    assert records[0].__dict__["status_code"] == 500


def test_unhandled_exception_returns_500_and_logs_error_with_request_id(
    caplog: pytest.LogCaptureFixture,
) -> None:
    caplog.set_level(logging.INFO, logger="care_nav.http")
    app = _make_app()

    with TestClient(app, raise_server_exceptions=False) as client:
        res = client.get("/boom", headers={"X-Request-ID": "req_err_001"})

    assert res.status_code == 500

    error_records = [r for r in _get_http_log_records(caplog) if r.levelno == logging.ERROR]
    assert len(error_records) == 1

    record = error_records[0]
    assert record.__dict__["request_id"] == "req_err_001"
    assert record.__dict__["request_path"] == "/boom"
    assert record.__dict__["status_code"] == 500
    assert record.exc_info
