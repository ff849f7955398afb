"""Tests for the request logging middleware."""

import logging

from fastapi.testclient import TestClient


def _request_records(recorder):
    return [r for r in recorder.records if r.getMessage().startswith("HTTP ")]


def test_request_logging_emits_one_event(client, recorder):
    """Each request produces one structured event."""
    response = client.get("/health")

    records = _request_records(recorder)
    assert len(records) == 1
    record = records[0]
    assert record.levelno == logging.INFO
    assert record.getMessage().startswith("HTTP GET /health responded 200 in ")
    assert record.fields["method"] == "GET"
    assert record.fields["path"] == "/health"
    assert record.fields["status"] == 200
    assert isinstance(record.fields["duration_ms"], (int, float))
    assert record.fields["trace_id"] == response.headers["X-Trace-Id"]


def test_request_logging_records_failure_status(client, recorder):
    """Handler-level failures still produce the request event with status 500."""
    client.get("/weatherforecast?fail=true")

    records = _request_records(recorder)
    assert len(records) == 1
    assert records[0].fields["status"] == 500
    assert records[0].fields["path"] == "/weatherforecast"


def test_request_logging_generates_trace_id(client):
    """A trace id is generated when the caller sends none."""
    response = client.get("/health")

    assert len(response.headers["X-Trace-Id"]) > 0


def test_request_logging_propagates_trace_id(client, recorder):
    """An incoming X-Trace-Id is echoed and logged."""
    response = client.get("/health", headers={"X-Trace-Id": "test-trace-123"})

    assert response.headers["X-Trace-Id"] == "test-trace-123"
    assert _request_records(recorder)[0].fields["trace_id"] == "test-trace-123"


def test_request_logging_records_unhandled_exception(app, recorder):
    """A route raising an exception still produces the request event with status 500."""

    @app.get("/explode")
    async def explode():
        raise RuntimeError("kaboom")

    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/explode", headers={"X-Trace-Id": "trace-explode"})

    assert response.status_code == 500

    records = _request_records(recorder)
    assert len(records) == 1
    record = records[0]
    assert record.levelno == logging.ERROR
    assert record.getMessage().startswith("HTTP GET /explode responded 500 in ")
    assert record.fields["status"] == 500
    assert record.fields["path"] == "/explode"
    assert record.fields["trace_id"] == "trace-explode"
    assert record.exc_info is not None
