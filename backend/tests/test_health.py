"""Tests for health, readiness and metrics endpoints."""

from __future__ import annotations

from fastapi.testclient import TestClient

from conftest import make_registry
from playground.config import Settings
from playground.main import create_app


def build_client(engine, session_factory) -> TestClient:
    app = create_app(
        Settings(openai_api_key="", playground_models="gpt-4o-mini"),
        registry=make_registry(),
        session_factory=session_factory,
    )
    app.state.engine = engine
    return TestClient(app)


def test_health_is_ok(engine, session_factory) -> None:
    client = build_client(engine, session_factory)

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.headers["x-request-id"]


def test_request_id_is_echoed(engine, session_factory) -> None:
    client = build_client(engine, session_factory)

    response = client.get("/health", headers={"X-Request-ID": "req-123"})

    assert response.headers["x-request-id"] == "req-123"


def test_readiness_requires_providers(engine, session_factory) -> None:
    client = build_client(engine, session_factory)

    response = client.get("/readyz")

    assert response.status_code == 503
    body = response.json()
    assert body["checks"] == {"database": True, "providers": False}


def test_readiness_ok_with_database_and_providers(engine, session_factory) -> None:
    from playground.providers import MockProvider

    app = create_app(
        Settings(openai_api_key=""),
        registry=make_registry(MockProvider("gpt-4o-mini", chunk_delay=0)),
        session_factory=session_factory,
    )
    app.state.engine = engine

    response = TestClient(app).get("/readyz")

    assert response.status_code == 200
    assert response.json()["status"] == "ready"


def test_metrics_snapshot_exposes_counters(engine, session_factory) -> None:
    client = build_client(engine, session_factory)

    body = client.get("/ops/metrics").json()

    assert "runs_started_total" in body["counters"]
    assert "rate_limit_blocks_total" in body["counters"]
    assert "active_runs" in body["gauges"]


def test_unknown_route_uses_error_envelope(engine, session_factory) -> None:
    client = build_client(engine, session_factory)

    response = client.get("/nope")

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "E1002"
