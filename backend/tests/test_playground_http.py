"""HTTP tests for the playground routes."""

from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from conftest import ScriptedProvider, make_registry, parse_sse
from playground.auth import issue_api_token
from playground.config import Settings
from playground.db.models import USER_STATUS_DISABLED
from playground.db.repositories import get_user_by_id, set_user_status
from playground.main import create_app
from playground.services import SlidingWindowRateLimiter


@pytest.fixture
def token(db_session, user_id) -> str:
    return issue_api_token(db_session, user_id).token


@pytest.fixture
def other_token(db_session, other_user_id) -> str:
    return issue_api_token(db_session, other_user_id).token


@pytest.fixture
def make_client(engine, session_factory):
    def _make(*providers, max_requests: int = 20) -> TestClient:
        if not providers:
            providers = (
                ScriptedProvider("gpt-3.5-turbo", ["Hello", " world"]),
                ScriptedProvider("gpt-4o-mini", ["Hi", " there"]),
            )
        app = create_app(
            Settings(sse_ping_interval_seconds=0, openai_api_key=""),
            registry=make_registry(*providers),
            session_factory=session_factory,
            limiter=SlidingWindowRateLimiter(max_requests=max_requests, window_seconds=3600),
        )
        app.state.engine = engine
        return TestClient(app)

    return _make


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def stream(client: TestClient, token: str, **params):
    query = {"prompt": "hi there", "providerIds": "gpt-3.5-turbo,gpt-4o-mini"}
    query.update(params)
    return client.get("/playground/stream", params=query, headers=auth(token))


def test_stream_renders_server_sent_events(make_client, token) -> None:
    client = make_client()

    response = stream(client, token)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.headers["cache-control"] == "no-cache"
    assert "x-request-id" in response.headers

    messages = parse_sse(response.text)
    event, payload = messages[0]
    assert event == "session"
    assert payload["sessionId"]
    assert payload["runId"]

    chunks = [p for e, p in messages if e == "chunk"]
    assert {c["providerId"] for c in chunks} == {"gpt-3.5-turbo", "gpt-4o-mini"}
    assert all(c["timestamp"] > 0 for c in chunks)

    metrics = {p["providerId"]: p for e, p in messages if e == "metrics"}
    assert set(metrics["gpt-3.5-turbo"]) == {
        "type",
        "providerId",
        "inputTokens",
        "outputTokens",
        "tokensUsed",
        "cost",
        "responseTimeMs",
    }
    completes = [p for e, p in messages if e == "status" and p["status"] == "complete"]
    assert len(completes) == 2


def test_stream_frames_are_unnamed_messages_typed_in_json(make_client, token) -> None:
    client = make_client(ScriptedProvider("gpt-4o-mini", ["Hi", " there"]))

    body = stream(client, token, providerIds="gpt-4o-mini").text

    frames = [frame for frame in body.split("\n\n") if frame.strip()]
    assert frames
    assert all(frame.startswith("data: ") for frame in frames)
    assert "event:" not in body
    types = [json.loads(frame[len("data: "):])["type"] for frame in frames]
    assert types[0] == "session"
    assert set(types) == {"session", "status", "chunk", "metrics"}


def test_stream_accepts_token_query_param(make_client, token) -> None:
    client = make_client()

    response = client.get(
        "/playground/stream",
        params={"prompt": "hi", "providerIds": "gpt-4o-mini", "token": token},
    )

    assert response.status_code == 200
    assert parse_sse(response.text)[0][0] == "session"


def test_stream_requires_authentication(make_client) -> None:
    client = make_client()

    missing = client.get("/playground/stream", params={"prompt": "hi", "providerIds": "gpt-4o-mini"})
    assert missing.status_code == 401
    assert missing.json()["error"]["code"] == "E2000"

    invalid = stream(client, "not-a-real-token")
    assert invalid.status_code == 401
    assert invalid.json()["error"]["code"] == "E2001"


def test_disabled_user_token_is_rejected(make_client, db_session, user_id, token) -> None:
    client = make_client()
    set_user_status(db_session, get_user_by_id(db_session, user_id), USER_STATUS_DISABLED)

    response = stream(client, token)

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "E2001"


def test_stream_rejects_invalid_input(make_client, token) -> None:
    client = make_client()

    empty = stream(client, token, prompt="   ")
    assert empty.status_code == 400
    assert empty.json()["error"]["code"] == "E1001"

    unknown = stream(client, token, providerIds="gpt-4o-mini,claude-x")
    assert unknown.status_code == 400
    assert unknown.json()["error"]["details"] == {"unknown": ["claude-x"]}


def test_stream_rate_limit_returns_429(make_client, token) -> None:
    client = make_client(max_requests=1)

    assert stream(client, token).status_code == 200
    response = stream(client, token)

    assert response.status_code == 429
    error = response.json()["error"]
    assert error["code"] == "E1005"
    assert error["details"]["rateLimitExceeded"] is True
    assert error["details"]["limit"] == 1
    assert error["details"]["resetTime"]
    assert int(response.headers["retry-after"]) >= 1


def test_stream_with_foreign_session_is_404(make_client, store, token, other_user_id) -> None:
    client = make_client()
    theirs = store.create_session(other_user_id, "private", ["gpt-4o-mini"])

    response = stream(client, token, sessionId=theirs.id)

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "E5000"


def test_list_sessions_clamps_pagination(make_client, token) -> None:
    client = make_client()
    for _ in range(3):
        assert stream(client, token).status_code == 200

    default = client.get("/playground/sessions", headers=auth(token)).json()
    assert default["page"] == 1
    assert default["pageSize"] == 20
    assert default["total"] == 3
    assert len(default["items"]) == 3
    assert default["items"][0]["status"] == "COMPLETED"
    assert "totalCost" in default["items"][0]

    capped = client.get(
        "/playground/sessions", params={"pageSize": 500}, headers=auth(token)
    ).json()
    assert capped["pageSize"] == 100

    floored = client.get(
        "/playground/sessions", params={"page": 0, "pageSize": 2}, headers=auth(token)
    ).json()
    assert floored["page"] == 1
    assert len(floored["items"]) == 2

    garbage = client.get(
        "/playground/sessions", params={"page": "abc", "pageSize": "-5"}, headers=auth(token)
    ).json()
    assert garbage["page"] == 1
    assert garbage["pageSize"] == 1


def test_session_detail_lists_turns_and_hides_foreign_sessions(
    make_client, token, other_token
) -> None:
    client = make_client()
    messages = parse_sse(stream(client, token).text)
    session_id = messages[0][1]["sessionId"]

    detail = client.get(f"/playground/sessions/{session_id}", headers=auth(token))
    assert detail.status_code == 200
    body = detail.json()
    assert body["id"] == session_id
    assert body["models"] == ["gpt-3.5-turbo", "gpt-4o-mini"]
    assert {t["modelName"] for t in body["turns"]} == {"gpt-3.5-turbo", "gpt-4o-mini"}
    assert body["totalTokens"] == sum(
        t["inputTokens"] + t["outputTokens"] for t in body["turns"]
    )

    foreign = client.get(f"/playground/sessions/{session_id}", headers=auth(other_token))
    assert foreign.status_code == 404
    assert foreign.json()["error"]["code"] == "E5000"


def test_unknown_run_cannot_be_inspected_or_cancelled(make_client, token) -> None:
    client = make_client()

    snapshot = client.get("/playground/runs/does-not-exist", headers=auth(token))
    assert snapshot.status_code == 404
    assert snapshot.json()["error"]["code"] == "E5001"

    cancel = client.post("/playground/runs/does-not-exist/cancel", headers=auth(token))
    assert cancel.status_code == 404


def test_providers_endpoint_lists_pricing(make_client, token) -> None:
    client = make_client()

    response = client.get("/providers", headers=auth(token))

    assert response.status_code == 200
    providers = {p["id"]: p for p in response.json()["providers"]}
    assert providers["gpt-4o-mini"]["pricing"] == {"input": 0.00015, "output": 0.0006}
    assert providers["gpt-4o-mini"]["maxTokens"] == 128000
