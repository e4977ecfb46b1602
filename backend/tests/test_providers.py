"""Tests for provider adapters, pricing and the registry."""

from __future__ import annotations

import json

import httpx
import pytest

from playground.config import Settings
from playground.core.errors import (
    ProviderAuthError,
    ProviderRateLimitError,
    ProviderUnavailableError,
    ValidationError,
)
from playground.providers import (
    MockProvider,
    OpenAICompatProvider,
    ProviderRegistry,
    estimate_tokens,
)
from playground.providers.mock import canned_response


def sse_body(*contents: str) -> bytes:
    lines = []
    for content in contents:
        chunk = {"choices": [{"delta": {"content": content}}]}
        lines.append(f"data: {json.dumps(chunk)}\n\n")
    lines.append("data: [DONE]\n\n")
    return "".join(lines).encode()


def test_estimate_tokens_counts_words() -> None:
    assert estimate_tokens("hello world") == 3
    assert estimate_tokens("") == 0
    assert estimate_tokens("  one   two\nthree ") == 4


def test_estimate_tokens_counts_cjk_characters() -> None:
    # one whitespace-delimited word plus four ideographs
    assert estimate_tokens("你好世界") == 6


def test_cost_uses_model_pricing() -> None:
    provider = MockProvider("gpt-3.5-turbo", chunk_delay=0)
    assert provider.calculate_cost(100, 50) == pytest.approx((100 * 0.0015 + 50 * 0.002) / 1000)

    mini = MockProvider("gpt-4o-mini", chunk_delay=0)
    assert mini.calculate_cost(1000, 1000) == pytest.approx(0.00015 + 0.0006)


def test_unknown_model_falls_back_to_default_pricing() -> None:
    provider = MockProvider("some-new-model", chunk_delay=0)
    assert provider.pricing.input == 0.0015
    assert provider.pricing.output == 0.002


def test_max_tokens_by_model_family() -> None:
    assert MockProvider("gpt-4", chunk_delay=0).get_max_tokens() == 8192
    assert MockProvider("gpt-4-turbo", chunk_delay=0).get_max_tokens() == 8192
    assert MockProvider("gpt-4o-mini", chunk_delay=0).get_max_tokens() == 128000
    assert MockProvider("gpt-3.5-turbo", chunk_delay=0).get_max_tokens() == 4096


@pytest.mark.asyncio
async def test_mock_provider_streams_canned_answer_word_by_word() -> None:
    provider = MockProvider("gpt-4o-mini", chunk_delay=0)

    fragments = [fragment async for fragment in provider.stream_completion("What is SSE?")]

    assert len(fragments) > 10
    assert "".join(fragments) == canned_response("gpt-4o-mini", "What is SSE?")
    assert 'answer to: "What is SSE?"' in "".join(fragments)


@pytest.mark.asyncio
async def test_openai_compat_streams_content_deltas() -> None:
    seen: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["auth"] = request.headers.get("authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            content=sse_body("Hel", "lo", " there"),
            headers={"content-type": "text/event-stream"},
        )

    provider = OpenAICompatProvider(
        "gpt-4o-mini",
        base_url="http://openai.test/v1",
        api_key="test-key",
        max_retries=0,
        transport=httpx.MockTransport(handler),
    )

    fragments = [fragment async for fragment in provider.stream_completion("hi")]
    await provider.aclose()

    assert fragments == ["Hel", "lo", " there"]
    assert seen["path"] == "/v1/chat/completions"
    assert seen["auth"] == "Bearer test-key"
    body = seen["body"]
    assert body["model"] == "gpt-4o-mini"
    assert body["stream"] is True
    assert body["messages"] == [{"role": "user", "content": "hi"}]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status", "error_type"),
    [
        (401, ProviderAuthError),
        (429, ProviderRateLimitError),
        (503, ProviderUnavailableError),
    ],
)
async def test_openai_compat_maps_http_errors(status: int, error_type: type) -> None:
    transport = httpx.MockTransport(
        lambda request: httpx.Response(status, json={"error": {"message": "nope"}})
    )
    provider = OpenAICompatProvider(
        "gpt-3.5-turbo",
        base_url="http://openai.test/v1",
        api_key="test-key",
        max_retries=0,
        transport=transport,
    )

    with pytest.raises(error_type):
        async for _ in provider.stream_completion("hi"):
            pass
    await provider.aclose()


@pytest.mark.asyncio
async def test_openai_compat_retries_connect_errors_then_gives_up() -> None:
    attempts = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        attempts["count"] += 1
        raise httpx.ConnectError("connection refused", request=request)

    provider = OpenAICompatProvider(
        "gpt-3.5-turbo",
        base_url="http://openai.test/v1",
        api_key="test-key",
        max_retries=2,
        transport=httpx.MockTransport(handler),
    )

    with pytest.raises(ProviderUnavailableError):
        async for _ in provider.stream_completion("hi"):
            pass
    await provider.aclose()

    assert attempts["count"] == 3


@pytest.mark.asyncio
async def test_registry_uses_mock_providers_without_api_key() -> None:
    registry = ProviderRegistry(
        Settings(openai_api_key="", playground_models="gpt-3.5-turbo,gpt-4o-mini")
    )

    assert list(registry.providers) == ["gpt-3.5-turbo", "gpt-4o-mini"]
    assert all(isinstance(p, MockProvider) for p in registry.providers.values())
    await registry.aclose()


@pytest.mark.asyncio
async def test_registry_builds_http_providers_with_api_key() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"data": []}))
    registry = ProviderRegistry(
        Settings(openai_api_key="sk-test", playground_models="gpt-4"),
        transport_overrides={"gpt-4": transport},
    )

    provider = registry.get("gpt-4")
    assert isinstance(provider, OpenAICompatProvider)
    assert await provider.healthcheck() is True
    assert registry.list_providers() == [
        {
            "id": "gpt-4",
            "name": "gpt-4",
            "kind": "openai_compat",
            "pricing": {"input": 0.03, "output": 0.06},
            "maxTokens": 8192,
        }
    ]
    await registry.aclose()


def test_registry_resolve_reports_all_unknown_ids() -> None:
    registry = ProviderRegistry(Settings(openai_api_key="", playground_models="gpt-4"))

    with pytest.raises(ValidationError) as exc_info:
        registry.resolve(["gpt-4", "nope", "also-nope"])

    assert exc_info.value.details == {"unknown": ["nope", "also-nope"]}
