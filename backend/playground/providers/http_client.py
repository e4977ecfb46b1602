"""
Shared HTTP client helpers for provider adapters.

Provides consistent timeouts, retry behavior, and error mapping so provider
adapters raise stable AppError instances without leaking stack traces.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import httpx

from playground.core.errors import (
    ModelNotFoundError,
    ProviderAuthError,
    ProviderBadResponseError,
    ProviderError,
    ProviderRateLimitError,
    ProviderUnavailableError,
)
from playground.core.logging import get_logger, request_id_ctx

logger = get_logger(__name__)

_RETRYABLE_ERRORS = (
    httpx.ConnectError,
    httpx.ConnectTimeout,
    httpx.NetworkError,
    httpx.TimeoutException,
)


def create_http_client(
    base_url: str,
    timeout_seconds: int,
    headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """
    Build an AsyncClient with consistent timeout settings.

    Args:
        base_url: Base URL for the provider.
        timeout_seconds: Total timeout for requests.
        headers: Default headers to include.
        transport: Optional transport (used by tests with MockTransport).
    """
    timeout = httpx.Timeout(
        timeout_seconds, connect=timeout_seconds, read=timeout_seconds, write=timeout_seconds
    )
    return httpx.AsyncClient(
        base_url=base_url.rstrip("/"),
        timeout=timeout,
        headers=headers or {},
        transport=transport,
    )


def _with_request_id(kwargs: dict[str, Any]) -> dict[str, Any]:
    headers = kwargs.pop("headers", {}) or {}
    request_id = request_id_ctx.get()
    if request_id and "X-Request-ID" not in headers:
        headers["X-Request-ID"] = request_id
    kwargs["headers"] = headers
    return kwargs


async def request_with_retries(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    max_retries: int,
    **kwargs: Any,
) -> httpx.Response:
    """
    Execute an HTTP request with lightweight retries and mapped errors.

    Retries are only applied to network/timeout errors, not HTTP status codes.
    """
    kwargs = _with_request_id(kwargs)
    for attempt in range(max_retries + 1):
        try:
            return await client.request(method, url, **kwargs)
        except _RETRYABLE_ERRORS as exc:
            if attempt < max_retries:
                await asyncio.sleep(min(0.1 * (attempt + 1), 1.0))
                continue
            raise ProviderUnavailableError(
                "Provider unavailable", details={"reason": str(exc)}
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderError("Provider request failed", details={"reason": str(exc)}) from exc
    raise ProviderUnavailableError("Provider unavailable")


async def stream_with_retries(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    max_retries: int,
    **kwargs: Any,
) -> httpx.Response:
    """
    Open a streaming request with the same retry semantics as request_with_retries.

    Only opening the connection is retried; once the response headers have
    arrived the body is handed to the caller, who must ``aclose()`` it.
    """
    kwargs = _with_request_id(kwargs)
    request = client.build_request(method, url, **kwargs)
    for attempt in range(max_retries + 1):
        try:
            return await client.send(request, stream=True)
        except _RETRYABLE_ERRORS as exc:
            if attempt < max_retries:
                await asyncio.sleep(min(0.1 * (attempt + 1), 1.0))
                continue
            raise ProviderUnavailableError(
                "Provider unavailable", details={"reason": str(exc)}
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderError("Provider request failed", details={"reason": str(exc)}) from exc
    raise ProviderUnavailableError("Provider unavailable")


def raise_for_status(response: httpx.Response) -> None:
    """
    Map HTTP status codes to stable AppError types.

    Streaming responses must be read before calling this so the error body
    is available.
    """
    status = response.status_code
    if status < 400:
        return

    details = _safe_error_details(response)

    if status in (401, 403):
        raise ProviderAuthError(details=details, status_code=status)
    if status == 404:
        raise ModelNotFoundError(details=details)
    if status == 429:
        raise ProviderRateLimitError(details=details)
    if status >= 500:
        raise ProviderUnavailableError("Provider unavailable", details=details)
    raise ProviderError("Provider error", details=details)


def parse_json(response: httpx.Response) -> Any:
    """
    Parse JSON with consistent error handling.
    """
    try:
        return response.json()
    except json.JSONDecodeError as exc:
        snippet = response.text[:500] if response.text else ""
        raise ProviderBadResponseError(
            "Provider returned invalid response",
            details={"body": snippet},
        ) from exc


def _safe_error_details(response: httpx.Response) -> dict[str, Any]:
    """Return a small, non-sensitive error payload for debugging."""
    try:
        body_snippet = response.text[:300] if response.text else ""
    except httpx.ResponseNotRead:
        body_snippet = ""

    return {
        "status": response.status_code,
        "body": body_snippet,
        "url": str(response.url),
    }
