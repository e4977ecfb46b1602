"""OpenAI-compatible chat completions adapter."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from typing import Any

import httpx

from playground.core.errors import ProviderBadResponseError
from playground.core.logging import get_logger
from playground.providers.base import ModelProvider
from playground.providers.http_client import (
    create_http_client,
    raise_for_status,
    request_with_retries,
    stream_with_retries,
)

logger = get_logger(__name__)


class OpenAICompatProvider(ModelProvider):
    """Streams one model from an OpenAI-compatible ``/chat/completions`` endpoint."""

    kind = "openai_compat"

    def __init__(
        self,
        model: str,
        base_url: str,
        api_key: str,
        *,
        timeout: int = 60,
        max_retries: int = 1,
        max_output_tokens: int = 1000,
        temperature: float = 0.7,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(model)
        self.max_retries = max_retries
        self.max_output_tokens = max_output_tokens
        self.temperature = temperature
        self.client = create_http_client(
            base_url=base_url,
            timeout_seconds=timeout,
            headers={"Authorization": f"Bearer {api_key}"},
            transport=transport,
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    async def healthcheck(self) -> bool:
        try:
            response = await request_with_retries(
                self.client, "GET", "/models", max_retries=self.max_retries
            )
            raise_for_status(response)
            return True
        except Exception as exc:
            logger.warning(
                "OpenAI-compatible healthcheck failed",
                data={"error": str(exc), "provider": self.provider_id},
            )
            return False

    def _payload(self, prompt: str) -> dict[str, Any]:
        return {
            "model": self.provider_id,
            "messages": [{"role": "user", "content": prompt}],
            "stream": True,
            "max_tokens": self.max_output_tokens,
            "temperature": self.temperature,
        }

    async def stream_completion(self, prompt: str) -> AsyncIterator[str]:
        """Stream content deltas from the SSE response."""
        response = await stream_with_retries(
            self.client,
            "POST",
            "/chat/completions",
            json=self._payload(prompt),
            max_retries=self.max_retries,
        )
        try:
            if response.status_code >= 400:
                await response.aread()
                raise_for_status(response)

            async for line in response.aiter_lines():
                line = line.strip()
                if not line or not line.startswith("data:"):
                    continue
                data = line[5:].strip()
                if data == "[DONE]":
                    break
                try:
                    chunk = json.loads(data)
                except json.JSONDecodeError as exc:
                    raise ProviderBadResponseError(
                        "Provider returned invalid response", details={"body": data[:300]}
                    ) from exc

                choices = chunk.get("choices") or []
                if not choices:
                    continue
                content = (choices[0].get("delta") or {}).get("content")
                if content:
                    yield content
        finally:
            await response.aclose()
