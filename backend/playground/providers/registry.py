"""Provider registry for configured models."""

from __future__ import annotations

from typing import Any

import httpx

from playground.config import Settings
from playground.core.errors import ValidationError
from playground.core.logging import get_logger
from playground.providers.base import ModelProvider
from playground.providers.mock import MockProvider
from playground.providers.openai_compat import OpenAICompatProvider

logger = get_logger(__name__)


class ProviderRegistry:
    """Instantiate and resolve the configured model providers."""

    def __init__(
        self,
        settings: Settings,
        transport_overrides: dict[str, httpx.AsyncBaseTransport] | None = None,
        providers: list[ModelProvider] | None = None,
    ):
        self.settings = settings
        self.providers: dict[str, ModelProvider] = {}
        self._transport_overrides = transport_overrides or {}
        if providers is not None:
            for provider in providers:
                self.providers[provider.provider_id] = provider
        else:
            self._initialize()

    def _transport(self, provider_id: str) -> httpx.AsyncBaseTransport | None:
        return self._transport_overrides.get(provider_id)

    def _initialize(self) -> None:
        api_key = self.settings.openai_api_key.strip()
        if not api_key:
            logger.warning("OPENAI_API_KEY not set; serving canned mock responses")

        for model in self.settings.playground_models_list:
            if api_key:
                provider: ModelProvider = OpenAICompatProvider(
                    model,
                    base_url=self.settings.openai_base_url,
                    api_key=api_key,
                    timeout=self.settings.provider_timeout_seconds,
                    max_retries=self.settings.provider_max_retries,
                    max_output_tokens=self.settings.provider_max_output_tokens,
                    temperature=self.settings.provider_temperature,
                    transport=self._transport(model),
                )
            else:
                provider = MockProvider(
                    model, chunk_delay=self.settings.mock_chunk_delay_seconds
                )
            self.providers[model] = provider

        logger.info(
            "Provider registry initialized",
            data={"providers": list(self.providers.keys()), "mock": not api_key},
        )

    def has(self, provider_id: str) -> bool:
        return provider_id in self.providers

    def get(self, provider_id: str) -> ModelProvider:
        """Resolve a provider by ID or raise ValidationError."""
        provider = self.providers.get(provider_id)
        if not provider:
            raise ValidationError(
                f"Unknown provider '{provider_id}'", details={"unknown": [provider_id]}
            )
        return provider

    def resolve(self, provider_ids: list[str]) -> list[ModelProvider]:
        """Resolve every id, reporting all unknown ids at once."""
        unknown = [pid for pid in provider_ids if pid not in self.providers]
        if unknown:
            raise ValidationError(
                f"Unknown providers: {', '.join(unknown)}", details={"unknown": unknown}
            )
        return [self.providers[pid] for pid in provider_ids]

    def list_providers(self) -> list[dict[str, Any]]:
        return [provider.describe() for provider in self.providers.values()]

    async def health(self) -> dict[str, bool]:
        results: dict[str, bool] = {}
        for provider_id, provider in self.providers.items():
            results[provider_id] = await provider.healthcheck()
        return results

    async def aclose(self) -> None:
        """Close all provider clients."""
        for provider in self.providers.values():
            try:
                await provider.aclose()
            except Exception:
                logger.warning(
                    "Error closing provider client", data={"provider": provider.provider_id}
                )
