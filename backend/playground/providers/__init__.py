"""Model provider adapters."""

from playground.providers.base import ModelProvider, calculate_cost, estimate_tokens
from playground.providers.mock import MockProvider
from playground.providers.openai_compat import OpenAICompatProvider
from playground.providers.pricing import MODEL_PRICING, ModelPricing, get_pricing
from playground.providers.registry import ProviderRegistry

__all__ = [
    "MODEL_PRICING",
    "MockProvider",
    "ModelPricing",
    "ModelProvider",
    "OpenAICompatProvider",
    "ProviderRegistry",
    "calculate_cost",
    "estimate_tokens",
    "get_pricing",
]
