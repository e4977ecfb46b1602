"""
Base provider interface.

Defines the contract that all model backends must implement.
"""

import math
import re
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from playground.providers.pricing import ModelPricing, get_context_window, get_pricing

_CJK_PATTERN = re.compile(r"[\u4e00-\u9fff]")


def estimate_tokens(text: str) -> int:
    """
    Rough token estimate: 1.3 tokens per whitespace-delimited word plus
    one token per CJK ideograph.
    """
    words = len(text.split())
    cjk_chars = len(_CJK_PATTERN.findall(text))
    return math.ceil(words * 1.3 + cjk_chars)


def calculate_cost(pricing: ModelPricing, input_tokens: int, output_tokens: int) -> float:
    """Cost in USD for the given token counts."""
    return (input_tokens * pricing.input + output_tokens * pricing.output) / 1000


class ModelProvider(ABC):
    """
    Abstract base class for model backends.

    A provider is identified by ``provider_id`` (the model name shown to
    clients) and turns a prompt into a lazy stream of text fragments.
    """

    provider_id: str
    display_name: str
    kind: str = "base"

    def __init__(self, provider_id: str, display_name: str | None = None):
        self.provider_id = provider_id
        self.display_name = display_name or provider_id
        self.pricing = get_pricing(provider_id)

    @abstractmethod
    def stream_completion(self, prompt: str) -> AsyncIterator[str]:
        """
        Stream the completion of a prompt as text fragments.

        The returned iterator is finite and cannot be restarted. Failures
        are raised from the iterator.
        """
        ...

    def estimate_tokens(self, text: str) -> int:
        return estimate_tokens(text)

    def calculate_cost(self, input_tokens: int, output_tokens: int) -> float:
        return calculate_cost(self.pricing, input_tokens, output_tokens)

    def get_max_tokens(self) -> int:
        """Context window size of the underlying model (informational)."""
        return get_context_window(self.provider_id)

    async def healthcheck(self) -> bool:
        return True

    async def aclose(self) -> None:
        """Close any underlying resources (optional)."""
        return None

    def describe(self) -> dict:
        return {
            "id": self.provider_id,
            "name": self.display_name,
            "kind": self.kind,
            "pricing": {"input": self.pricing.input, "output": self.pricing.output},
            "maxTokens": self.get_max_tokens(),
        }