"""Per-model pricing and context window tables."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ModelPricing:
    """Price in USD per 1K tokens."""

    input: float
    output: float


DEFAULT_MODEL = "gpt-3.5-turbo"

MODEL_PRICING: dict[str, ModelPricing] = {
    "gpt-3.5-turbo": ModelPricing(input=0.0015, output=0.002),
    "gpt-4o-mini": ModelPricing(input=0.00015, output=0.0006),
    "gpt-4": ModelPricing(input=0.03, output=0.06),
    "gpt-4-turbo": ModelPricing(input=0.01, output=0.03),
}


def get_pricing(model: str) -> ModelPricing:
    """Return the model's pricing, falling back to the default model's."""
    return MODEL_PRICING.get(model, MODEL_PRICING[DEFAULT_MODEL])


def get_context_window(model: str) -> int:
    if "gpt-4o" in model:
        return 128000
    if "gpt-4" in model:
        return 8192
    return 4096
