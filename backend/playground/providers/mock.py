"""Offline provider that streams canned answers word by word."""

from __future__ import annotations

import asyncio
import random
from collections.abc import AsyncIterator

from playground.providers.base import ModelProvider
from playground.providers.pricing import DEFAULT_MODEL

_CANNED_RESPONSES: dict[str, str] = {
    "gpt-3.5-turbo": (
        'As GPT-3.5 Turbo, I\'ll answer your question: "{prompt}".\n\n'
        "This is an interesting question. I think we can analyze it from several perspectives:\n\n"
        "1. **Technical Perspective**: This involves current technology development trends\n"
        "2. **Practical Perspective**: We need to consider feasibility in real-world applications\n"
        "3. **Future Outlook**: This field has great potential for development\n\n"
        "Overall, this is a topic worth deep consideration, and I hope my answer is helpful to you."
    ),
    "gpt-4o-mini": (
        'As GPT-4o Mini, I\'ll provide a detailed answer to: "{prompt}".\n\n'
        "Let me analyze this question from a deeper perspective:\n\n"
        "## Key Points\n"
        "- **Core Concepts**: First, we need to understand the fundamental principles\n"
        "- **Practical Applications**: How to implement this in reality\n"
        "- **Potential Challenges**: Possible difficulties and solutions\n\n"
        "## Detailed Analysis\n"
        "This question involves considerations from multiple dimensions. From a technical "
        "implementation perspective, we need to comprehensively consider efficiency, cost, "
        "and maintainability.\n\n"
        "## Recommendations\n"
        "Based on current technology development trends, I recommend taking a progressive "
        "approach to handle this issue.\n\n"
        "I hope this answer provides you with valuable insights!"
    ),
}


def canned_response(model: str, prompt: str) -> str:
    template = _CANNED_RESPONSES.get(model, _CANNED_RESPONSES[DEFAULT_MODEL])
    return template.replace("{prompt}", prompt)


class MockProvider(ModelProvider):
    """
    Demo provider used when no API key is configured.

    Streams a canned per-model answer one word at a time, sleeping between
    words to mimic network pacing. A ``chunk_delay`` of 0 disables the delay.
    """

    kind = "mock"

    def __init__(self, model: str, *, chunk_delay: float = 0.05):
        super().__init__(model)
        self.chunk_delay = chunk_delay

    async def stream_completion(self, prompt: str) -> AsyncIterator[str]:
        words = canned_response(self.provider_id, prompt).split(" ")
        last = len(words) - 1
        for index, word in enumerate(words):
            yield word if index == last else f"{word} "
            if self.chunk_delay > 0:
                await asyncio.sleep(self.chunk_delay * (1 + 2 * random.random()))
