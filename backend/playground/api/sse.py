"""Server-sent events rendering."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from typing import Any

from playground.core.metrics import metrics
from playground.services.events import Heartbeat, OrchestrationEvent

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def format_sse_event(payload: dict[str, Any]) -> str:
    """Serialize an event as an unnamed SSE message.

    The payload carries its own ``type``; unnamed frames reach
    ``EventSource.onmessage`` listeners.
    """
    data = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    return f"data: {data}\n\n"


def format_sse_comment(comment: str = "ping") -> str:
    """Serialize an SSE comment (used for keep-alives)."""
    return f": {comment}\n\n"


async def encode_event_stream(
    events: AsyncIterator[OrchestrationEvent | Heartbeat],
) -> AsyncIterator[str]:
    """Render orchestration events as SSE frames."""
    try:
        async for event in events:
            if isinstance(event, Heartbeat):
                metrics.increment("sse_pings_sent")
                yield format_sse_comment()
                continue
            yield format_sse_event(event.to_dict())
    finally:
        await events.aclose()
