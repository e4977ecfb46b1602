"""Events emitted by the stream orchestrator.

Every event serializes to a camelCase dict whose ``type`` key carries
``event_type``, so clients can dispatch on the JSON payload alone.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar


class ProviderPhase(str, Enum):
    """Client-visible status of one provider within a run."""

    STREAMING = "streaming"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass(frozen=True)
class SessionEvent:
    session_id: str | None
    run_id: str

    event_type: ClassVar[str] = "session"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.event_type, "sessionId": self.session_id, "runId": self.run_id}


@dataclass(frozen=True)
class StatusEvent:
    provider_id: str
    status: ProviderPhase
    message: str | None = None

    event_type: ClassVar[str] = "status"

    @property
    def is_terminal(self) -> bool:
        return self.status in (ProviderPhase.COMPLETE, ProviderPhase.ERROR)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "type": self.event_type,
            "providerId": self.provider_id,
            "status": self.status.value,
        }
        if self.message is not None:
            payload["message"] = self.message
        return payload


@dataclass(frozen=True)
class ChunkEvent:
    provider_id: str
    content: str
    timestamp: float  # epoch milliseconds

    event_type: ClassVar[str] = "chunk"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.event_type,
            "providerId": self.provider_id,
            "content": self.content,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class MetricsEvent:
    provider_id: str
    input_tokens: int
    output_tokens: int
    cost: float
    response_time_ms: int

    event_type: ClassVar[str] = "metrics"

    @property
    def tokens_used(self) -> int:
        return self.input_tokens + self.output_tokens

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.event_type,
            "providerId": self.provider_id,
            "inputTokens": self.input_tokens,
            "outputTokens": self.output_tokens,
            "tokensUsed": self.tokens_used,
            "cost": self.cost,
            "responseTimeMs": self.response_time_ms,
        }


@dataclass(frozen=True)
class Heartbeat:
    """Keep-alive marker yielded after an idle interval; not a JSON event."""

    event_type: ClassVar[str] = "ping"


OrchestrationEvent = SessionEvent | StatusEvent | ChunkEvent | MetricsEvent
