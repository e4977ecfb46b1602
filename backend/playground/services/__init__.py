"""Orchestration services."""

from playground.services.events import (
    ChunkEvent,
    Heartbeat,
    MetricsEvent,
    OrchestrationEvent,
    ProviderPhase,
    SessionEvent,
    StatusEvent,
)
from playground.services.orchestrator import StreamOrchestrator, normalize_provider_ids
from playground.services.rate_limiter import RateLimitDecision, SlidingWindowRateLimiter
from playground.services.runs import ActiveRunManager, ProviderRun, ProviderRunState
from playground.services.session_store import SessionStore, SqlSessionStore, TurnRecord

__all__ = [
    "ActiveRunManager",
    "ChunkEvent",
    "Heartbeat",
    "MetricsEvent",
    "OrchestrationEvent",
    "ProviderPhase",
    "ProviderRun",
    "ProviderRunState",
    "RateLimitDecision",
    "SessionEvent",
    "SessionStore",
    "SlidingWindowRateLimiter",
    "SqlSessionStore",
    "StatusEvent",
    "TurnRecord",
    "normalize_provider_ids",
]
