"""In-memory state of orchestration runs and their provider runs."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from playground.core.metrics import metrics


# Queue marker that wakes the consumer of a cancelled run
RUN_CANCELLED = object()


class ProviderRunState(str, Enum):
    PENDING = "PENDING"
    STREAMING = "STREAMING"
    COMPLETE = "COMPLETE"
    ERROR = "ERROR"


_TRANSITIONS: dict[ProviderRunState, frozenset[ProviderRunState]] = {
    ProviderRunState.PENDING: frozenset({ProviderRunState.STREAMING, ProviderRunState.ERROR}),
    ProviderRunState.STREAMING: frozenset({ProviderRunState.COMPLETE, ProviderRunState.ERROR}),
    ProviderRunState.COMPLETE: frozenset(),
    ProviderRunState.ERROR: frozenset(),
}


class InvalidTransitionError(RuntimeError):
    def __init__(self, provider_id: str, current: ProviderRunState, target: ProviderRunState):
        super().__init__(
            f"Provider run {provider_id}: illegal transition {current.value} -> {target.value}"
        )
        self.current = current
        self.target = target


@dataclass(frozen=True)
class ProviderRunSnapshot:
    provider_id: str
    state: ProviderRunState
    text_length: int
    elapsed_ms: int
    error: str | None

    def to_dict(self) -> dict:
        return {
            "providerId": self.provider_id,
            "state": self.state.value,
            "textLength": self.text_length,
            "elapsedMs": self.elapsed_ms,
            "error": self.error,
        }


class ProviderRun:
    """
    Lifecycle of one provider within one orchestration run.

    Only the task driving the provider mutates it; everyone else reads
    snapshots.
    """

    def __init__(self, provider_id: str):
        self.provider_id = provider_id
        self.state = ProviderRunState.PENDING
        self.error: str | None = None
        self._fragments: list[str] = []
        self._started = time.perf_counter()
        self._finished: float | None = None

    def _transition(self, target: ProviderRunState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise InvalidTransitionError(self.provider_id, self.state, target)
        self.state = target

    def start(self) -> None:
        self._started = time.perf_counter()
        self._transition(ProviderRunState.STREAMING)

    def append(self, fragment: str) -> None:
        if self.state is not ProviderRunState.STREAMING:
            raise InvalidTransitionError(self.provider_id, self.state, ProviderRunState.STREAMING)
        self._fragments.append(fragment)

    def complete(self) -> None:
        self._transition(ProviderRunState.COMPLETE)
        self._finished = time.perf_counter()

    def fail(self, message: str) -> None:
        self._transition(ProviderRunState.ERROR)
        self.error = message
        self._finished = time.perf_counter()

    @property
    def text(self) -> str:
        return "".join(self._fragments)

    @property
    def elapsed_ms(self) -> int:
        end = self._finished if self._finished is not None else time.perf_counter()
        return int((end - self._started) * 1000)

    @property
    def is_terminal(self) -> bool:
        return self.state in (ProviderRunState.COMPLETE, ProviderRunState.ERROR)

    def snapshot(self) -> ProviderRunSnapshot:
        return ProviderRunSnapshot(
            provider_id=self.provider_id,
            state=self.state,
            text_length=sum(len(f) for f in self._fragments),
            elapsed_ms=self.elapsed_ms,
            error=self.error,
        )


@dataclass
class OrchestrationRun:
    """Metadata for one in-flight orchestration invocation."""

    run_id: str
    user_id: str
    prompt: str
    provider_runs: dict[str, ProviderRun]
    session_id: str | None = None
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    tasks: list[asyncio.Task] = field(default_factory=list)
    queue: asyncio.Queue = field(default_factory=asyncio.Queue)
    cancel_event: asyncio.Event = field(default_factory=asyncio.Event)

    def cancel(self) -> None:
        """Cancel provider tasks and wake the consumer."""
        if self.cancel_event.is_set():
            return
        self.cancel_event.set()
        self.cancel_tasks()
        self.queue.put_nowait(RUN_CANCELLED)

    def cancel_tasks(self) -> int:
        """Cancel outstanding provider tasks without awaiting them."""
        cancelled = 0
        for task in self.tasks:
            if not task.done():
                task.cancel()
                cancelled += 1
        return cancelled

    def snapshot(self) -> dict:
        return {
            "runId": self.run_id,
            "sessionId": self.session_id,
            "startedAt": self.started_at.isoformat(),
            "cancelled": self.cancel_event.is_set(),
            "providers": [run.snapshot().to_dict() for run in self.provider_runs.values()],
        }


class ActiveRunManager:
    """Tracks active orchestration runs so their owners can inspect or cancel them."""

    def __init__(self) -> None:
        self._runs: dict[str, OrchestrationRun] = {}
        self._lock = asyncio.Lock()

    async def register(self, run: OrchestrationRun) -> None:
        async with self._lock:
            self._runs[run.run_id] = run
            metrics.set_gauge("active_runs", float(len(self._runs)))

    async def unregister(self, run_id: str) -> OrchestrationRun | None:
        async with self._lock:
            run = self._runs.pop(run_id, None)
            metrics.set_gauge("active_runs", float(len(self._runs)))
        return run

    async def get(self, run_id: str, user_id: str) -> OrchestrationRun | None:
        """Return the run only if it belongs to ``user_id``."""
        async with self._lock:
            run = self._runs.get(run_id)
        if run is None or run.user_id != user_id:
            return None
        return run

    async def cancel(self, run_id: str, user_id: str) -> bool:
        """Signal cancellation for a running orchestration owned by the requester."""
        run = await self.get(run_id, user_id)
        if run is None:
            return False
        run.cancel()
        return True

    def __len__(self) -> int:
        return len(self._runs)
