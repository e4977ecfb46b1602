"""
Multi-model streaming orchestration.

One prompt is fanned out to several providers at once. Every provider is
driven by its own task; all tasks write into a single queue that the
returned async iterator drains, so the caller sees one ordered stream of
events while the providers progress at their own pace.
"""

from __future__ import annotations

import asyncio
import contextvars
import time
import uuid
from collections.abc import AsyncIterator, Iterable
from contextlib import aclosing

from playground.core.errors import (
    AppError,
    RateLimitExceededError,
    SessionNotFoundError,
    ValidationError,
)
from playground.core.logging import get_logger, run_id_ctx
from playground.core.metrics import metrics
from playground.db.models import PlaygroundSession
from playground.providers import ModelProvider, ProviderRegistry
from playground.services.events import (
    ChunkEvent,
    Heartbeat,
    MetricsEvent,
    OrchestrationEvent,
    ProviderPhase,
    SessionEvent,
    StatusEvent,
)
from playground.services.rate_limiter import SlidingWindowRateLimiter
from playground.services.runs import (
    RUN_CANCELLED,
    ActiveRunManager,
    OrchestrationRun,
    ProviderRun,
)
from playground.services.session_store import SessionStore, TurnRecord

logger = get_logger(__name__)

CANCELLED_MESSAGE = "Cancelled"

_IDLE = object()


def normalize_provider_ids(provider_ids: str | Iterable[str] | None) -> list[str]:
    """Split, trim and de-duplicate provider ids, keeping first-seen order."""
    if provider_ids is None:
        return []
    if isinstance(provider_ids, str):
        provider_ids = provider_ids.split(",")
    seen: list[str] = []
    for raw in provider_ids:
        pid = (raw or "").strip()
        if pid and pid not in seen:
            seen.append(pid)
    return seen


def _error_message(exc: Exception) -> str:
    if isinstance(exc, AppError):
        return exc.message
    return str(exc) or exc.__class__.__name__


class StreamOrchestrator:
    """Drives concurrent provider streams and the persistence of their results."""

    def __init__(
        self,
        registry: ProviderRegistry,
        store: SessionStore,
        limiter: SlidingWindowRateLimiter,
        run_manager: ActiveRunManager | None = None,
        heartbeat_interval: float | None = None,
    ):
        self.registry = registry
        self.store = store
        self.limiter = limiter
        self.run_manager = run_manager or ActiveRunManager()
        self.heartbeat_interval = heartbeat_interval or None

    async def stream_prompt(
        self,
        *,
        prompt: str,
        provider_ids: str | Iterable[str],
        caller_id: str,
        session_id: str | None = None,
    ) -> AsyncIterator[OrchestrationEvent | Heartbeat]:
        """
        Validate the request and return the event stream for it.

        All rejections happen here, before any session is written or any
        provider task started.

        Raises:
            ValidationError: Empty prompt, no providers, or unknown providers.
            SessionNotFoundError: ``session_id`` is missing or owned by someone else.
            RateLimitExceededError: The caller has no budget left in the window.
        """
        if not prompt or not prompt.strip():
            raise ValidationError("Prompt must not be empty")

        ids = normalize_provider_ids(provider_ids)
        if not ids:
            raise ValidationError("At least one provider must be selected")
        providers = self.registry.resolve(ids)

        existing: PlaygroundSession | None = None
        if session_id:
            existing = await asyncio.to_thread(self.store.find_session, caller_id, session_id)
            if existing is None:
                raise SessionNotFoundError()

        decision = self.limiter.check_and_record(caller_id)
        if not decision.allowed:
            metrics.increment("rate_limit_blocks_total")
            logger.info(
                "Orchestration rate limited",
                data={"user_id": caller_id, "limit": decision.limit, "reset_at": decision.reset_at},
            )
            raise RateLimitExceededError(
                limit=decision.limit,
                reset_at=decision.reset_at,
                retry_after_seconds=decision.retry_after_seconds(self.limiter.now()),
            )

        run = OrchestrationRun(
            run_id=str(uuid.uuid4()),
            user_id=caller_id,
            prompt=prompt,
            provider_runs={pid: ProviderRun(pid) for pid in ids},
        )
        return self._stream(run, providers, existing)

    async def _stream(
        self,
        run: OrchestrationRun,
        providers: list[ModelProvider],
        existing: PlaygroundSession | None,
    ) -> AsyncIterator[OrchestrationEvent | Heartbeat]:
        await self.run_manager.register(run)
        metrics.increment("runs_started_total")
        started = time.perf_counter()
        provider_ids = list(run.provider_runs)
        logger.info(
            "Orchestration run started",
            data={"run_id": run.run_id, "user_id": run.user_id, "providers": provider_ids},
        )

        try:
            session_id = await self._open_session(run, provider_ids, existing)
            run.session_id = session_id
            yield SessionEvent(session_id=session_id, run_id=run.run_id)

            # A cancel that arrived while the session was opening leaves the
            # sentinel queued; no provider is started.
            if not run.cancel_event.is_set():
                for provider in providers:
                    ctx = contextvars.copy_context()
                    ctx.run(run_id_ctx.set, run.run_id)
                    task = asyncio.create_task(
                        self._drive_provider(run, provider, session_id),
                        name=f"run-{run.run_id}-{provider.provider_id}",
                        context=ctx,
                    )
                    run.tasks.append(task)

            pending = set(provider_ids)
            while pending:
                item = await self._next_item(run.queue)
                if item is _IDLE:
                    yield Heartbeat()
                    continue
                if item is RUN_CANCELLED:
                    for event in self._cancelled_events(run, pending):
                        yield event
                    break
                if isinstance(item, StatusEvent) and item.is_terminal:
                    pending.discard(item.provider_id)
                yield item

            await asyncio.gather(*run.tasks, return_exceptions=True)
            if session_id is not None:
                await self._mark_completed(session_id)
        finally:
            run.cancel_tasks()
            await self.run_manager.unregister(run.run_id)
            duration = time.perf_counter() - started
            metrics.observe("stream_duration_seconds", duration)
            logger.info(
                "Orchestration run finished",
                data={
                    "run_id": run.run_id,
                    "session_id": run.session_id,
                    "duration_ms": int(duration * 1000),
                    "states": {pid: r.state.value for pid, r in run.provider_runs.items()},
                },
            )

    async def _next_item(self, queue: asyncio.Queue) -> object:
        if self.heartbeat_interval is None:
            return await queue.get()
        try:
            return await asyncio.wait_for(queue.get(), timeout=self.heartbeat_interval)
        except TimeoutError:
            return _IDLE

    def _cancelled_events(
        self, run: OrchestrationRun, pending: set[str]
    ) -> list[OrchestrationEvent]:
        """Flush what providers already reported, then close the rest as cancelled."""
        events: list[OrchestrationEvent] = []
        while not run.queue.empty():
            item = run.queue.get_nowait()
            if item is RUN_CANCELLED:
                continue
            if isinstance(item, StatusEvent) and item.is_terminal:
                pending.discard(item.provider_id)
            events.append(item)
        for pid in list(pending):
            provider_run = run.provider_runs[pid]
            if not provider_run.is_terminal:
                provider_run.fail(CANCELLED_MESSAGE)
            pending.discard(pid)
            events.append(
                StatusEvent(provider_id=pid, status=ProviderPhase.ERROR, message=CANCELLED_MESSAGE)
            )
        logger.info("Orchestration run cancelled", data={"run_id": run.run_id})
        return events

    async def _drive_provider(
        self,
        run: OrchestrationRun,
        provider: ModelProvider,
        session_id: str | None,
    ) -> None:
        pid = provider.provider_id
        provider_run = run.provider_runs[pid]
        queue = run.queue

        provider_run.start()
        queue.put_nowait(StatusEvent(provider_id=pid, status=ProviderPhase.STREAMING))

        try:
            async with aclosing(provider.stream_completion(run.prompt)) as fragments:
                async for fragment in fragments:
                    if not fragment:
                        continue
                    provider_run.append(fragment)
                    queue.put_nowait(
                        ChunkEvent(provider_id=pid, content=fragment, timestamp=time.time() * 1000)
                    )

            response = provider_run.text
            input_tokens = provider.estimate_tokens(run.prompt)
            output_tokens = provider.estimate_tokens(response)
            metrics_event = MetricsEvent(
                provider_id=pid,
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                cost=provider.calculate_cost(input_tokens, output_tokens),
                response_time_ms=provider_run.elapsed_ms,
            )
        except Exception as exc:
            message = _error_message(exc)
            provider_run.fail(message)
            metrics.increment("provider_errors_total")
            logger.warning(
                "Provider stream failed",
                data={"run_id": run.run_id, "provider": pid, "error": message},
            )
            queue.put_nowait(StatusEvent(provider_id=pid, status=ProviderPhase.ERROR, message=message))
            return

        queue.put_nowait(metrics_event)

        if session_id is not None:
            await self._persist_turn(
                TurnRecord(
                    session_id=session_id,
                    run_id=run.run_id,
                    model_name=pid,
                    user_prompt=run.prompt,
                    response=response,
                    input_tokens=metrics_event.input_tokens,
                    output_tokens=metrics_event.output_tokens,
                    cost=metrics_event.cost,
                    response_time_ms=metrics_event.response_time_ms,
                )
            )

        provider_run.complete()
        queue.put_nowait(StatusEvent(provider_id=pid, status=ProviderPhase.COMPLETE))

    # Store failures below are logged, counted and swallowed.

    async def _open_session(
        self,
        run: OrchestrationRun,
        provider_ids: list[str],
        existing: PlaygroundSession | None,
    ) -> str | None:
        try:
            if existing is not None:
                await asyncio.to_thread(self.store.touch_session, existing.id, provider_ids)
                return existing.id
            session = await asyncio.to_thread(
                self.store.create_session, run.user_id, run.prompt, provider_ids
            )
            return session.id
        except Exception:
            metrics.increment("persistence_failures_total")
            logger.exception(
                "Failed to open playground session; streaming without persistence",
                data={"run_id": run.run_id},
            )
            return None

    async def _persist_turn(self, turn: TurnRecord) -> None:
        try:
            await asyncio.to_thread(self.store.record_turn, turn)
        except Exception:
            metrics.increment("persistence_failures_total")
            logger.exception(
                "Failed to persist conversation turn",
                data={"session_id": turn.session_id, "provider": turn.model_name},
            )

    async def _mark_completed(self, session_id: str) -> None:
        try:
            await asyncio.to_thread(self.store.mark_completed, session_id)
        except Exception:
            metrics.increment("persistence_failures_total")
            logger.exception(
                "Failed to mark session completed", data={"session_id": session_id}
            )
