"""Playground endpoints: multi-model streaming, session history and run control."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from playground.api.sse import SSE_HEADERS, encode_event_stream
from playground.auth import RequireCaller
from playground.core.errors import RunNotFoundError, SessionNotFoundError
from playground.core.logging import request_id_ctx
from playground.services.orchestrator import StreamOrchestrator
from playground.services.session_store import SessionStore

router = APIRouter(prefix="/playground", tags=["playground"])

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class SessionResponse(_CamelModel):
    id: str
    user_id: str
    prompt: str
    models: list[str]
    status: str
    total_cost: float
    total_tokens: int
    created_at: datetime
    updated_at: datetime


class TurnResponse(_CamelModel):
    id: str
    session_id: str
    run_id: str
    model_name: str
    user_prompt: str
    response: str
    input_tokens: int
    output_tokens: int
    cost: float
    response_time_ms: int
    status: str
    created_at: datetime


class SessionDetailResponse(SessionResponse):
    turns: list[TurnResponse]


class SessionListResponse(_CamelModel):
    items: list[SessionResponse]
    total: int
    page: int
    page_size: int


def get_orchestrator(request: Request) -> StreamOrchestrator:
    return request.app.state.orchestrator


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.session_store


def _parse_int(value: str | None, default: int) -> int:
    try:
        parsed = int(value) if value is not None else 0
    except ValueError:
        return default
    return parsed or default


def normalize_pagination(page: str | None, page_size: str | None) -> tuple[int, int]:
    """Clamp pagination input: page >= 1, 1 <= page_size <= 100."""
    normalized_page = max(_parse_int(page, 1), 1)
    normalized_size = min(max(_parse_int(page_size, DEFAULT_PAGE_SIZE), 1), MAX_PAGE_SIZE)
    return normalized_page, normalized_size


@router.get("/stream")
async def stream_route(
    caller_id: RequireCaller,
    prompt: str = Query(""),
    provider_ids: str = Query("", alias="providerIds"),
    session_id: str | None = Query(None, alias="sessionId"),
    orchestrator: StreamOrchestrator = Depends(get_orchestrator),
) -> StreamingResponse:
    """Stream responses from every selected provider as server-sent events."""
    events = await orchestrator.stream_prompt(
        prompt=prompt,
        provider_ids=provider_ids,
        caller_id=caller_id,
        session_id=session_id or None,
    )
    request_id = request_id_ctx.get()
    headers = dict(SSE_HEADERS)
    if request_id:
        headers["X-Request-ID"] = request_id
    return StreamingResponse(
        encode_event_stream(events), media_type="text/event-stream", headers=headers
    )


@router.get("/sessions", response_model=SessionListResponse)
def list_sessions_route(
    caller_id: RequireCaller,
    page: str | None = Query(None),
    page_size: str | None = Query(None, alias="pageSize"),
    store: SessionStore = Depends(get_session_store),
) -> SessionListResponse:
    normalized_page, normalized_size = normalize_pagination(page, page_size)
    result = store.list_sessions(caller_id, normalized_page, normalized_size)
    return SessionListResponse(
        items=[SessionResponse.model_validate(item) for item in result.items],
        total=result.total,
        page=result.page,
        page_size=result.page_size,
    )


@router.get("/sessions/{session_id}", response_model=SessionDetailResponse)
def get_session_route(
    session_id: str,
    caller_id: RequireCaller,
    store: SessionStore = Depends(get_session_store),
) -> SessionDetailResponse:
    detail = store.get_session_detail(caller_id, session_id)
    if detail is None:
        raise SessionNotFoundError()
    session, turns = detail
    return SessionDetailResponse(
        **SessionResponse.model_validate(session).model_dump(),
        turns=[TurnResponse.model_validate(turn) for turn in turns],
    )


@router.get("/runs/{run_id}")
async def get_run_route(
    run_id: str,
    caller_id: RequireCaller,
    orchestrator: StreamOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    """Snapshot of an in-flight run."""
    run = await orchestrator.run_manager.get(run_id, caller_id)
    if run is None:
        raise RunNotFoundError()
    return run.snapshot()


@router.post("/runs/{run_id}/cancel")
async def cancel_run_route(
    run_id: str,
    caller_id: RequireCaller,
    orchestrator: StreamOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    cancelled = await orchestrator.run_manager.cancel(run_id, caller_id)
    if not cancelled:
        raise RunNotFoundError()
    return {"status": "cancelled", "runId": run_id}
