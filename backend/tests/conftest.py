"""Shared fixtures: temporary SQLite database, users, scripted providers."""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool

from playground.config import Settings
from playground.db.base import Base
from playground.db.repositories import create_user
from playground.providers import ModelProvider, ProviderRegistry
from playground.services import (
    ActiveRunManager,
    SlidingWindowRateLimiter,
    SqlSessionStore,
    StreamOrchestrator,
)


class ScriptedProvider(ModelProvider):
    """Provider stub that yields predefined fragments, optionally failing."""

    kind = "scripted"

    def __init__(
        self,
        provider_id: str,
        fragments: list[str],
        *,
        error: Exception | None = None,
        delay: float = 0.0,
        gate: asyncio.Event | None = None,
    ):
        super().__init__(provider_id)
        self.fragments = fragments
        self.error = error
        self.delay = delay
        self.gate = gate
        self.calls = 0

    async def stream_completion(self, prompt: str) -> AsyncIterator[str]:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        for fragment in self.fragments:
            await asyncio.sleep(self.delay)
            yield fragment
        if self.error is not None:
            raise self.error


def make_registry(*providers: ModelProvider) -> ProviderRegistry:
    return ProviderRegistry(Settings(), providers=list(providers))


async def collect(events: AsyncIterator[Any]) -> list[Any]:
    return [event async for event in events]


def parse_sse(body: str) -> list[tuple[str, dict[str, Any]]]:
    """Split an SSE body into (type, payload) pairs, skipping comments."""
    messages: list[tuple[str, dict[str, Any]]] = []
    for block in body.split("\n\n"):
        data_lines = [
            line.split("data:", 1)[1].strip()
            for line in block.splitlines()
            if line.startswith("data:")
        ]
        if data_lines:
            payload = json.loads("".join(data_lines))
            messages.append((payload["type"], payload))
    return messages


@pytest.fixture
def tmp_db_path(tmp_path: Path) -> Path:
    return tmp_path / "test.db"


@pytest.fixture
def engine(tmp_db_path: Path):
    engine = create_engine(
        f"sqlite:///{tmp_db_path}",
        poolclass=NullPool,
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    with engine.connect() as conn:
        conn.execute(text("PRAGMA journal_mode=DELETE;"))
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def store(session_factory) -> SqlSessionStore:
    return SqlSessionStore(session_factory)


@pytest.fixture
def user_id(db_session: Session) -> str:
    return create_user(db_session, username="alice").id


@pytest.fixture
def other_user_id(db_session: Session) -> str:
    return create_user(db_session, username="mallory").id


@pytest.fixture
def build_orchestrator(store):
    """Factory for an orchestrator over the temporary store."""

    def _build(
        *providers: ModelProvider,
        max_requests: int = 20,
        heartbeat_interval: float | None = None,
        session_store: Any = None,
    ) -> StreamOrchestrator:
        return StreamOrchestrator(
            registry=make_registry(*providers),
            store=session_store or store,
            limiter=SlidingWindowRateLimiter(max_requests=max_requests, window_seconds=3600),
            run_manager=ActiveRunManager(),
            heartbeat_interval=heartbeat_interval,
        )

    return _build
