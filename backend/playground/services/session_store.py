"""Durable record of playground sessions and their conversation turns.

The orchestrator talks to the store through the ``SessionStore`` protocol.
``SqlSessionStore`` implements it with the SQLAlchemy repositories; each
call opens and closes its own ORM session so calls can run concurrently in
worker threads.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy.orm import Session

from playground.db.models import ConversationTurn, PlaygroundSession
from playground.db.repositories import (
    create_session,
    create_turn,
    get_session_turns,
    get_user_session,
    increment_session_totals,
    list_user_sessions,
    mark_session_completed,
    reopen_session,
)


@dataclass(frozen=True)
class TurnRecord:
    """Values of one completed provider response to append to a session."""

    session_id: str
    run_id: str
    model_name: str
    user_prompt: str
    response: str
    input_tokens: int
    output_tokens: int
    cost: float
    response_time_ms: int


@dataclass
class SessionPage:
    items: list[PlaygroundSession]
    total: int
    page: int
    page_size: int


class SessionStore(Protocol):
    def create_session(
        self, user_id: str, prompt: str, models: list[str]
    ) -> PlaygroundSession: ...

    def find_session(self, user_id: str, session_id: str) -> PlaygroundSession | None: ...

    def touch_session(self, session_id: str, models: list[str]) -> None: ...

    def append_turn(self, turn: TurnRecord) -> ConversationTurn: ...

    def increment_totals(self, session_id: str, cost: float, tokens: int) -> None: ...

    def record_turn(self, turn: TurnRecord) -> ConversationTurn: ...

    def mark_completed(self, session_id: str) -> None: ...

    def list_sessions(self, user_id: str, page: int, page_size: int) -> SessionPage: ...

    def get_session_detail(
        self, user_id: str, session_id: str
    ) -> tuple[PlaygroundSession, list[ConversationTurn]] | None: ...


class SqlSessionStore:
    """SessionStore backed by the SQLAlchemy repositories."""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def create_session(self, user_id: str, prompt: str, models: list[str]) -> PlaygroundSession:
        with self._session_factory() as db:
            return create_session(db, user_id, prompt, models)

    def find_session(self, user_id: str, session_id: str) -> PlaygroundSession | None:
        """Return the session only if it belongs to ``user_id``."""
        with self._session_factory() as db:
            return get_user_session(db, user_id, session_id)

    def touch_session(self, session_id: str, models: list[str]) -> None:
        """Reopen a reused session for a new round."""
        with self._session_factory() as db:
            if reopen_session(db, session_id, models) is None:
                raise LookupError(f"Session {session_id} disappeared")

    def append_turn(self, turn: TurnRecord) -> ConversationTurn:
        with self._session_factory() as db:
            return create_turn(
                db,
                turn.session_id,
                turn.run_id,
                turn.model_name,
                turn.user_prompt,
                turn.response,
                input_tokens=turn.input_tokens,
                output_tokens=turn.output_tokens,
                cost=turn.cost,
                response_time_ms=turn.response_time_ms,
            )

    def increment_totals(self, session_id: str, cost: float, tokens: int) -> None:
        """Atomically add to the session totals."""
        with self._session_factory() as db:
            increment_session_totals(db, session_id, cost, tokens)

    def record_turn(self, turn: TurnRecord) -> ConversationTurn:
        """
        Append the turn and add it to the session totals in one transaction.

        Raises:
            LookupError: The session no longer exists; nothing is written.
        """
        with self._session_factory() as db:
            record = create_turn(
                db,
                turn.session_id,
                turn.run_id,
                turn.model_name,
                turn.user_prompt,
                turn.response,
                input_tokens=turn.input_tokens,
                output_tokens=turn.output_tokens,
                cost=turn.cost,
                response_time_ms=turn.response_time_ms,
                commit=False,
            )
            if not increment_session_totals(
                db,
                turn.session_id,
                turn.cost,
                turn.input_tokens + turn.output_tokens,
                commit=False,
            ):
                db.rollback()
                raise LookupError(f"Session {turn.session_id} disappeared")
            db.commit()
            db.refresh(record)
            return record

    def mark_completed(self, session_id: str) -> None:
        with self._session_factory() as db:
            mark_session_completed(db, session_id)

    def list_sessions(self, user_id: str, page: int, page_size: int) -> SessionPage:
        """Page through the user's sessions, newest first. ``page`` is 1-based."""
        with self._session_factory() as db:
            items, total = list_user_sessions(
                db, user_id, offset=(page - 1) * page_size, limit=page_size
            )
        return SessionPage(items=items, total=total, page=page, page_size=page_size)

    def get_session_detail(
        self, user_id: str, session_id: str
    ) -> tuple[PlaygroundSession, list[ConversationTurn]] | None:
        with self._session_factory() as db:
            session = get_user_session(db, user_id, session_id)
            if session is None:
                return None
            return session, get_session_turns(db, session_id)
