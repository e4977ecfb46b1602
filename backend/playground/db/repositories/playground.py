"""Repository helpers for playground sessions and conversation turns."""

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from playground.db.base import utcnow
from playground.db.models import (
    SESSION_STATUS_ACTIVE,
    SESSION_STATUS_COMPLETED,
    TURN_STATUS_COMPLETED,
    ConversationTurn,
    PlaygroundSession,
)


def create_session(
    db: Session, user_id: str, prompt: str, models: list[str]
) -> PlaygroundSession:
    """Create a new ACTIVE session for the given user."""
    session = PlaygroundSession(
        user_id=user_id,
        prompt=prompt,
        models=list(models),
        status=SESSION_STATUS_ACTIVE,
        total_cost=0.0,
        total_tokens=0,
    )
    db.add(session)
    db.commit()
    db.refresh(session)
    return session


def get_user_session(
    db: Session, user_id: str, session_id: str
) -> PlaygroundSession | None:
    """Fetch a session owned by the user."""
    stmt = select(PlaygroundSession).where(
        PlaygroundSession.id == session_id,
        PlaygroundSession.user_id == user_id,
    )
    return db.execute(stmt).scalar_one_or_none()


def reopen_session(
    db: Session, session_id: str, models: list[str]
) -> PlaygroundSession | None:
    """
    Set a reused session back to ACTIVE for a new round.

    Models of the new round are appended to the ones already recorded,
    keeping first-seen order. ``updated_at`` is bumped even when nothing
    else changes.
    """
    session = db.get(PlaygroundSession, session_id)
    if session is None:
        return None
    merged = list(session.models or [])
    merged.extend(m for m in models if m not in merged)
    session.status = SESSION_STATUS_ACTIVE
    session.models = merged
    session.updated_at = utcnow()
    db.commit()
    db.refresh(session)
    return session


def create_turn(
    db: Session,
    session_id: str,
    run_id: str,
    model_name: str,
    user_prompt: str,
    response: str,
    *,
    input_tokens: int,
    output_tokens: int,
    cost: float,
    response_time_ms: int,
    status: str = TURN_STATUS_COMPLETED,
    commit: bool = True,
) -> ConversationTurn:
    """Insert a conversation turn. With ``commit=False`` it is only flushed."""
    turn = ConversationTurn(
        session_id=session_id,
        run_id=run_id,
        model_name=model_name,
        user_prompt=user_prompt,
        response=response,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        cost=cost,
        response_time_ms=response_time_ms,
        status=status,
    )
    db.add(turn)
    if not commit:
        db.flush()
        return turn
    db.commit()
    db.refresh(turn)
    return turn


def increment_session_totals(
    db: Session,
    session_id: str,
    cost_delta: float,
    tokens_delta: int,
    *,
    commit: bool = True,
) -> bool:
    """Add to the session accumulators in a single UPDATE statement."""
    stmt = (
        update(PlaygroundSession)
        .where(PlaygroundSession.id == session_id)
        .values(
            total_cost=PlaygroundSession.total_cost + cost_delta,
            total_tokens=PlaygroundSession.total_tokens + tokens_delta,
        )
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    if commit:
        db.commit()
    return result.rowcount > 0


def mark_session_completed(db: Session, session_id: str) -> bool:
    stmt = (
        update(PlaygroundSession)
        .where(PlaygroundSession.id == session_id)
        .values(status=SESSION_STATUS_COMPLETED)
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    db.commit()
    return result.rowcount > 0


def list_user_sessions(
    db: Session, user_id: str, *, offset: int, limit: int
) -> tuple[list[PlaygroundSession], int]:
    """List a page of the user's sessions, newest first, with the total count."""
    total = db.execute(
        select(func.count())
        .select_from(PlaygroundSession)
        .where(PlaygroundSession.user_id == user_id)
    ).scalar_one()
    stmt = (
        select(PlaygroundSession)
        .where(PlaygroundSession.user_id == user_id)
        .order_by(PlaygroundSession.created_at.desc(), PlaygroundSession.id.desc())
        .offset(offset)
        .limit(limit)
    )
    return list(db.execute(stmt).scalars().all()), total


def get_session_turns(db: Session, session_id: str) -> list[ConversationTurn]:
    """Get all turns of a session ordered by creation time."""
    stmt = (
        select(ConversationTurn)
        .where(ConversationTurn.session_id == session_id)
        .order_by(ConversationTurn.created_at.asc(), ConversationTurn.id.asc())
    )
    return list(db.execute(stmt).scalars().all())
