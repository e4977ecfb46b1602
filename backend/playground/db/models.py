"""
SQLAlchemy ORM models.

Defines all database tables for the playground service.
"""

from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from sqlalchemy import JSON, Float, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from playground.db.base import Base, TimestampMixin, utcnow

USER_STATUS_ACTIVE = "active"
USER_STATUS_DISABLED = "disabled"

SESSION_STATUS_ACTIVE = "ACTIVE"
SESSION_STATUS_COMPLETED = "COMPLETED"

TURN_STATUS_COMPLETED = "COMPLETED"
TURN_STATUS_ERROR = "ERROR"


def generate_uuid() -> str:
    """Generate a UUID string for primary keys."""
    return str(uuid4())


class User(Base, TimestampMixin):
    """User account model."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    username: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=USER_STATUS_ACTIVE
    )  # active, disabled

    api_tokens: Mapped[list[ApiToken]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )
    playground_sessions: Mapped[list[PlaygroundSession]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )

    __table_args__ = (Index("ix_users_status", "status"),)


class ApiToken(Base):
    """Bearer credential; only the SHA-256 hash of the token is stored."""

    __tablename__ = "api_tokens"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(64), nullable=False, default="default")
    token_hash: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    expires_at: Mapped[datetime | None] = mapped_column(nullable=True)
    last_used_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    user: Mapped[User] = relationship(back_populates="api_tokens")

    __table_args__ = (Index("ix_api_tokens_user_id", "user_id"),)


class PlaygroundSession(Base, TimestampMixin):
    """One prompt thread compared across several models."""

    __tablename__ = "playground_sessions"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    prompt: Mapped[str] = mapped_column(Text, nullable=False)
    models: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SESSION_STATUS_ACTIVE
    )  # ACTIVE, COMPLETED
    total_cost: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    user: Mapped[User] = relationship(back_populates="playground_sessions")
    turns: Mapped[list[ConversationTurn]] = relationship(
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="[ConversationTurn.created_at, ConversationTurn.id]",
    )

    __table_args__ = (
        Index("ix_playground_sessions_user_created", "user_id", "created_at"),
    )


class ConversationTurn(Base):
    """One provider's completed response within a round. Append-only."""

    __tablename__ = "conversation_turns"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    session_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("playground_sessions.id", ondelete="CASCADE"), nullable=False
    )
    run_id: Mapped[str] = mapped_column(String(36), nullable=False)
    model_name: Mapped[str] = mapped_column(String(128), nullable=False)
    user_prompt: Mapped[str] = mapped_column(Text, nullable=False)
    response: Mapped[str] = mapped_column(Text, nullable=False, default="")
    input_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    output_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cost: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    response_time_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TURN_STATUS_COMPLETED
    )
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    session: Mapped[PlaygroundSession] = relationship(back_populates="turns")

    __table_args__ = (
        UniqueConstraint("session_id", "run_id", "model_name", name="uq_turn_session_run_model"),
        Index("ix_conversation_turns_session_created", "session_id", "created_at"),
    )
