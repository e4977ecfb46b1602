"""Database models, engine, and session management."""

from playground.db.base import Base, TimestampMixin
from playground.db.engine import build_engine, dispose_engine, get_engine, verify_database_connection
from playground.db.models import ApiToken, ConversationTurn, PlaygroundSession, User
from playground.db.session import get_db, get_session_factory

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    # Engine
    "build_engine",
    "get_engine",
    "verify_database_connection",
    "dispose_engine",
    # Session
    "get_db",
    "get_session_factory",
    # Models
    "ApiToken",
    "ConversationTurn",
    "PlaygroundSession",
    "User",
]
