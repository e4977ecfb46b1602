"""
Database session management.

Provides session factory and FastAPI dependency for database access.
"""

from collections.abc import Generator

from fastapi import Request
from sqlalchemy.orm import Session, sessionmaker

from playground.db.engine import get_engine

_session_factory: sessionmaker[Session] | None = None


def get_session_factory() -> sessionmaker[Session]:
    """
    Get or create the session factory.

    Returns cached factory instance, creating it on first call.
    """
    global _session_factory

    if _session_factory is None:
        _session_factory = sessionmaker(
            bind=get_engine(),
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )

    return _session_factory


def reset_session_factory() -> None:
    global _session_factory
    _session_factory = None


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    FastAPI dependency that provides a database session.

    Uses the factory attached to the application state, falling back to
    the process-wide factory. The session is closed after the request.
    """
    factory = getattr(request.app.state, "session_factory", None) or get_session_factory()
    session = factory()
    try:
        yield session
    finally:
        session.close()
