"""
Database engine configuration.

Creates SQLAlchemy engine with appropriate settings for SQLite or PostgreSQL.
"""

from pathlib import Path

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from playground.config import get_settings
from playground.core.logging import get_logger

logger = get_logger(__name__)

_engine: Engine | None = None


def build_engine(database_url: str, *, echo: bool = False) -> Engine:
    """Create an engine for the given URL without caching it."""
    if database_url.startswith("sqlite"):
        db_path = database_url.replace("sqlite:///", "")
        if db_path.startswith("./"):
            db_path = db_path[2:]
        if db_path and db_path != ":memory:":
            db_dir = Path(db_path).parent
            if not db_dir.exists():
                db_dir.mkdir(parents=True, exist_ok=True)
                logger.info(f"Created database directory: {db_dir}")

        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},  # Required for SQLite + threads
            echo=echo,
            pool_pre_ping=True,
        )

    return create_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
    )


def get_engine() -> Engine:
    """
    Get or create the database engine.

    Returns cached engine instance, creating it on first call.
    """
    global _engine

    if _engine is not None:
        return _engine

    settings = get_settings()
    _engine = build_engine(settings.database_url, echo=settings.debug)

    logger.info(
        "Database engine created",
        data={"dialect": _engine.dialect.name, "debug": settings.debug},
    )

    return _engine


def verify_database_connection(engine: Engine | None = None) -> bool:
    """
    Verify database connectivity with a simple query.

    Returns:
        True if connection successful, False otherwise.
    """
    try:
        engine = engine or get_engine()
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False


def dispose_engine() -> None:
    """Dispose of the engine and release all connections."""
    global _engine
    if _engine is not None:
        _engine.dispose()
        _engine = None
        logger.info("Database engine disposed")
