"""
User repository for database operations.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from playground.db.models import USER_STATUS_ACTIVE, User


def get_user_by_id(db: Session, user_id: str) -> User | None:
    """Get user by ID."""
    return db.get(User, user_id)


def get_user_by_username(db: Session, username: str) -> User | None:
    """Get user by username (case-insensitive)."""
    stmt = select(User).where(User.username.ilike(username))
    return db.execute(stmt).scalar_one_or_none()


def create_user(
    db: Session,
    username: str,
    email: str | None = None,
    status: str = USER_STATUS_ACTIVE,
) -> User:
    """Create a new user and commit it."""
    user = User(username=username, email=email, status=status)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def set_user_status(db: Session, user: User, status: str) -> User:
    user.status = status
    db.commit()
    db.refresh(user)
    return user
