"""
Bearer API tokens.

Tokens are random URL-safe strings handed to the client once; only their
SHA-256 hash is stored.
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from playground.db.base import utcnow
from playground.db.models import USER_STATUS_ACTIVE
from playground.db.repositories import (
    create_api_token,
    get_api_token_by_hash,
    get_user_by_id,
    touch_api_token,
)


@dataclass
class IssuedToken:
    token_id: str
    user_id: str
    token: str  # Plain token, shown once
    expires_at: datetime | None


def hash_token(token: str) -> str:
    """Hash a bearer token for storage and lookup."""
    return hashlib.sha256(token.encode()).hexdigest()


def generate_api_token() -> str:
    """Generate a cryptographically secure bearer token."""
    return secrets.token_urlsafe(32)


def issue_api_token(
    db: Session,
    user_id: str,
    *,
    name: str = "default",
    ttl_days: int | None = None,
) -> IssuedToken:
    """Create and store a new token for the user, returning the plain value."""
    token = generate_api_token()
    expires_at = utcnow() + timedelta(days=ttl_days) if ttl_days else None
    record = create_api_token(
        db, user_id, hash_token(token), name=name, expires_at=expires_at
    )
    return IssuedToken(
        token_id=record.id, user_id=user_id, token=token, expires_at=expires_at
    )


def resolve_caller(db: Session, token: str | None) -> str | None:
    """
    Map a bearer token to the id of an active user.

    Returns None when the token is missing, unknown or expired, or when
    its owner is not active.
    """
    if not token:
        return None

    record = get_api_token_by_hash(db, hash_token(token))
    if record is None:
        return None

    if record.expires_at is not None and record.expires_at <= utcnow():
        return None

    user = get_user_by_id(db, record.user_id)
    if user is None or user.status != USER_STATUS_ACTIVE:
        return None

    touch_api_token(db, record)
    return user.id
