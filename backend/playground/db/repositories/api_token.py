"""Repository helpers for bearer API tokens."""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from playground.db.base import utcnow
from playground.db.models import ApiToken


def create_api_token(
    db: Session,
    user_id: str,
    token_hash: str,
    *,
    name: str = "default",
    expires_at: datetime | None = None,
) -> ApiToken:
    """Store a hashed token for the user."""
    api_token = ApiToken(
        user_id=user_id,
        token_hash=token_hash,
        name=name,
        expires_at=expires_at,
    )
    db.add(api_token)
    db.commit()
    db.refresh(api_token)
    return api_token


def get_api_token_by_hash(db: Session, token_hash: str) -> ApiToken | None:
    stmt = select(ApiToken).where(ApiToken.token_hash == token_hash)
    return db.execute(stmt).scalar_one_or_none()


def touch_api_token(db: Session, api_token: ApiToken) -> None:
    """Record the last time a token authenticated a request."""
    api_token.last_used_at = utcnow()
    db.commit()


def revoke_user_tokens(db: Session, user_id: str) -> int:
    """Delete all tokens of a user. Returns the number removed."""
    tokens = db.execute(select(ApiToken).where(ApiToken.user_id == user_id)).scalars().all()
    for api_token in tokens:
        db.delete(api_token)
    db.commit()
    return len(tokens)
