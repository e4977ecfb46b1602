"""
FastAPI dependencies for authentication.

Callers authenticate with ``Authorization: Bearer <token>``. EventSource
clients cannot set headers, so the ``token`` query parameter is accepted
as well.
"""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from playground.auth.tokens import resolve_caller
from playground.core.errors import InvalidCredentialsError, UnauthorizedError
from playground.core.logging import user_id_ctx
from playground.db.session import get_db


def get_bearer_token(request: Request) -> str | None:
    """Extract the bearer token from the header or the ``token`` query param."""
    header = request.headers.get("authorization", "")
    scheme, _, value = header.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    token = request.query_params.get("token")
    return token or None


async def require_caller(
    request: Request,
    db: Annotated[Session, Depends(get_db)],
) -> str:
    """
    Require an authenticated caller.

    Returns:
        The caller's user id.

    Raises:
        UnauthorizedError: If no credential was supplied.
        InvalidCredentialsError: If the credential is unknown or expired.
    """
    token = get_bearer_token(request)
    if not token:
        raise UnauthorizedError("Authentication required")

    user_id = resolve_caller(db, token)
    if user_id is None:
        raise InvalidCredentialsError()

    user_id_ctx.set(user_id)
    return user_id


RequireCaller = Annotated[str, Depends(require_caller)]
