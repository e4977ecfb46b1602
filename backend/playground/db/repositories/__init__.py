"""Database repositories for data access."""

from playground.db.repositories.api_token import (
    create_api_token,
    get_api_token_by_hash,
    revoke_user_tokens,
    touch_api_token,
)
from playground.db.repositories.playground import (
    create_session,
    create_turn,
    get_session_turns,
    get_user_session,
    increment_session_totals,
    list_user_sessions,
    mark_session_completed,
    reopen_session,
)
from playground.db.repositories.user import (
    create_user,
    get_user_by_id,
    get_user_by_username,
    set_user_status,
)

__all__ = [
    # API tokens
    "create_api_token",
    "get_api_token_by_hash",
    "revoke_user_tokens",
    "touch_api_token",
    # Playground
    "create_session",
    "create_turn",
    "get_session_turns",
    "get_user_session",
    "increment_session_totals",
    "list_user_sessions",
    "mark_session_completed",
    "reopen_session",
    # Users
    "create_user",
    "get_user_by_id",
    "get_user_by_username",
    "set_user_status",
]
