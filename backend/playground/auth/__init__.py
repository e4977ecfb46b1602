"""Bearer-token authentication."""

from playground.auth.dependencies import RequireCaller, get_bearer_token, require_caller
from playground.auth.tokens import (
    IssuedToken,
    generate_api_token,
    hash_token,
    issue_api_token,
    resolve_caller,
)

__all__ = [
    "IssuedToken",
    "RequireCaller",
    "generate_api_token",
    "get_bearer_token",
    "hash_token",
    "issue_api_token",
    "require_caller",
    "resolve_caller",
]
