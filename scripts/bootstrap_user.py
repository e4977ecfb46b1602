#!/usr/bin/env python3
"""Create a playground user (if missing) and print a fresh API token.

Usage:
  python scripts/bootstrap_user.py --username alice [--email alice@example.com] [--ttl-days 30]

The database is taken from DATABASE_URL. Run 'alembic upgrade head' in
backend/ first.
"""
from __future__ import annotations

import argparse
import os
import sys

from playground.auth import issue_api_token
from playground.db import get_session_factory
from playground.db.repositories import create_user, get_user_by_username


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="AI Playground user bootstrap")
    parser.add_argument("--username", default=os.getenv("PLAYGROUND_USERNAME", "demo"))
    parser.add_argument("--email", default=os.getenv("PLAYGROUND_EMAIL"))
    parser.add_argument("--token-name", default="cli")
    parser.add_argument("--ttl-days", type=int, default=None)
    parser.add_argument("--quiet", action="store_true")
    return parser.parse_args()


def exit_with(message: str, code: int = 1) -> None:
    print(message, file=sys.stderr)
    raise SystemExit(code)


def main() -> None:
    args = parse_args()
    if not args.username.strip():
        exit_with("Username must not be empty")

    with get_session_factory()() as db:
        user = get_user_by_username(db, args.username)
        if user is None:
            user = create_user(db, username=args.username, email=args.email)
            if not args.quiet:
                print(f"Created user {user.username} ({user.id})", file=sys.stderr)
        elif user.status != "active":
            exit_with(f"User {user.username} is {user.status}")

        issued = issue_api_token(db, user.id, name=args.token_name, ttl_days=args.ttl_days)

    print(issued.token)


if __name__ == "__main__":
    main()
