#!/usr/bin/env python3
"""
SecureAuth -- admin command line.

Usage:
  python main.py init-db
  python main.py list-users
  python main.py list-users --json
  python main.py create-user alice alice@example.com

Environment variables:
  DATABASE_URL  Any SQLAlchemy URL. Otherwise DB_HOST/DB_NAME/DB_USER/DB_PASS
                select MySQL, and with nothing set a local SQLite file is used.
"""

from __future__ import annotations

import argparse
import getpass
import json
import sys
from dataclasses import asdict
from typing import Callable, Optional

from auth.errors import AuthServiceError
from auth.passwords import PasswordHasher
from auth.service import AuthService
from auth.sessions import SessionManager
from auth.store import UserStore
from core.config import get_settings
from core.database import create_db_engine


def _build_service() -> AuthService:
    settings = get_settings()
    store = UserStore(create_db_engine(settings.resolved_database_url()))
    return AuthService(
        store=store,
        hasher=PasswordHasher(rounds=settings.bcrypt_rounds),
        sessions=SessionManager(ttl_seconds=settings.session_ttl_seconds),
    )


def cmd_init_db(service: AuthService, args: argparse.Namespace) -> int:
    service.store.init_schema()
    print("  users table ready.")
    return 0


def cmd_list_users(service: AuthService, args: argparse.Namespace) -> int:
    users = service.list_users()
    if args.json:
        print(json.dumps([asdict(u) for u in users], indent=2))
        return 0
    if not users:
        print("  No users registered.")
        return 0
    print(f"  {'ID':>4}  {'USERNAME':<20}  EMAIL")
    print("  " + "─" * 50)
    for u in users:
        print(f"  {u.id:>4}  {u.username:<20}  {u.email}")
    print(f"\n  {len(users)} user(s).")
    return 0


def cmd_create_user(
    service: AuthService,
    args: argparse.Namespace,
    prompt: Optional[Callable[[str], str]] = None,
) -> int:
    """Register a user with the same checks as the web registration form.

    The password is read from the terminal (twice), never from argv, so it
    does not end up in shell history or the process list.
    """
    prompt = prompt or getpass.getpass
    password = prompt("Password: ")
    confirmation = prompt("Confirm password: ")
    user_id = service.register(args.username, password, confirmation, args.email)
    print(f"  Created user {args.username} (id={user_id}).")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="secure-auth",
        description="Administer the SecureAuth user database.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py init-db
  python main.py list-users --json
  python main.py create-user alice alice@example.com
  DATABASE_URL=sqlite:///other.db python main.py list-users
        """,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    p_init = sub.add_parser("init-db", help="Create the users table if it does not exist")
    p_init.set_defaults(handler=cmd_init_db)

    p_list = sub.add_parser("list-users", help="Print all registered users")
    p_list.add_argument("--json", action="store_true", help="Output structured JSON")
    p_list.set_defaults(handler=cmd_list_users)

    p_create = sub.add_parser("create-user", help="Register a new user (prompts for the password)")
    p_create.add_argument("username", help="3-50 letters, digits or underscores")
    p_create.add_argument("email", help="Email address")
    p_create.set_defaults(handler=cmd_create_user)

    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 0

    service = _build_service()
    try:
        return args.handler(service, args)
    except AuthServiceError as exc:
        print(f"  [!] {exc.message}", file=sys.stderr)
        return 1
    finally:
        service.store.close()


if __name__ == "__main__":
    sys.exit(main())
