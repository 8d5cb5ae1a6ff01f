#!/usr/bin/env python3
"""
Starlane admin CLI -- bootstrap and manage accounts without the HTTP API.

Usage:
  python main.py create-user admin@starlane.dev --fullname "Ada Admin" --role ADMIN
  python main.py create-user bob@starlane.dev --fullname Bob --password hunter2hunter2
  python main.py set-role bob@starlane.dev EDITOR
  python main.py list-users
  python main.py issue-token admin@starlane.dev

Reads the same settings as the API (DATABASE_URL, SECRET_KEY, ...). A role
change takes effect for tokens issued afterwards; tokens already handed out
keep their role until they expire.
"""

import argparse
import getpass
import logging
import sys
from typing import Optional

from sqlalchemy.exc import IntegrityError

from auth.models import Role, User
from auth.passwords import hash_password
from auth.store import UserStore
from auth.tokens import get_token_codec, utcnow
from core.config import get_settings

logger = logging.getLogger("starlane.cli")

_MIN_PASSWORD_LENGTH = 8


def _read_password(given: Optional[str]) -> Optional[str]:
    if given is not None:
        return given
    first = getpass.getpass("Password: ")
    second = getpass.getpass("Repeat password: ")
    if first != second:
        print("  [!] Passwords do not match.")
        return None
    return first


def cmd_create_user(store: UserStore, args: argparse.Namespace) -> int:
    password = _read_password(args.password)
    if password is None:
        return 1
    if len(password) < _MIN_PASSWORD_LENGTH:
        print(f"  [!] Password must be at least {_MIN_PASSWORD_LENGTH} characters.")
        return 1
    user = User(
        email=args.email,
        hashed_password=hash_password(password),
        fullname=args.fullname,
        role=Role(args.role),
    )
    try:
        user_id = store.create_user(user)
    except IntegrityError:
        print(f"  [!] A user with email '{args.email}' already exists.")
        return 1
    logger.info("Created user %s (role=%s) from CLI", args.email, args.role)
    print(f"Created user {user_id}: {args.email} ({args.role})")
    return 0


def cmd_set_role(store: UserStore, args: argparse.Namespace) -> int:
    user = store.get_by_identifier(args.email)
    if user is None or not store.update_role(user.id, Role(args.role)):
        print(f"  [!] No user with email '{args.email}'.")
        return 1
    logger.info("Role of %s set to %s from CLI", args.email, args.role)
    print(f"{args.email}: {user.role.value} -> {args.role}")
    return 0


def cmd_list_users(store: UserStore, args: argparse.Namespace) -> int:
    users = store.list_users()
    if not users:
        print("No users.")
        return 0
    width = max(len(u.email) for u in users)
    for u in users:
        print(f"{u.id:>5}  {u.email:<{width}}  {u.role.value:<6}  {u.fullname}")
    return 0


def cmd_issue_token(store: UserStore, args: argparse.Namespace) -> int:
    """Print a token for scripting. Skips the password check: operator-only."""
    user = store.get_by_identifier(args.email)
    if user is None:
        print(f"  [!] No user with email '{args.email}'.")
        return 1
    logger.info("Issued token for %s from CLI", args.email)
    print(get_token_codec().encode(user.id, user.email, user.role, utcnow()))
    return 0


def build_parser() -> argparse.ArgumentParser:
    roles = [r.value for r in Role]
    parser = argparse.ArgumentParser(
        prog="starlane",
        description="Starlane account administration.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create-user", help="Create an account")
    create.add_argument("email")
    create.add_argument("--fullname", default="")
    create.add_argument("--role", choices=roles, default=Role.READER.value)
    create.add_argument("--password", help="Password (prompted when omitted)")
    create.set_defaults(func=cmd_create_user)

    set_role = sub.add_parser("set-role", help="Change an account's role")
    set_role.add_argument("email")
    set_role.add_argument("role", choices=roles)
    set_role.set_defaults(func=cmd_set_role)

    list_users = sub.add_parser("list-users", help="List all accounts")
    list_users.set_defaults(func=cmd_list_users)

    issue = sub.add_parser("issue-token", help="Print a signed token for an account")
    issue.add_argument("email")
    issue.set_defaults(func=cmd_issue_token)

    return parser


def main(argv: Optional[list[str]] = None, store: Optional[UserStore] = None) -> int:
    args = build_parser().parse_args(argv)
    owns_store = store is None
    if store is None:
        store = UserStore(get_settings().database_url)
    try:
        return args.func(store, args)
    finally:
        if owns_store:
            store.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s %(message)s")
    sys.exit(main())
