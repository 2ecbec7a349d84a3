#!/usr/bin/env python3
"""
SalesDesk -- account administration for the sales management system.

User accounts are created out of band; the web application only
authenticates them. This CLI is that out-of-band path.

Usage:
  python main.py create-user alice --role user --full-name "Alice Doe" --email alice@example.com
  python main.py set-status bob inactive
  python main.py reset-password alice
  python main.py roles

The password for create-user is read with getpass (never from argv, where it
would end up in shell history). Database and SMTP settings come from the
environment / .env, see core/config.py.
"""

import argparse
import getpass
import sys

from sqlalchemy.exc import IntegrityError

from auth.mailer import SmtpMailer
from auth.models import Role, User, UserStatus
from auth.passwords import hash_password
from auth.permissions import Authorizer
from auth.service import Authenticator
from auth.store import CredentialStore
from core.config import get_settings

_MIN_PASSWORD_LEN = 8


def _read_new_password() -> str:
    """Prompt twice for a password. Returns "" if the entries are unusable."""
    first = getpass.getpass("  Password: ")
    if len(first) < _MIN_PASSWORD_LEN:
        print(f"  [!] Password must be at least {_MIN_PASSWORD_LEN} characters.")
        return ""
    if getpass.getpass("  Repeat password: ") != first:
        print("  [!] Passwords do not match.")
        return ""
    return first


def cmd_create_user(store: CredentialStore, args: argparse.Namespace) -> int:
    password = _read_new_password()
    if not password:
        return 1
    user = User(
        username=args.username,
        password_hash=hash_password(password),
        role=args.role,
        full_name=args.full_name or "",
        email=args.email,
    )
    try:
        user_id = store.create_user(user)
    except IntegrityError:
        print(f"  [!] A user named '{args.username}' already exists.")
        return 1
    print(f"  Created user '{args.username}' (id={user_id}, role={args.role}).")
    return 0


def cmd_set_status(store: CredentialStore, args: argparse.Namespace) -> int:
    user = store.get_user_by_username(args.username)
    if user is None:
        print(f"  [!] No user named '{args.username}'.")
        return 1
    store.set_status(user.id, UserStatus(args.status))
    print(f"  '{args.username}' is now {args.status}.")
    return 0


def cmd_reset_password(store: CredentialStore, args: argparse.Namespace) -> int:
    settings = get_settings()
    authenticator = Authenticator(store, SmtpMailer(settings), settings)
    if authenticator.reset_password(args.username):
        print(f"  New password mailed to the owner of '{args.username}'.")
        return 0
    # Same message for every cause, matching the HTTP endpoint.
    print(f"  [!] Password for '{args.username}' was not reset or could not be delivered. See the log.")
    return 1


def cmd_roles(store: CredentialStore, args: argparse.Namespace) -> int:
    authorizer = Authorizer()
    for role in Role:
        print(f"\n{role.value}")
        print("─" * 40)
        print("  permissions: " + ", ".join(sorted(authorizer.permissions_for(role.value))))
        print("  modules:     " + ", ".join(sorted(authorizer.modules_for(role.value))))
    print()
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="salesdesk",
        description="Account administration for SalesDesk.",
        epilog=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--database-url",
        default=None,
        help="SQLAlchemy URL of the credential database (default: DATABASE_URL setting).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create-user", help="Create a user account (prompts for the password).")
    create.add_argument("username")
    create.add_argument("--role", choices=[r.value for r in Role], default=Role.user.value)
    create.add_argument("--full-name", default="")
    create.add_argument("--email", default=None)
    create.set_defaults(func=cmd_create_user)

    status = sub.add_parser("set-status", help="Activate or deactivate an account.")
    status.add_argument("username")
    status.add_argument("status", choices=[s.value for s in UserStatus])
    status.set_defaults(func=cmd_set_status)

    reset = sub.add_parser("reset-password", help="Mail a new random password to an active user.")
    reset.add_argument("username")
    reset.set_defaults(func=cmd_reset_password)

    roles = sub.add_parser("roles", help="Print the permission and module table for every role.")
    roles.set_defaults(func=cmd_roles)

    args = parser.parse_args(argv)
    store = CredentialStore(args.database_url)
    try:
        return args.func(store, args)
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
