"""
Operator CLI: seed a user account (e.g. an admin) without going through the API.

    auth-service-create-user --email admin@example.com --role admin
    (password is prompted unless --password is given)

Guardrails:
- Refuses to run against prod unless --allow-prod is passed
- Never prints the password or its hash
"""
from __future__ import annotations

import argparse
import getpass
import logging
import sys
from typing import Sequence

from auth_service.core.config import settings
from auth_service.core.database import Database
from auth_service.core.log_config import configure_logging
from auth_service.services.users import EmailAlreadyRegisteredError, create_user

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Create a user in the users table.")
    parser.add_argument("--email", required=True)
    parser.add_argument("--name", default=None)
    parser.add_argument("--role", default="user")
    parser.add_argument("--password", default=None, help="Omit to be prompted.")
    parser.add_argument("--database-url", default=None, help="Defaults to the configured database.")
    parser.add_argument("--allow-prod", action="store_true", help="Permit running with ENV=prod.")
    return parser


def create_user_main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(settings.LOG_LEVEL)

    if settings.is_prod and not args.allow_prod:
        print("Refusing to run with ENV=prod without --allow-prod.", file=sys.stderr)
        return 2

    password = args.password or getpass.getpass("Password: ")
    if not password:
        print("Password must not be empty.", file=sys.stderr)
        return 2

    database = Database(args.database_url or settings.database_url)
    database.init()
    try:
        with database.session() as db:
            user = create_user(db, email=args.email, password=password, name=args.name, role=args.role)
    except EmailAlreadyRegisteredError:
        print(f"Email already registered: {args.email}", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(f"Invalid input: {exc}", file=sys.stderr)
        return 2
    finally:
        database.dispose()

    print(f"Created user id={user.id} email={user.email} role={user.role}")
    return 0


if __name__ == "__main__":
    raise SystemExit(create_user_main())
