#!/usr/bin/env python3
"""
Property auth -- admin command line.

Usage:
  python main.py seed-roles
  python main.py seed-roles --role ROLE_MANAGER
  python main.py list-roles
  python main.py show-user alice@example.com
  python main.py --db-url sqlite:///other.db list-roles

Environment variables:
  DATABASE_URL  SQLAlchemy URL of the auth database (default: auth/property_auth.db).
  SECRET_KEY    Required unless DEBUG=true (see core/config.py).

The API seeds Settings.seed_roles on every startup; seed-roles exists for
preparing a database before the first deploy or adding extra roles.
"""

import argparse
from typing import Optional

from auth.models import PublicUserView
from auth.store import RoleStore, UserStore, create_store_engine
from core.config import get_settings


def _print_user(view: PublicUserView) -> None:
    print(f"  id:            {view.id}")
    print(f"  name:          {view.name}")
    print(f"  email:         {view.email}")
    print(f"  roles:         {', '.join(view.roles) or '-'}")
    print(f"  phone:         {view.phone or '-'}")
    print(f"  profile image: {view.profile_image or '-'}")


def main(argv: Optional[list[str]] = None) -> int:
    settings = get_settings()

    parser = argparse.ArgumentParser(
        prog="property-auth",
        description="Admin commands for the property auth database.",
    )
    parser.add_argument(
        "--db-url",
        default=settings.database_url,
        metavar="URL",
        help="SQLAlchemy database URL (default: DATABASE_URL or auth/property_auth.db)",
    )
    sub = parser.add_subparsers(dest="command")

    seed = sub.add_parser("seed-roles", help="Insert the configured seed roles if missing")
    seed.add_argument(
        "--role",
        action="append",
        default=[],
        metavar="NAME",
        help="Extra full role name to seed, e.g. ROLE_MANAGER (repeatable)",
    )
    sub.add_parser("list-roles", help="List all roles")
    show = sub.add_parser("show-user", help="Show the public view of a user")
    show.add_argument("email")

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 1

    engine = create_store_engine(args.db_url)
    try:
        if args.command == "seed-roles":
            names = list(settings.seed_roles) + args.role
            inserted = RoleStore(engine).seed(names)
            print(f"  {inserted} role(s) inserted, {len(set(names)) - inserted} already present.")
            return 0

        if args.command == "list-roles":
            roles = RoleStore(engine).list_roles()
            if not roles:
                print("  No roles. Run: python main.py seed-roles")
                return 1
            for role in roles:
                print(f"  {role.id:>4}  {role.name}")
            return 0

        user = UserStore(engine).find_by_email(args.email)
        if user is None:
            print(f"  [!] No user registered as '{args.email}'.")
            return 1
        _print_user(PublicUserView.from_user(user))
        return 0
    finally:
        engine.dispose()


if __name__ == "__main__":
    raise SystemExit(main())
