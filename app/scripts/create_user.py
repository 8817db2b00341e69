"""
Create a user (e.g. first administrator). Run from project root:
  python -m app.scripts.create_user USERNAME EMAIL PASSWORD FIRST_NAME [--last-name NAME] [--role ROLE]
Example:
  python -m app.scripts.create_user admin admin@example.com 'S3cure!pass' Ada --role Administrator
"""
import argparse
import logging
import sys

from app.core.config import get_settings
from app.core.database import SessionLocal
from app.models import RoleNames, User
from app.services.credential_store import UserStore
from app.services.errors import ServiceError

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a user account with a role.")
    parser.add_argument("username", help="User name (1-256 chars, unique, case-insensitive)")
    parser.add_argument("email", help="Email address (unique)")
    parser.add_argument("password", help="Password (8+ chars, digit, upper, lower, symbol)")
    parser.add_argument("first_name", help="First name")
    parser.add_argument("--last-name", default=None, help="Last name")
    parser.add_argument("--role", default=RoleNames.USER, choices=list(RoleNames.ALL))
    args = parser.parse_args(argv)

    settings = get_settings()
    db = SessionLocal()
    try:
        store = UserStore(db, settings)
        store.ensure_roles(RoleNames.ALL)
        user = User(
            user_name=args.username,
            email=args.email,
            first_name=args.first_name,
            last_name=args.last_name,
            email_confirmed=True,
        )
        store.create(user, args.password, commit=False)
        store.assign_role(user, args.role, commit=False)
        store.commit()
    except ServiceError as e:
        db.rollback()
        for message in e.messages:
            print(message, file=sys.stderr)
        return 1
    finally:
        db.close()
    print(f"Created user '{args.username}' with role '{args.role}'.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
