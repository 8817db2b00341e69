"""
Lock or unlock an account. A locked account cannot log in and its outstanding
access tokens fail the per-request session check. Run from project root:
  python -m app.scripts.lock_user USERNAME MINUTES
  python -m app.scripts.lock_user USERNAME --unlock
"""
import argparse
import logging
import sys
from datetime import timedelta

from app.core.config import get_settings
from app.core.database import SessionLocal
from app.services.credential_store import UserStore, utcnow

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Lock or unlock a user account.")
    parser.add_argument("username", help="User name")
    parser.add_argument("minutes", nargs="?", type=int, default=None, help="Lockout duration in minutes")
    parser.add_argument("--unlock", action="store_true", help="Clear an existing lockout")
    args = parser.parse_args(argv)

    if not args.unlock and (args.minutes is None or args.minutes < 1):
        print("Give a lockout duration of at least 1 minute, or --unlock.", file=sys.stderr)
        return 1

    db = SessionLocal()
    try:
        store = UserStore(db, get_settings())
        user = store.find_by_user_name(args.username)
        if user is None:
            print(f"User '{args.username}' not found.", file=sys.stderr)
            return 1
        if args.unlock:
            store.set_lockout_end(user, None)
            store.reset_access_failed(user)
            logger.info("Unlocked user %s", user.user_name)
        else:
            until = utcnow() + timedelta(minutes=args.minutes)
            store.set_lockout_end(user, until)
            logger.info("Locked user %s until %s", user.user_name, until.isoformat())
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
