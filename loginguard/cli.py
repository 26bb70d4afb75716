"""Operator commands for the login attempt log.

Usage:
  loginguard status 203.0.113.9 bob
  loginguard unlock 203.0.113.9 bob
  loginguard purge
  loginguard events --type distributed_brute_force_detected --limit 20

The database comes from DATABASE_URL (or .env), same as the app.
"""

from __future__ import annotations

import argparse
import sys
from datetime import timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from loginguard.config import get_settings
from loginguard.core import StorageError, get_logger, setup_logging, utcnow
from loginguard.db import session_scope
from loginguard.db.repositories import list_security_events
from loginguard.limiter import LoginGuard, SqlAttemptStore, clean_username, normalize_ip

logger = get_logger(__name__)

EXIT_LOCKED = 2


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="loginguard", description="LoginGuard admin")
    parser.add_argument("--quiet", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    status = sub.add_parser("status", help="Show whether an ip/username pair is locked")
    status.add_argument("ip_address")
    status.add_argument("username")

    unlock = sub.add_parser("unlock", help="Clear failures for one ip/username pair")
    unlock.add_argument("ip_address")
    unlock.add_argument("username")

    sub.add_parser("purge", help="Delete attempts past the retention period")

    events = sub.add_parser("events", help="List recent security events")
    events.add_argument("--type", dest="event_type")
    events.add_argument("--limit", type=int, default=50)

    return parser.parse_args(argv)


def exit_with(message: str, code: int = 1) -> None:
    print(message, file=sys.stderr)
    raise SystemExit(code)


def _guard(db: Session) -> LoginGuard:
    return LoginGuard(SqlAttemptStore(db), get_settings().login_limit_config())


def _ip_argument(value: str) -> str:
    ip_address = normalize_ip(value)
    if ip_address is None:
        exit_with(f"Not an IP address: {value}")
    return ip_address


def cmd_status(db: Session, args: argparse.Namespace) -> int:
    # Raises on an unreadable store instead of failing open.
    decision = _guard(db).evaluate(_ip_argument(args.ip_address), args.username)
    if decision.allowed:
        print("allowed")
        return 0
    print(
        f"locked layer={decision.layer} attempts={decision.attempts} "
        f"retry_after_minutes={decision.retry_after_minutes}"
    )
    return EXIT_LOCKED


def cmd_unlock(db: Session, args: argparse.Namespace) -> int:
    ip_address = _ip_argument(args.ip_address)
    deleted = SqlAttemptStore(db).delete_pair(ip_address, clean_username(args.username))
    logger.info("Pair unlocked from CLI", data={"deleted": deleted})
    if not args.quiet:
        print(f"Cleared {deleted} attempt(s)")
    return 0


def cmd_purge(db: Session, args: argparse.Namespace) -> int:
    retention = timedelta(hours=get_settings().login_limit_config().retention_hours)
    purged = SqlAttemptStore(db).purge_older_than(utcnow() - retention)
    if not args.quiet:
        print(f"Purged {purged} attempt(s)")
    return 0


def cmd_events(db: Session, args: argparse.Namespace) -> int:
    for entry in list_security_events(db, event_type=args.event_type, limit=args.limit):
        print(
            f"{entry.timestamp:%Y-%m-%d %H:%M:%S} {entry.severity:8} "
            f"{entry.event_type} ip={entry.ip_address or '-'} "
            f"user={entry.username or '-'} x{entry.occurrence_count}"
        )
    return 0


COMMANDS = {
    "status": cmd_status,
    "unlock": cmd_unlock,
    "purge": cmd_purge,
    "events": cmd_events,
}


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    settings = get_settings()
    setup_logging(
        level="WARNING" if args.quiet else settings.log_level, stream=sys.stderr
    )

    try:
        with session_scope() as db:
            return COMMANDS[args.command](db, args)
    except (StorageError, SQLAlchemyError) as exc:
        exit_with(f"Database error: {exc}")
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
