"""Send the daily or weekly notification digest emails.

Meant to be run by a scheduler, e.g. ``python -m scripts.send_email_digests --frequency daily``.
"""

from __future__ import annotations

import argparse
import logging

from marketplace_messaging.application.use_cases.notifications import send_email_digests
from marketplace_messaging.config import get_settings
from marketplace_messaging.domain.errors import MessagingError
from marketplace_messaging.infrastructure.database import SessionLocal, initialize_database


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Email every opted-in user a summary of their unread notifications.",
    )
    parser.add_argument(
        "--frequency",
        choices=("daily", "weekly"),
        required=True,
        help="Which group of users to serve",
    )
    return parser.parse_args()


def main() -> None:
    """Run one digest pass for the requested frequency."""

    args = parse_args()
    logging.basicConfig(level=get_settings().log_level.upper())

    initialize_database()

    session = SessionLocal()
    try:
        sent = send_email_digests(session, frequency=args.frequency)
    except MessagingError as exc:
        session.rollback()
        raise SystemExit(f"Digest run failed: {exc.message}") from exc
    finally:
        session.close()

    print(f"Sent {sent} {args.frequency} digest email(s).")


if __name__ == "__main__":
    main()
