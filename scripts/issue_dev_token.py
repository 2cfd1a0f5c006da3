"""Mint a bearer token for local development against the messaging API."""

from __future__ import annotations

import argparse
from datetime import timedelta

from marketplace_messaging.infrastructure.security import create_access_token


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Create a signed token using SECRET_KEY, as the identity provider would.",
    )
    parser.add_argument("user_id", help="Opaque user id placed in the 'sub' claim")
    parser.add_argument("--name", default=None, help="Display name shown to the other party")
    parser.add_argument("--email", default=None, help="Email address used for notification emails")
    parser.add_argument(
        "--minutes",
        type=int,
        default=None,
        help="Lifetime in minutes (default: ACCESS_TOKEN_EXPIRE_MINUTES)",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    if not args.user_id.strip():
        raise SystemExit("The user id cannot be empty.")
    if args.minutes is not None and args.minutes <= 0:
        raise SystemExit("--minutes must be positive.")

    expires_delta = timedelta(minutes=args.minutes) if args.minutes else None
    print(
        create_access_token(
            args.user_id.strip(),
            name=args.name,
            email=args.email,
            expires_delta=expires_delta,
        )
    )


if __name__ == "__main__":
    main()
