"""Issue a bearer token for a user.

Usage:
    python scripts/issue_token.py --user-id <user-id> [--minutes 60]
"""
import argparse
from datetime import timedelta

from app.utils.auth import create_access_token


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Issue a bearer token for a user")
    parser.add_argument("--user-id", required=True, help="User ID to put in the token")
    parser.add_argument(
        "--minutes",
        type=int,
        default=None,
        help="Token lifetime in minutes (default: JWT_EXPIRATION_MINUTES)",
    )
    args = parser.parse_args()

    expires = timedelta(minutes=args.minutes) if args.minutes else None
    print(create_access_token(user_id=args.user_id, expires_delta=expires))


if __name__ == "__main__":
    main()
