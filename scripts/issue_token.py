#!/usr/bin/env python3
"""
Issue a bearer token for an existing user.

The API verifies tokens but has no login endpoint; operators mint them here.
Usage: python scripts/issue_token.py admin@collegeplacement.com [--minutes 60]
"""
import argparse
import sys
from datetime import timedelta
sys.path.insert(0, '.')

from app.core.auth import create_access_token
from app.services.user_service import get_user_service


def main():
    parser = argparse.ArgumentParser(description="Issue a JWT for a user")
    parser.add_argument("email", help="Email of an existing user")
    parser.add_argument("--minutes", type=int, default=None, help="Token lifetime (defaults to settings)")
    args = parser.parse_args()

    user = get_user_service().get_by_email(args.email)
    if not user:
        print(f"No user with email {args.email}")
        sys.exit(1)
    if not user.get("is_active", True):
        print(f"User {args.email} is deactivated")
        sys.exit(1)

    expires = timedelta(minutes=args.minutes) if args.minutes else None
    token = create_access_token({"sub": str(user["_id"]), "role": user["role"]}, expires)
    print(token)


if __name__ == "__main__":
    main()
