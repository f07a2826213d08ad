#!/usr/bin/env python3
"""Print a bearer token for the playtime server.

Usage:
  python scripts/issue_token.py Steve            # player token (permission level 0)
  python scripts/issue_token.py Admin --admin    # admin token (ADMIN_PERMISSION_LEVEL)
  python scripts/issue_token.py Mod --perm 2 --minutes 60

The token is signed with JWT_SECRET; export the same value for the server.
"""
from __future__ import annotations

import argparse

from pvdtime.auth.security import create_access_token
from pvdtime.core.config import ADMIN_PERMISSION_LEVEL


def main() -> None:
    parser = argparse.ArgumentParser(description="Issue a bearer token for the playtime API.")
    parser.add_argument("subject", help="Name of the command source")
    parser.add_argument("--admin", action="store_true", help="Grant the admin permission level")
    parser.add_argument("--perm", type=int, default=0, help="Explicit permission level")
    parser.add_argument("--minutes", type=int, default=None, help="Token lifetime in minutes")
    args = parser.parse_args()

    perm = ADMIN_PERMISSION_LEVEL if args.admin else args.perm
    print(create_access_token(args.subject, permission_level=perm, expires_minutes=args.minutes))


if __name__ == "__main__":
    main()
