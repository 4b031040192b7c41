#!/usr/bin/env python3
"""
Promote an existing employer account to management.

The account gets role 'management' on both the user and its employer
profile, plus every permission.
Usage: python scripts/promote_manager.py manager@example.com
"""
import argparse
import sys
sys.path.insert(0, '.')

from fastapi import HTTPException

from tmv_platform.db.database import get_db_session
from tmv_platform.services.account_service import promote_to_management


def main():
    parser = argparse.ArgumentParser(description="Promote an employer account to management")
    parser.add_argument("email", help="Email of the employer account")
    args = parser.parse_args()

    try:
        with get_db_session() as db:
            user_id = promote_to_management(db, args.email)
    except HTTPException as e:
        print(f"Failed: {e.detail}")
        sys.exit(1)

    print(f"User {user_id} ({args.email}) is now a management account")


if __name__ == "__main__":
    main()
