#!/usr/bin/env python3
"""
Connection Check Script

Run this to verify the database and the payment API are reachable.
Usage: python scripts/check_connections.py
"""
import sys
sys.path.insert(0, '.')

from tmv_platform.core.config import get_settings
from tmv_platform.db.database import check_database_connection, execute_raw_sql
from tmv_platform.services.yoco_client import get_yoco_client


def main():
    settings = get_settings()
    print("=" * 50)
    print("TMV BUSINESS PLATFORM - CONNECTION CHECK")
    print("=" * 50)

    print("\n[1] Testing database...")
    print(f"    URL: {settings.masked_url}")
    if check_database_connection():
        print("    Database: CONNECTED")
        try:
            counts = execute_raw_sql("""
                SELECT
                    (SELECT COUNT(*) FROM users) AS users,
                    (SELECT COUNT(*) FROM jobs) AS jobs,
                    (SELECT COUNT(*) FROM transactions) AS transactions
            """)[0]
            print(f"    Rows: {counts['users']} users, {counts['jobs']} jobs, {counts['transactions']} transactions")
        except Exception as e:
            print(f"    Tables not readable (run scripts/init_db.py?): {e}")
    else:
        print("    Database: FAILED")

    print("\n[2] Testing Yoco API...")
    if settings.yoco_secret_key:
        print(f"    Base URL: {settings.yoco_api_url}")
        if get_yoco_client().test_connection():
            print("    Yoco: REACHABLE")
        else:
            print("    Yoco: FAILED")
    else:
        print("    Yoco: secret key not configured (skipped)")

    print("\n" + "=" * 50)
    print("Connection check complete!")
    print("=" * 50)


if __name__ == "__main__":
    main()
