#!/usr/bin/env python3
"""
Create every table of the platform schema (existing tables are left alone).
Usage: python scripts/init_db.py
"""
import sys
sys.path.insert(0, '.')

from tmv_platform.core.config import get_settings
from tmv_platform.db.database import init_db
from tmv_platform.db.schema import metadata


def main():
    settings = get_settings()
    print(f"Initializing schema on {settings.masked_url}")
    init_db()
    print(f"Done: {len(metadata.tables)} tables checked/created")


if __name__ == "__main__":
    main()
