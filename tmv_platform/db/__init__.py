"""
Database module - relational storage (MySQL in production, SQLite in tests).
"""
from tmv_platform.db.database import get_db_session, check_database_connection, init_db

__all__ = [
    "get_db_session",
    "check_database_connection",
    "init_db"
]
