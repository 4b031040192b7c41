import sqlite3
from datetime import date, datetime, timezone
from decimal import Decimal
from contextlib import contextmanager

from sqlalchemy import bindparam, create_engine, event, text
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from tmv_platform.core.config import get_settings
from tmv_platform.db.schema import metadata
from tmv_platform.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)


def _build_engine(url: str):
    if url.startswith("sqlite"):
        # ISO text for dates, matching what CURRENT_TIMESTAMP stores
        sqlite3.register_adapter(datetime, lambda v: v.isoformat(" "))
        sqlite3.register_adapter(date, lambda v: v.isoformat())
        sqlite3.register_adapter(Decimal, float)

        # One shared in-process connection; used by the test-suite and local runs
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=settings.db_echo,
        )

        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    # pool_size: connections kept ready; max_overflow: extra connections under load
    return create_engine(
        url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=True,
        pool_recycle=3600,
        echo=settings.db_echo,
    )


engine = _build_engine(settings.sqlalchemy_url)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def utcnow() -> datetime:
    """Naive UTC timestamp for DATETIME columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None, microsecond=0)


def as_datetime(value):
    """DATETIME columns come back as datetime objects (MySQL) or ISO strings (SQLite)."""
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


@contextmanager
def get_db_session():
    """
    Context manager for database sessions.

    Everything executed inside the block is one transaction: committed on
    success, rolled back on any exception, connection released either way.

    Usage:
        with get_db_session() as db:
            db.execute(text("SELECT * FROM users"))
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def check_database_connection() -> bool:
    """
    Test if the database is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        with get_db_session() as db:
            result = db.execute(text("SELECT 1 AS test"))
            row = result.fetchone()
            return row[0] == 1
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False


def execute_raw_sql(sql: str, params: dict = None) -> list:
    """
    Execute raw SQL and return results as list of dicts.
    This is useful for complex queries and reports.
    """
    with get_db_session() as db:
        return fetch_all(db, sql, params)


def fetch_all(db: Session, sql: str, params: dict = None) -> list:
    """Run a query inside an open session and return rows as dicts."""
    result = db.execute(text(sql), params or {})
    columns = list(result.keys())
    return [dict(zip(columns, row)) for row in result.fetchall()]


def fetch_one(db: Session, sql: str, params: dict = None):
    """Run a query inside an open session and return the first row as a dict (or None)."""
    result = db.execute(text(sql), params or {})
    row = result.fetchone()
    if row is None:
        return None
    return dict(zip(result.keys(), row))


def fetch_all_in(db: Session, sql: str, ids, params: dict = None) -> list:
    """
    Run a query with an expanding `:ids` list parameter (child rows of many parents).
    Returns [] without touching the database when ids is empty.
    """
    ids = list(ids)
    if not ids:
        return []
    stmt = text(sql).bindparams(bindparam("ids", expanding=True))
    result = db.execute(stmt, {**(params or {}), "ids": ids})
    columns = list(result.keys())
    return [dict(zip(columns, row)) for row in result.fetchall()]


def insert_row(db: Session, sql: str, params: dict) -> int:
    """Execute an INSERT and return the new row's autoincrement id."""
    result = db.execute(text(sql), params)
    return result.lastrowid


def init_db() -> None:
    """Create every table that does not exist yet."""
    metadata.create_all(engine)
    logger.info("Database schema initialized")
