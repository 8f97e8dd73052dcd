# backend/db.py
# Database abstraction layer supporting PostgreSQL (production) and SQLite (dev)
#
# Queries are written with named parameters (":user_id"), which both sqlite3
# and SQLAlchemy text() accept, so the same SQL runs on either backend.

import sqlite3
from contextlib import contextmanager
from pathlib import Path as FsPath
from typing import Any, Dict, Generator, List, Optional, Union
from urllib.parse import urlparse

from sqlalchemy import create_engine, pool, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

try:
    from backend import config
except ModuleNotFoundError:
    import config

IS_POSTGRES = config.IS_POSTGRES

# Errors the route layer translates into HTTP 500
DB_ERRORS = (sqlite3.Error, SQLAlchemyError)

DbConnection = Union[sqlite3.Connection, Connection]

# Global engine (SQLAlchemy) or None for SQLite
_engine: Optional[Engine] = None


def init_engine() -> None:
    """Initialize SQLAlchemy engine for PostgreSQL if DATABASE_URL is set."""
    global _engine

    if not IS_POSTGRES:
        _engine = None
        print("[DB] Using SQLite (local dev mode)")
        return

    parsed = urlparse(config.DATABASE_URL)
    if not parsed.scheme or not parsed.netloc:
        raise ValueError(f"Invalid DATABASE_URL: {config.DATABASE_URL[:20]}...")

    _engine = create_engine(
        config.DATABASE_URL,
        poolclass=pool.QueuePool,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        echo=False,
    )

    print(f"[DB] Using PostgreSQL ({parsed.hostname})")


def sqlite_path() -> str:
    """Resolve DATABASE_PATH relative to the backend directory (absolute paths pass through)."""
    return str(FsPath(__file__).resolve().parent / config.DATABASE_PATH)


@contextmanager
def get_db_connection() -> Generator[DbConnection, None, None]:
    """
    Context manager for database connections.
    Yields sqlite3.Connection for SQLite or sqlalchemy.Connection for Postgres.
    """
    if IS_POSTGRES:
        if _engine is None:
            init_engine()

        with _engine.connect() as conn:
            yield conn
    else:
        conn = sqlite3.connect(sqlite_path(), check_same_thread=False)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()


def execute_query(
    conn: DbConnection,
    query: str,
    params: Optional[Dict[str, Any]] = None,
) -> Any:
    """
    Execute a query with named parameters.

    Returns:
        Cursor (SQLite) or CursorResult (PostgreSQL)
    """
    if IS_POSTGRES:
        return conn.execute(text(query), params or {})

    cur = conn.cursor()
    return cur.execute(query, params or {})


def row_to_dict(row) -> Dict[str, Any]:
    """
    Convert a sqlite3.Row or SQLAlchemy Row to a plain dict ({} for None).
    """
    if row is None:
        return {}
    if hasattr(row, "_mapping"):
        return dict(row._mapping)
    return dict(row)


def fetch_one(conn: DbConnection, query: str, params: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
    row = execute_query(conn, query, params).fetchone()
    return row_to_dict(row) if row is not None else None


def fetch_all(conn: DbConnection, query: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    return [row_to_dict(row) for row in execute_query(conn, query, params).fetchall()]


def commit(conn: DbConnection) -> None:
    """Commit transaction."""
    conn.commit()


def rollback(conn: DbConnection) -> None:
    """Rollback transaction."""
    conn.rollback()


# Initialize engine on module import if Postgres mode
if IS_POSTGRES and _engine is None:
    init_engine()
