# backend/migrate.py
# Database migration module for PostgreSQL and SQLite
# Run: python -m backend.migrate

import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from backend.contexts import ASSET_TYPES
from backend.db import IS_POSTGRES, commit, execute_query, get_db_connection


def run_migrations() -> None:
    """
    Run all database migrations (idempotent).
    Creates tables and indexes if missing. Safe to run multiple times.
    """
    print("[MIGRATE] Starting database migrations...")

    with get_db_connection() as conn:
        if IS_POSTGRES:
            print("[MIGRATE] Running PostgreSQL migrations...")
            _create_tables(conn, pk="SERIAL PRIMARY KEY", ts="TIMESTAMP", boolean="BOOLEAN DEFAULT TRUE")
        else:
            print("[MIGRATE] Running SQLite migrations...")
            _create_tables(conn, pk="INTEGER PRIMARY KEY AUTOINCREMENT", ts="TEXT", boolean="INTEGER DEFAULT 1")

        commit(conn)

    print("[MIGRATE] All migrations complete!")


def _create_tables(conn, pk: str, ts: str, boolean: str) -> None:
    # Contexts
    execute_query(conn, f"""
        CREATE TABLE IF NOT EXISTS accounts (
            id {pk},
            name TEXT NOT NULL,
            parent_account_id INTEGER,
            root_account_id INTEGER
        )
    """)
    execute_query(conn, f"""
        CREATE TABLE IF NOT EXISTS courses (
            id {pk},
            name TEXT NOT NULL,
            account_id INTEGER,
            root_account_id INTEGER
        )
    """)
    execute_query(conn, f"""
        CREATE TABLE IF NOT EXISTS groups (
            id {pk},
            name TEXT NOT NULL,
            context_type TEXT,
            context_id INTEGER,
            root_account_id INTEGER
        )
    """)
    execute_query(conn, f"""
        CREATE TABLE IF NOT EXISTS users (
            id {pk},
            name TEXT,
            email TEXT,
            role TEXT DEFAULT 'student',
            is_active {boolean}
        )
    """)
    print("[MIGRATE] Ensured context tables")

    # Owners that are redirected to a real context when logging
    execute_query(conn, f"""
        CREATE TABLE IF NOT EXISTS user_profiles (
            id {pk},
            user_id INTEGER NOT NULL
        )
    """)
    execute_query(conn, f"""
        CREATE TABLE IF NOT EXISTS assessment_questions (
            id {pk},
            name TEXT,
            context_type TEXT,
            context_id INTEGER
        )
    """)

    # Content assets, one table per type
    for asset_type in ASSET_TYPES.values():
        execute_query(conn, f"""
            CREATE TABLE IF NOT EXISTS {asset_type.table} (
                id {pk},
                context_type TEXT,
                context_id INTEGER,
                {asset_type.label_column} TEXT
            )
        """)
        execute_query(
            conn,
            f"CREATE INDEX IF NOT EXISTS idx_{asset_type.table}_context ON {asset_type.table}(context_type, context_id)",
        )
    execute_query(conn, f"""
        CREATE TABLE IF NOT EXISTS enrollments (
            id {pk},
            user_id INTEGER NOT NULL,
            course_id INTEGER NOT NULL,
            type TEXT DEFAULT 'StudentEnrollment'
        )
    """)
    print("[MIGRATE] Ensured asset tables")

    execute_query(conn, f"""
        CREATE TABLE IF NOT EXISTS asset_user_accesses (
            id {pk},
            user_id INTEGER NOT NULL,
            context_type TEXT,
            context_id INTEGER,
            asset_code TEXT,
            asset_group_code TEXT,
            asset_category TEXT,
            membership_type TEXT,
            view_score INTEGER,
            participate_score INTEGER,
            action_level TEXT,
            display_name TEXT,
            last_access {ts},
            root_account_id INTEGER,
            created_at {ts},
            updated_at {ts}
        )
    """)
    execute_query(
        conn,
        "CREATE INDEX IF NOT EXISTS idx_asset_user_accesses_lookup "
        "ON asset_user_accesses(user_id, asset_code, context_type, context_id)",
    )
    execute_query(
        conn,
        "CREATE INDEX IF NOT EXISTS idx_asset_user_accesses_context "
        "ON asset_user_accesses(context_type, context_id)",
    )
    print("[MIGRATE] Ensured asset_user_accesses table and indexes")


if __name__ == "__main__":
    run_migrations()
