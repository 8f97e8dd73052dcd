"""
Shared fixtures for backend tests.

Each test gets a fresh SQLite file seeded with one course, one group and a
handful of users and assets.
"""

import os
import tempfile

# Point the app at a throwaway DB before backend.main runs its import-time migrations
os.environ.setdefault("DATABASE_PATH", os.path.join(tempfile.mkdtemp(), "import.db"))

import pytest
from fastapi.testclient import TestClient

from backend import config
from backend.auth_context import AuthContext, require_auth_context
from backend.db import commit, execute_query, get_db_connection
from backend.migrate import run_migrations
from backend.rbac import effective_capabilities

SEED_STATEMENTS = [
    "INSERT INTO accounts (id, name, parent_account_id, root_account_id) VALUES (1, 'Root Account', NULL, NULL)",
    "INSERT INTO accounts (id, name, parent_account_id, root_account_id) VALUES (2, 'Science Dept', 1, 1)",
    "INSERT INTO courses (id, name, account_id, root_account_id) VALUES (10, 'Biology 101', 2, 1)",
    "INSERT INTO groups (id, name, context_type, context_id, root_account_id) VALUES (20, 'Study Buddies', 'Course', 10, 1)",
    "INSERT INTO users (id, name, email, role, is_active) VALUES (1, 'Tina Teacher', 'tina@example.edu', 'teacher', 1)",
    "INSERT INTO users (id, name, email, role, is_active) VALUES (2, 'Sam Student', 'sam@example.edu', 'student', 1)",
    "INSERT INTO users (id, name, email, role, is_active) VALUES (3, 'Olive Other', 'olive@example.edu', 'student', 1)",
    "INSERT INTO users (id, name, email, role, is_active) VALUES (4, 'Oscar Observer', 'oscar@example.edu', 'observer', 1)",
    "INSERT INTO users (id, name, email, role, is_active) VALUES (5, 'Gone Away', 'gone@example.edu', 'student', 0)",
    "INSERT INTO user_profiles (id, user_id) VALUES (30, 2)",
    "INSERT INTO assessment_questions (id, name, context_type, context_id) VALUES (40, 'Q1', 'Course', 10)",
    "INSERT INTO assignments (id, context_type, context_id, title) VALUES (100, 'Course', 10, 'Lab Report')",
    "INSERT INTO attachments (id, context_type, context_id, title) VALUES (200, 'Course', 10, 'syllabus.pdf')",
    "INSERT INTO attachments (id, context_type, context_id, title) VALUES (201, 'Group', 20, 'notes.txt')",
    "INSERT INTO wiki_pages (id, context_type, context_id, title) VALUES (300, 'Course', 10, 'Welcome')",
    "INSERT INTO quizzes (id, context_type, context_id, title) VALUES (400, 'Course', 10, 'Quiz 1')",
    "INSERT INTO context_modules (id, context_type, context_id, name) VALUES (500, 'Course', 10, 'Week 1')",
    "INSERT INTO discussion_topics (id, context_type, context_id, title) VALUES (600, 'Group', 20, 'Meetup')",
    "INSERT INTO collaborations (id, context_type, context_id, title) VALUES (700, 'Course', 10, NULL)",
    "INSERT INTO enrollments (id, user_id, course_id, type) VALUES (800, 2, 10, 'StudentEnrollment')",
]


@pytest.fixture
def db(tmp_path, monkeypatch):
    """Fresh migrated + seeded database for each test."""
    monkeypatch.setattr(config, "DATABASE_PATH", str(tmp_path / "test.db"))
    run_migrations()

    with get_db_connection() as conn:
        for statement in SEED_STATEMENTS:
            execute_query(conn, statement)
        commit(conn)

    yield


@pytest.fixture
def conn(db):
    with get_db_connection() as connection:
        yield connection


@pytest.fixture
def client(db):
    from backend.main import app

    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def login_as(client):
    """Override the auth dependency with a user of the given role."""
    from backend.main import app

    def _login_as(user_id: int, role: str) -> AuthContext:
        ctx = AuthContext(user_id=user_id, role=role, capabilities=effective_capabilities(role))
        app.dependency_overrides[require_auth_context] = lambda: ctx
        return ctx

    return _login_as
