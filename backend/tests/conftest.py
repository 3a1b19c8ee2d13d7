"""
Shared pytest fixtures for backend tests.
Each test gets its own SQLite file so tests stay isolated.
"""
import pytest
import sqlite3
import sys
import os

# Add backend to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import database

USER = "user-1"
OTHER_USER = "user-2"


@pytest.fixture
def test_db(monkeypatch, tmp_path):
    """
    Create an isolated test database for each test.
    Uses a temp file (not :memory:) because database.py opens new connections per operation.
    """
    db_path = str(tmp_path / "test.db")
    monkeypatch.setattr(database, "DATABASE_PATH", db_path)
    monkeypatch.setattr(database, "init_db", lambda: None)

    # Create tables directly (skip alembic for tests); mirrors migrations 001-003
    conn = sqlite3.connect(db_path)
    conn.executescript("""
        CREATE TABLE tasks (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            title TEXT NOT NULL,
            category TEXT NOT NULL DEFAULT 'T',
            priority INTEGER,
            status TEXT NOT NULL DEFAULT 'active',
            resolved_at TEXT,
            due_date TEXT,
            due_time TEXT,
            is_recurring INTEGER NOT NULL DEFAULT 0,
            recurrence_rule TEXT,
            recurrence_parent_id TEXT,
            recurring_streak INTEGER NOT NULL DEFAULT 0,
            parent_task_id TEXT,
            created_at TEXT NOT NULL,
            renegotiation_count INTEGER NOT NULL DEFAULT 0,
            original_due_date TEXT,
            last_renegotiated_at TEXT,
            CHECK ((status = 'active') = (resolved_at IS NULL))
        );

        CREATE UNIQUE INDEX idx_tasks_series_due
            ON tasks(user_id, recurrence_parent_id, due_date);

        CREATE TABLE reminders (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            task_id TEXT NOT NULL,
            remind_at TEXT,
            dismissed_at TEXT,
            created_at TEXT NOT NULL
        );

        CREATE TABLE task_renegotiations (
            id TEXT PRIMARY KEY,
            task_id TEXT NOT NULL,
            user_id TEXT NOT NULL,
            action TEXT NOT NULL,
            from_due_date TEXT,
            to_due_date TEXT,
            reason_code TEXT NOT NULL,
            reason_text TEXT,
            split_into_task_ids TEXT,
            created_at TEXT NOT NULL
        );
    """)
    conn.commit()
    conn.close()

    yield db_path


@pytest.fixture
def app_client(test_db, monkeypatch):
    """
    Create a test client for the FastAPI app.
    Rate limiters are replaced with fresh ones so tests don't share counters.
    """
    from fastapi.testclient import TestClient
    import main
    from rate_limiter import RateLimiter

    # Skip alembic in tests - tables already created by test_db fixture
    monkeypatch.setattr(database, "init_db", lambda: None)

    tasks_limiter = RateLimiter(60, 1000)
    renegotiation_limiter = RateLimiter(60, 1000)
    main.app.dependency_overrides[main.get_tasks_rate_limiter] = lambda: tasks_limiter
    main.app.dependency_overrides[main.get_renegotiation_rate_limiter] = lambda: renegotiation_limiter

    with TestClient(main.app, headers={"X-User-Id": USER}) as client:
        yield client

    main.app.dependency_overrides.clear()
