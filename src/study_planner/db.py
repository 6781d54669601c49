"""Database initialization and key/value access for the local store."""
import os
import sqlite3
from pathlib import Path

DEFAULT_DB_PATH = os.getenv(
    "STUDY_PLANNER_DB", str(Path.home() / ".study_planner" / "planner.db")
)

SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection with row factory enabled."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating the store table if it doesn't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()


def get_value(db_path: str, key: str) -> str | None:
    conn = get_connection(db_path)
    try:
        row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
    finally:
        conn.close()
    return row["value"] if row else None


def set_value(db_path: str, key: str, value: str) -> None:
    """Replace the value stored under ``key`` in a single transaction."""
    conn = get_connection(db_path)
    try:
        with conn:
            conn.execute(
                "INSERT INTO kv_store (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value=?",
                (key, value, value),
            )
    finally:
        conn.close()


def delete_value(db_path: str, key: str) -> None:
    conn = get_connection(db_path)
    try:
        with conn:
            conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
    finally:
        conn.close()
