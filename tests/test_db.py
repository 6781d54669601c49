"""Tests for database initialization and key/value access."""
from study_planner.db import init_db, get_connection, get_value, set_value, delete_value


def test_init_db_creates_tables(tmp_db):
    init_db(tmp_db)
    conn = get_connection(tmp_db)
    cursor = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
    )
    tables = {row[0] for row in cursor.fetchall()}
    assert "kv_store" in tables
    conn.close()


def test_init_db_is_idempotent(tmp_db):
    init_db(tmp_db)
    init_db(tmp_db)  # should not raise
    conn = get_connection(tmp_db)
    cursor = conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
    assert len(cursor.fetchall()) > 0
    conn.close()


def test_init_db_creates_parent_directory(tmp_path):
    db_path = tmp_path / "nested" / "dir" / "planner.db"
    init_db(str(db_path))
    assert db_path.exists()


def test_get_value_missing_key(tmp_db):
    init_db(tmp_db)
    assert get_value(tmp_db, "nope") is None


def test_set_value_overwrites(tmp_db):
    init_db(tmp_db)
    set_value(tmp_db, "k", "one")
    set_value(tmp_db, "k", "two")
    assert get_value(tmp_db, "k") == "two"
    conn = get_connection(tmp_db)
    assert conn.execute("SELECT COUNT(*) FROM kv_store").fetchone()[0] == 1
    conn.close()


def test_delete_value(tmp_db):
    init_db(tmp_db)
    set_value(tmp_db, "k", "v")
    delete_value(tmp_db, "k")
    delete_value(tmp_db, "k")  # missing key is fine
    assert get_value(tmp_db, "k") is None
