import pytest

from study_planner.storage import EntityStore


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_planner.db")
    return db_path


@pytest.fixture
def store(tmp_db):
    return EntityStore(tmp_db)
