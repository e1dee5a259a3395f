"""Shared test fixtures."""

import pytest

from usersync import create_service
from usersync.schema import ensure_schema


@pytest.fixture
def db_service(tmp_path):
    """Provide a fresh SQLite DatabaseService for each test."""
    db_path = tmp_path / "test.db"
    service = create_service(f"sqlite:///{db_path}")
    service.connect()
    yield service
    service.close()


@pytest.fixture
def user_db(db_service):
    """A DatabaseService with empty t_user and t_user_pet tables."""
    ensure_schema(db_service)
    return db_service
