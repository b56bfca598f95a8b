"""Root conftest: shared test configuration and database fixtures.

Invariants:
    - Every test gets a fresh SQLite file under tmp_path (links of all roles share it)
    - Links are disposed after each test

Design Decisions:
    - SQLite via aiosqlite: real driver, no external server, AUTOCOMMIT like production
    - File database rather than :memory: so split read/write links see the same rows
"""

import os

import pytest

from rhizoma.config import Endpoint, Settings
from rhizoma.infrastructure.database import Database

# Ensure tests never pick up a developer's real database credentials
os.environ.setdefault("DB_DRIVER", "sqlite+aiosqlite")
os.environ.setdefault("DB_NAME", "test.db")

TABLE1 = "test_table1"


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "rhizoma.db")


@pytest.fixture
def sqlite_settings(db_path):
    return Settings(
        _env_file=None,
        db_driver="sqlite+aiosqlite",
        db_host=None,
        db_name=db_path,
        db_prefix="test_",
    )


@pytest.fixture
def split_settings(db_path):
    endpoint = Endpoint(database=db_path)
    return Settings(
        _env_file=None,
        db_driver="sqlite+aiosqlite",
        db_host=None,
        db_name=db_path,
        db_prefix="test_",
        db_split=True,
        db_read=endpoint,
        db_write=[endpoint],
    )


@pytest.fixture
async def db(sqlite_settings):
    database = Database(sqlite_settings)
    yield database
    await database.dispose()


@pytest.fixture
async def seeded_db(db):
    """Database with an empty test_table1."""
    await db.update_data(
        f"CREATE TABLE {TABLE1} ("
        "id INTEGER PRIMARY KEY AUTOINCREMENT, "
        "user_guid INTEGER, access_collection_id INTEGER)"
    )
    return db
