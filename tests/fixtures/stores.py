##############################################################################
# Copyright (c) upsertkv Project developers. See top-level LICENSE and
# COPYRIGHT files for dates and other details. No copyright assignment is
# required to contribute to upsertkv.
##############################################################################

"""
Fixtures related to stores.

The `store` fixture is parametrized over every store that can run without an
external server, so tests that use it run once per backend.
"""

import os

import pytest
from pytest_mock import MockerFixture
from redis import Redis

from upsertkv.backends.json_file.json_file_store import JSONFileStore
from upsertkv.backends.memory.memory_store import MemoryStore
from upsertkv.backends.sqlite.sqlite_store import SQLiteStore
from upsertkv.upsert.engine import UpsertEngine
from tests.fixture_types import FixtureEngine, FixtureRedis, FixtureStore, FixtureStr


@pytest.fixture
def sqlite_db_path(tmp_path) -> FixtureStr:
    """Path to a fresh SQLite database file."""
    return os.path.join(str(tmp_path), "db", "upsertkv.db")


@pytest.fixture
def memory_store() -> FixtureStore:
    """An empty in-memory store."""
    return MemoryStore(busy_timeout=2.0)


@pytest.fixture
def sqlite_store(sqlite_db_path: FixtureStr) -> FixtureStore:
    """An empty file-backed SQLite store."""
    store = SQLiteStore(sqlite_db_path, busy_timeout=5.0)
    yield store
    store.close()


@pytest.fixture
def sqlite_memory_store() -> FixtureStore:
    """An empty SQLite store living in a private in-memory database."""
    store = SQLiteStore(":memory:", busy_timeout=5.0)
    yield store
    store.close()


@pytest.fixture
def json_store(tmp_path) -> FixtureStore:
    """An empty JSON file store."""
    return JSONFileStore(os.path.join(str(tmp_path), "json", "upsertkv.json"), busy_timeout=5.0)


@pytest.fixture(params=["memory", "sqlite", "sqlite_memory", "json"])
def store(request) -> FixtureStore:
    """Each locally runnable store, one per parametrization."""
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture
def engine(store: FixtureStore) -> FixtureEngine:
    """An upsert engine over the parametrized store."""
    return UpsertEngine(store)


@pytest.fixture
def mock_redis(mocker: MockerFixture) -> FixtureRedis:
    """Create a mock Redis client."""
    return mocker.MagicMock(spec=Redis)
