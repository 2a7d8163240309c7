##############################################################################
# Copyright (c) upsertkv Project developers. See top-level LICENSE and
# COPYRIGHT files for dates and other details. No copyright assignment is
# required to contribute to upsertkv.
##############################################################################

"""
Tests for the `sqlite_store.py` module.
"""

import sqlite3
import threading
from datetime import datetime

import pytest

from upsertkv.backends.sqlite.sqlite_store import SQLiteStore
from upsertkv.data_models import Conflict, Entry
from upsertkv.exceptions import KeyNotFoundError, StoreBusyError, StoreUnavailableError, TypeMismatchError
from tests.fixture_types import FixtureStore, FixtureStr


class TestSQLiteStore:
    """Tests for the SQLiteStore class."""

    def test_initialization_creates_table(self, sqlite_db_path: FixtureStr, sqlite_store: FixtureStore):
        """
        Test that the entries table exists once the store is created.

        Args:
            sqlite_db_path: Path to the store's database file.
            sqlite_store: A file-backed SQLite store.
        """
        with sqlite3.connect(sqlite_db_path) as conn:
            tables = [row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")]
        assert "entries" in tables
        assert sqlite_store.backend_name == "sqlite"

    def test_invalid_table_name(self, sqlite_db_path: FixtureStr):
        """
        Test that table names that aren't identifiers are refused.

        Args:
            sqlite_db_path: Path to a database file.
        """
        with pytest.raises(ValueError):
            SQLiteStore(sqlite_db_path, table_name="entries; DROP TABLE x")

    def test_insert_then_get(self, sqlite_store: FixtureStore):
        """
        Test a successful insert followed by a lookup.

        Args:
            sqlite_store: A file-backed SQLite store.
        """
        stamp = datetime(2024, 1, 2, 3, 4, 5)

        assert sqlite_store.insert(Entry("k1", "v1", stamp)) is None
        assert sqlite_store.get("k1") == Entry("k1", "v1", stamp)

    def test_insert_conflict_returns_existing(self, sqlite_store: FixtureStore):
        """
        Test that a second insert for the same key reports the existing entry.

        Args:
            sqlite_store: A file-backed SQLite store.
        """
        sqlite_store.insert(Entry("k1", 1))

        conflict = sqlite_store.insert(Entry("k1", 2))

        assert conflict == Conflict(Entry("k1", 1))
        assert sqlite_store.get("k1").value == 1

    def test_get_missing_key(self, sqlite_store: FixtureStore):
        """
        Test that a missing key returns None.

        Args:
            sqlite_store: A file-backed SQLite store.
        """
        assert sqlite_store.get("missing") is None

    def test_replace_missing_key_raises(self, sqlite_store: FixtureStore):
        """
        Test that replacing a missing key raises `KeyNotFoundError`.

        Args:
            sqlite_store: A file-backed SQLite store.
        """
        with pytest.raises(KeyNotFoundError):
            sqlite_store.replace(Entry("missing", 1))

    def test_replace_existing_key(self, sqlite_store: FixtureStore):
        """
        Test that replace overwrites value and timestamp.

        Args:
            sqlite_store: A file-backed SQLite store.
        """
        sqlite_store.insert(Entry("k1", "a"))

        sqlite_store.replace(Entry("k1", None, datetime(2024, 1, 1)))

        assert sqlite_store.get("k1") == Entry("k1", None, datetime(2024, 1, 1))

    def test_text_and_integer_are_distinct(self, sqlite_store: FixtureStore):
        """
        Test that the untyped value column keeps TEXT "7" apart from INTEGER 7.

        Args:
            sqlite_store: A file-backed SQLite store.
        """
        sqlite_store.insert(Entry("text", "7"))
        sqlite_store.insert(Entry("integer", 7))

        assert sqlite_store.get("text").value == "7"
        assert sqlite_store.get("integer").value == 7

    def test_insert_rejects_bool(self, sqlite_store: FixtureStore):
        """
        Test that booleans are refused before reaching SQLite.

        Args:
            sqlite_store: A file-backed SQLite store.
        """
        with pytest.raises(TypeMismatchError):
            sqlite_store.insert(Entry("k1", True))

    def test_keys_and_count(self, sqlite_store: FixtureStore):
        """
        Test listing and counting keys.

        Args:
            sqlite_store: A file-backed SQLite store.
        """
        for key in ("b", "a", "c"):
            sqlite_store.insert(Entry(key, key))

        assert sqlite_store.keys() == ["a", "b", "c"]
        assert sqlite_store.count() == 3

    def test_transaction_commits(self, sqlite_db_path: FixtureStr, sqlite_store: FixtureStore):
        """
        Test that writes inside a transaction are visible to other connections after commit.

        Args:
            sqlite_db_path: Path to the store's database file.
            sqlite_store: A file-backed SQLite store.
        """
        with sqlite_store.transaction("k1"):
            sqlite_store.insert(Entry("k1", 1))
            sqlite_store.replace(Entry("k1", 2))

        other = SQLiteStore(sqlite_db_path)
        assert other.get("k1").value == 2

    def test_transaction_rolls_back_on_error(self, sqlite_store: FixtureStore):
        """
        Test that an exception inside a transaction discards its writes.

        Args:
            sqlite_store: A file-backed SQLite store.
        """
        with pytest.raises(RuntimeError):
            with sqlite_store.transaction("k1"):
                sqlite_store.insert(Entry("k1", 1))
                raise RuntimeError("boom")

        assert sqlite_store.get("k1") is None

    def test_nested_transaction_joins_outer(self, sqlite_store: FixtureStore):
        """
        Test that a nested transaction on the same thread joins the outer one.

        Args:
            sqlite_store: A file-backed SQLite store.
        """
        with pytest.raises(RuntimeError):
            with sqlite_store.transaction("k1"):
                with sqlite_store.transaction("k2"):
                    sqlite_store.insert(Entry("k2", 2))
                raise RuntimeError("boom")

        assert sqlite_store.get("k2") is None

    def test_locked_database_raises_busy(self, sqlite_db_path: FixtureStr, sqlite_store: FixtureStore):
        """
        Test that a second writer gives up with `StoreBusyError` after its busy timeout.

        Args:
            sqlite_db_path: Path to the store's database file.
            sqlite_store: A file-backed SQLite store.
        """
        impatient = SQLiteStore(sqlite_db_path, busy_timeout=0.1)

        with sqlite_store.transaction("k1"):
            sqlite_store.insert(Entry("k1", 1))
            with pytest.raises(StoreBusyError):
                with impatient.transaction("k1"):
                    pass

        assert impatient.get("k1").value == 1

    def test_get_version(self, sqlite_store: FixtureStore):
        """
        Test that the SQLite version is reported.

        Args:
            sqlite_store: A file-backed SQLite store.
        """
        assert sqlite_store.get_version() == sqlite3.sqlite_version


class TestSQLiteInMemoryStore:
    """Tests for SQLiteStore on a ":memory:" database."""

    def test_data_is_shared_across_calls(self, sqlite_memory_store: FixtureStore):
        """
        Test that separate calls see the same in-memory database.

        Args:
            sqlite_memory_store: An in-memory SQLite store.
        """
        sqlite_memory_store.insert(Entry("k1", "v1"))

        assert sqlite_memory_store.in_memory
        assert sqlite_memory_store.get("k1").value == "v1"

    def test_closed_store_is_unavailable(self, sqlite_memory_store: FixtureStore):
        """
        Test that using an in-memory store after `close` raises `StoreUnavailableError`.

        Args:
            sqlite_memory_store: An in-memory SQLite store.
        """
        sqlite_memory_store.insert(Entry("k1", "v1"))
        sqlite_memory_store.close()

        with pytest.raises(StoreUnavailableError, match="has been closed"):
            sqlite_memory_store.get("k1")
        with pytest.raises(StoreUnavailableError):
            with sqlite_memory_store.transaction("k1"):
                pass
        # Closing twice is harmless
        sqlite_memory_store.close()

    def test_other_thread_waits_then_gives_up(self):
        """
        Test that a transaction held by one thread makes another thread time out.
        """
        store = SQLiteStore(":memory:", busy_timeout=0.1)
        holding = threading.Event()
        release = threading.Event()

        def hold():
            with store.transaction("k1"):
                holding.set()
                release.wait(5)

        holder = threading.Thread(target=hold)
        holder.start()
        try:
            assert holding.wait(5)
            with pytest.raises(StoreBusyError):
                store.get("k1")
        finally:
            release.set()
            holder.join()
            store.close()
