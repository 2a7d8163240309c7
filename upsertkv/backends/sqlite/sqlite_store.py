##############################################################################
# Copyright (c) upsertkv Project developers. See top-level LICENSE and
# COPYRIGHT files for dates and other details. No copyright assignment is
# required to contribute to upsertkv.
##############################################################################

"""
SQLite-based store implementation for upsertkv.

This module defines `SQLiteStore`, a [`StoreBase`][backends.store_base.StoreBase]
that persists entries in a single SQLite table keyed by a primary key. The `value`
column is declared without a type so SQLite's dynamic typing keeps NULL, TEXT, and
INTEGER values apart.

Transactions open with `BEGIN IMMEDIATE`, which takes the database write lock before
the first read. A conflict check, predicate, and replace made inside one transaction
therefore see a consistent row and cannot interleave with another writer.

See also:
    - upsertkv.backends.store_base: Base class
    - upsertkv.backends.sqlite.sqlite_connection: Connection configuration
"""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

from upsertkv.backends.sqlite.sqlite_connection import IN_MEMORY, SQLiteConnection, translate_operational_error
from upsertkv.backends.store_base import StoreBase
from upsertkv.data_models import Conflict, Entry, validate_value
from upsertkv.exceptions import KeyNotFoundError, StoreBusyError, StoreUnavailableError


LOG = logging.getLogger(__name__)


class SQLiteStore(StoreBase):
    """
    A SQLite-based store of [`Entry`][data_models.Entry] objects.

    File databases get a fresh connection per operation or transaction. A ":memory:"
    database only exists for the lifetime of its connection, so it is opened once and
    shared, with a lock standing in for SQLite's file lock.

    Attributes:
        db_path (str): Path to the database file, or ":memory:".
        table_name (str): The table entries are stored in.
        busy_timeout (float): Seconds to wait for the write lock.

    Methods:
        create_table_if_not_exists: Create the entries table.
        get_version: Query SQLite for its version.
        get: Look up the entry stored under a key.
        insert: Insert an entry unless its key is already taken.
        replace: Overwrite the entry stored under an existing key.
        transaction: Run a `BEGIN IMMEDIATE` transaction.
        keys: List every key in the store.
        count: Count the entries in the store.
        close: Close the shared in-memory connection, if any.
    """

    backend_name = "sqlite"

    def __init__(self, db_path: str = IN_MEMORY, busy_timeout: float = 5.0, table_name: str = "entries"):
        """
        Initialize the SQLite store and make sure its table exists.

        Args:
            db_path: Path to the database file, or ":memory:".
            busy_timeout: Seconds to wait for the write lock before raising
                [`StoreBusyError`][exceptions.StoreBusyError].
            table_name: The table entries are stored in.

        Raises:
            ValueError: If `table_name` is not a valid identifier.
        """
        super().__init__(busy_timeout)
        if not table_name.isidentifier():
            raise ValueError(f"Invalid table name '{table_name}'.")

        self.db_path: str = str(db_path)
        self.table_name: str = table_name
        self._local = threading.local()
        self._shared_lock = threading.RLock()
        self._shared: Optional[SQLiteConnection] = None

        if self.in_memory:
            self._shared = SQLiteConnection(self.db_path, self.busy_timeout)
            self._shared.open()

        self.create_table_if_not_exists()

    @property
    def in_memory(self) -> bool:
        """True if this store uses a private in-memory database."""
        return self.db_path == IN_MEMORY

    @contextmanager
    def _lock_shared(self) -> Iterator[None]:
        """
        Serialize access to the shared in-memory connection.

        Raises:
            StoreBusyError: If the lock isn't acquired within `busy_timeout`.
        """
        if not self._shared_lock.acquire(timeout=self.busy_timeout):
            raise StoreBusyError(f"Timed out after {self.busy_timeout}s waiting for the in-memory SQLite database.")
        try:
            yield
        finally:
            self._shared_lock.release()

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """
        Yield the connection an operation should run on.

        Inside a transaction this is the transaction's connection; otherwise it's a
        new connection (file databases) or the shared one (in-memory databases).

        Raises:
            StoreUnavailableError: If the in-memory database was closed.
        """
        active = getattr(self._local, "conn", None)
        if active is not None:
            yield active
        elif self.in_memory:
            with self._lock_shared():
                if self._shared is None:
                    raise StoreUnavailableError("The in-memory SQLite database has been closed.")
                yield self._shared.conn
        else:
            with SQLiteConnection(self.db_path, self.busy_timeout) as conn:
                yield conn

    def _execute(self, conn: sqlite3.Connection, query: str, params: Any = ()) -> sqlite3.Cursor:
        """
        Execute a statement, translating driver errors.

        Args:
            conn: The connection to execute on.
            query: The SQL statement.
            params: Bound parameters for the statement.

        Returns:
            The cursor returned by sqlite3.
        """
        LOG.debug(f"SQLite query: {query.strip()}")
        try:
            return conn.execute(query, params)
        except sqlite3.OperationalError as exc:
            translated = translate_operational_error(exc)
            if translated is exc:
                raise
            raise translated from exc

    def create_table_if_not_exists(self):
        """
        Create the table if it doesn't exist.
        """
        with self._connection() as conn:
            self._execute(
                conn,
                f"""
                CREATE TABLE IF NOT EXISTS {self.table_name} (
                    key TEXT PRIMARY KEY NOT NULL,
                    value,
                    last_updated TEXT
                ) WITHOUT ROWID
                """,
            )

    def get_version(self) -> str:
        """
        Query SQLite for the current version.

        Returns:
            The SQLite version string.
        """
        with self._connection() as conn:
            return self._execute(conn, "SELECT sqlite_version()").fetchone()[0]

    @staticmethod
    def _to_params(entry: Entry) -> Dict[str, Any]:
        """
        Convert an entry into bound parameters.

        Args:
            entry: The entry to convert.

        Returns:
            A dict of named parameters for the entries table.
        """
        return {
            "key": entry.key,
            "value": validate_value(entry.value),
            "last_updated": entry.last_updated.isoformat() if entry.last_updated is not None else None,
        }

    @staticmethod
    def _from_row(row: sqlite3.Row) -> Entry:
        """
        Convert a table row into an entry.

        Args:
            row: A row from the entries table.

        Returns:
            The corresponding entry.
        """
        last_updated = row["last_updated"]
        return Entry(
            key=row["key"],
            value=row["value"],
            last_updated=datetime.fromisoformat(last_updated) if last_updated is not None else None,
        )

    def _select(self, conn: sqlite3.Connection, key: str) -> Optional[Entry]:
        cursor = self._execute(
            conn, f"SELECT key, value, last_updated FROM {self.table_name} WHERE key = :key", {"key": key}
        )
        row = cursor.fetchone()
        return None if row is None else self._from_row(row)

    def get(self, key: str) -> Optional[Entry]:
        """
        Look up the entry stored under a key.

        Args:
            key: The key to look up.

        Returns:
            The entry if found, None otherwise.
        """
        LOG.debug(f"Retrieving key '{key}' from SQLite.")
        with self._connection() as conn:
            return self._select(conn, key)

    def insert(self, entry: Entry) -> Optional[Conflict]:
        """
        Insert an entry unless its key is already present.

        Args:
            entry: The entry to insert.

        Returns:
            None if the entry was inserted, otherwise a [`Conflict`][data_models.Conflict]
                holding the existing entry.
        """
        params = self._to_params(entry)
        with self._connection() as conn:
            cursor = self._execute(
                conn,
                f"""
                INSERT INTO {self.table_name} (key, value, last_updated)
                VALUES (:key, :value, :last_updated)
                ON CONFLICT (key) DO NOTHING
                """,
                params,
            )
            if cursor.rowcount > 0:
                LOG.debug(f"Inserted key '{entry.key}' into SQLite.")
                return None

            existing = self._select(conn, entry.key)

        LOG.debug(f"Key '{entry.key}' already exists in SQLite.")
        return Conflict(existing)

    def replace(self, entry: Entry):
        """
        Overwrite the entry stored under `entry.key`.

        Args:
            entry: The new state of the entry.

        Raises:
            KeyNotFoundError: If no entry exists for `entry.key`.
        """
        params = self._to_params(entry)
        with self._connection() as conn:
            cursor = self._execute(
                conn,
                f"""
                UPDATE {self.table_name}
                SET value = :value, last_updated = :last_updated
                WHERE key = :key
                """,
                params,
            )
            changed = cursor.rowcount
        if changed == 0:
            raise KeyNotFoundError(f"Key '{entry.key}' does not exist in the SQLite store.")
        LOG.debug(f"Replaced key '{entry.key}' in SQLite.")

    @contextmanager
    def transaction(self, key: str) -> Iterator["SQLiteStore"]:
        """
        Run a `BEGIN IMMEDIATE` transaction on the store.

        SQLite locks the whole database rather than a single key, so `key` is only
        used for logging. A transaction opened while another is active on the same
        thread joins the outer one.

        Args:
            key: The key the transaction operates on.

        Yields:
            This store, bound to the transaction's connection for the current thread.

        Raises:
            StoreBusyError: If the write lock isn't acquired within `busy_timeout`.
        """
        if getattr(self._local, "conn", None) is not None:
            yield self
            return

        with self._connection() as conn:
            self._execute(conn, "BEGIN IMMEDIATE")
            LOG.debug(f"Began SQLite transaction for key '{key}'.")
            self._local.conn = conn
            try:
                yield self
                self._execute(conn, "COMMIT")
                LOG.debug(f"Committed SQLite transaction for key '{key}'.")
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                    LOG.debug(f"Rolled back SQLite transaction for key '{key}'.")
                raise
            finally:
                self._local.conn = None

    def keys(self) -> List[str]:
        """
        List every key in the store.

        Returns:
            A sorted list of keys.
        """
        with self._connection() as conn:
            cursor = self._execute(conn, f"SELECT key FROM {self.table_name} ORDER BY key")
            return [row["key"] for row in cursor.fetchall()]

    def count(self) -> int:
        """
        Count the entries in the store.

        Returns:
            The number of entries.
        """
        with self._connection() as conn:
            return self._execute(conn, f"SELECT COUNT(*) FROM {self.table_name}").fetchone()[0]

    def close(self):
        """Close the shared in-memory connection, if any. The in-memory data is gone afterwards."""
        with self._shared_lock:
            if self._shared is None:
                return
            self._shared.close()
            self._shared = None
        LOG.debug("Closed in-memory SQLite database.")
