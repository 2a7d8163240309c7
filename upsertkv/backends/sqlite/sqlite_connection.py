##############################################################################
# Copyright (c) upsertkv Project developers. See top-level LICENSE and
# COPYRIGHT files for dates and other details. No copyright assignment is
# required to contribute to upsertkv.
##############################################################################

"""
SQLite connection context manager for the upsertkv application.

This module defines the `SQLiteConnection` class, which provides a safe and reusable way to
establish and manage SQLite connections using a context manager. It ensures proper configuration
(WAL journaling, a bounded busy timeout, relaxed synchronous writes, foreign key support),
handles compatibility with Python versions, and guarantees cleanup by closing the connection on exit.
"""

import logging
import sqlite3
import sys
from pathlib import Path
from types import TracebackType
from typing import Type

from upsertkv.exceptions import StoreBusyError, StoreUnavailableError


LOG = logging.getLogger(__name__)

IN_MEMORY = ":memory:"
BUSY_MESSAGES = ("database is locked", "database table is locked", "database is busy")
UNAVAILABLE_MESSAGES = ("unable to open database", "disk i/o error", "readonly database")


def translate_operational_error(exc: sqlite3.OperationalError) -> Exception:
    """
    Map a SQLite operational error onto the upsertkv error taxonomy.

    Args:
        exc: The error raised by the sqlite3 driver.

    Returns:
        A [`StoreBusyError`][exceptions.StoreBusyError] for lock contention, a
            [`StoreUnavailableError`][exceptions.StoreUnavailableError] for I/O failures,
            or the original error otherwise.
    """
    message = str(exc).lower()
    if any(text in message for text in BUSY_MESSAGES):
        return StoreBusyError(f"SQLite database is busy: {exc}")
    if any(text in message for text in UNAVAILABLE_MESSAGES):
        return StoreUnavailableError(f"SQLite database is unavailable: {exc}")
    return exc


class SQLiteConnection:
    """
    Context manager for establishing and safely closing a SQLite database connection.

    This class ensures SQLite connections are created with proper configuration, including:
    - WAL mode for better concurrency
    - A busy timeout so lock waits are bounded instead of failing or hanging
    - `synchronous=NORMAL` and in-memory temp storage
    - Foreign key constraint enforcement
    - Dictionary-style row access via `sqlite3.Row`
    - Compatibility with Python versions < 3.12 and ≥ 3.12 regarding autocommit

    Connections are opened in autocommit mode; transactions are always started and
    finished explicitly with `BEGIN IMMEDIATE`/`COMMIT`/`ROLLBACK` by the caller.

    Attributes:
        db_path (str): Path to the database file, or ":memory:".
        busy_timeout (float): Seconds SQLite waits on a locked database.
        conn (sqlite3.Connection): The active SQLite connection used within the context.

    Methods:
        open:
            Open and configure the connection.

        close:
            Close the connection if it's open.

        __enter__:
            Opens and configures the SQLite connection when entering the context.

        __exit__:
            Closes the SQLite connection when exiting the context, handling any exceptions.
    """

    def __init__(self, db_path: str, busy_timeout: float = 5.0):
        """
        Initialize the SQLiteConnection context manager.

        Args:
            db_path: Path to the database file, or ":memory:".
            busy_timeout: Seconds SQLite waits on a locked database before giving up.
        """
        self.db_path: str = str(db_path)
        self.busy_timeout: float = busy_timeout
        self.conn: sqlite3.Connection = None

    def open(self) -> sqlite3.Connection:
        """
        Create and configure the sqlite connection.

        Returns:
            A sqlite connection.

        Raises:
            StoreUnavailableError: If the database cannot be opened.
        """
        if self.db_path != IN_MEMORY:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        connection_kwargs = {"check_same_thread": False, "timeout": self.busy_timeout}
        if sys.version_info < (3, 12):  # Autocommit wasn't added until python 3.12
            connection_kwargs["isolation_level"] = None
        else:
            connection_kwargs["autocommit"] = True

        try:
            self.conn = sqlite3.connect(self.db_path, **connection_kwargs)

            # WAL lets readers proceed while a single writer holds the lock
            self.conn.execute("PRAGMA journal_mode=WAL")
            self.conn.execute(f"PRAGMA busy_timeout={int(self.busy_timeout * 1000)}")
            self.conn.execute("PRAGMA synchronous=NORMAL")
            self.conn.execute("PRAGMA temp_store=memory")
            self.conn.execute("PRAGMA foreign_keys=ON")
        except sqlite3.Error as exc:
            self.close()
            translated = translate_operational_error(exc) if isinstance(exc, sqlite3.OperationalError) else exc
            if isinstance(translated, StoreBusyError):
                raise translated from exc
            raise StoreUnavailableError(f"Unable to open SQLite database at '{self.db_path}': {exc}") from exc

        # This enables name-based access to columns
        self.conn.row_factory = sqlite3.Row

        LOG.debug(f"Opened SQLite connection to '{self.db_path}'.")
        return self.conn

    def close(self):
        """Close the connection if it's still open."""
        if self.conn:
            self.conn.close()
            self.conn = None

    def __enter__(self) -> sqlite3.Connection:
        """
        Enters the runtime context related to this object and creates a sqlite connection.

        Returns:
            A sqlite connection.
        """
        return self.open()

    def __exit__(self, exc_type: Type[Exception], exc_value: Exception, traceback: TracebackType):
        """
        Exits the runtime context and performs cleanup.

        This method closes the connection if it's still open.

        Args:
            exc_type: The exception type raised, if any.
            exc_value: The exception instance raised, if any.
            traceback: The traceback object, if an exception was raised.
        """
        self.close()
