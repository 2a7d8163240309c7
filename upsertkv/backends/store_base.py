##############################################################################
# Copyright (c) upsertkv Project developers. See top-level LICENSE and
# COPYRIGHT files for dates and other details. No copyright assignment is
# required to contribute to upsertkv.
##############################################################################

"""
This module defines the abstract base class for all store implementations in upsertkv.

This module provides the `StoreBase` class, which outlines the required interface for
looking up, inserting, and replacing entries in a unique-keyed backing store, and for
scoping those operations inside a transaction. All concrete store classes (e.g.,
SQLite-based stores) must inherit from this class and implement its abstract methods.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import List, Optional

from upsertkv.data_models import Conflict, Entry


class StoreBase(ABC):
    """
    Base class for all stores supported in upsertkv.

    A store is a durable mapping from a string key to an [`Entry`][data_models.Entry]
    with at most one entry per key. Writes are only ever made through `insert` and
    `replace`, and callers that need a read-decide-write sequence to be atomic wrap
    it in `transaction`.

    Attributes:
        backend_name (str): The name of the backend (e.g. "sqlite").
        busy_timeout (float): Seconds to wait for a lock before raising
            [`StoreBusyError`][exceptions.StoreBusyError].

    Methods:
        get: Look up the entry stored under a key.
        insert: Insert an entry unless its key is already taken.
        replace: Overwrite the entry stored under an existing key.
        transaction: Scope a consistent, atomic unit of work on a key.
        keys: List every key in the store.
        count: Count the entries in the store.
        close: Release any resources held by the store.
    """

    backend_name: str = None

    def __init__(self, busy_timeout: float = 5.0):
        """
        Initialize the store.

        Args:
            busy_timeout: Seconds to wait for a lock before giving up.
        """
        self.busy_timeout: float = float(busy_timeout)

    @abstractmethod
    def get(self, key: str) -> Optional[Entry]:
        """
        Look up the entry stored under a key.

        Args:
            key: The key to look up.

        Returns:
            The entry if found, None otherwise.
        """
        raise NotImplementedError("Subclasses of `StoreBase` must implement a `get` method.")

    @abstractmethod
    def insert(self, entry: Entry) -> Optional[Conflict]:
        """
        Insert an entry unless its key is already present. Never overwrites.

        Args:
            entry: The entry to insert.

        Returns:
            None if the entry was inserted, or a [`Conflict`][data_models.Conflict]
                holding the entry that already owns the key.
        """
        raise NotImplementedError("Subclasses of `StoreBase` must implement an `insert` method.")

    @abstractmethod
    def replace(self, entry: Entry):
        """
        Unconditionally overwrite the entry stored under `entry.key`.

        Args:
            entry: The new state of the entry.

        Raises:
            KeyNotFoundError: If no entry exists for `entry.key`.
        """
        raise NotImplementedError("Subclasses of `StoreBase` must implement a `replace` method.")

    @abstractmethod
    def transaction(self, key: str) -> AbstractContextManager:
        """
        Scope one logical transaction on a key.

        Inside the context, `get`, `insert`, and `replace` observe a consistent view
        of the key and commit together on normal exit. Any exception rolls every
        change back before propagating.

        Args:
            key: The key the transaction operates on.

        Returns:
            A context manager for the transaction.

        Raises:
            StoreBusyError: If the lock could not be acquired within `busy_timeout`.
        """
        raise NotImplementedError("Subclasses of `StoreBase` must implement a `transaction` method.")

    @abstractmethod
    def keys(self) -> List[str]:
        """
        List every key in the store.

        Returns:
            A sorted list of keys.
        """
        raise NotImplementedError("Subclasses of `StoreBase` must implement a `keys` method.")

    def count(self) -> int:
        """
        Count the entries in the store.

        Returns:
            The number of entries.
        """
        return len(self.keys())

    def close(self):
        """Release any resources held by the store."""

    def __enter__(self) -> "StoreBase":
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()
