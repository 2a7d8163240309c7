##############################################################################
# Copyright (c) upsertkv Project developers. See top-level LICENSE and
# COPYRIGHT files for dates and other details. No copyright assignment is
# required to contribute to upsertkv.
##############################################################################

"""
In-process store implementation for upsertkv.

This module defines `MemoryStore`, a [`StoreBase`][backends.store_base.StoreBase]
that keeps entries in a dict. Each key has its own reentrant lock, so transactions on
different keys run in parallel while transactions on the same key are serialized.
Nothing is persisted; the store is meant for tests and single-process caches.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import replace as copy_entry
from typing import Dict, Iterator, List, Optional, Tuple

from upsertkv.backends.store_base import StoreBase
from upsertkv.data_models import Conflict, Entry, validate_value
from upsertkv.exceptions import KeyNotFoundError, StoreBusyError


LOG = logging.getLogger(__name__)


class MemoryStore(StoreBase):
    """
    A dict-backed store of [`Entry`][data_models.Entry] objects with per-key locking.

    Entries are copied on the way in and on the way out so that callers never hold a
    reference to the store's own state.

    Attributes:
        busy_timeout (float): Seconds to wait for a key's lock.

    Methods:
        get: Look up the entry stored under a key.
        insert: Insert an entry unless its key is already taken.
        replace: Overwrite the entry stored under an existing key.
        transaction: Hold a key's lock and roll back on error.
        keys: List every key in the store.
    """

    backend_name = "memory"

    def __init__(self, busy_timeout: float = 5.0):
        """
        Initialize an empty in-memory store.

        Args:
            busy_timeout: Seconds to wait for a key's lock before raising
                [`StoreBusyError`][exceptions.StoreBusyError].
        """
        super().__init__(busy_timeout)
        self._entries: Dict[str, Entry] = {}
        # key -> [lock, number of threads holding or waiting on it]
        self._locks: Dict[str, List] = {}
        self._registry_lock = threading.Lock()
        self._local = threading.local()

    @contextmanager
    def _key_lock(self, key: str) -> Iterator[None]:
        """
        Hold the lock for a key.

        A key's lock only lives in `_locks` while some thread holds or waits on it,
        so reads of keys that were never written leave nothing behind.

        Raises:
            StoreBusyError: If the lock isn't acquired within `busy_timeout`.
        """
        with self._registry_lock:
            slot = self._locks.get(key)
            if slot is None:
                slot = self._locks[key] = [threading.RLock(), 0]
            slot[1] += 1

        lock = slot[0]
        acquired = lock.acquire(timeout=self.busy_timeout)
        try:
            if not acquired:
                raise StoreBusyError(f"Timed out after {self.busy_timeout}s waiting for the lock on key '{key}'.")
            yield
        finally:
            if acquired:
                lock.release()
            with self._registry_lock:
                slot[1] -= 1
                if slot[1] == 0:
                    del self._locks[key]

    def _remember(self, key: str):
        """Record a key's state before the active transaction first modifies it."""
        snapshots: Optional[Dict[str, Tuple[bool, Optional[Entry]]]] = getattr(self._local, "snapshots", None)
        if snapshots is not None and key not in snapshots:
            snapshots[key] = (key in self._entries, self._entries.get(key))

    def get(self, key: str) -> Optional[Entry]:
        """
        Look up the entry stored under a key.

        Args:
            key: The key to look up.

        Returns:
            A copy of the entry if found, None otherwise.
        """
        with self._key_lock(key):
            entry = self._entries.get(key)
            return None if entry is None else copy_entry(entry)

    def insert(self, entry: Entry) -> Optional[Conflict]:
        """
        Insert an entry unless its key is already present.

        Args:
            entry: The entry to insert.

        Returns:
            None if the entry was inserted, otherwise a [`Conflict`][data_models.Conflict]
                holding a copy of the existing entry.
        """
        validate_value(entry.value)
        with self._key_lock(entry.key):
            existing = self._entries.get(entry.key)
            if existing is not None:
                LOG.debug(f"Key '{entry.key}' already exists in memory.")
                return Conflict(copy_entry(existing))
            self._remember(entry.key)
            self._entries[entry.key] = copy_entry(entry)
        LOG.debug(f"Inserted key '{entry.key}' into memory.")
        return None

    def replace(self, entry: Entry):
        """
        Overwrite the entry stored under `entry.key`.

        Args:
            entry: The new state of the entry.

        Raises:
            KeyNotFoundError: If no entry exists for `entry.key`.
        """
        validate_value(entry.value)
        with self._key_lock(entry.key):
            if entry.key not in self._entries:
                raise KeyNotFoundError(f"Key '{entry.key}' does not exist in the memory store.")
            self._remember(entry.key)
            self._entries[entry.key] = copy_entry(entry)
        LOG.debug(f"Replaced key '{entry.key}' in memory.")

    @contextmanager
    def transaction(self, key: str) -> Iterator["MemoryStore"]:
        """
        Hold the lock on `key` for the duration of the context.

        Every key modified inside the context is restored if the context exits with
        an exception. A transaction opened while another is active on the same thread
        joins the outer one.

        Args:
            key: The key the transaction operates on.

        Yields:
            This store.

        Raises:
            StoreBusyError: If the key's lock isn't acquired within `busy_timeout`.
        """
        if getattr(self._local, "snapshots", None) is not None:
            with self._key_lock(key):
                yield self
            return

        with self._key_lock(key):
            self._local.snapshots = {}
            try:
                yield self
            except BaseException:
                for snap_key, (existed, entry) in self._local.snapshots.items():
                    if existed:
                        self._entries[snap_key] = entry
                    else:
                        self._entries.pop(snap_key, None)
                LOG.debug(f"Rolled back in-memory transaction for key '{key}'.")
                raise
            finally:
                self._local.snapshots = None

    def keys(self) -> List[str]:
        """
        List every key in the store.

        Returns:
            A sorted list of keys.
        """
        return sorted(list(self._entries))
