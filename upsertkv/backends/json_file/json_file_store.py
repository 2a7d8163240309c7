##############################################################################
# Copyright (c) upsertkv Project developers. See top-level LICENSE and
# COPYRIGHT files for dates and other details. No copyright assignment is
# required to contribute to upsertkv.
##############################################################################

"""
JSON file store implementation for upsertkv.

This module defines `JSONFileStore`, a [`StoreBase`][backends.store_base.StoreBase]
that keeps every entry in one JSON document on disk. A `filelock.FileLock` next to the
document serializes transactions across threads and processes, and writes go through a
temporary file that atomically replaces the document on commit.
"""

import json
import logging
import os
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from filelock import FileLock, Timeout

from upsertkv.backends.store_base import StoreBase
from upsertkv.backends.utils import deserialize_entry, serialize_entry
from upsertkv.data_models import Conflict, Entry
from upsertkv.exceptions import KeyNotFoundError, StoreBusyError, StoreUnavailableError


LOG = logging.getLogger(__name__)


class JSONFileStore(StoreBase):
    """
    A store of [`Entry`][data_models.Entry] objects kept in a single JSON file.

    Attributes:
        path (str): Path to the JSON document.
        lock_path (str): Path to the lock file guarding the document.
        busy_timeout (float): Seconds to wait for the file lock.

    Methods:
        get: Look up the entry stored under a key.
        insert: Insert an entry unless its key is already taken.
        replace: Overwrite the entry stored under an existing key.
        transaction: Hold the file lock and write the document on commit.
        keys: List every key in the store.
    """

    backend_name = "json"

    def __init__(self, path: str, busy_timeout: float = 5.0):
        """
        Initialize the JSON file store.

        Args:
            path: Path to the JSON document. It's created on the first write.
            busy_timeout: Seconds to wait for the file lock before raising
                [`StoreBusyError`][exceptions.StoreBusyError].
        """
        super().__init__(busy_timeout)
        self.path: str = os.path.abspath(os.path.expanduser(str(path)))
        self.lock_path: str = f"{self.path}.lock"
        os.makedirs(os.path.dirname(self.path), exist_ok=True)
        self._lock = FileLock(self.lock_path)  # pylint: disable=abstract-class-instantiated
        self._local = threading.local()

    def _read(self) -> Dict[str, Dict[str, str]]:
        """
        Load the serialized entries from disk.

        Returns:
            A mapping of key to serialized entry; empty if the file doesn't exist yet.

        Raises:
            StoreUnavailableError: If the file can't be read or parsed.
        """
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r") as json_file:
                return json.load(json_file).get("entries", {})
        except (OSError, ValueError) as exc:
            raise StoreUnavailableError(f"Unable to read JSON store at '{self.path}': {exc}") from exc

    def _write(self, entries: Dict[str, Dict[str, str]]):
        """
        Atomically write the serialized entries to disk.

        Args:
            entries: A mapping of key to serialized entry.

        Raises:
            StoreUnavailableError: If the file can't be written.
        """
        temp_filepath = f"{self.path}.tmp"
        try:
            with open(temp_filepath, "w") as json_file:
                json.dump({"entries": entries}, json_file, indent=4, sort_keys=True)
            os.replace(temp_filepath, self.path)
        except OSError as exc:
            raise StoreUnavailableError(f"Unable to write JSON store at '{self.path}': {exc}") from exc
        LOG.debug(f"Data successfully dumped to {self.path}.")

    @contextmanager
    def _locked(self) -> Iterator[None]:
        """
        Hold the file lock.

        Raises:
            StoreBusyError: If the lock isn't acquired within `busy_timeout`.
        """
        try:
            self._lock.acquire(timeout=self.busy_timeout)
        except Timeout as exc:
            raise StoreBusyError(f"Timed out after {self.busy_timeout}s waiting for '{self.lock_path}'.") from exc
        try:
            yield
        finally:
            self._lock.release()

    @property
    def _working(self) -> Optional[Dict[str, Dict[str, str]]]:
        """The active transaction's working copy on this thread, if any."""
        return getattr(self._local, "working", None)

    @contextmanager
    def transaction(self, key: str) -> Iterator["JSONFileStore"]:
        """
        Hold the file lock, work on an in-memory copy, and write it back on commit.

        The lock covers the whole document, so `key` is only used for logging. A
        transaction opened while another is active on the same thread joins the outer one.

        Args:
            key: The key the transaction operates on.

        Yields:
            This store.

        Raises:
            StoreBusyError: If the file lock isn't acquired within `busy_timeout`.
        """
        if self._working is not None:
            yield self
            return

        with self._locked():
            self._local.working = self._read()
            self._local.dirty = False
            try:
                yield self
                if self._local.dirty:
                    self._write(self._local.working)
                    LOG.debug(f"Committed JSON store transaction for key '{key}'.")
            finally:
                self._local.working = None
                self._local.dirty = False

    def get(self, key: str) -> Optional[Entry]:
        """
        Look up the entry stored under a key.

        Args:
            key: The key to look up.

        Returns:
            The entry if found, None otherwise.
        """
        if self._working is None:
            with self.transaction(key):
                return self.get(key)

        data = self._working.get(key)
        return None if data is None else deserialize_entry(data)

    def insert(self, entry: Entry) -> Optional[Conflict]:
        """
        Insert an entry unless its key is already present.

        Args:
            entry: The entry to insert.

        Returns:
            None if the entry was inserted, otherwise a [`Conflict`][data_models.Conflict]
                holding the existing entry.
        """
        if self._working is None:
            with self.transaction(entry.key):
                return self.insert(entry)

        existing = self._working.get(entry.key)
        if existing is not None:
            LOG.debug(f"Key '{entry.key}' already exists in {self.path}.")
            return Conflict(deserialize_entry(existing))

        self._working[entry.key] = serialize_entry(entry)
        self._local.dirty = True
        LOG.debug(f"Inserted key '{entry.key}' into {self.path}.")
        return None

    def replace(self, entry: Entry):
        """
        Overwrite the entry stored under `entry.key`.

        Args:
            entry: The new state of the entry.

        Raises:
            KeyNotFoundError: If no entry exists for `entry.key`.
        """
        if self._working is None:
            with self.transaction(entry.key):
                self.replace(entry)
            return

        if entry.key not in self._working:
            raise KeyNotFoundError(f"Key '{entry.key}' does not exist in the JSON store at '{self.path}'.")

        self._working[entry.key] = serialize_entry(entry)
        self._local.dirty = True
        LOG.debug(f"Replaced key '{entry.key}' in {self.path}.")

    def keys(self) -> List[str]:
        """
        List every key in the store.

        Returns:
            A sorted list of keys.
        """
        if self._working is not None:
            return sorted(self._working)
        with self._locked():
            return sorted(self._read())
