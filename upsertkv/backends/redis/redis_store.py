##############################################################################
# Copyright (c) upsertkv Project developers. See top-level LICENSE and
# COPYRIGHT files for dates and other details. No copyright assignment is
# required to contribute to upsertkv.
##############################################################################

"""
Redis-based store implementation for upsertkv.

This module defines `RedisStore`, a [`StoreBase`][backends.store_base.StoreBase] that
stores each entry as a Redis hash under `<prefix>:<key>`. Transactions use Redis'
optimistic locking: the entry's hash is `WATCH`ed, reads run immediately, writes are
buffered, and the buffer is applied with `MULTI`/`EXEC` on commit. If another client
modified the watched hash in the meantime `EXEC` is refused, nothing is written, and
the caller gets a [`StoreBusyError`][exceptions.StoreBusyError] to retry on.

See also:
    - upsertkv.backends.store_base: Base class
    - upsertkv.backends.utils: Entry serialization for hashes
"""

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Union

from redis import Redis
from redis.client import Pipeline
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError
from redis.exceptions import WatchError

from upsertkv.backends.store_base import StoreBase
from upsertkv.backends.utils import deserialize_entry, serialize_entry
from upsertkv.data_models import Conflict, Entry
from upsertkv.exceptions import KeyNotFoundError, StoreBusyError, StoreUnavailableError


LOG = logging.getLogger(__name__)


class RedisStore(StoreBase):
    """
    A Redis-based store of [`Entry`][data_models.Entry] objects.

    Attributes:
        client (Redis): The Redis client used for database operations.
        prefix (str): The prefix for every Redis key this store owns.
        busy_timeout (float): Socket timeout applied to clients this store creates.

    Methods:
        get: Look up the entry stored under a key.
        insert: Insert an entry unless its key is already taken.
        replace: Overwrite the entry stored under an existing key.
        transaction: Run a WATCH/MULTI/EXEC transaction on a key.
        keys: List every key in the store.
        close: Close a client this store created.
    """

    backend_name = "redis"

    def __init__(
        self,
        client: Redis = None,
        prefix: str = "upsertkv",
        busy_timeout: float = 5.0,
        url: str = "redis://localhost:6379/0",
    ):
        """
        Initialize the Redis store.

        Args:
            client: A Redis client instance. If omitted, one is created from `url`.
            prefix: The prefix for every Redis key this store owns.
            busy_timeout: Seconds before a Redis command times out.
            url: Connection URL used when no client is given.
        """
        super().__init__(busy_timeout)
        self._owns_client: bool = client is None
        if client is None:
            client = Redis.from_url(url, decode_responses=True, socket_timeout=self.busy_timeout)
        self.client: Redis = client
        self.prefix: str = prefix
        self._local = threading.local()

    def _get_full_key(self, key: str) -> str:
        """
        Get the full Redis key for an entry.

        Args:
            key: The entry's key.

        Returns:
            The full Redis key.
        """
        return f"{self.prefix}:{key}"

    @property
    def _pipeline(self) -> Optional[Pipeline]:
        """The active transaction's pipeline on this thread, if any."""
        return getattr(self._local, "pipe", None)

    @contextmanager
    def _translate_errors(self) -> Iterator[None]:
        """Map Redis client errors onto the upsertkv error taxonomy."""
        try:
            yield
        except WatchError as exc:
            raise StoreBusyError("A watched key was modified by another client; the transaction was discarded.") from exc
        except RedisTimeoutError as exc:
            raise StoreBusyError(f"Redis did not respond within {self.busy_timeout}s: {exc}") from exc
        except RedisConnectionError as exc:
            raise StoreUnavailableError(f"Unable to reach Redis: {exc}") from exc

    def _load(self, key: str) -> Optional[Entry]:
        """
        Read an entry, preferring writes buffered by the active transaction.

        Args:
            key: The entry's key.

        Returns:
            The entry if found, None otherwise.
        """
        writes: Dict[str, Dict[str, str]] = getattr(self._local, "writes", None) or {}
        full_key = self._get_full_key(key)
        if full_key in writes:
            return deserialize_entry(writes[full_key])

        reader: Union[Redis, Pipeline] = self._pipeline if self._pipeline is not None else self.client
        with self._translate_errors():
            data = reader.hgetall(full_key)
        if not data:
            return None
        return deserialize_entry(data)

    def get(self, key: str) -> Optional[Entry]:
        """
        Look up the entry stored under a key.

        Args:
            key: The key to look up.

        Returns:
            The entry if found, None otherwise.
        """
        LOG.debug(f"Retrieving key '{key}' from Redis.")
        return self._load(key)

    def insert(self, entry: Entry) -> Optional[Conflict]:
        """
        Insert an entry unless its key is already present.

        Args:
            entry: The entry to insert.

        Returns:
            None if the entry was inserted, otherwise a [`Conflict`][data_models.Conflict]
                holding the existing entry.
        """
        if self._pipeline is None:
            with self.transaction(entry.key):
                return self.insert(entry)

        existing = self._load(entry.key)
        if existing is not None:
            LOG.debug(f"Key '{entry.key}' already exists in Redis.")
            return Conflict(existing)

        self._local.writes[self._get_full_key(entry.key)] = serialize_entry(entry)
        LOG.debug(f"Queued insert of key '{entry.key}' into Redis.")
        return None

    def replace(self, entry: Entry):
        """
        Overwrite the entry stored under `entry.key`.

        Args:
            entry: The new state of the entry.

        Raises:
            KeyNotFoundError: If no entry exists for `entry.key`.
        """
        if self._pipeline is None:
            with self.transaction(entry.key):
                self.replace(entry)
            return

        if self._load(entry.key) is None:
            raise KeyNotFoundError(f"Key '{entry.key}' does not exist in the Redis store.")

        self._local.writes[self._get_full_key(entry.key)] = serialize_entry(entry)
        LOG.debug(f"Queued replace of key '{entry.key}' in Redis.")

    @contextmanager
    def transaction(self, key: str) -> Iterator["RedisStore"]:
        """
        Run a WATCH/MULTI/EXEC transaction on a key.

        Writes made inside the context are buffered and sent in one `MULTI`/`EXEC`
        block on normal exit. An exception discards the buffer. A transaction opened
        while another is active on the same thread joins the outer one and watches
        `key` as well.

        Args:
            key: The key the transaction operates on.

        Yields:
            This store.

        Raises:
            StoreBusyError: If the watched key changed before `EXEC`.
            StoreUnavailableError: If Redis can't be reached.
        """
        if self._pipeline is not None:
            with self._translate_errors():
                self._pipeline.watch(self._get_full_key(key))
            yield self
            return

        with self._translate_errors():
            with self.client.pipeline() as pipe:
                pipe.watch(self._get_full_key(key))
                self._local.pipe = pipe
                self._local.writes = {}
                try:
                    yield self
                    writes = self._local.writes
                    if writes:
                        pipe.multi()
                        for full_key, mapping in writes.items():
                            pipe.hset(full_key, mapping=mapping)
                        pipe.execute()
                        LOG.debug(f"Committed Redis transaction for key '{key}'.")
                finally:
                    self._local.pipe = None
                    self._local.writes = None

    def keys(self) -> List[str]:
        """
        List every key in the store.

        Returns:
            A sorted list of keys.
        """
        pattern = f"{self.prefix}:*"
        prefix_len = len(self.prefix) + 1
        with self._translate_errors():
            found = [
                (raw.decode("utf-8") if isinstance(raw, bytes) else raw)[prefix_len:]
                for raw in self.client.scan_iter(match=pattern)
            ]
        return sorted(found)

    def get_version(self) -> str:
        """
        Query the Redis server for the current version.

        Returns:
            A string representing the current version of Redis.
        """
        with self._translate_errors():
            client_info = self.client.info()
        return client_info.get("redis_version", "N/A")

    def close(self):
        """Close the Redis client if this store created it."""
        if self._owns_client:
            self.client.close()
