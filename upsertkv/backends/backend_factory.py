##############################################################################
# Copyright (c) upsertkv Project developers. See top-level LICENSE and
# COPYRIGHT files for dates and other details. No copyright assignment is
# required to contribute to upsertkv.
##############################################################################

"""
Store factory for selecting and instantiating store backends in upsertkv.

This module defines the `StoreFactory` class, which maps store names and aliases
to store classes and builds a store from a name plus its settings. The built-in
stores are SQLite, Redis, a JSON file, and an in-process dict; third-party stores
are picked up from the `upsertkv.stores` entry point group.
"""

import logging
from importlib.metadata import entry_points
from typing import Dict, List, Type

from upsertkv.backends.json_file.json_file_store import JSONFileStore
from upsertkv.backends.memory.memory_store import MemoryStore
from upsertkv.backends.redis.redis_store import RedisStore
from upsertkv.backends.sqlite.sqlite_store import SQLiteStore
from upsertkv.backends.store_base import StoreBase
from upsertkv.exceptions import BackendNotSupportedError


LOG = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "upsertkv.stores"


class StoreFactory:
    """
    Factory class for managing and instantiating supported upsertkv stores.

    Attributes:
        _registry (Dict[str, Type[StoreBase]]): Maps canonical store names to store classes.
        _aliases (Dict[str, str]): Maps alternate names to canonical store names.

    Methods:
        register: Register a new store class and optional aliases.
        list_available: Return a list of supported store names.
        resolve: Look up the store class for a name or alias.
        create: Instantiate a store by name or alias.
    """

    def __init__(self):
        """
        Initialize the factory and register the built-in stores.
        """
        self._registry: Dict[str, Type[StoreBase]] = {}
        self._aliases: Dict[str, str] = {}

        self.register("sqlite", SQLiteStore, aliases=["sqlite3"])
        self.register("memory", MemoryStore)
        self.register("json", JSONFileStore, aliases=["file"])
        self.register("redis", RedisStore, aliases=["rediss"])

    def register(self, name: str, store_class: Type[StoreBase], aliases: List[str] = None):
        """
        Register a store class under a name.

        Args:
            name: Canonical name for the store.
            store_class: The store class to register.
            aliases: Optional alternative names for this store.

        Raises:
            TypeError: If `store_class` is not a subclass of `StoreBase`.
        """
        if not isinstance(store_class, type) or not issubclass(store_class, StoreBase):
            raise TypeError(f"{store_class} must inherit from StoreBase")

        self._registry[name] = store_class
        LOG.debug(f"Registered store: {name}")

        for alias in aliases or []:
            self._aliases[alias] = name
            LOG.debug(f"Registered alias '{alias}' for store '{name}'")

    def _discover_plugins(self):
        """
        Register stores published under the `upsertkv.stores` entry point group.

        Plugins that fail to load are logged and skipped.
        """
        for entry_point in entry_points(group=ENTRY_POINT_GROUP):
            if entry_point.name in self._registry:
                continue
            try:
                self.register(entry_point.name, entry_point.load())
                LOG.info(f"Loaded store plugin via entry point: {entry_point.name}")
            except Exception as e:  # pylint: disable=broad-exception-caught
                LOG.warning(f"Failed to load store plugin '{entry_point.name}': {e}")

    def list_available(self) -> List[str]:
        """
        Return the canonical names of every built-in and plugin store.

        Returns:
            A list of store names.
        """
        self._discover_plugins()
        return list(self._registry.keys())

    def resolve(self, store_type: str) -> Type[StoreBase]:
        """
        Look up the store class for a name or alias.

        Plugin discovery runs before giving up on a name that isn't registered yet.

        Args:
            store_type: The name or alias of the store.

        Returns:
            The registered store class.

        Raises:
            BackendNotSupportedError: If no store is registered under `store_type`.
        """
        canonical_name = self._aliases.get(store_type, store_type)
        if canonical_name not in self._registry:
            self._discover_plugins()

        store_class = self._registry.get(canonical_name)
        if store_class is None:
            available = ", ".join(self.list_available())
            raise BackendNotSupportedError(f"Store '{store_type}' is not supported. Available stores: {available}")
        return store_class

    def create(self, store_type: str, settings: Dict = None) -> StoreBase:
        """
        Instantiate a store of the specified type.

        Args:
            store_type: The name or alias of the store to create.
            settings: Optional keyword arguments for the store's constructor.

        Returns:
            An instance of the requested store.

        Raises:
            BackendNotSupportedError: If the store type is unknown.
            ValueError: If the store rejected `settings`.
        """
        store_class = self.resolve(store_type)
        try:
            store = store_class(**(settings or {}))
        except TypeError as e:
            raise ValueError(f"Failed to create store '{store_type}': {e}") from e
        LOG.info(f"Created {store_class.__name__} for store type '{store_type}'.")
        return store


store_factory = StoreFactory()
