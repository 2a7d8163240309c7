##############################################################################
# Copyright (c) upsertkv Project developers. See top-level LICENSE and
# COPYRIGHT files for dates and other details. No copyright assignment is
# required to contribute to upsertkv.
##############################################################################

"""
Tests for the `backend_factory.py` module.
"""

import pytest
from pytest_mock import MockerFixture

from upsertkv.backends.backend_factory import StoreFactory
from upsertkv.backends.json_file.json_file_store import JSONFileStore
from upsertkv.backends.memory.memory_store import MemoryStore
from upsertkv.backends.redis.redis_store import RedisStore
from upsertkv.backends.sqlite.sqlite_store import SQLiteStore
from upsertkv.exceptions import BackendNotSupportedError


class PluginStore(MemoryStore):
    """A store published by a third-party package."""


class TestStoreFactory:
    """
    Test suite for the `StoreFactory`.

    These tests cover registration, alias resolution, plugin discovery, and
    instantiation of the built-in stores.
    """

    @pytest.fixture
    def factory(self, mocker: MockerFixture) -> StoreFactory:
        """
        An instance of the `StoreFactory` class with no installed plugins. Resets on each test.

        Args:
            mocker: PyTest mocker fixture.

        Returns:
            An instance of the `StoreFactory` class for testing.
        """
        mocker.patch("upsertkv.backends.backend_factory.entry_points", return_value=[])
        return StoreFactory()

    def test_list_available(self, factory: StoreFactory):
        """
        Test that `list_available` returns every built-in store and no aliases.

        Args:
            factory: An instance of the `StoreFactory` class for testing.
        """
        assert sorted(factory.list_available()) == ["json", "memory", "redis", "sqlite"]

    @pytest.mark.parametrize(
        "name, expected_cls",
        [
            ("sqlite", SQLiteStore),
            ("sqlite3", SQLiteStore),
            ("memory", MemoryStore),
            ("json", JSONFileStore),
            ("file", JSONFileStore),
            ("redis", RedisStore),
            ("rediss", RedisStore),
        ],
    )
    def test_aliases_resolve(self, factory: StoreFactory, name: str, expected_cls: type):
        """
        Test that names and aliases resolve to the right store class.

        Args:
            factory: An instance of the `StoreFactory` class for testing.
            name: A store name or alias.
            expected_cls: The class the name should resolve to.
        """
        assert factory.resolve(name) is expected_cls

    def test_create_sqlite_store(self, factory: StoreFactory, tmp_path):
        """
        Test creating a store with settings.

        Args:
            factory: An instance of the `StoreFactory` class for testing.
            tmp_path: PyTest temporary directory fixture.
        """
        store = factory.create("sqlite", {"db_path": str(tmp_path / "factory.db"), "busy_timeout": 1.5})

        assert isinstance(store, SQLiteStore)
        assert store.busy_timeout == 1.5

    def test_create_without_settings(self, factory: StoreFactory):
        """
        Test that a store with all-default settings can be created without passing any.

        Args:
            factory: An instance of the `StoreFactory` class for testing.
        """
        assert isinstance(factory.create("memory"), MemoryStore)

    def test_bad_settings_raise_value_error(self, factory: StoreFactory):
        """
        Test that settings the store's constructor rejects raise `ValueError`.

        Args:
            factory: An instance of the `StoreFactory` class for testing.
        """
        with pytest.raises(ValueError, match="Failed to create store 'memory'"):
            factory.create("memory", {"no_such_setting": 1})

    def test_unknown_store_raises(self, factory: StoreFactory):
        """
        Test that an unknown store name raises `BackendNotSupportedError` listing the options.

        Args:
            factory: An instance of the `StoreFactory` class for testing.
        """
        with pytest.raises(BackendNotSupportedError, match="Store 'postgres' is not supported") as excinfo:
            factory.create("postgres")

        assert "sqlite" in str(excinfo.value)

    def test_only_stores_can_register(self, factory: StoreFactory):
        """
        Test that classes that aren't stores are refused.

        Args:
            factory: An instance of the `StoreFactory` class for testing.
        """
        with pytest.raises(TypeError, match="must inherit from StoreBase"):
            factory.register("dict", dict)

    def test_register_with_aliases(self, factory: StoreFactory):
        """
        Test that a registered store is reachable through its aliases.

        Args:
            factory: An instance of the `StoreFactory` class for testing.
        """
        factory.register("scratch", PluginStore, aliases=["tmp"])

        assert factory.resolve("tmp") is PluginStore
        assert "scratch" in factory.list_available()

    def test_plugin_stores_are_discovered(self, mocker: MockerFixture):
        """
        Test that stores published under the `upsertkv.stores` entry point group can be created.

        Args:
            mocker: PyTest mocker fixture.
        """
        plugin = mocker.MagicMock()
        plugin.name = "plugin"
        plugin.load.return_value = PluginStore
        mock_entry_points = mocker.patch("upsertkv.backends.backend_factory.entry_points", return_value=[plugin])

        store = StoreFactory().create("plugin", {"busy_timeout": 0.5})

        mock_entry_points.assert_called_with(group="upsertkv.stores")
        assert isinstance(store, PluginStore)
        assert store.busy_timeout == 0.5

    def test_failing_plugin_is_skipped(self, mocker: MockerFixture):
        """
        Test that a plugin that fails to load is logged and skipped.

        Args:
            mocker: PyTest mocker fixture.
        """
        broken = mocker.MagicMock()
        broken.name = "broken"
        broken.load.side_effect = ImportError("missing dependency")
        not_a_store = mocker.MagicMock()
        not_a_store.name = "not_a_store"
        not_a_store.load.return_value = dict
        mocker.patch("upsertkv.backends.backend_factory.entry_points", return_value=[broken, not_a_store])

        assert sorted(StoreFactory().list_available()) == ["json", "memory", "redis", "sqlite"]
