##############################################################################
# Copyright (c) upsertkv Project developers. See top-level LICENSE and
# COPYRIGHT files for dates and other details. No copyright assignment is
# required to contribute to upsertkv.
##############################################################################

"""
Tests for the `store_base.py` module.
"""

from contextlib import contextmanager
from typing import Dict, List, Optional

import pytest

from upsertkv.backends.store_base import StoreBase
from upsertkv.data_models import Conflict, Entry


class DictStore(StoreBase):
    """A minimal concrete store for exercising the base class."""

    backend_name = "dict"

    def __init__(self):
        super().__init__(busy_timeout=1)
        self.entries: Dict[str, Entry] = {}
        self.closed = False

    def get(self, key: str) -> Optional[Entry]:
        return self.entries.get(key)

    def insert(self, entry: Entry) -> Optional[Conflict]:
        if entry.key in self.entries:
            return Conflict(self.entries[entry.key])
        self.entries[entry.key] = entry
        return None

    def replace(self, entry: Entry):
        self.entries[entry.key] = entry

    @contextmanager
    def transaction(self, key: str):
        yield self

    def keys(self) -> List[str]:
        return sorted(self.entries)

    def close(self):
        self.closed = True


def test_store_base_is_abstract():
    """Test that `StoreBase` can't be instantiated directly."""
    with pytest.raises(TypeError):
        StoreBase()  # pylint: disable=abstract-class-instantiated


def test_busy_timeout_is_float():
    """Test that the busy timeout is normalized to a float."""
    assert DictStore().busy_timeout == 1.0


def test_count_uses_keys():
    """Test the default `count` implementation."""
    store = DictStore()
    store.insert(Entry("a"))
    store.insert(Entry("b"))

    assert store.count() == 2


def test_context_manager_closes_store():
    """Test that leaving a `with` block closes the store."""
    with DictStore() as store:
        assert not store.closed

    assert store.closed
