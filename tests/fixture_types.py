##############################################################################
# Copyright (c) upsertkv Project developers. See top-level LICENSE and
# COPYRIGHT files for dates and other details. No copyright assignment is
# required to contribute to upsertkv.
##############################################################################

"""
It's hard to type hint pytest fixtures in a way that makes it clear
that the variable being used is a fixture. This module will create
aliases for these fixtures in order to make it easier to track what's
happening.

The types here will be defined as such:
- `FixtureDict`: A fixture that returns a dictionary
- `FixtureEngine`: A fixture that returns an `UpsertEngine`
- `FixtureRedis`: A fixture that returns a Redis client
- `FixtureStore`: A fixture that returns a store
- `FixtureStr`: A fixture that returns a string
"""

from typing import Annotated, Dict, TypeVar

import pytest
from redis import Redis

from upsertkv.backends.store_base import StoreBase
from upsertkv.upsert.engine import UpsertEngine


K = TypeVar("K")
V = TypeVar("V")

FixtureDict = Annotated[Dict[K, V], pytest.fixture]
FixtureEngine = Annotated[UpsertEngine, pytest.fixture]
FixtureRedis = Annotated[Redis, pytest.fixture]
FixtureStore = Annotated[StoreBase, pytest.fixture]
FixtureStr = Annotated[str, pytest.fixture]
