##############################################################################
# Copyright (c) upsertkv Project developers. See top-level LICENSE and
# COPYRIGHT files for dates and other details. No copyright assignment is
# required to contribute to upsertkv.
##############################################################################

"""
Store infrastructure for the upsertkv application.

The `backends` package provides a unified interface and implementations for persisting
and retrieving [`Entry`][data_models.Entry] objects across various storage technologies.
It defines an abstract store interface (`StoreBase`) along with concrete implementations
using SQLite, Redis, a JSON file, and an in-process dict, as well as serialization
utilities and a store factory.

Subpackages:
    json_file: JSON document store guarded by a file lock.
    memory: In-process store with per-key locks.
    redis: Redis store using WATCH/MULTI/EXEC transactions.
    sqlite: SQLite store using `BEGIN IMMEDIATE` transactions.

Modules:
    backend_factory: Contains `StoreFactory`, used to dynamically select and instantiate a store.
    store_base: Provides the abstract `StoreBase` class, the foundation for all store implementations.
    utils: Utility functions for serializing entries for key-value backends.
"""
