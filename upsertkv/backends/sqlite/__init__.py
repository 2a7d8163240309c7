##############################################################################
# Copyright (c) upsertkv Project developers. See top-level LICENSE and
# COPYRIGHT files for dates and other details. No copyright assignment is
# required to contribute to upsertkv.
##############################################################################

"""
SQLite-based store for the upsertkv application.

Modules:
    sqlite_connection: Provides a context-managed SQLite connection with safe configuration.
    sqlite_store: Implements the `StoreBase` interface using SQLite.
"""
