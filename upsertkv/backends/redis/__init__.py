##############################################################################
# Copyright (c) upsertkv Project developers. See top-level LICENSE and
# COPYRIGHT files for dates and other details. No copyright assignment is
# required to contribute to upsertkv.
##############################################################################

"""
Redis-based store for the upsertkv application.

Modules:
    redis_store: Implements the `StoreBase` interface using Redis hashes.
"""
