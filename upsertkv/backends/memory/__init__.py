##############################################################################
# Copyright (c) upsertkv Project developers. See top-level LICENSE and
# COPYRIGHT files for dates and other details. No copyright assignment is
# required to contribute to upsertkv.
##############################################################################

"""
In-process store for the upsertkv application.

Modules:
    memory_store: Implements the `StoreBase` interface with a dict and per-key locks.
"""
