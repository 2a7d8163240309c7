##############################################################################
# Copyright (c) upsertkv Project developers. See top-level LICENSE and
# COPYRIGHT files for dates and other details. No copyright assignment is
# required to contribute to upsertkv.
##############################################################################

"""
The `upsert` package holds the logic that resolves insert-or-update requests.

Modules:
    engine: Contains `UpsertEngine`, which applies requests atomically against a store.
    merge: Functions that compute the stored value on update.
    predicates: Functions that decide whether an update proceeds.
"""

from upsertkv.upsert.engine import UpsertEngine


__all__ = ["UpsertEngine"]
