##############################################################################
# Copyright (c) upsertkv Project developers. See top-level LICENSE and
# COPYRIGHT files for dates and other details. No copyright assignment is
# required to contribute to upsertkv.
##############################################################################

"""This module provides enumerations for the upsert interface."""
from enum import Enum


__all__ = ("ConflictPolicy", "UpsertOutcome")


class ConflictPolicy(Enum):
    """
    Enum for the behavior applied when an insert hits an existing key.

    Attributes:
        DO_NOTHING (str): Leave the existing entry untouched.
        DO_UPDATE (str): Update the existing entry, subject to the request's
            predicate, using the request's merge function.
    """

    DO_NOTHING: str = "do_nothing"
    DO_UPDATE: str = "do_update"


class UpsertOutcome(Enum):
    """
    Enum for the result of applying an upsert.

    Attributes:
        INSERTED (str): The key was absent and a new entry was created.
        UPDATED (str): The key existed and its entry was replaced.
        SKIPPED (str): The key existed and no mutation happened.
        FAILED (str): The request could not be applied (e.g. a type mismatch).
    """

    INSERTED: str = "inserted"
    UPDATED: str = "updated"
    SKIPPED: str = "skipped"
    FAILED: str = "failed"
