##############################################################################
# Copyright (c) upsertkv Project developers. See top-level LICENSE and
# COPYRIGHT files for dates and other details. No copyright assignment is
# required to contribute to upsertkv.
##############################################################################

"""
Module of all upsertkv-specific exception types.
"""

__all__ = (
    "KeyNotFoundError",
    "TypeMismatchError",
    "PredicateError",
    "StoreBusyError",
    "StoreUnavailableError",
    "BackendNotSupportedError",
    "ConfigurationError",
)


class KeyNotFoundError(Exception):
    """
    Exception to signal that a key does not exist in a store.
    """


class TypeMismatchError(Exception):
    """
    Exception for values that are not part of the supported value types, or
    for merges that combine incompatible value types (e.g. incrementing text).
    """


class PredicateError(Exception):
    """
    Exception to signal that a conflict predicate could not be evaluated
    against the existing and incoming entries.
    """


class StoreBusyError(Exception):
    """
    Exception to signal that a store could not be locked within its busy
    timeout. The operation did not happen and can be retried.
    """


class StoreUnavailableError(Exception):
    """
    Exception to signal that the backing storage cannot be reached. Fatal for
    the current attempt.
    """


class BackendNotSupportedError(Exception):
    """
    Exception to signal that the provided store backend is not supported.
    """


class ConfigurationError(Exception):
    """
    Exception to signal that the upsertkv configuration is invalid.
    """
