##############################################################################
# Copyright (c) upsertkv Project developers. See top-level LICENSE and
# COPYRIGHT files for dates and other details. No copyright assignment is
# required to contribute to upsertkv.
##############################################################################

"""
Conflict predicates for upserts.

A predicate decides whether the update branch of an upsert runs. It is called as
`predicate(existing, incoming)` with the entry currently stored under the key and the
entry the request would have inserted, and returns a bool. Predicates must be pure and
deterministic: no I/O, no clocks, no randomness.
"""

from typing import Callable

from upsertkv.data_models import Entry, Predicate
from upsertkv.exceptions import PredicateError


def always(existing: Entry, incoming: Entry) -> bool:  # pylint: disable=unused-argument
    """The default predicate: the update always proceeds."""
    return True


def newer_than_existing(existing: Entry, incoming: Entry) -> bool:
    """
    Only update when the incoming entry is strictly newer than the stored one.

    Args:
        existing: The entry currently stored under the key.
        incoming: The entry carried by the request.

    Returns:
        True if `existing.last_updated < incoming.last_updated`.

    Raises:
        PredicateError: If either side has no `last_updated` timestamp.
    """
    if existing.last_updated is None or incoming.last_updated is None:
        side = "existing" if existing.last_updated is None else "incoming"
        raise PredicateError(f"Cannot compare timestamps for key '{existing.key}': the {side} entry has no last_updated.")
    return existing.last_updated < incoming.last_updated


def value_differs(existing: Entry, incoming: Entry) -> bool:
    """Only update when the value would actually change."""
    return existing.value != incoming.value


def all_of(*predicates: Predicate) -> Predicate:
    """
    Combine predicates so the update only proceeds if every one of them agrees.

    Args:
        predicates: The predicates to combine. Evaluation stops at the first False.

    Returns:
        The combined predicate.
    """

    def _all_of(existing: Entry, incoming: Entry) -> bool:
        return all(predicate(existing, incoming) for predicate in predicates)

    return _all_of


def any_of(*predicates: Predicate) -> Predicate:
    """
    Combine predicates so the update proceeds if at least one of them agrees.

    Args:
        predicates: The predicates to combine. Evaluation stops at the first True.

    Returns:
        The combined predicate.
    """

    def _any_of(existing: Entry, incoming: Entry) -> bool:
        return any(predicate(existing, incoming) for predicate in predicates)

    return _any_of


def negate(predicate: Predicate) -> Predicate:
    """
    Invert a predicate.

    Args:
        predicate: The predicate to invert.

    Returns:
        A predicate that is True whenever `predicate` is False.
    """

    def _negate(existing: Entry, incoming: Entry) -> bool:
        return not predicate(existing, incoming)

    return _negate


def evaluate_predicate(predicate: Callable[[Entry, Entry], bool], existing: Entry, incoming: Entry) -> bool:
    """
    Run a predicate and normalize its failures.

    Comparing incompatible values (e.g. a naive and an aware datetime, or text with an
    integer) raises `TypeError` in Python; those errors, along with `ValueError`,
    `AttributeError`, and lookup errors such as `KeyError`, are reported as
    [`PredicateError`][exceptions.PredicateError].

    Args:
        predicate: The predicate to run. None means [`always`][upsert.predicates.always].
        existing: The entry currently stored under the key.
        incoming: The entry carried by the request.

    Returns:
        The predicate's verdict as a bool.

    Raises:
        PredicateError: If the predicate could not be evaluated.
    """
    if predicate is None:
        return True
    try:
        return bool(predicate(existing, incoming))
    except PredicateError:
        raise
    except (TypeError, ValueError, AttributeError, LookupError) as exc:
        raise PredicateError(f"Predicate failed for key '{existing.key}': {exc}") from exc
