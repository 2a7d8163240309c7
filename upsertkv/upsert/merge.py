##############################################################################
# Copyright (c) upsertkv Project developers. See top-level LICENSE and
# COPYRIGHT files for dates and other details. No copyright assignment is
# required to contribute to upsertkv.
##############################################################################

"""
Merge functions for upserts.

When an upsert takes its update branch, the value written back is computed as
`merge(existing, incoming)`.
"""

from typing import Optional

from upsertkv.data_models import Entry, Merge, Value, validate_value
from upsertkv.exceptions import TypeMismatchError


def replace_with_incoming(existing: Entry, incoming: Entry) -> Value:  # pylint: disable=unused-argument
    """The default merge: the incoming value wins."""
    return incoming.value


def increment(existing: Entry, incoming: Entry) -> Value:
    """
    Add the incoming value to the stored one.

    Args:
        existing: The entry currently stored under the key.
        incoming: The entry carried by the request; its value is the delta.

    Returns:
        The sum of both values.

    Raises:
        TypeMismatchError: If either value is not an integer.
    """
    for side, value in (("existing", existing.value), ("incoming", incoming.value)):
        if not isinstance(value, int) or isinstance(value, bool):
            raise TypeMismatchError(
                f"Cannot increment key '{existing.key}': {side} value {value!r} is not an integer."
            )
    return validate_value(existing.value + incoming.value)


def coalesce(existing: Entry, incoming: Entry) -> Value:
    """Keep the stored value when the incoming value is null, otherwise take the incoming one."""
    return existing.value if incoming.value is None else incoming.value


def apply_merge(merge: Optional[Merge], existing: Entry, incoming: Entry) -> Value:
    """
    Run a merge function and check what it returns.

    A caller-supplied merge that trips over the stored value (adding an integer to
    text, say) raises `TypeError` or `ValueError` in Python; those, along with
    arithmetic errors, are reported as [`TypeMismatchError`][exceptions.TypeMismatchError].

    Args:
        merge: The merge function. None means
            [`replace_with_incoming`][upsert.merge.replace_with_incoming].
        existing: The entry currently stored under the key.
        incoming: The entry carried by the request.

    Returns:
        The value to store.

    Raises:
        TypeMismatchError: If the merge failed or returned an unsupported value.
    """
    if merge is None:
        merge = replace_with_incoming
    try:
        merged = merge(existing, incoming)
    except TypeMismatchError:
        raise
    except (TypeError, ValueError, ArithmeticError) as exc:
        raise TypeMismatchError(f"Merge failed for key '{existing.key}': {exc}") from exc
    return validate_value(merged)
