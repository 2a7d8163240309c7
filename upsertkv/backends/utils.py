##############################################################################
# Copyright (c) upsertkv Project developers. See top-level LICENSE and
# COPYRIGHT files for dates and other details. No copyright assignment is
# required to contribute to upsertkv.
##############################################################################

"""
Utility functions for backends in the upsertkv application.

These utilities convert [`Entry`][data_models.Entry] objects into a flat, string-valued
format that key-value backends (JSON files, Redis hashes) can persist, and back again.
The value's type tag is stored next to the value so that Text "42" and Integer 42 never
collapse into one another.
"""

from datetime import datetime
from typing import Dict, Union

from upsertkv.data_models import Entry, validate_value, value_type_name
from upsertkv.exceptions import TypeMismatchError


NULL_MARKER = "null"


def _to_str(raw: Union[str, bytes]) -> str:
    """
    Decode a raw field into a string.

    Args:
        raw: A string, or bytes as returned by clients without response decoding.

    Returns:
        The field as a string.
    """
    return raw.decode("utf-8") if isinstance(raw, bytes) else raw


def serialize_entry(entry: Entry) -> Dict[str, str]:
    """
    Given an [`Entry`][data_models.Entry], convert its data into a format that
    key-value backends can store.

    Args:
        entry: The entry to serialize.

    Returns:
        A dictionary with `key`, `type`, `value`, and `last_updated` fields, all strings.
    """
    value = validate_value(entry.value)
    return {
        "key": entry.key,
        "type": value_type_name(value),
        "value": "" if value is None else str(value),
        "last_updated": entry.last_updated.isoformat() if entry.last_updated is not None else NULL_MARKER,
    }


def deserialize_entry(data: Dict[Union[str, bytes], Union[str, bytes]]) -> Entry:
    """
    Given data that was retrieved from a backend, convert it into an
    [`Entry`][data_models.Entry].

    Args:
        data: The data produced by [`serialize_entry`][backends.utils.serialize_entry].

    Returns:
        The entry the data describes.

    Raises:
        TypeMismatchError: If the stored type tag is unknown or doesn't match the value.
    """
    fields = {_to_str(field): _to_str(val) for field, val in data.items()}
    type_tag = fields.get("type", NULL_MARKER)
    raw_value = fields.get("value", "")

    if type_tag == "null":
        value = None
    elif type_tag == "text":
        value = raw_value
    elif type_tag == "integer":
        try:
            value = int(raw_value)
        except ValueError as exc:
            raise TypeMismatchError(f"Stored integer for key '{fields.get('key')}' is not a number: {raw_value!r}") from exc
    else:
        raise TypeMismatchError(f"Unknown value type '{type_tag}' stored for key '{fields.get('key')}'.")

    raw_timestamp = fields.get("last_updated", NULL_MARKER)
    last_updated = None if raw_timestamp == NULL_MARKER else datetime.fromisoformat(raw_timestamp)

    return Entry(key=fields["key"], value=value, last_updated=last_updated)
