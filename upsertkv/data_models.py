##############################################################################
# Copyright (c) upsertkv Project developers. See top-level LICENSE and
# COPYRIGHT files for dates and other details. No copyright assignment is
# required to contribute to upsertkv.
##############################################################################

"""
This module houses dataclasses that define the format of the data
that's stored in and exchanged with an upsertkv store.
"""

import json
from dataclasses import Field, asdict, dataclass
from dataclasses import fields as dataclass_fields
from datetime import datetime
from typing import Callable, Dict, Optional, Tuple, Type, TypeVar, Union

from upsertkv.common.enums import ConflictPolicy, UpsertOutcome
from upsertkv.exceptions import TypeMismatchError


T = TypeVar("T", bound="Entry")

Value = Union[None, str, int]
"""The tagged union of values a store can hold: Null, Text, or Integer."""

INTEGER_MIN = -(2**63)
INTEGER_MAX = 2**63 - 1


def validate_value(value: Value) -> Value:
    """
    Ensure a value belongs to the supported value types.

    `bool` is rejected even though it subclasses `int` so that a stored
    `True` never comes back as `1`. Integers must fit in a signed 64-bit
    column, the range every backend can hold.

    Args:
        value: The value to check.

    Returns:
        The value, unchanged.

    Raises:
        TypeMismatchError: If the value is not None, a str, or an int, or
            if the int is outside the signed 64-bit range.
    """
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        if not INTEGER_MIN <= value <= INTEGER_MAX:
            raise TypeMismatchError(f"Integer {value} is outside the signed 64-bit range.")
        return value
    raise TypeMismatchError(f"Unsupported value type '{type(value).__name__}'; expected None, str, or int.")


def value_type_name(value: Value) -> str:
    """
    Get the tag name for a value.

    Args:
        value: A validated value.

    Returns:
        One of "null", "text", or "integer".
    """
    if value is None:
        return "null"
    if isinstance(value, str):
        return "text"
    return "integer"


@dataclass
class Entry:
    """
    A single keyed record in a store.

    Attributes:
        key: The unique key of the entry. Never changes once the entry exists.
        value: The stored value (None, str, or int).
        last_updated: When the entry was last written, if the writer supplied it.

    Methods:
        to_dict:
            Convert the entry to a dictionary.

        to_json:
            Serialize the entry to a JSON string.

        from_dict (classmethod):
            Create an entry from a dictionary.

        from_json (classmethod):
            Create an entry from a JSON string.

        get_class_fields (classmethod):
            Retrieve the fields associated with the dataclass.
    """

    key: str
    value: Value = None
    last_updated: Optional[datetime] = None

    def to_dict(self) -> Dict:
        """
        Convert the dataclass to a dictionary.

        Returns:
            The dataclass as a dictionary.
        """
        return asdict(self)

    def to_json(self) -> str:
        """
        Serialize the dataclass to a JSON string.

        Returns:
            The dataclass as a JSON string with `last_updated` in ISO 8601 format.
        """
        data = self.to_dict()
        if self.last_updated is not None:
            data["last_updated"] = self.last_updated.isoformat()
        return json.dumps(data)

    @classmethod
    def from_dict(cls: Type[T], data: Dict) -> T:
        """
        Create an instance of the dataclass from a dictionary.

        Args:
            data: A dictionary to turn into an instance of this dataclass. A string
                `last_updated` is parsed as an ISO 8601 timestamp.

        Returns:
            An instance of the dataclass that called this.
        """
        data = dict(data)
        last_updated = data.get("last_updated")
        if isinstance(last_updated, str):
            data["last_updated"] = datetime.fromisoformat(last_updated)
        return cls(**data)

    @classmethod
    def from_json(cls: Type[T], json_str: str) -> T:
        """
        Create an instance of the dataclass from a JSON string.

        Args:
            json_str: A JSON string to turn into an instance of this dataclass.

        Returns:
            An instance of the dataclass that called this.
        """
        return cls.from_dict(json.loads(json_str))

    @classmethod
    def get_class_fields(cls) -> Tuple[Field]:
        """
        Get the fields associated with this object.

        Returns:
            A tuple of dataclass.Field objects representing the fields in this data class.
        """
        return dataclass_fields(cls)


@dataclass(frozen=True)
class Conflict:
    """
    Returned by a store's `insert` when the key is already taken.

    Attributes:
        existing: The entry that currently owns the key.
    """

    existing: Entry


Predicate = Callable[[Entry, Entry], bool]
Merge = Callable[[Entry, Entry], Value]


@dataclass
class UpsertRequest:
    """
    A single insert-or-update request. Built per call and never persisted.

    Attributes:
        key: The key to upsert.
        value: The incoming value.
        policy: What to do when the key already exists.
        predicate: Guard evaluated as `predicate(existing, incoming)` before an
            update. None means the update always proceeds.
        merge: Computes the stored value as `merge(existing, incoming)` on update.
            None means the incoming value replaces the existing one.
        last_updated: Timestamp carried by the incoming entry.
    """

    key: str
    value: Value
    policy: ConflictPolicy = ConflictPolicy.DO_UPDATE
    predicate: Optional[Predicate] = None
    merge: Optional[Merge] = None
    last_updated: Optional[datetime] = None

    def candidate(self) -> Entry:
        """
        Build the entry this request would insert.

        Returns:
            An [`Entry`][data_models.Entry] holding the incoming key, value, and timestamp.
        """
        return Entry(key=self.key, value=self.value, last_updated=self.last_updated)


@dataclass
class UpsertResult:
    """
    The discriminated result of applying an [`UpsertRequest`][data_models.UpsertRequest].

    Attributes:
        outcome: Which branch the upsert took.
        entry: The entry stored under the key once the upsert finished, if any.
        reason: A diagnostic for skipped-by-error and failed upserts.
    """

    outcome: UpsertOutcome
    entry: Optional[Entry] = None
    reason: Optional[str] = None

    @property
    def inserted(self) -> bool:
        """True if the upsert created the entry."""
        return self.outcome == UpsertOutcome.INSERTED

    @property
    def updated(self) -> bool:
        """True if the upsert replaced the entry."""
        return self.outcome == UpsertOutcome.UPDATED

    @property
    def skipped(self) -> bool:
        """True if the upsert left the entry untouched."""
        return self.outcome == UpsertOutcome.SKIPPED

    @property
    def failed(self) -> bool:
        """True if the upsert could not be applied."""
        return self.outcome == UpsertOutcome.FAILED
