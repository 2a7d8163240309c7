##############################################################################
# Copyright (c) upsertkv Project developers. See top-level LICENSE and
# COPYRIGHT files for dates and other details. No copyright assignment is
# required to contribute to upsertkv.
##############################################################################

"""
The upsert engine.

This module defines `UpsertEngine`, which resolves an
[`UpsertRequest`][data_models.UpsertRequest] against a store in one transaction:

1. Try to insert the incoming entry. If the key was free the result is `INSERTED`.
2. On a conflict with `DO_NOTHING` the result is `SKIPPED`.
3. On a conflict with `DO_UPDATE` the predicate decides whether to update. If it says
   no, or cannot be evaluated, the result is `SKIPPED`. Otherwise the merge function
   computes the new value, the entry is replaced, and the result is `UPDATED`.

The insert, the predicate, and the replace share the store's transaction, so two callers
can never both see the same existing entry and both write over it.
"""

import logging
import time
from datetime import datetime
from typing import Optional

from upsertkv.backends.store_base import StoreBase
from upsertkv.common.enums import ConflictPolicy, UpsertOutcome
from upsertkv.data_models import Entry, Predicate, UpsertRequest, UpsertResult, Value, validate_value
from upsertkv.exceptions import PredicateError, StoreBusyError, TypeMismatchError
from upsertkv.upsert.merge import apply_merge, increment
from upsertkv.upsert.predicates import evaluate_predicate


LOG = logging.getLogger(__name__)


class UpsertEngine:
    """
    Applies upserts atomically against a store.

    The store is handed in by the caller; the engine keeps no other state, so any number
    of engines (or threads sharing one engine) can work on the same store.

    Attributes:
        store (StoreBase): The store upserts are applied to.

    Methods:
        apply: Resolve one upsert request.
        apply_with_retry: Resolve an upsert request, retrying while the store is busy.
        get: Look up the entry stored under a key.
        put: Insert a value or replace the stored one.
        put_if_absent: Insert a value only if the key is free.
        increment: Add to an integer counter, creating it if needed.
    """

    def __init__(self, store: StoreBase):
        """
        Initialize the engine.

        Args:
            store: The store upserts are applied to.
        """
        self.store: StoreBase = store

    def apply(self, request: UpsertRequest) -> UpsertResult:
        """
        Resolve one upsert request in a single store transaction.

        Args:
            request: The request to apply.

        Returns:
            An [`UpsertResult`][data_models.UpsertResult]. Type mismatches yield a
                `FAILED` result and predicate errors a `SKIPPED` result with a `reason`;
                in both cases the store is left unchanged.

        Raises:
            StoreBusyError: If the store couldn't be locked in time. Safe to retry.
            StoreUnavailableError: If the backing storage couldn't be reached.
        """
        if not isinstance(request.key, str):
            return self._failed(request, f"Keys must be strings, got '{type(request.key).__name__}'.")
        try:
            validate_value(request.value)
        except TypeMismatchError as exc:
            return self._failed(request, str(exc))

        candidate = request.candidate()
        try:
            with self.store.transaction(request.key):
                result = self._resolve(request, candidate)
        except TypeMismatchError as exc:
            return self._failed(request, str(exc))

        LOG.debug(f"Upsert of key '{request.key}' finished as {result.outcome.value}.")
        return result

    def _resolve(self, request: UpsertRequest, candidate: Entry) -> UpsertResult:
        """
        Run the insert-or-update decision. Must be called inside a store transaction.

        Args:
            request: The request being applied.
            candidate: The entry the request would insert.

        Returns:
            The result of the upsert.
        """
        conflict = self.store.insert(candidate)
        if conflict is None:
            return UpsertResult(UpsertOutcome.INSERTED, entry=candidate)

        existing = conflict.existing
        if request.policy == ConflictPolicy.DO_NOTHING:
            return UpsertResult(UpsertOutcome.SKIPPED, entry=existing)

        try:
            proceed = evaluate_predicate(request.predicate, existing, candidate)
        except PredicateError as exc:
            LOG.warning(f"Skipping update of key '{request.key}': {exc}")
            return UpsertResult(UpsertOutcome.SKIPPED, entry=existing, reason=str(exc))

        if not proceed:
            return UpsertResult(UpsertOutcome.SKIPPED, entry=existing)

        resolved = apply_merge(request.merge, existing, candidate)
        updated = Entry(
            key=existing.key,
            value=resolved,
            last_updated=candidate.last_updated if candidate.last_updated is not None else existing.last_updated,
        )
        self.store.replace(updated)
        return UpsertResult(UpsertOutcome.UPDATED, entry=updated)

    @staticmethod
    def _failed(request: UpsertRequest, reason: str) -> UpsertResult:
        LOG.warning(f"Upsert of key '{request.key}' failed: {reason}")
        return UpsertResult(UpsertOutcome.FAILED, reason=reason)

    def apply_with_retry(
        self, request: UpsertRequest, attempts: int = 5, backoff: float = 0.05, max_backoff: float = 1.0
    ) -> UpsertResult:
        """
        Resolve an upsert request, retrying with exponential backoff while the store is busy.

        Args:
            request: The request to apply.
            attempts: The total number of attempts, including the first one.
            backoff: Seconds to sleep after the first busy attempt; doubled after each one.
            max_backoff: Upper bound for a single sleep.

        Returns:
            The result of the first attempt that got through.

        Raises:
            StoreBusyError: If every attempt found the store busy.
            StoreUnavailableError: Immediately; unreachable storage is never retried.
        """
        if attempts < 1:
            raise ValueError("attempts must be at least 1.")

        attempt = 1
        while True:
            try:
                return self.apply(request)
            except StoreBusyError as exc:
                if attempt >= attempts:
                    LOG.error(f"Giving up on key '{request.key}' after {attempts} busy attempts.")
                    raise
                delay = min(backoff * 2 ** (attempt - 1), max_backoff)
                LOG.warning(f"Store busy for key '{request.key}' ({exc}); retrying in {delay:.3f}s.")
                time.sleep(delay)
                attempt += 1

    def get(self, key: str) -> Optional[Entry]:
        """
        Look up the entry stored under a key.

        Args:
            key: The key to look up.

        Returns:
            The entry if found, None otherwise.
        """
        return self.store.get(key)

    def put(
        self,
        key: str,
        value: Value,
        last_updated: Optional[datetime] = None,
        predicate: Optional[Predicate] = None,
    ) -> UpsertResult:
        """
        Insert a value, or replace the stored one when `predicate` allows it.

        Args:
            key: The key to write.
            value: The value to write.
            last_updated: Timestamp to store with the entry.
            predicate: Optional guard for the replace.

        Returns:
            The result of the upsert.
        """
        return self.apply(
            UpsertRequest(
                key=key, value=value, policy=ConflictPolicy.DO_UPDATE, predicate=predicate, last_updated=last_updated
            )
        )

    def put_if_absent(self, key: str, value: Value, last_updated: Optional[datetime] = None) -> UpsertResult:
        """
        Insert a value only if the key is free.

        Args:
            key: The key to write.
            value: The value to write.
            last_updated: Timestamp to store with the entry.

        Returns:
            The result of the upsert; `SKIPPED` if the key already existed.
        """
        return self.apply(
            UpsertRequest(key=key, value=value, policy=ConflictPolicy.DO_NOTHING, last_updated=last_updated)
        )

    def increment(self, key: str, delta: int = 1, last_updated: Optional[datetime] = None) -> UpsertResult:
        """
        Add `delta` to an integer counter, creating the counter with `delta` if it's missing.

        Args:
            key: The counter's key.
            delta: The amount to add.
            last_updated: Timestamp to store with the counter.

        Returns:
            The result of the upsert; `FAILED` if the stored value isn't an integer.
        """
        return self.apply(
            UpsertRequest(
                key=key, value=delta, policy=ConflictPolicy.DO_UPDATE, merge=increment, last_updated=last_updated
            )
        )
