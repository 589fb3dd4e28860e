"""Storage port consumed by the session engine.

Any backend that can persist records, run simple filtered queries, apply an
atomic batch of writes and push full snapshots of a filtered collection to
subscribers satisfies this contract. Records are plain dicts; every record
carries a store-managed integer ``version`` that is bumped on each write.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

Record = dict[str, Any]
SnapshotCallback = Callable[[list[Record]], None]
Unsubscribe = Callable[[], None]

QUIZZES = "quizzes"
SESSIONS = "sessions"
PARTICIPANTS = "participants"
RESPONSES = "responses"

VERSION_FIELD = "version"


class StoreError(Exception):
    """Base class for storage failures."""


class StoreUnavailable(StoreError):
    """Transient failure (network, timeout). Reads may be retried."""


class RecordNotFound(StoreError):
    def __init__(self, collection: str, record_id: str) -> None:
        super().__init__(f"No record {record_id!r} in {collection!r}.")
        self.collection = collection
        self.record_id = record_id


class DuplicateRecord(StoreError):
    def __init__(self, collection: str, record_id: str) -> None:
        super().__init__(f"Record {record_id!r} already exists in {collection!r}.")
        self.collection = collection
        self.record_id = record_id


class StaleWrite(StoreError):
    """The record's version changed since the caller read it."""

    def __init__(self, collection: str, record_id: str, expected: int, actual: int) -> None:
        super().__init__(
            f"Record {record_id!r} in {collection!r} is at version {actual}, expected {expected}."
        )
        self.collection = collection
        self.record_id = record_id
        self.expected = expected
        self.actual = actual


class PreconditionFailed(StoreError):
    """A check op inside a batch did not hold, so nothing was written."""

    def __init__(self, collection: str, detail: str) -> None:
        super().__init__(f"Precondition on {collection!r} failed: {detail}")
        self.collection = collection
        self.detail = detail


@dataclass(frozen=True, slots=True)
class Filter:
    """Field predicate. ``op`` is ``"=="`` or ``"in"``."""

    field: str
    op: str
    value: Any

    def matches(self, record: Record) -> bool:
        actual = record.get(self.field)
        if self.op == "==":
            return actual == self.value
        if self.op == "in":
            return actual in self.value
        raise ValueError(f"Unsupported filter operator: {self.op}")


def eq(field_name: str, value: Any) -> Filter:
    return Filter(field_name, "==", value)


def one_of(field_name: str, values: Iterable[Any]) -> Filter:
    return Filter(field_name, "in", tuple(values))


def matches_all(record: Record, filters: Sequence[Filter]) -> bool:
    return all(f.matches(record) for f in filters)


class WriteAction(str, Enum):
    INSERT = "insert"
    UPDATE = "update"
    INCREMENT = "increment"
    DELETE = "delete"
    CHECK = "check"


@dataclass(frozen=True, slots=True)
class WriteOp:
    """One write inside an atomic :meth:`Store.batch`.

    ``CHECK`` ops write nothing: they are evaluated against the batch's view
    of the data and abort the whole batch with ``PreconditionFailed`` (or
    ``StaleWrite`` for a version mismatch) when they do not hold.
    """

    action: WriteAction
    collection: str
    record_id: str | None = None
    data: Record = field(default_factory=dict)
    expected_version: int | None = None
    filters: tuple[Filter, ...] = ()
    expected_count: int | None = None

    @classmethod
    def insert(cls, collection: str, record: Record, record_id: str | None = None) -> "WriteOp":
        return cls(WriteAction.INSERT, collection, record_id, dict(record))

    @classmethod
    def update(
        cls,
        collection: str,
        record_id: str,
        patch: Record,
        expected_version: int | None = None,
    ) -> "WriteOp":
        return cls(WriteAction.UPDATE, collection, record_id, dict(patch), expected_version)

    @classmethod
    def increment(cls, collection: str, record_id: str, field_name: str, amount: int | float) -> "WriteOp":
        return cls(WriteAction.INCREMENT, collection, record_id, {field_name: amount})

    @classmethod
    def delete(cls, collection: str, record_id: str) -> "WriteOp":
        return cls(WriteAction.DELETE, collection, record_id)

    @classmethod
    def require(
        cls,
        collection: str,
        record_id: str,
        filters: Sequence[Filter] = (),
        expected_version: int | None = None,
    ) -> "WriteOp":
        """The record must exist, match ``filters`` and, if given, be at ``expected_version``."""
        return cls(
            WriteAction.CHECK,
            collection,
            record_id,
            expected_version=expected_version,
            filters=tuple(filters),
        )

    @classmethod
    def expect_count(cls, collection: str, filters: Sequence[Filter], count: int) -> "WriteOp":
        """Exactly ``count`` records of ``collection`` must match ``filters``."""
        return cls(WriteAction.CHECK, collection, filters=tuple(filters), expected_count=count)


class Store(ABC):
    """Durable persistence plus real-time push."""

    @abstractmethod
    def insert(self, collection: str, record: Record, record_id: str | None = None) -> str:
        """Create a record and return its id. Raises DuplicateRecord for a taken id."""

    @abstractmethod
    def update(
        self,
        collection: str,
        record_id: str,
        patch: Record,
        expected_version: int | None = None,
    ) -> None:
        """Merge ``patch`` into a record. Raises RecordNotFound or StaleWrite."""

    @abstractmethod
    def delete(self, collection: str, record_id: str) -> None:
        ...

    @abstractmethod
    def get(self, collection: str, record_id: str) -> Record | None:
        ...

    @abstractmethod
    def query(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[Record]:
        ...

    @abstractmethod
    def subscribe(
        self,
        collection: str,
        filters: Sequence[Filter],
        callback: SnapshotCallback,
        order_by: str | None = None,
        descending: bool = False,
    ) -> Unsubscribe:
        """Push the full matching snapshot now and after every relevant write.

        The returned callable cancels the subscription; callers must invoke it
        on teardown.
        """

    @abstractmethod
    def batch(self, ops: Sequence[WriteOp]) -> None:
        """Apply all ops or none of them. Check ops guard the batch without writing."""
