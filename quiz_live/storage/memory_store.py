"""Thread-safe in-memory Store driver.

Writes are applied under a single lock, so every batch is atomic with respect
to concurrent readers and writers. Subscriber pushes are serialized through a
second lock and always read the committed state at delivery time, so the last
snapshot a subscriber receives reflects the latest write.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable, Sequence
import copy
from dataclasses import dataclass
from itertools import count
import logging
from threading import RLock
from uuid import uuid4

from quiz_live.storage.store import (
    VERSION_FIELD,
    DuplicateRecord,
    Filter,
    PreconditionFailed,
    Record,
    RecordNotFound,
    SnapshotCallback,
    StaleWrite,
    Store,
    Unsubscribe,
    WriteAction,
    WriteOp,
    matches_all,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _Subscription:
    collection: str
    filters: tuple[Filter, ...]
    callback: SnapshotCallback
    order_by: str | None
    descending: bool


@dataclass(slots=True)
class _Change:
    collection: str
    before: Record | None
    after: Record | None


def _sort_key(field_name: str):
    def key(record: Record):
        value = record.get(field_name)
        return (value is not None, value)

    return key


class InMemoryStore(Store):
    """Reference Store used by the application process and the test suite."""

    def __init__(self, id_factory: Callable[[], str] | None = None) -> None:
        self._lock = RLock()
        self._notify_lock = RLock()
        self._collections: dict[str, dict[str, Record]] = defaultdict(dict)
        self._subscriptions: dict[int, _Subscription] = {}
        self._subscription_ids = count(1)
        self._id_factory = id_factory or (lambda: uuid4().hex)

    # --- Writes ---

    def insert(self, collection: str, record: Record, record_id: str | None = None) -> str:
        record_id = record_id or record.get("id") or self._id_factory()
        self.batch([WriteOp.insert(collection, record, record_id)])
        return record_id

    def update(
        self,
        collection: str,
        record_id: str,
        patch: Record,
        expected_version: int | None = None,
    ) -> None:
        self.batch([WriteOp.update(collection, record_id, patch, expected_version)])

    def delete(self, collection: str, record_id: str) -> None:
        self.batch([WriteOp.delete(collection, record_id)])

    def batch(self, ops: Sequence[WriteOp]) -> None:
        if not ops:
            return
        with self._lock:
            changes = self._apply(ops)
        self._notify(changes)

    # --- Reads ---

    def get(self, collection: str, record_id: str) -> Record | None:
        with self._lock:
            record = self._collections[collection].get(record_id)
            return copy.deepcopy(record) if record is not None else None

    def query(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[Record]:
        with self._lock:
            return self._select(collection, tuple(filters), order_by, descending)

    def subscribe(
        self,
        collection: str,
        filters: Sequence[Filter],
        callback: SnapshotCallback,
        order_by: str | None = None,
        descending: bool = False,
    ) -> Unsubscribe:
        subscription = _Subscription(collection, tuple(filters), callback, order_by, descending)
        subscription_id = next(self._subscription_ids)
        with self._notify_lock:
            with self._lock:
                self._subscriptions[subscription_id] = subscription
            self._deliver(subscription)

        def unsubscribe() -> None:
            with self._lock:
                self._subscriptions.pop(subscription_id, None)

        return unsubscribe

    def subscription_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    # --- Internals ---

    def _select(
        self,
        collection: str,
        filters: tuple[Filter, ...],
        order_by: str | None,
        descending: bool,
    ) -> list[Record]:
        rows = [
            copy.deepcopy(record)
            for record in self._collections[collection].values()
            if matches_all(record, filters)
        ]
        if order_by:
            rows.sort(key=_sort_key(order_by), reverse=descending)
        return rows

    def _apply(self, ops: Sequence[WriteOp]) -> list[_Change]:
        # Stage on table copies and swap them in only once every op succeeded.
        staged: dict[str, dict[str, Record]] = {}
        changes: list[_Change] = []
        for op in ops:
            table = staged.get(op.collection)
            if table is None:
                table = dict(self._collections[op.collection])
                staged[op.collection] = table
            changes.append(self._apply_one(table, op))
        self._collections.update(staged)
        return changes

    def _apply_one(self, table: dict[str, Record], op: WriteOp) -> _Change:
        if op.action is WriteAction.CHECK:
            self._check(table, op)
            return _Change(op.collection, None, None)

        record_id = op.record_id or op.data.get("id") or self._id_factory()
        current = table.get(record_id)

        if op.action is WriteAction.INSERT:
            if current is not None:
                raise DuplicateRecord(op.collection, record_id)
            created = copy.deepcopy(op.data)
            created["id"] = record_id
            created[VERSION_FIELD] = 1
            table[record_id] = created
            return _Change(op.collection, None, created)

        if current is None:
            raise RecordNotFound(op.collection, record_id)

        if op.action is WriteAction.DELETE:
            del table[record_id]
            return _Change(op.collection, current, None)

        version = current.get(VERSION_FIELD, 0)
        if op.expected_version is not None and op.expected_version != version:
            raise StaleWrite(op.collection, record_id, op.expected_version, version)

        updated = dict(current)
        if op.action is WriteAction.UPDATE:
            updated.update(copy.deepcopy(op.data))
        else:
            for field_name, amount in op.data.items():
                updated[field_name] = (updated.get(field_name) or 0) + amount
        updated["id"] = record_id
        updated[VERSION_FIELD] = version + 1
        table[record_id] = updated
        return _Change(op.collection, current, updated)

    @staticmethod
    def _check(table: dict[str, Record], op: WriteOp) -> None:
        if op.expected_count is not None:
            actual = sum(1 for record in table.values() if matches_all(record, op.filters))
            if actual != op.expected_count:
                raise PreconditionFailed(
                    op.collection, f"expected {op.expected_count} matching records, found {actual}"
                )
            return

        current = table.get(op.record_id)
        if current is None:
            raise RecordNotFound(op.collection, op.record_id)
        version = current.get(VERSION_FIELD, 0)
        if op.expected_version is not None and op.expected_version != version:
            raise StaleWrite(op.collection, op.record_id, op.expected_version, version)
        if not matches_all(current, op.filters):
            raise PreconditionFailed(op.collection, f"record {op.record_id!r} does not match")

    def _notify(self, changes: list[_Change]) -> None:
        with self._notify_lock:
            with self._lock:
                affected = [
                    subscription
                    for subscription in self._subscriptions.values()
                    if any(self._touches(subscription, change) for change in changes)
                ]
            for subscription in affected:
                self._deliver(subscription)

    @staticmethod
    def _touches(subscription: _Subscription, change: _Change) -> bool:
        if subscription.collection != change.collection:
            return False
        return any(
            record is not None and matches_all(record, subscription.filters)
            for record in (change.before, change.after)
        )

    def _deliver(self, subscription: _Subscription) -> None:
        with self._lock:
            snapshot = self._select(
                subscription.collection,
                subscription.filters,
                subscription.order_by,
                subscription.descending,
            )
        try:
            subscription.callback(snapshot)
        except Exception:
            logger.exception(
                "Subscriber callback failed for collection %s", subscription.collection
            )
