"""Storage port and drivers for the live session engine."""

from .memory_store import InMemoryStore
from .store import (
    PARTICIPANTS,
    QUIZZES,
    RESPONSES,
    SESSIONS,
    DuplicateRecord,
    Filter,
    PreconditionFailed,
    RecordNotFound,
    StaleWrite,
    Store,
    StoreError,
    StoreUnavailable,
    WriteOp,
    eq,
    one_of,
)

__all__ = [
    "InMemoryStore",
    "Store",
    "StoreError",
    "StoreUnavailable",
    "RecordNotFound",
    "DuplicateRecord",
    "StaleWrite",
    "PreconditionFailed",
    "Filter",
    "WriteOp",
    "eq",
    "one_of",
    "QUIZZES",
    "SESSIONS",
    "PARTICIPANTS",
    "RESPONSES",
]
