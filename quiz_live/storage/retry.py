"""Retry policy for store reads.

Reads are retried once on a transient failure. Writes are never retried here:
a blind retry of a non-idempotent write could apply it twice.
"""

from __future__ import annotations

from collections.abc import Callable
import logging
from typing import TypeVar

from quiz_live.constants.session_constants import STORE_READ_ATTEMPTS
from quiz_live.storage.store import StoreUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")


def read_with_retry(operation: Callable[..., T], *args, attempts: int = STORE_READ_ATTEMPTS, **kwargs) -> T:
    for attempt in range(1, attempts + 1):
        try:
            return operation(*args, **kwargs)
        except StoreUnavailable:
            if attempt >= attempts:
                raise
            logger.warning("Store read failed (attempt %d/%d); retrying", attempt, attempts)
    raise AssertionError("unreachable")
