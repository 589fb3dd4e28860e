"""Join-code generation for live sessions."""

from __future__ import annotations

import logging
import random

from quiz_live.constants.session_constants import (
    SESSION_CODE_ALPHABET,
    SESSION_CODE_LENGTH,
    SESSION_CODE_MAX_ATTEMPTS,
)
from quiz_live.core.errors import CodeSpaceExhausted
from quiz_live.core.models import OPEN_SESSION_STATUSES
from quiz_live.storage.retry import read_with_retry
from quiz_live.storage.store import SESSIONS, Store, eq, one_of

logger = logging.getLogger(__name__)


class CodeGenerator:
    """Produces short uppercase codes that no open session currently holds."""

    def __init__(
        self,
        store: Store,
        rng: random.Random | None = None,
        length: int = SESSION_CODE_LENGTH,
        max_attempts: int = SESSION_CODE_MAX_ATTEMPTS,
    ) -> None:
        self._store = store
        self._rng = rng or random.SystemRandom()
        self._length = length
        self._max_attempts = max_attempts

    def generate(self) -> str:
        return "".join(self._rng.choice(SESSION_CODE_ALPHABET) for _ in range(self._length))

    def is_unique(self, code: str) -> bool:
        """True when no waiting, active or paused session holds ``code``."""
        holders = read_with_retry(
            self._store.query,
            SESSIONS,
            [eq("code", code), one_of("status", [s.value for s in OPEN_SESSION_STATUSES])],
        )
        return not holders

    def generate_unique(self) -> str:
        for attempt in range(1, self._max_attempts + 1):
            code = self.generate()
            if self.is_unique(code):
                return code
            logger.info("Session code %s is taken (attempt %d)", code, attempt)
        raise CodeSpaceExhausted(self._max_attempts)
