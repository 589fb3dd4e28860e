"""Lifecycle transitions of a live session.

    waiting --start--> active --pause--> paused --resume--> active
    any non-completed state --end--> completed (terminal)

Question pacing (advance / retreat) is only legal while active. Advancing past
the last question ends the session: there is no "finished but open" state.
Each transition is validated first and then written as one atomic batch that
carries the session version read by the caller, so a concurrent transition
fails instead of being silently overwritten. Ending also pins the participant
count, so a join that lands between listing and writing forces a re-list.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
import dataclasses
from datetime import datetime
import logging

from quiz_live.constants.session_constants import END_ROSTER_ATTEMPTS
from quiz_live.core.errors import ConcurrentSessionUpdate, InvalidTransition
from quiz_live.core.models import (
    OPEN_SESSION_STATUSES,
    Quiz,
    QuizSession,
    SessionStatus,
    utc_now,
)
from quiz_live.core.records import session_patch
from quiz_live.core.services.participant_registry import ParticipantRegistry
from quiz_live.storage.store import SESSIONS, PreconditionFailed, StaleWrite, Store, WriteOp

logger = logging.getLogger(__name__)

_ALLOWED_FROM: dict[str, tuple[SessionStatus, ...]] = {
    "start": (SessionStatus.WAITING,),
    "pause": (SessionStatus.ACTIVE,),
    "resume": (SessionStatus.PAUSED,),
    "advance": (SessionStatus.ACTIVE,),
    "retreat": (SessionStatus.ACTIVE,),
    "end": OPEN_SESSION_STATUSES,
}


class SessionStateMachine:
    """Validates and persists session transitions."""

    def __init__(
        self,
        store: Store,
        participants: ParticipantRegistry,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._participants = participants
        self._clock = clock

    @staticmethod
    def can(operation: str, session: QuizSession) -> bool:
        return session.status in _ALLOWED_FROM[operation]

    def start(self, session: QuizSession) -> QuizSession:
        self._require("start", session)
        return self._commit(session, status=SessionStatus.ACTIVE, start_time=self._clock())

    def pause(self, session: QuizSession) -> QuizSession:
        self._require("pause", session)
        return self._commit(session, status=SessionStatus.PAUSED)

    def resume(self, session: QuizSession) -> QuizSession:
        self._require("resume", session)
        return self._commit(session, status=SessionStatus.ACTIVE)

    def advance_question(self, session: QuizSession, quiz: Quiz) -> QuizSession:
        self._require("advance", session)
        if session.current_question_index >= quiz.question_count() - 1:
            logger.info("Session %s finished its last question; ending", session.id)
            return self.end(session)
        return self._commit(session, current_question_index=session.current_question_index + 1)

    def retreat_question(self, session: QuizSession) -> QuizSession:
        self._require("retreat", session)
        if session.current_question_index <= 0:
            return session
        return self._commit(session, current_question_index=session.current_question_index - 1)

    def end(self, session: QuizSession) -> QuizSession:
        """Complete the session and disconnect every participant in the same batch."""
        self._require("end", session)
        for attempt in range(1, END_ROSTER_ATTEMPTS + 1):
            disconnect_ops = self._participants.disconnect_all_ops(session.id)
            try:
                return self._commit(
                    session,
                    extra_ops=disconnect_ops,
                    status=SessionStatus.COMPLETED,
                    end_time=self._clock(),
                )
            except PreconditionFailed:
                logger.info(
                    "Participants of session %s changed while ending (attempt %d); re-listing",
                    session.id,
                    attempt,
                )
        raise ConcurrentSessionUpdate(session.id)

    def _require(self, operation: str, session: QuizSession) -> None:
        if not self.can(operation, session):
            logger.warning(
                "Rejected %s on session %s (status %s)", operation, session.id, session.status.value
            )
            raise InvalidTransition(operation, session.status)

    def _commit(
        self,
        session: QuizSession,
        extra_ops: Sequence[WriteOp] = (),
        **changes,
    ) -> QuizSession:
        changes["updated_at"] = self._clock()
        ops = [
            WriteOp.update(
                SESSIONS,
                session.id,
                session_patch(**changes),
                expected_version=session.version,
            ),
            *extra_ops,
        ]
        try:
            self._store.batch(ops)
        except StaleWrite as exc:
            raise ConcurrentSessionUpdate(session.id) from exc
        updated = dataclasses.replace(session, version=session.version + 1, **changes)
        logger.info(
            "Session %s: %s -> %s (question %d)",
            session.id,
            session.status.value,
            updated.status.value,
            updated.current_question_index,
        )
        return updated
