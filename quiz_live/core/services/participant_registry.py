"""Service for managing the students who joined a session."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
import logging
from uuid import uuid4

from quiz_live.core.errors import ParticipantNotFound, SessionEnded, SessionNotFound
from quiz_live.core.models import (
    OPEN_SESSION_STATUSES,
    Participant,
    ParticipantStatus,
    QuizSession,
    SessionStatus,
    utc_now,
)
from quiz_live.core.records import participant_from_record, participant_to_record
from quiz_live.storage.retry import read_with_retry
from quiz_live.storage.store import (
    PARTICIPANTS,
    SESSIONS,
    PreconditionFailed,
    RecordNotFound,
    Store,
    WriteOp,
    eq,
    one_of,
)

logger = logging.getLogger(__name__)


class ParticipantRegistry:
    """Tracks who joined a session, their connectivity and running score."""

    def __init__(
        self,
        store: Store,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._store = store
        self._clock = clock
        self._id_factory = id_factory or (lambda: uuid4().hex)

    def join(self, session: QuizSession, name: str) -> Participant:
        """Register a student. Display names may repeat; identity is the id.

        The insert is batched with a check that the session is still open, so
        a join can never land on a session that ended after ``session`` was
        read.
        """
        if session.status is SessionStatus.COMPLETED:
            raise SessionEnded(session.id)
        cleaned = name.strip()
        if not cleaned:
            raise ValueError("Name must not be empty.")

        participant = Participant(
            id=self._id_factory(),
            session_id=session.id,
            name=cleaned,
            joined_at=self._clock(),
        )
        open_statuses = [status.value for status in OPEN_SESSION_STATUSES]
        try:
            self._store.batch(
                [
                    WriteOp.require(SESSIONS, session.id, [one_of("status", open_statuses)]),
                    WriteOp.insert(PARTICIPANTS, participant_to_record(participant), participant.id),
                ]
            )
        except PreconditionFailed as exc:
            logger.info("Join to session %s rejected: session ended meanwhile", session.id)
            raise SessionEnded(session.id) from exc
        except RecordNotFound as exc:
            raise SessionNotFound(session.id) from exc
        logger.info("%s joined session %s as %s", cleaned, session.id, participant.id)
        return participant

    def get(self, participant_id: str) -> Participant | None:
        record = read_with_retry(self._store.get, PARTICIPANTS, participant_id)
        return participant_from_record(record) if record else None

    def require(self, participant_id: str) -> Participant:
        participant = self.get(participant_id)
        if participant is None:
            raise ParticipantNotFound(participant_id)
        return participant

    def list(self, session_id: str) -> list[Participant]:
        """Return participants of a session in join order."""
        records = read_with_retry(
            self._store.query, PARTICIPANTS, [eq("sessionId", session_id)], order_by="joinedAt"
        )
        return [participant_from_record(r) for r in records]

    def set_status(self, participant_id: str, status: ParticipantStatus) -> Participant:
        participant = self.require(participant_id)
        if participant.status is status:
            return participant
        try:
            self._store.update(PARTICIPANTS, participant_id, {"status": status.value})
        except RecordNotFound as exc:
            raise ParticipantNotFound(participant_id) from exc
        participant.status = status
        logger.info("Participant %s is now %s", participant_id, status.value)
        return participant

    @staticmethod
    def increment_score_op(participant_id: str, points: int) -> WriteOp:
        return WriteOp.increment(PARTICIPANTS, participant_id, "score", points)

    @staticmethod
    def progress_op(participant_id: str, question_index: int) -> WriteOp:
        return WriteOp.update(PARTICIPANTS, participant_id, {"currentQuestionIndex": question_index})

    def disconnect_all_ops(self, session_id: str) -> list[WriteOp]:
        """Disconnect every listed participant; fails the batch if someone joined since."""
        participants = self.list(session_id)
        ops = [
            WriteOp.update(
                PARTICIPANTS, participant.id, {"status": ParticipantStatus.DISCONNECTED.value}
            )
            for participant in participants
        ]
        ops.append(
            WriteOp.expect_count(PARTICIPANTS, [eq("sessionId", session_id)], len(participants))
        )
        return ops

    def subscribe(self, session_id: str, callback: Callable[[list[Participant]], None]):
        def on_snapshot(records):
            callback([participant_from_record(r) for r in records])

        return self._store.subscribe(
            PARTICIPANTS, [eq("sessionId", session_id)], on_snapshot, order_by="joinedAt"
        )
