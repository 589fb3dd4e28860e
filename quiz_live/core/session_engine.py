"""Composition root for live quiz sessions, shared by the teacher UI and the API."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
import logging
from uuid import uuid4

from quiz_live.core.errors import (
    ParticipantNotFound,
    QuestionClosed,
    QuestionNotFound,
    SessionEnded,
    SessionNotFound,
)
from quiz_live.core.join_links import normalize_code
from quiz_live.core.models import (
    Answer,
    LeaderboardRow,
    Participant,
    ParticipantStatus,
    Question,
    QuestionResponse,
    QuizSession,
    SessionStats,
    SessionStatus,
    utc_now,
)
from quiz_live.core.records import session_from_record, session_to_record
from quiz_live.core.services.code_generator import CodeGenerator
from quiz_live.core.services.participant_registry import ParticipantRegistry
from quiz_live.core.services.quiz_repository import QuizRepository
from quiz_live.core.services.response_ledger import ResponseLedger
from quiz_live.core.services.scoreboard import build_leaderboard, build_session_stats
from quiz_live.core.services.scoring import ScoringEngine
from quiz_live.core.services.session_state_machine import SessionStateMachine
from quiz_live.storage.retry import read_with_retry
from quiz_live.storage.store import (
    PARTICIPANTS,
    RESPONSES,
    SESSIONS,
    Store,
    Unsubscribe,
    WriteOp,
    eq,
)

logger = logging.getLogger(__name__)


class SessionEngine:
    """Facade over CodeGenerator, SessionStateMachine, ParticipantRegistry and ResponseLedger.

    Every operation either returns a value or raises a ``SessionEngineError``
    (or a ``StoreError`` for storage failures). Subscriptions deliver a full
    snapshot immediately and after every relevant write; the returned
    callable must be invoked on teardown.
    """

    def __init__(
        self,
        store: Store,
        *,
        quizzes: QuizRepository | None = None,
        scoring: ScoringEngine | None = None,
        codes: CodeGenerator | None = None,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] | None = None,
        enforce_current_question: bool = False,
    ) -> None:
        self._store = store
        self._clock = clock
        self._id_factory = id_factory or (lambda: uuid4().hex)
        # Late answers are accepted unless this is set.
        self.enforce_current_question = enforce_current_question

        self.quizzes = quizzes or QuizRepository(store, clock=clock)
        self.scoring = scoring or ScoringEngine()
        self.codes = codes or CodeGenerator(store)
        self.participants = ParticipantRegistry(store, clock=clock, id_factory=self._id_factory)
        self.responses = ResponseLedger(store, self.participants, self.scoring, clock=clock)
        self.state_machine = SessionStateMachine(store, self.participants, clock=clock)

    # --- Sessions ---

    def create_session(self, quiz_id: str, teacher_id: str) -> QuizSession:
        self.quizzes.require_quiz(quiz_id)
        now = self._clock()
        session = QuizSession(
            id=self._id_factory(),
            quiz_id=quiz_id,
            code=self.codes.generate_unique(),
            created_by=teacher_id,
            created_at=now,
            updated_at=now,
        )
        self._store.insert(SESSIONS, session_to_record(session), session.id)
        session.version = 1
        logger.info("Created session %s with code %s for quiz %s", session.id, session.code, quiz_id)
        return session

    def get_session(self, session_id: str) -> QuizSession | None:
        record = read_with_retry(self._store.get, SESSIONS, session_id)
        return session_from_record(record) if record else None

    def require_session(self, session_id: str) -> QuizSession:
        session = self.get_session(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def get_session_by_code(self, code: str) -> QuizSession | None:
        """Resolve a code, preferring the open session that holds it.

        Completed sessions keep their code, so the same code can resolve to
        several sessions; the most recent one is used when none is open.
        """
        records = read_with_retry(
            self._store.query,
            SESSIONS,
            [eq("code", normalize_code(code))],
            order_by="createdAt",
            descending=True,
        )
        sessions = [session_from_record(r) for r in records]
        for session in sessions:
            if session.is_open:
                return session
        return sessions[0] if sessions else None

    def get_teacher_sessions(self, teacher_id: str) -> list[QuizSession]:
        records = read_with_retry(
            self._store.query,
            SESSIONS,
            [eq("createdBy", teacher_id)],
            order_by="updatedAt",
            descending=True,
        )
        return [session_from_record(r) for r in records]

    def delete_session(self, session_id: str) -> None:
        """Remove a session with its participants and responses in one batch."""
        self.require_session(session_id)
        ops = [WriteOp.delete(SESSIONS, session_id)]
        ops.extend(WriteOp.delete(PARTICIPANTS, p.id) for p in self.participants.list(session_id))
        ops.extend(
            WriteOp.delete(RESPONSES, r.id) for r in self.responses.list_for_session(session_id)
        )
        self._store.batch(ops)
        logger.info("Deleted session %s", session_id)

    # --- Lifecycle ---

    def start_session(self, session_id: str) -> QuizSession:
        return self.state_machine.start(self.require_session(session_id))

    def pause_session(self, session_id: str) -> QuizSession:
        return self.state_machine.pause(self.require_session(session_id))

    def resume_session(self, session_id: str) -> QuizSession:
        return self.state_machine.resume(self.require_session(session_id))

    def end_session(self, session_id: str) -> QuizSession:
        return self.state_machine.end(self.require_session(session_id))

    def advance_question(self, session_id: str) -> QuizSession:
        session = self.require_session(session_id)
        quiz = self.quizzes.require_quiz(session.quiz_id)
        return self.state_machine.advance_question(session, quiz)

    def retreat_question(self, session_id: str) -> QuizSession:
        return self.state_machine.retreat_question(self.require_session(session_id))

    # --- Participants ---

    def join_session(self, code: str, student_name: str) -> Participant:
        session = self.get_session_by_code(code)
        if session is None:
            raise SessionNotFound(normalize_code(code))
        if session.status is SessionStatus.COMPLETED:
            raise SessionEnded(session.id)
        return self.participants.join(session, student_name)

    def get_participants(self, session_id: str) -> list[Participant]:
        return self.participants.list(session_id)

    def set_participant_status(self, participant_id: str, status: ParticipantStatus) -> Participant:
        return self.participants.set_status(participant_id, status)

    # --- Questions and responses ---

    def get_current_question(self, session_id: str) -> Question | None:
        session = self.require_session(session_id)
        quiz = self.quizzes.require_quiz(session.quiz_id)
        if not 0 <= session.current_question_index < quiz.question_count():
            return None
        return quiz.question_at(session.current_question_index)

    def submit_response(
        self,
        session_id: str,
        participant_id: str,
        question_id: str,
        answer: Answer,
        time_spent: int = 0,
    ) -> QuestionResponse:
        if time_spent < 0:
            raise ValueError("Time spent cannot be negative.")
        session = self.require_session(session_id)
        participant = self.participants.require(participant_id)
        if participant.session_id != session.id:
            raise ParticipantNotFound(participant_id)
        quiz = self.quizzes.require_quiz(session.quiz_id)
        question_index = quiz.index_of(question_id)
        if question_index < 0:
            raise QuestionNotFound(question_id)
        if self.enforce_current_question and (
            session.status is not SessionStatus.ACTIVE
            or question_index != session.current_question_index
        ):
            raise QuestionClosed(question_id)
        return self.responses.submit(
            participant, quiz.questions[question_index], question_index, answer, time_spent
        )

    def get_question_responses(self, session_id: str, question_id: str) -> list[QuestionResponse]:
        return self.responses.list(session_id, question_id)

    def get_question_tally(self, session_id: str, question_id: str) -> dict[str, int]:
        session = self.require_session(session_id)
        quiz = self.quizzes.require_quiz(session.quiz_id)
        index = quiz.index_of(question_id)
        if index < 0:
            raise QuestionNotFound(question_id)
        return ResponseLedger.tally(quiz.questions[index], self.responses.list(session_id, question_id))

    def get_session_stats(self, session_id: str) -> SessionStats:
        self.require_session(session_id)
        return build_session_stats(
            self.participants.list(session_id), self.responses.list_for_session(session_id)
        )

    def get_leaderboard(self, session_id: str, limit: int | None = None) -> list[LeaderboardRow]:
        self.require_session(session_id)
        return build_leaderboard(
            self.participants.list(session_id),
            self.responses.list_for_session(session_id),
            limit,
        )

    # --- Subscriptions ---

    def subscribe_to_session(
        self, session_id: str, callback: Callable[[QuizSession | None], None]
    ) -> Unsubscribe:
        def on_snapshot(records):
            callback(session_from_record(records[0]) if records else None)

        return self._store.subscribe(SESSIONS, [eq("id", session_id)], on_snapshot)

    def subscribe_to_participants(
        self, session_id: str, callback: Callable[[list[Participant]], None]
    ) -> Unsubscribe:
        return self.participants.subscribe(session_id, callback)

    def subscribe_to_question_responses(
        self,
        session_id: str,
        question_id: str,
        callback: Callable[[list[QuestionResponse]], None],
    ) -> Unsubscribe:
        return self.responses.subscribe(session_id, question_id, callback)
