"""Append-only record of answers: at most one response per participant and question."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
import logging

from quiz_live.core.errors import AlreadyAnswered, ParticipantNotFound
from quiz_live.core.models import (
    Answer,
    ChoiceAnswer,
    Participant,
    Question,
    QuestionResponse,
    QuestionType,
    utc_now,
)
from quiz_live.core.records import response_from_record, response_to_record
from quiz_live.core.services.participant_registry import ParticipantRegistry
from quiz_live.core.services.scoring import ScoringEngine
from quiz_live.storage.retry import read_with_retry
from quiz_live.storage.store import (
    PARTICIPANTS,
    RESPONSES,
    DuplicateRecord,
    RecordNotFound,
    Store,
    WriteOp,
    eq,
)

logger = logging.getLogger(__name__)

CORRECT_BUCKET = "correct"
INCORRECT_BUCKET = "incorrect"


def response_id_for(participant_id: str, question_id: str) -> str:
    """Deterministic id, so the store itself rejects a second insert for the pair."""
    return f"{participant_id}:{question_id}"


class ResponseLedger:
    def __init__(
        self,
        store: Store,
        participants: ParticipantRegistry,
        scoring: ScoringEngine,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._participants = participants
        self._scoring = scoring
        self._clock = clock

    def has_answered(self, participant_id: str, question_id: str) -> bool:
        existing = read_with_retry(
            self._store.query,
            RESPONSES,
            [eq("participantId", participant_id), eq("questionId", question_id)],
        )
        return bool(existing)

    def submit(
        self,
        participant: Participant,
        question: Question,
        question_index: int,
        answer: Answer,
        time_spent: int,
    ) -> QuestionResponse:
        """Score and store one answer, crediting the participant in the same batch.

        Raises AlreadyAnswered when a response for the pair exists, whether it
        is found by the precondition check or by the store on insert. If the
        batch fails before anything is stored, the caller may submit again.
        """
        if self.has_answered(participant.id, question.id):
            logger.info("Duplicate answer from %s for %s ignored", participant.id, question.id)
            raise AlreadyAnswered(participant.id, question.id)

        result = self._scoring.score(question, answer)
        response = QuestionResponse(
            id=response_id_for(participant.id, question.id),
            session_id=participant.session_id,
            participant_id=participant.id,
            question_id=question.id,
            answer=answer,
            is_correct=result.is_correct,
            points=result.points,
            time_spent=time_spent,
            submitted_at=self._clock(),
        )
        ops = [
            WriteOp.require(PARTICIPANTS, participant.id),
            WriteOp.insert(RESPONSES, response_to_record(response), response.id),
        ]
        # Late answers never move progress backwards.
        if question_index > participant.current_question_index:
            ops.append(self._participants.progress_op(participant.id, question_index))
        if result.is_correct and result.points:
            ops.append(self._participants.increment_score_op(participant.id, result.points))

        try:
            self._store.batch(ops)
        except DuplicateRecord as exc:
            raise AlreadyAnswered(participant.id, question.id) from exc
        except RecordNotFound as exc:
            raise ParticipantNotFound(participant.id) from exc

        logger.info(
            "Recorded answer from %s for %s (correct=%s, points=%d)",
            participant.id,
            question.id,
            result.is_correct,
            result.points,
        )
        return response

    def list(self, session_id: str, question_id: str) -> list[QuestionResponse]:
        records = read_with_retry(
            self._store.query,
            RESPONSES,
            [eq("sessionId", session_id), eq("questionId", question_id)],
            order_by="submittedAt",
        )
        return [response_from_record(r) for r in records]

    def list_for_session(self, session_id: str) -> list[QuestionResponse]:
        records = read_with_retry(
            self._store.query, RESPONSES, [eq("sessionId", session_id)], order_by="submittedAt"
        )
        return [response_from_record(r) for r in records]

    def subscribe(
        self,
        session_id: str,
        question_id: str,
        callback: Callable[[list[QuestionResponse]], None],
    ):
        def on_snapshot(records):
            callback([response_from_record(r) for r in records])

        return self._store.subscribe(
            RESPONSES,
            [eq("sessionId", session_id), eq("questionId", question_id)],
            on_snapshot,
            order_by="submittedAt",
        )

    @staticmethod
    def tally(question: Question, responses: list[QuestionResponse]) -> dict[str, int]:
        """Count answers per option for choice questions, else per correctness."""
        if question.type in (QuestionType.TRUE_FALSE, QuestionType.MULTIPLE_CHOICE):
            counts = {option: 0 for option in question.options}
            for response in responses:
                # Timed-out submissions carry an empty value and have no bar.
                if isinstance(response.answer, ChoiceAnswer) and response.answer.value in counts:
                    counts[response.answer.value] += 1
            return counts
        counts = {CORRECT_BUCKET: 0, INCORRECT_BUCKET: 0}
        for response in responses:
            counts[CORRECT_BUCKET if response.is_correct else INCORRECT_BUCKET] += 1
        return counts

    @staticmethod
    def correctness_percentage(responses: list[QuestionResponse]) -> float:
        if not responses:
            return 0.0
        correct = sum(1 for r in responses if r.is_correct)
        return (correct / len(responses)) * 100
