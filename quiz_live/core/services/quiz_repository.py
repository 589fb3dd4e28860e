"""Service for storing quizzes and validating their questions."""

from __future__ import annotations

from collections.abc import Callable
import dataclasses
from datetime import datetime
import logging
from uuid import uuid4

from quiz_live.constants.session_constants import TRUE_FALSE_VALUES
from quiz_live.core.errors import QuizNotFound
from quiz_live.core.models import Question, QuestionType, Quiz, utc_now
from quiz_live.core.records import quiz_from_record, quiz_to_record
from quiz_live.storage.retry import read_with_retry
from quiz_live.storage.store import QUIZZES, RecordNotFound, Store, eq

logger = logging.getLogger(__name__)


class QuizRepository:
    """Manages the lifecycle and storage of quizzes."""

    def __init__(
        self,
        store: Store,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._store = store
        self._clock = clock
        self._id_factory = id_factory or (lambda: uuid4().hex)

    def create_quiz(
        self,
        title: str,
        questions: list[Question],
        created_by: str,
        description: str = "",
    ) -> Quiz:
        now = self._clock()
        quiz = Quiz(
            id=self._id_factory(),
            title=self._validate_title(title),
            description=description.strip(),
            questions=self._prepare_questions(questions),
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )
        self._store.insert(QUIZZES, quiz_to_record(quiz), quiz.id)
        logger.info("Created quiz %s (%d questions)", quiz.id, quiz.question_count())
        return quiz

    def update_quiz(
        self,
        quiz_id: str,
        *,
        title: str | None = None,
        description: str | None = None,
        questions: list[Question] | None = None,
    ) -> Quiz:
        quiz = self.require_quiz(quiz_id)
        if title is not None:
            quiz.title = self._validate_title(title)
        if description is not None:
            quiz.description = description.strip()
        if questions is not None:
            quiz.questions = self._prepare_questions(questions)
        quiz.updated_at = self._clock()
        record = quiz_to_record(quiz)
        del record["id"], record["createdAt"], record["createdBy"]
        try:
            self._store.update(QUIZZES, quiz_id, record)
        except RecordNotFound as exc:
            raise QuizNotFound(quiz_id) from exc
        return quiz

    def get_quiz(self, quiz_id: str) -> Quiz | None:
        record = read_with_retry(self._store.get, QUIZZES, quiz_id)
        return quiz_from_record(record) if record else None

    def require_quiz(self, quiz_id: str) -> Quiz:
        quiz = self.get_quiz(quiz_id)
        if quiz is None:
            raise QuizNotFound(quiz_id)
        return quiz

    def list_quizzes(self, created_by: str | None = None) -> list[Quiz]:
        """Return quizzes, most recently updated first."""
        filters = [eq("createdBy", created_by)] if created_by is not None else []
        records = read_with_retry(
            self._store.query, QUIZZES, filters, order_by="updatedAt", descending=True
        )
        return [quiz_from_record(r) for r in records]

    def duplicate_quiz(self, quiz_id: str, new_title: str, created_by: str) -> Quiz:
        source = self.require_quiz(quiz_id)
        copies = [dataclasses.replace(q, id="") for q in source.questions]
        return self.create_quiz(new_title, copies, created_by, source.description)

    def delete_quiz(self, quiz_id: str) -> None:
        try:
            self._store.delete(QUIZZES, quiz_id)
        except RecordNotFound as exc:
            raise QuizNotFound(quiz_id) from exc

    # --- Validation ---

    def _prepare_questions(self, questions: list[Question]) -> list[Question]:
        if not questions:
            raise ValueError("Quiz must contain at least one question.")
        prepared = [self.prepare_question(q) for q in questions]
        ids = [q.id for q in prepared]
        if len(set(ids)) != len(ids):
            raise ValueError("Question ids must be unique within a quiz.")
        return prepared

    def prepare_question(self, question: Question) -> Question:
        """Validate and normalize a question before storage."""
        prompt = question.prompt.strip()
        if not prompt:
            raise ValueError("Question text must not be empty.")
        if not isinstance(question.points, int) or question.points <= 0:
            raise ValueError("Points must be a positive integer.")
        time_limit = self._normalize_time_limit(question.time_limit)

        prepared = Question(
            id=question.id.strip() or self._id_factory(),
            type=QuestionType(question.type),
            prompt=prompt,
            points=question.points,
            time_limit=time_limit,
        )
        if prepared.type is QuestionType.TRUE_FALSE:
            correct = (question.correct_answer or "").strip().lower()
            if correct not in TRUE_FALSE_VALUES:
                raise ValueError("True/false answer must be 'true' or 'false'.")
            prepared.options = list(TRUE_FALSE_VALUES)
            prepared.correct_answer = correct
        elif prepared.type is QuestionType.MULTIPLE_CHOICE:
            prepared.options = self._validate_options(question.options)
            correct = (question.correct_answer or "").strip()
            if correct not in prepared.options:
                raise ValueError("Correct answer must be one of the options.")
            prepared.correct_answer = correct
        elif prepared.type is QuestionType.MATCH_COLUMNS:
            prepared.correct_matches, prepared.options = self._validate_matches(
                question.correct_matches, question.options
            )
        elif prepared.type is QuestionType.FILL_IN_BLANK:
            prepared.correct_answers = self._validate_blanks(prepared, question.correct_answers)
        return prepared

    @staticmethod
    def _validate_title(title: str) -> str:
        cleaned = title.strip()
        if not cleaned:
            raise ValueError("Quiz title must not be empty.")
        return cleaned

    @staticmethod
    def _validate_options(options: list[str]) -> list[str]:
        cleaned = [option.strip() for option in options]
        if len(cleaned) < 2:
            raise ValueError("Multiple-choice questions need at least two options.")
        if any(not option for option in cleaned):
            raise ValueError("Option text cannot be empty.")
        if len(set(cleaned)) != len(cleaned):
            raise ValueError("Options must be unique.")
        return cleaned

    @staticmethod
    def _validate_matches(
        matches: dict[str, str], right_column: list[str]
    ) -> tuple[dict[str, str], list[str]]:
        cleaned = {left.strip(): right.strip() for left, right in matches.items()}
        if len(cleaned) < 2:
            raise ValueError("Match-columns questions need at least two pairs.")
        if any(not left or not right for left, right in cleaned.items()):
            raise ValueError("Match items cannot be empty.")
        choices = [item.strip() for item in right_column if item.strip()]
        if not choices:
            choices = list(dict.fromkeys(cleaned.values()))
        missing = [right for right in cleaned.values() if right not in choices]
        if missing:
            raise ValueError(f"Right-column choices are missing: {', '.join(missing)}")
        return cleaned, choices

    @staticmethod
    def _validate_blanks(question: Question, answers: list[str]) -> list[str]:
        blanks = question.blank_count()
        if blanks == 0:
            raise ValueError("Fill-in-blank prompts must contain at least one ___ blank.")
        cleaned = [answer.strip() for answer in answers]
        if len(cleaned) != blanks:
            raise ValueError(f"Expected {blanks} blank answer(s), got {len(cleaned)}.")
        if any(not answer for answer in cleaned):
            raise ValueError("Blank answers cannot be empty.")
        return cleaned

    @staticmethod
    def _normalize_time_limit(time_limit_seconds: int) -> int:
        if not isinstance(time_limit_seconds, int):
            raise ValueError("Time limit must be provided as an integer number of seconds.")
        if time_limit_seconds <= 0:
            raise ValueError("Time limit must be a positive integer.")
        return time_limit_seconds
