"""Domain models for quizzes and live quiz sessions."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
import re
from typing import ClassVar

from quiz_live.constants.session_constants import (
    BLANK_MARKER_PATTERN,
    DEFAULT_TIME_LIMIT_SECONDS,
)

_BLANK_RE = re.compile(BLANK_MARKER_PATTERN)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class QuestionType(str, Enum):
    """Closed set of question variants a quiz may contain."""

    TRUE_FALSE = "true-false"
    MULTIPLE_CHOICE = "multiple-choice"
    MATCH_COLUMNS = "match-columns"
    OPEN_TEXT = "open-text"
    FILL_IN_BLANK = "fill-in-blank"


class SessionStatus(str, Enum):
    """Lifecycle states of a live session."""

    WAITING = "waiting"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


OPEN_SESSION_STATUSES: tuple[SessionStatus, ...] = (
    SessionStatus.WAITING,
    SessionStatus.ACTIVE,
    SessionStatus.PAUSED,
)


class ParticipantStatus(str, Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


@dataclass(slots=True)
class Question:
    """One question of a quiz. Which reference field is used depends on ``type``."""

    id: str
    type: QuestionType
    prompt: str
    points: int = 1
    options: list[str] = field(default_factory=list)
    correct_answer: str | None = None  # true-false, multiple-choice
    correct_answers: list[str] = field(default_factory=list)  # fill-in-blank, one per blank
    correct_matches: dict[str, str] = field(default_factory=dict)  # match-columns, left -> right
    time_limit: int = DEFAULT_TIME_LIMIT_SECONDS

    def blank_count(self) -> int:
        return len(_BLANK_RE.findall(self.prompt))


@dataclass(slots=True)
class Quiz:
    """An authored quiz. Question order defines presentation order."""

    id: str
    title: str
    questions: list[Question]
    created_by: str
    description: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def question_count(self) -> int:
        return len(self.questions)

    def question_at(self, index: int) -> Question:
        if not 0 <= index < len(self.questions):
            raise IndexError(f"Question index {index} out of range")
        return self.questions[index]

    def index_of(self, question_id: str) -> int:
        for index, question in enumerate(self.questions):
            if question.id == question_id:
                return index
        return -1


@dataclass(slots=True)
class QuizSession:
    """A live run of a quiz, addressed by its join code."""

    id: str
    quiz_id: str
    code: str
    created_by: str
    status: SessionStatus = SessionStatus.WAITING
    current_question_index: int = 0
    start_time: datetime | None = None
    end_time: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    version: int = 0

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_SESSION_STATUSES


@dataclass(slots=True)
class Participant:
    """A student who joined a session. Identity is the id, never the name."""

    id: str
    session_id: str
    name: str
    joined_at: datetime
    status: ParticipantStatus = ParticipantStatus.CONNECTED
    current_question_index: int = 0
    score: int = 0


@dataclass(frozen=True, slots=True)
class ChoiceAnswer:
    """Selected option of a true-false or multiple-choice question."""

    kind: ClassVar[str] = "choice"
    value: str


@dataclass(frozen=True, slots=True)
class TextAnswer:
    kind: ClassVar[str] = "text"
    text: str


@dataclass(frozen=True, slots=True)
class BlanksAnswer:
    """Ordered fills, one per blank marker in the prompt."""

    kind: ClassVar[str] = "blanks"
    values: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class MatchAnswer:
    """Left item -> right item pairings for a match-columns question."""

    kind: ClassVar[str] = "match"
    pairs: Mapping[str, str]


Answer = ChoiceAnswer | TextAnswer | BlanksAnswer | MatchAnswer

ANSWER_TYPES: dict[QuestionType, type] = {
    QuestionType.TRUE_FALSE: ChoiceAnswer,
    QuestionType.MULTIPLE_CHOICE: ChoiceAnswer,
    QuestionType.MATCH_COLUMNS: MatchAnswer,
    QuestionType.OPEN_TEXT: TextAnswer,
    QuestionType.FILL_IN_BLANK: BlanksAnswer,
}


@dataclass(frozen=True, slots=True)
class ScoreResult:
    is_correct: bool
    points: int


@dataclass(slots=True)
class QuestionResponse:
    """One participant's recorded answer to one question. Immutable once stored."""

    id: str
    session_id: str
    participant_id: str
    question_id: str
    answer: Answer
    is_correct: bool
    points: int
    time_spent: int
    submitted_at: datetime


@dataclass(slots=True)
class SessionStats:
    total_participants: int
    connected_participants: int
    total_responses: int
    average_time_spent: float


@dataclass(slots=True)
class LeaderboardRow:
    """Immutable snapshot returned to consumers."""

    participant_id: str
    name: str
    score: int
    correct_answers: int
    total_answers: int
