from __future__ import annotations

from datetime import datetime, timedelta, timezone
from itertools import count
import random

import pytest

from quiz_live.core.models import Question, QuestionType
from quiz_live.core.services.code_generator import CodeGenerator
from quiz_live.core.session_engine import SessionEngine
from quiz_live.storage import InMemoryStore

TEACHER_ID = "teacher-1"


class TickingClock:
    """Deterministic clock that advances one second per reading."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


class ScriptedRandom(random.Random):
    """Random source whose ``choice`` replays a fixed character script."""

    def __init__(self, script: str) -> None:
        super().__init__(0)
        self._chars = iter(script)

    def choice(self, seq):
        return next(self._chars)


def sequential_ids(prefix: str = "id"):
    counter = count(1)
    return lambda: f"{prefix}{next(counter)}"


def sample_questions() -> list[Question]:
    return [
        Question(
            id="q1",
            type=QuestionType.TRUE_FALSE,
            prompt="The sky is blue.",
            correct_answer="true",
        ),
        Question(
            id="q2",
            type=QuestionType.MULTIPLE_CHOICE,
            prompt="What is $2 + 2$?",
            options=["3", "4", "5"],
            correct_answer="4",
            points=2,
        ),
        Question(
            id="q3",
            type=QuestionType.FILL_IN_BLANK,
            prompt="The capital of France is ___.",
            correct_answers=["Paris"],
        ),
    ]


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def engine(store, clock) -> SessionEngine:
    return SessionEngine(
        store,
        clock=clock,
        id_factory=sequential_ids(),
        codes=CodeGenerator(store, rng=random.Random(1234)),
    )


@pytest.fixture
def quiz(engine):
    return engine.quizzes.create_quiz("Sample quiz", sample_questions(), TEACHER_ID)


@pytest.fixture
def session(engine, quiz):
    return engine.create_session(quiz.id, TEACHER_ID)


@pytest.fixture
def active_session(engine, session):
    return engine.start_session(session.id)
