from __future__ import annotations

import pytest

from quiz_live.core.errors import QuizNotFound
from quiz_live.core.models import Question, QuestionType
from quiz_live.core.services.quiz_repository import QuizRepository

from tests.conftest import TEACHER_ID, TickingClock, sample_questions, sequential_ids


@pytest.fixture
def repository(store):
    return QuizRepository(store, clock=TickingClock(), id_factory=sequential_ids("quiz"))


def test_create_and_fetch_quiz(repository):
    quiz = repository.create_quiz("  Sample  ", sample_questions(), TEACHER_ID, " intro ")
    fetched = repository.require_quiz(quiz.id)

    assert fetched.title == "Sample"
    assert fetched.description == "intro"
    assert [q.id for q in fetched.questions] == ["q1", "q2", "q3"]
    assert fetched.questions[0].options == ["true", "false"]


def test_missing_question_ids_are_generated(repository):
    question = Question(id="", type=QuestionType.OPEN_TEXT, prompt="Explain")
    quiz = repository.create_quiz("Quiz", [question], TEACHER_ID)
    assert quiz.questions[0].id


@pytest.mark.parametrize(
    "question, message",
    [
        (Question(id="a", type=QuestionType.OPEN_TEXT, prompt="  "), "text must not be empty"),
        (Question(id="a", type=QuestionType.OPEN_TEXT, prompt="?", points=0), "Points"),
        (Question(id="a", type=QuestionType.OPEN_TEXT, prompt="?", time_limit=0), "Time limit"),
        (Question(id="a", type=QuestionType.TRUE_FALSE, prompt="?", correct_answer="yes"), "true' or 'false"),
        (
            Question(id="a", type=QuestionType.MULTIPLE_CHOICE, prompt="?", options=["x"], correct_answer="x"),
            "at least two options",
        ),
        (
            Question(
                id="a", type=QuestionType.MULTIPLE_CHOICE, prompt="?", options=["x", "x"], correct_answer="x"
            ),
            "unique",
        ),
        (
            Question(
                id="a", type=QuestionType.MULTIPLE_CHOICE, prompt="?", options=["x", "y"], correct_answer="z"
            ),
            "one of the options",
        ),
        (
            Question(id="a", type=QuestionType.MATCH_COLUMNS, prompt="?", correct_matches={"l": "r"}),
            "at least two pairs",
        ),
        (
            Question(
                id="a",
                type=QuestionType.MATCH_COLUMNS,
                prompt="?",
                options=["r1"],
                correct_matches={"l1": "r1", "l2": "r2"},
            ),
            "missing: r2",
        ),
        (Question(id="a", type=QuestionType.FILL_IN_BLANK, prompt="No blank"), "at least one ___"),
        (
            Question(id="a", type=QuestionType.FILL_IN_BLANK, prompt="___ and ___", correct_answers=["x"]),
            "Expected 2",
        ),
    ],
)
def test_invalid_questions_are_rejected(repository, question, message):
    with pytest.raises(ValueError, match=message):
        repository.create_quiz("Quiz", [question], TEACHER_ID)


def test_quiz_needs_questions_and_a_title(repository):
    with pytest.raises(ValueError):
        repository.create_quiz("Quiz", [], TEACHER_ID)
    with pytest.raises(ValueError):
        repository.create_quiz(" ", sample_questions(), TEACHER_ID)


def test_duplicate_question_ids_are_rejected(repository):
    questions = sample_questions()
    questions[1].id = "q1"
    with pytest.raises(ValueError, match="unique"):
        repository.create_quiz("Quiz", questions, TEACHER_ID)


def test_match_choices_default_to_right_column(repository):
    question = Question(
        id="m", type=QuestionType.MATCH_COLUMNS, prompt="?", correct_matches={"a": "1", "b": "2"}
    )
    quiz = repository.create_quiz("Quiz", [question], TEACHER_ID)
    assert quiz.questions[0].options == ["1", "2"]


def test_update_and_list_quizzes(repository):
    first = repository.create_quiz("First", sample_questions(), TEACHER_ID)
    second = repository.create_quiz("Second", sample_questions(), TEACHER_ID)
    repository.create_quiz("Other", sample_questions(), "teacher-2")

    repository.update_quiz(first.id, title="First, revised")

    listed = repository.list_quizzes(TEACHER_ID)
    assert [q.title for q in listed] == ["First, revised", "Second"]
    assert second.id in {q.id for q in listed}
    assert len(repository.list_quizzes()) == 3


def test_duplicate_quiz_copies_questions(repository):
    source = repository.create_quiz("Source", sample_questions(), TEACHER_ID)
    copy = repository.duplicate_quiz(source.id, "Copy", "teacher-2")
    assert copy.id != source.id
    assert copy.created_by == "teacher-2"
    assert [q.prompt for q in copy.questions] == [q.prompt for q in source.questions]


def test_delete_quiz(repository):
    quiz = repository.create_quiz("Quiz", sample_questions(), TEACHER_ID)
    repository.delete_quiz(quiz.id)
    assert repository.get_quiz(quiz.id) is None
    with pytest.raises(QuizNotFound):
        repository.delete_quiz(quiz.id)
    with pytest.raises(QuizNotFound):
        repository.update_quiz(quiz.id, title="x")
