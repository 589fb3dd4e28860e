from __future__ import annotations

from pathlib import Path

import pytest

from quiz_live.core.models import Question, QuestionType, Quiz
from quiz_live.core.quiz_exporter import save_quiz_to_file, serialize_quiz
from quiz_live.core.quiz_importer import QuizImportError, load_quiz_from_file, parse_quiz_text

SAMPLE_QUIZ = """\
TITLE: Warm-up
DESCRIPTION: First lesson

Q: What is $2 + 2$?
A: 3
B: 4
CORRECT: B
TIMELIMIT: 20

---

Q: Water boils at 100 degrees Celsius at sea level.
CORRECT: true

---

TYPE: fill-in-blank
POINTS: 2
Q: The capital of France is ___.
BLANKS: Paris

---

Q: Match each country with its capital.
A: Rome
B: Paris
MATCH: France = Paris
MATCH: Italy = Rome

---

Q: Explain photosynthesis
in your own words.
"""


def test_parse_reads_header_and_infers_types():
    quiz = parse_quiz_text(SAMPLE_QUIZ)

    assert quiz.title == "Warm-up"
    assert quiz.description == "First lesson"
    assert [q.type for q in quiz.questions] == [
        QuestionType.MULTIPLE_CHOICE,
        QuestionType.TRUE_FALSE,
        QuestionType.FILL_IN_BLANK,
        QuestionType.MATCH_COLUMNS,
        QuestionType.OPEN_TEXT,
    ]
    assert [q.id for q in quiz.questions] == ["q1", "q2", "q3", "q4", "q5"]


def test_parse_maps_option_letter_to_answer_text():
    choice = parse_quiz_text(SAMPLE_QUIZ).questions[0]
    assert choice.options == ["3", "4"]
    assert choice.correct_answer == "4"
    assert choice.time_limit == 20


def test_parse_reads_blanks_matches_and_continuation_lines():
    questions = parse_quiz_text(SAMPLE_QUIZ).questions
    assert questions[2].correct_answers == ["Paris"]
    assert questions[2].points == 2
    assert questions[3].correct_matches == {"France": "Paris", "Italy": "Rome"}
    assert questions[3].options == ["Rome", "Paris"]
    assert questions[4].prompt == "Explain photosynthesis\nin your own words."


def test_missing_title_falls_back_to_default():
    quiz = parse_quiz_text("Q: Anything?", default_title="lesson-3")
    assert quiz.title == "lesson-3"


@pytest.mark.parametrize(
    "text, message",
    [
        ("", "did not contain any questions"),
        ("A: orphan option\nCORRECT: A", "question text missing"),
        ("Q: Pick one\nA: x\nB: y\nCORRECT: C", "CORRECT must be one of A, B"),
        ("Q: Pick one\nA: x\nC: y\nCORRECT: A", "lettered A, B, C"),
        ("TYPE: essay\nQ: Write", "unknown TYPE"),
        ("Q: Match\nMATCH: only-left", "left = right"),
        ("Q: Points?\nPOINTS: zero", "POINTS must be an integer"),
        ("Q: Time?\nTIMELIMIT: -5", "TIMELIMIT must be a positive integer"),
        ("TYPE: true-false\nQ: Yes?\nCORRECT: maybe", "true or false"),
    ],
)
def test_parse_rejects_malformed_text(text, message):
    with pytest.raises(QuizImportError, match=message):
        parse_quiz_text(text)


def test_load_uses_file_stem_as_default_title(tmp_path: Path):
    path = tmp_path / "chapter1.txt"
    path.write_text("Q: Anything?\n", encoding="utf-8")
    quiz = load_quiz_from_file(path)
    assert quiz.title == "chapter1"
    assert quiz.source_path == path


def _quiz(questions: list[Question]) -> Quiz:
    return Quiz(id="quiz", title="Exported", questions=questions, created_by="t", description="Two\nlines")


def test_serialize_writes_letters_and_omits_defaults():
    text = serialize_quiz(
        _quiz(
            [
                Question(
                    id="q1",
                    type=QuestionType.MULTIPLE_CHOICE,
                    prompt="Pick",
                    options=["x", "y"],
                    correct_answer="y",
                )
            ]
        )
    )
    assert text.startswith("TITLE: Exported\nDESCRIPTION: Two lines\n\n---\n\n")
    assert "CORRECT: B" in text
    assert "POINTS" not in text
    assert "TIMELIMIT" not in text


def test_exported_text_imports_back(tmp_path: Path):
    original = parse_quiz_text(SAMPLE_QUIZ)
    path = tmp_path / "nested" / "out.txt"
    save_quiz_to_file(
        path, Quiz(id="x", title=original.title, questions=original.questions, created_by="t")
    )

    reloaded = load_quiz_from_file(path)

    assert reloaded.title == "Warm-up"
    for before, after in zip(original.questions, reloaded.questions):
        assert after.type is before.type
        assert after.prompt == before.prompt
        assert after.correct_answer == before.correct_answer
        assert after.correct_answers == before.correct_answers
        assert after.correct_matches == before.correct_matches
        assert after.points == before.points
        assert after.time_limit == before.time_limit


def test_save_rejects_empty_quiz(tmp_path: Path):
    with pytest.raises(ValueError):
        save_quiz_to_file(tmp_path / "empty.txt", _quiz([]))
