"""Utilities for exporting quizzes to the plain-text format used for imports."""

from __future__ import annotations

from pathlib import Path
import string

from quiz_live.constants.session_constants import DEFAULT_TIME_LIMIT_SECONDS
from quiz_live.core.models import Question, QuestionType, Quiz

_OPTION_LETTERS = string.ascii_uppercase


def save_quiz_to_file(file_path: Path, quiz: Quiz) -> None:
    """Persist the quiz to disk in the text import format."""

    if not quiz.questions:
        raise ValueError("Cannot export an empty quiz.")

    file_path = file_path.resolve()
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_text(serialize_quiz(quiz), encoding="utf-8")


def serialize_quiz(quiz: Quiz) -> str:
    header = [f"TITLE: {quiz.title}"]
    if quiz.description:
        header.append(f"DESCRIPTION: {' '.join(quiz.description.split())}")
    blocks = ["\n".join(header)] + [_serialize_question(q) for q in quiz.questions]
    return "\n\n---\n\n".join(blocks) + "\n"


def _serialize_question(question: Question) -> str:
    lines = [f"TYPE: {question.type.value}"]
    if question.points != 1:
        lines.append(f"POINTS: {question.points}")

    question_lines = question.prompt.splitlines() or [question.prompt]
    lines.append(f"Q: {question_lines[0]}")
    lines.extend(question_lines[1:])

    if question.type in (QuestionType.MULTIPLE_CHOICE, QuestionType.MATCH_COLUMNS):
        for letter, option_text in zip(_OPTION_LETTERS, question.options):
            option_lines = option_text.splitlines() or [option_text]
            lines.append(f"{letter}: {option_lines[0]}")
            lines.extend(option_lines[1:])

    if question.type is QuestionType.MULTIPLE_CHOICE and question.correct_answer in question.options:
        lines.append(f"CORRECT: {_OPTION_LETTERS[question.options.index(question.correct_answer)]}")
    elif question.type is QuestionType.TRUE_FALSE and question.correct_answer:
        lines.append(f"CORRECT: {question.correct_answer}")
    elif question.type is QuestionType.MATCH_COLUMNS:
        lines.extend(f"MATCH: {left} = {right}" for left, right in question.correct_matches.items())
    elif question.type is QuestionType.FILL_IN_BLANK:
        lines.append(f"BLANKS: {' | '.join(question.correct_answers)}")

    if question.time_limit != DEFAULT_TIME_LIMIT_SECONDS:
        lines.append(f"TIMELIMIT: {question.time_limit}")

    return "\n".join(lines)
