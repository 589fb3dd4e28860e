"""Utilities for importing quizzes from a human-friendly text file.

File format (repeat blocks separated by blank lines or '---'):

    TITLE: Quiz title            (optional header block; defaults to the file name)
    DESCRIPTION: Free text       (optional, header block only)

    TYPE: multiple-choice        (optional, see below)
    POINTS: 2                    (optional, default 1)
    Q: Question text (supports markdown + LaTeX). Additional lines until the
       next marker are treated as part of the question.
    A: First option text
    B: Second option text
    CORRECT: B                   (option letter, or true/false)
    MATCH: left item = right item   (one line per pair)
    BLANKS: first | second       (one answer per ___ in the question)
    TIMELIMIT: seconds           (optional, default 30)

When TYPE is omitted it is inferred: options make a multiple-choice question,
MATCH lines a match-columns question, BLANKS a fill-in-blank question, a bare
CORRECT: true/false a true-false question, and anything else open text.
For match-columns questions the option lines, when present, list the
right-column choices shown to students.

Example:

    TITLE: Warm-up

    Q: What is $2 + 2$?
    A: 3
    B: 4
    CORRECT: B
    TIMELIMIT: 20

    ---

    TYPE: fill-in-blank
    Q: The capital of France is ___.
    BLANKS: Paris

Architecture note:
    Semantic checks (option uniqueness, blank counts, point values) live in
    QuizRepository so that imported and API-authored quizzes share them. The
    importer only rejects text it cannot map onto a question.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import string

from quiz_live.constants.session_constants import DEFAULT_TIME_LIMIT_SECONDS, TRUE_FALSE_VALUES
from quiz_live.core.models import Question, QuestionType


class QuizImportError(Exception):
    """Raised when a quiz definition cannot be parsed."""


@dataclass(slots=True)
class ImportedQuiz:
    """Container for imported quiz metadata and questions."""

    source_path: Path | None
    title: str
    questions: list[Question]
    description: str = ""


@dataclass(slots=True)
class _Block:
    question_lines: list[str] = field(default_factory=list)
    options: dict[str, str] = field(default_factory=dict)
    matches: dict[str, str] = field(default_factory=dict)
    blanks: list[str] | None = None
    correct: str | None = None
    type_name: str | None = None
    points: int = 1
    time_limit: int = DEFAULT_TIME_LIMIT_SECONDS


_OPTION_LETTERS = string.ascii_uppercase[:8]
_HEADER_KEYS = ("TITLE:", "DESCRIPTION:")


def load_quiz_from_file(file_path: Path) -> ImportedQuiz:
    text = file_path.read_text(encoding="utf-8")
    quiz = parse_quiz_text(text, default_title=file_path.stem)
    quiz.source_path = file_path
    return quiz


def parse_quiz_text(text: str, default_title: str = "Untitled quiz") -> ImportedQuiz:
    title = default_title
    description = ""
    questions: list[Question] = []
    for block in _split_blocks(text):
        lines = [line.strip() for line in block.splitlines() if line.strip()]
        if all(line.upper().startswith(_HEADER_KEYS) for line in lines):
            for line in lines:
                key, value = line.split(":", 1)
                if key.strip().upper() == "TITLE":
                    title = value.strip() or default_title
                else:
                    description = value.strip()
            continue
        questions.append(_parse_block(block, position=len(questions) + 1))

    if not questions:
        raise QuizImportError("Quiz file did not contain any questions.")
    return ImportedQuiz(source_path=None, title=title, description=description, questions=questions)


def _split_blocks(text: str) -> list[str]:
    blocks: list[str] = []
    current_block: list[str] = []
    for raw_line in text.splitlines():
        stripped = raw_line.strip()
        if stripped == "---":
            if current_block:
                blocks.append("\n".join(current_block).strip())
                current_block = []
            continue
        if stripped:
            current_block.append(raw_line)
        elif current_block:
            blocks.append("\n".join(current_block).strip())
            current_block = []
    if current_block:
        blocks.append("\n".join(current_block).strip())
    return [block for block in blocks if block]


def _parse_block(block: str, position: int) -> Question:
    parsed = _Block()
    current_section: str | None = None

    for raw_line in block.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        key, colon, value = line.partition(":")
        key = key.strip().upper()
        value = value.strip()

        if key == "Q" and colon:
            parsed.question_lines = [value]
            current_section = "Q"
        elif key == "TYPE":
            parsed.type_name = value.lower()
            current_section = None
        elif key == "POINTS":
            parsed.points = _parse_positive_int("POINTS", value)
            current_section = None
        elif key == "TIMELIMIT":
            parsed.time_limit = _parse_positive_int("TIMELIMIT", value)
            current_section = None
        elif key == "CORRECT":
            parsed.correct = value
            current_section = None
        elif key == "MATCH":
            left, sep, right = value.partition("=")
            if not sep or not left.strip() or not right.strip():
                raise QuizImportError(f"MATCH must look like 'left = right': '{line}'.")
            parsed.matches[left.strip()] = right.strip()
            current_section = None
        elif key == "BLANKS":
            parsed.blanks = [answer.strip() for answer in value.split("|")]
            current_section = None
        elif len(key) == 1 and key in _OPTION_LETTERS and colon:
            parsed.options[key] = value
            current_section = key
        elif current_section == "Q":
            parsed.question_lines.append(line)
        elif current_section is not None:
            parsed.options[current_section] += f"\n{line}"
        else:
            raise QuizImportError(f"Encountered text outside of a known section: '{line}'.")

    prompt = "\n".join(parsed.question_lines).strip()
    if not prompt:
        raise QuizImportError(f"Question {position}: question text missing (Q: ...)")
    return _build_question(parsed, prompt, position)


def _build_question(parsed: _Block, prompt: str, position: int) -> Question:
    question_type = _resolve_type(parsed, position)
    question = Question(
        id=f"q{position}",
        type=question_type,
        prompt=prompt,
        points=parsed.points,
        time_limit=parsed.time_limit,
    )
    letters = sorted(parsed.options)
    if letters != list(_OPTION_LETTERS[: len(letters)]):
        raise QuizImportError(f"Question {position}: options must be lettered A, B, C, ... in order.")
    options = [parsed.options[letter].strip() for letter in letters]

    if question_type is QuestionType.MULTIPLE_CHOICE:
        question.options = options
        correct = (parsed.correct or "").upper()
        if correct not in letters:
            raise QuizImportError(
                f"Question {position}: CORRECT must be one of {', '.join(letters)}."
            )
        question.correct_answer = options[letters.index(correct)]
    elif question_type is QuestionType.TRUE_FALSE:
        correct = (parsed.correct or "").lower()
        if correct not in TRUE_FALSE_VALUES:
            raise QuizImportError(f"Question {position}: CORRECT must be true or false.")
        question.correct_answer = correct
    elif question_type is QuestionType.MATCH_COLUMNS:
        question.correct_matches = dict(parsed.matches)
        question.options = options
    elif question_type is QuestionType.FILL_IN_BLANK:
        question.correct_answers = list(parsed.blanks or [])
    return question


def _resolve_type(parsed: _Block, position: int) -> QuestionType:
    if parsed.type_name:
        try:
            return QuestionType(parsed.type_name)
        except ValueError as exc:
            allowed = ", ".join(t.value for t in QuestionType)
            raise QuizImportError(
                f"Question {position}: unknown TYPE '{parsed.type_name}' (use one of {allowed})."
            ) from exc
    if parsed.matches:
        return QuestionType.MATCH_COLUMNS
    if parsed.blanks is not None:
        return QuestionType.FILL_IN_BLANK
    if parsed.options:
        return QuestionType.MULTIPLE_CHOICE
    if parsed.correct is not None and parsed.correct.lower() in TRUE_FALSE_VALUES:
        return QuestionType.TRUE_FALSE
    return QuestionType.OPEN_TEXT


def _parse_positive_int(key: str, raw_value: str) -> int:
    if not raw_value:
        raise QuizImportError(f"{key} must include an integer value.")
    try:
        parsed_value = int(raw_value)
    except ValueError as exc:
        raise QuizImportError(f"{key} must be an integer.") from exc
    if parsed_value <= 0:
        raise QuizImportError(f"{key} must be a positive integer.")
    return parsed_value
