"""Answer scoring for every question type.

Scoring is pure: the same question and answer always give the same result and
nothing is read or written. Point values are validated when a quiz is saved,
not here.
"""

from __future__ import annotations

from enum import Enum

from quiz_live.core.models import (
    Answer,
    BlanksAnswer,
    ChoiceAnswer,
    MatchAnswer,
    Question,
    QuestionType,
    ScoreResult,
)


class MatchPolicy(str, Enum):
    """How a match-columns submission is compared with the reference pairs.

    COVERAGE: every reference pair must be present and equal; pairs for left
    items the reference does not mention are ignored.
    STRICT: the submitted pairs must equal the reference pairs exactly.
    """

    COVERAGE = "coverage"
    STRICT = "strict"


def normalize_fill(value: str) -> str:
    return value.strip().casefold()


class ScoringEngine:
    """Decides correctness and awarded points. All-or-nothing, no partial credit."""

    def __init__(self, match_policy: MatchPolicy = MatchPolicy.COVERAGE) -> None:
        self.match_policy = match_policy

    def score(self, question: Question, answer: Answer | None) -> ScoreResult:
        is_correct = self.is_correct(question, answer)
        return ScoreResult(is_correct=is_correct, points=question.points if is_correct else 0)

    def is_correct(self, question: Question, answer: Answer | None) -> bool:
        # Open text is graded by the teacher later; it is never shown as wrong.
        if question.type is QuestionType.OPEN_TEXT:
            return True
        if answer is None:
            return False
        if question.type in (QuestionType.TRUE_FALSE, QuestionType.MULTIPLE_CHOICE):
            return self._choice_matches(question, answer)
        if question.type is QuestionType.MATCH_COLUMNS:
            return isinstance(answer, MatchAnswer) and self._pairs_match(question.correct_matches, answer)
        if question.type is QuestionType.FILL_IN_BLANK:
            return isinstance(answer, BlanksAnswer) and self._blanks_match(question.correct_answers, answer)
        return False

    @staticmethod
    def _choice_matches(question: Question, answer: Answer) -> bool:
        if not isinstance(answer, ChoiceAnswer) or not answer.value:
            return False
        return question.correct_answer is not None and answer.value == question.correct_answer

    def _pairs_match(self, reference: dict[str, str], answer: MatchAnswer) -> bool:
        submitted = dict(answer.pairs)
        if not submitted or not reference:
            return False
        if self.match_policy is MatchPolicy.STRICT:
            return submitted == reference
        return all(submitted.get(left) == right for left, right in reference.items())

    @staticmethod
    def _blanks_match(reference: list[str], answer: BlanksAnswer) -> bool:
        if len(answer.values) != len(reference):
            return False
        return all(
            normalize_fill(given) == normalize_fill(expected)
            for given, expected in zip(answer.values, reference)
        )
