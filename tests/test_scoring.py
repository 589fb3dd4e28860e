from __future__ import annotations

import pytest

from quiz_live.core.models import (
    BlanksAnswer,
    ChoiceAnswer,
    MatchAnswer,
    Question,
    QuestionType,
    TextAnswer,
)
from quiz_live.core.services.scoring import MatchPolicy, ScoringEngine


def _match_question() -> Question:
    return Question(
        id="m1",
        type=QuestionType.MATCH_COLUMNS,
        prompt="Match the capitals",
        points=3,
        options=["Paris", "Rome", "Madrid"],
        correct_matches={"France": "Paris", "Italy": "Rome"},
    )


def test_true_false_correct_awards_points():
    question = Question(id="t", type=QuestionType.TRUE_FALSE, prompt="?", correct_answer="true", points=2)
    result = ScoringEngine().score(question, ChoiceAnswer("true"))
    assert result.is_correct is True
    assert result.points == 2


def test_true_false_wrong_awards_nothing():
    question = Question(id="t", type=QuestionType.TRUE_FALSE, prompt="?", correct_answer="true")
    result = ScoringEngine().score(question, ChoiceAnswer("false"))
    assert result.is_correct is False
    assert result.points == 0


def test_multiple_choice_requires_exact_match():
    question = Question(
        id="m", type=QuestionType.MULTIPLE_CHOICE, prompt="?", options=["a", "b"], correct_answer="b"
    )
    engine = ScoringEngine()
    assert engine.is_correct(question, ChoiceAnswer("b"))
    assert not engine.is_correct(question, ChoiceAnswer("B"))
    assert not engine.is_correct(question, ChoiceAnswer(""))


@pytest.mark.parametrize("answer", [None, TextAnswer("b"), BlanksAnswer(("b",))])
def test_choice_questions_reject_missing_or_wrong_kind(answer):
    question = Question(
        id="m", type=QuestionType.MULTIPLE_CHOICE, prompt="?", options=["a", "b"], correct_answer="b"
    )
    assert ScoringEngine().score(question, answer).is_correct is False


def test_open_text_is_always_correct():
    question = Question(id="o", type=QuestionType.OPEN_TEXT, prompt="Explain", points=4)
    for answer in (TextAnswer("anything"), TextAnswer(""), None):
        result = ScoringEngine().score(question, answer)
        assert result.is_correct is True
        assert result.points == 4


def test_fill_in_blank_ignores_case_and_surrounding_space():
    question = Question(
        id="f",
        type=QuestionType.FILL_IN_BLANK,
        prompt="___ is the capital of ___.",
        correct_answers=["Paris", "France"],
    )
    engine = ScoringEngine()
    assert engine.is_correct(question, BlanksAnswer(("  paris ", "FRANCE")))
    assert not engine.is_correct(question, BlanksAnswer(("Paris",)))
    assert not engine.is_correct(question, BlanksAnswer(("France", "Paris")))


def test_fill_in_blank_with_no_blanks_is_vacuously_correct():
    question = Question(id="f", type=QuestionType.FILL_IN_BLANK, prompt="No blanks", correct_answers=[])
    assert ScoringEngine().is_correct(question, BlanksAnswer(()))


def test_match_missing_pair_is_wrong_under_both_policies():
    question = _match_question()
    answer = MatchAnswer({"France": "Paris"})
    assert not ScoringEngine(MatchPolicy.COVERAGE).is_correct(question, answer)
    assert not ScoringEngine(MatchPolicy.STRICT).is_correct(question, answer)


def test_match_coverage_ignores_extraneous_pairs():
    answer = MatchAnswer({"France": "Paris", "Italy": "Rome", "Spain": "Madrid"})
    assert ScoringEngine(MatchPolicy.COVERAGE).is_correct(_match_question(), answer)


def test_match_strict_rejects_extraneous_pairs():
    answer = MatchAnswer({"France": "Paris", "Italy": "Rome", "Spain": "Madrid"})
    assert not ScoringEngine(MatchPolicy.STRICT).is_correct(_match_question(), answer)


def test_match_exact_pairs_pass_both_policies():
    answer = MatchAnswer({"Italy": "Rome", "France": "Paris"})
    for policy in MatchPolicy:
        result = ScoringEngine(policy).score(_match_question(), answer)
        assert result.is_correct is True
        assert result.points == 3


def test_match_empty_submission_is_wrong():
    assert not ScoringEngine().is_correct(_match_question(), MatchAnswer({}))


def test_default_policy_is_coverage():
    assert ScoringEngine().match_policy is MatchPolicy.COVERAGE


def test_scoring_is_deterministic():
    question = _match_question()
    answer = MatchAnswer({"France": "Paris", "Italy": "Madrid"})
    engine = ScoringEngine()
    assert engine.score(question, answer) == engine.score(question, answer)
