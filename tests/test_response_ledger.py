from __future__ import annotations

import pytest

from quiz_live.core.errors import AlreadyAnswered, QuestionClosed
from quiz_live.core.models import BlanksAnswer, ChoiceAnswer, TextAnswer
from quiz_live.core.services.response_ledger import (
    CORRECT_BUCKET,
    INCORRECT_BUCKET,
    ResponseLedger,
    response_id_for,
)


@pytest.fixture
def student(engine, active_session):
    return engine.join_session(active_session.code, "Ada")


def test_correct_answer_is_stored_and_credited(engine, active_session, student):
    response = engine.submit_response(active_session.id, student.id, "q1", ChoiceAnswer("true"), 4)

    assert response.id == response_id_for(student.id, "q1")
    assert response.is_correct is True
    assert response.points == 1
    stored = engine.participants.require(student.id)
    assert stored.score == 1
    assert stored.current_question_index == 0


def test_wrong_answer_is_stored_without_credit(engine, active_session, student):
    response = engine.submit_response(active_session.id, student.id, "q2", ChoiceAnswer("3"))
    assert response.is_correct is False
    assert response.points == 0
    stored = engine.participants.require(student.id)
    assert stored.score == 0
    assert stored.current_question_index == 1


def test_second_answer_for_same_question_is_rejected(engine, active_session, student):
    engine.submit_response(active_session.id, student.id, "q2", ChoiceAnswer("4"))
    with pytest.raises(AlreadyAnswered):
        engine.submit_response(active_session.id, student.id, "q2", ChoiceAnswer("3"))

    responses = engine.get_question_responses(active_session.id, "q2")
    assert len(responses) == 1
    assert responses[0].answer == ChoiceAnswer("4")
    assert engine.participants.require(student.id).score == 2


def test_store_level_duplicate_is_reported_as_already_answered(engine, active_session, student, monkeypatch):
    engine.submit_response(active_session.id, student.id, "q1", ChoiceAnswer("true"))
    # Simulate a racing submission that passed the precondition check.
    monkeypatch.setattr(engine.responses, "has_answered", lambda *_args: False)
    with pytest.raises(AlreadyAnswered):
        engine.submit_response(active_session.id, student.id, "q1", ChoiceAnswer("true"))
    assert engine.participants.require(student.id).score == 1


def test_late_answers_are_accepted_by_default(engine, active_session, student):
    engine.advance_question(active_session.id)
    response = engine.submit_response(active_session.id, student.id, "q1", ChoiceAnswer("true"))
    assert response.is_correct is True


def test_late_answer_does_not_move_progress_backwards(engine, active_session, student):
    engine.submit_response(active_session.id, student.id, "q2", ChoiceAnswer("4"))
    engine.submit_response(active_session.id, student.id, "q1", ChoiceAnswer("true"))

    stored = engine.participants.require(student.id)
    assert stored.current_question_index == 1
    assert stored.score == 3


def test_late_answers_rejected_when_enforced(engine, active_session, student):
    engine.enforce_current_question = True
    engine.advance_question(active_session.id)
    with pytest.raises(QuestionClosed):
        engine.submit_response(active_session.id, student.id, "q1", ChoiceAnswer("true"))
    engine.submit_response(active_session.id, student.id, "q2", ChoiceAnswer("4"))


def test_enforced_mode_rejects_answers_while_paused(engine, active_session, student):
    engine.enforce_current_question = True
    engine.pause_session(active_session.id)
    with pytest.raises(QuestionClosed):
        engine.submit_response(active_session.id, student.id, "q1", ChoiceAnswer("true"))


def test_responses_are_listed_in_submission_order(engine, active_session, student):
    other = engine.join_session(active_session.code, "Grace")
    engine.submit_response(active_session.id, other.id, "q3", BlanksAnswer(("paris",)))
    engine.submit_response(active_session.id, student.id, "q3", BlanksAnswer(("Lyon",)))

    responses = engine.get_question_responses(active_session.id, "q3")
    assert [r.participant_id for r in responses] == [other.id, student.id]
    assert [r.is_correct for r in responses] == [True, False]


def test_subscription_receives_each_new_answer(engine, active_session, student):
    snapshots = []
    unsubscribe = engine.subscribe_to_question_responses(active_session.id, "q1", snapshots.append)
    engine.submit_response(active_session.id, student.id, "q1", ChoiceAnswer("false"))
    engine.submit_response(active_session.id, student.id, "q2", ChoiceAnswer("4"))
    unsubscribe()
    assert [len(s) for s in snapshots] == [0, 1]


def test_tally_counts_options_and_correctness(engine, active_session, student):
    other = engine.join_session(active_session.code, "Grace")
    engine.submit_response(active_session.id, student.id, "q2", ChoiceAnswer("4"))
    engine.submit_response(active_session.id, other.id, "q2", ChoiceAnswer("4"))
    engine.submit_response(active_session.id, student.id, "q3", BlanksAnswer(("Paris",)))
    engine.submit_response(active_session.id, other.id, "q3", BlanksAnswer(("Rome",)))

    assert engine.get_question_tally(active_session.id, "q2") == {"3": 0, "4": 2, "5": 0}
    assert engine.get_question_tally(active_session.id, "q3") == {CORRECT_BUCKET: 1, INCORRECT_BUCKET: 1}



def test_tally_ignores_empty_timed_out_choice(engine, active_session, student):
    engine.submit_response(active_session.id, student.id, "q2", ChoiceAnswer(""))
    assert engine.get_question_tally(active_session.id, "q2") == {"3": 0, "4": 0, "5": 0}
    assert engine.get_question_responses(active_session.id, "q2")[0].is_correct is False


def test_correctness_percentage(engine, active_session, student):
    assert ResponseLedger.correctness_percentage([]) == 0.0
    engine.submit_response(active_session.id, student.id, "q1", TextAnswer("true"))
    responses = engine.get_question_responses(active_session.id, "q1")
    assert ResponseLedger.correctness_percentage(responses) == 0.0
