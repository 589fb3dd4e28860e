from __future__ import annotations

import pytest

from quiz_live.constants.session_constants import END_ROSTER_ATTEMPTS
from quiz_live.core.errors import ConcurrentSessionUpdate, InvalidTransition
from quiz_live.core.models import ParticipantStatus, SessionStatus
from quiz_live.storage import PARTICIPANTS


def test_new_session_is_waiting_on_first_question(session):
    assert session.status is SessionStatus.WAITING
    assert session.current_question_index == 0
    assert session.start_time is None


def test_start_activates_and_sets_start_time(engine, session):
    started = engine.start_session(session.id)
    assert started.status is SessionStatus.ACTIVE
    assert started.start_time is not None
    assert engine.get_session(session.id).status is SessionStatus.ACTIVE


def test_pause_on_waiting_session_is_rejected(engine, session):
    with pytest.raises(InvalidTransition) as excinfo:
        engine.pause_session(session.id)
    assert excinfo.value.status is SessionStatus.WAITING
    assert engine.get_session(session.id).status is SessionStatus.WAITING


def test_pause_and_resume(engine, active_session):
    paused = engine.pause_session(active_session.id)
    assert paused.status is SessionStatus.PAUSED
    with pytest.raises(InvalidTransition):
        engine.pause_session(active_session.id)
    with pytest.raises(InvalidTransition):
        engine.advance_question(active_session.id)
    assert engine.resume_session(active_session.id).status is SessionStatus.ACTIVE


def test_start_twice_is_rejected(engine, active_session):
    with pytest.raises(InvalidTransition):
        engine.start_session(active_session.id)


def test_advance_and_retreat_move_the_index(engine, active_session):
    assert engine.advance_question(active_session.id).current_question_index == 1
    assert engine.advance_question(active_session.id).current_question_index == 2
    assert engine.retreat_question(active_session.id).current_question_index == 1


def test_retreat_at_first_question_is_a_no_op(engine, active_session):
    before = engine.get_session(active_session.id)
    result = engine.retreat_question(active_session.id)
    assert result.current_question_index == 0
    assert engine.get_session(active_session.id).version == before.version


def test_advance_on_last_question_ends_session(engine, active_session):
    student = engine.join_session(active_session.code, "Ada")
    engine.advance_question(active_session.id)
    engine.advance_question(active_session.id)

    ended = engine.advance_question(active_session.id)

    assert ended.status is SessionStatus.COMPLETED
    assert ended.current_question_index == 2
    assert ended.end_time is not None
    stored = engine.participants.require(student.id)
    assert stored.status is ParticipantStatus.DISCONNECTED


def test_end_disconnects_every_participant(engine, active_session):
    for name in ("Ada", "Grace", "Linus"):
        engine.join_session(active_session.code, name)
    engine.end_session(active_session.id)
    participants = engine.get_participants(active_session.id)
    assert len(participants) == 3
    assert all(p.status is ParticipantStatus.DISCONNECTED for p in participants)



def _join_after_roster_reads(monkeypatch, store, engine, code, times=1):
    """Land a join right after each participant listing, before the batch commits."""
    original_query = store.query
    joined = []

    def query(collection, *args, **kwargs):
        rows = original_query(collection, *args, **kwargs)
        if collection == PARTICIPANTS and len(joined) < times:
            joined.append(engine.join_session(code, f"Late {len(joined) + 1}"))
        return rows

    monkeypatch.setattr(store, "query", query)
    return joined


def test_join_racing_end_is_disconnected_too(monkeypatch, store, engine, active_session):
    engine.join_session(active_session.code, "Ada")
    joined = _join_after_roster_reads(monkeypatch, store, engine, active_session.code)

    ended = engine.end_session(active_session.id)

    assert ended.status is SessionStatus.COMPLETED
    assert len(joined) == 1
    participants = engine.get_participants(active_session.id)
    assert [p.name for p in participants] == ["Ada", "Late 1"]
    assert all(p.status is ParticipantStatus.DISCONNECTED for p in participants)


def test_end_gives_up_when_joins_keep_landing(monkeypatch, store, engine, active_session):
    _join_after_roster_reads(monkeypatch, store, engine, active_session.code, times=END_ROSTER_ATTEMPTS)

    with pytest.raises(ConcurrentSessionUpdate):
        engine.end_session(active_session.id)

    assert engine.get_session(active_session.id).status is SessionStatus.ACTIVE
    assert all(
        p.status is ParticipantStatus.CONNECTED for p in engine.get_participants(active_session.id)
    )

@pytest.mark.parametrize("status_path", [[], ["start"], ["start", "pause"]])
def test_end_is_allowed_from_every_open_status(engine, session, status_path):
    for step in status_path:
        getattr(engine, f"{step}_session")(session.id)
    assert engine.end_session(session.id).status is SessionStatus.COMPLETED


def test_completed_is_terminal(engine, active_session):
    engine.end_session(active_session.id)
    for operation in (
        engine.start_session,
        engine.pause_session,
        engine.resume_session,
        engine.end_session,
        engine.advance_question,
        engine.retreat_question,
    ):
        with pytest.raises(InvalidTransition):
            operation(active_session.id)
    assert engine.get_session(active_session.id).status is SessionStatus.COMPLETED


def test_stale_session_write_is_rejected(engine, active_session):
    stale = engine.get_session(active_session.id)
    engine.advance_question(active_session.id)
    with pytest.raises(ConcurrentSessionUpdate):
        engine.state_machine.pause(stale)
    current = engine.get_session(active_session.id)
    assert current.status is SessionStatus.ACTIVE
    assert current.current_question_index == 1


def test_version_increases_with_each_transition(engine, session):
    first = engine.get_session(session.id).version
    engine.start_session(session.id)
    engine.pause_session(session.id)
    assert engine.get_session(session.id).version == first + 2


def test_can_reports_allowed_operations(engine, session):
    machine = engine.state_machine
    assert machine.can("start", session)
    assert machine.can("end", session)
    assert not machine.can("advance", session)
