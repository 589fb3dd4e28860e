from __future__ import annotations

import pytest

from quiz_live.core.errors import ParticipantNotFound, SessionEnded, SessionNotFound
from quiz_live.core.models import ParticipantStatus


def test_join_creates_connected_participant_with_zero_score(engine, session):
    participant = engine.participants.join(session, "  Ada  ")
    assert participant.name == "Ada"
    assert participant.score == 0
    assert participant.status is ParticipantStatus.CONNECTED
    assert participant.session_id == session.id


def test_join_rejects_blank_name(engine, session):
    with pytest.raises(ValueError):
        engine.participants.join(session, "   ")


def test_duplicate_names_are_distinct_participants(engine, session):
    first = engine.participants.join(session, "Sam")
    second = engine.participants.join(session, "Sam")
    assert first.id != second.id
    assert [p.name for p in engine.participants.list(session.id)] == ["Sam", "Sam"]


def test_join_rejected_once_session_completed(engine, session):
    ended = engine.end_session(session.id)
    with pytest.raises(SessionEnded):
        engine.participants.join(ended, "Late")


def test_join_with_stale_open_session_is_rejected_after_end(engine, session):
    engine.end_session(session.id)
    with pytest.raises(SessionEnded):
        engine.participants.join(session, "Late")
    assert engine.participants.list(session.id) == []


def test_join_to_deleted_session_is_rejected(engine, session):
    engine.delete_session(session.id)
    with pytest.raises(SessionNotFound):
        engine.participants.join(session, "Ghost")


def test_list_is_in_join_order(engine, session):
    for name in ("Ada", "Grace", "Linus"):
        engine.participants.join(session, name)
    assert [p.name for p in engine.participants.list(session.id)] == ["Ada", "Grace", "Linus"]


def test_set_status_is_idempotent(engine, store, session):
    participant = engine.participants.join(session, "Ada")
    engine.participants.set_status(participant.id, ParticipantStatus.DISCONNECTED)
    version = store.get("participants", participant.id)["version"]

    result = engine.participants.set_status(participant.id, ParticipantStatus.DISCONNECTED)

    assert result.status is ParticipantStatus.DISCONNECTED
    assert store.get("participants", participant.id)["version"] == version


def test_set_status_unknown_participant(engine):
    with pytest.raises(ParticipantNotFound):
        engine.participants.set_status("missing", ParticipantStatus.CONNECTED)


def test_subscribe_pushes_snapshot_on_join(engine, session):
    snapshots = []
    unsubscribe = engine.participants.subscribe(session.id, snapshots.append)
    engine.participants.join(session, "Ada")
    unsubscribe()
    engine.participants.join(session, "Grace")

    assert [len(s) for s in snapshots] == [0, 1]
    assert snapshots[-1][0].name == "Ada"
