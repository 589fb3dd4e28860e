"""Leaderboard and session statistics built from participant and response snapshots."""

from __future__ import annotations

from dataclasses import dataclass

from quiz_live.core.models import (
    LeaderboardRow,
    Participant,
    ParticipantStatus,
    QuestionResponse,
    SessionStats,
)


@dataclass(slots=True)
class _ScoreEntry:
    """Mutable scoreboard entry used internally."""

    participant: Participant
    join_order: int
    correct_answers: int = 0
    total_answers: int = 0
    total_time_spent: int = 0


def build_leaderboard(
    participants: list[Participant],
    responses: list[QuestionResponse],
    limit: int | None = None,
) -> list[LeaderboardRow]:
    """Rank by score, then by less total answering time, then by join order."""
    entries = {
        participant.id: _ScoreEntry(participant=participant, join_order=order)
        for order, participant in enumerate(participants)
    }
    for response in responses:
        entry = entries.get(response.participant_id)
        if entry is None:
            continue
        entry.total_answers += 1
        entry.total_time_spent += response.time_spent
        if response.is_correct:
            entry.correct_answers += 1

    ranked = sorted(
        entries.values(),
        key=lambda e: (-e.participant.score, e.total_time_spent, e.join_order),
    )
    if limit is not None:
        ranked = ranked[:limit]
    return [
        LeaderboardRow(
            participant_id=entry.participant.id,
            name=entry.participant.name,
            score=entry.participant.score,
            correct_answers=entry.correct_answers,
            total_answers=entry.total_answers,
        )
        for entry in ranked
    ]


def build_session_stats(
    participants: list[Participant],
    responses: list[QuestionResponse],
) -> SessionStats:
    connected = sum(1 for p in participants if p.status is ParticipantStatus.CONNECTED)
    average = 0.0
    if responses:
        average = round(sum(r.time_spent for r in responses) / len(responses), 1)
    return SessionStats(
        total_participants=len(participants),
        connected_participants=connected,
        total_responses=len(responses),
        average_time_spent=average,
    )
