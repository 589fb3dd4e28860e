"""Conversion between domain models and store records.

Store records use camelCase keys and plain values (enum values as strings).
This module is the only place that knows the record layout.
"""

from __future__ import annotations

from typing import Any

from quiz_live.core.models import (
    Answer,
    BlanksAnswer,
    ChoiceAnswer,
    MatchAnswer,
    Participant,
    ParticipantStatus,
    Question,
    QuestionResponse,
    QuestionType,
    Quiz,
    QuizSession,
    SessionStatus,
    TextAnswer,
)
from quiz_live.constants.session_constants import DEFAULT_TIME_LIMIT_SECONDS
from quiz_live.storage.store import VERSION_FIELD, Record


# --- Answers ---

def answer_to_record(answer: Answer) -> dict[str, Any]:
    if isinstance(answer, ChoiceAnswer):
        return {"kind": answer.kind, "value": answer.value}
    if isinstance(answer, TextAnswer):
        return {"kind": answer.kind, "text": answer.text}
    if isinstance(answer, BlanksAnswer):
        return {"kind": answer.kind, "values": list(answer.values)}
    if isinstance(answer, MatchAnswer):
        return {"kind": answer.kind, "pairs": dict(answer.pairs)}
    raise TypeError(f"Unsupported answer type: {type(answer).__name__}")


def answer_from_record(data: dict[str, Any]) -> Answer:
    kind = data.get("kind")
    if kind == ChoiceAnswer.kind:
        return ChoiceAnswer(value=str(data.get("value", "")))
    if kind == TextAnswer.kind:
        return TextAnswer(text=str(data.get("text", "")))
    if kind == BlanksAnswer.kind:
        return BlanksAnswer(values=tuple(str(v) for v in data.get("values", ())))
    if kind == MatchAnswer.kind:
        return MatchAnswer(pairs={str(k): str(v) for k, v in dict(data.get("pairs", {})).items()})
    raise ValueError(f"Unknown answer kind: {kind!r}")


# --- Quizzes ---

def question_to_record(question: Question) -> dict[str, Any]:
    return {
        "id": question.id,
        "type": question.type.value,
        "prompt": question.prompt,
        "points": question.points,
        "options": list(question.options),
        "correctAnswer": question.correct_answer,
        "correctAnswers": list(question.correct_answers),
        "correctMatches": dict(question.correct_matches),
        "timeLimit": question.time_limit,
    }


def question_from_record(record: dict[str, Any]) -> Question:
    return Question(
        id=record["id"],
        type=QuestionType(record["type"]),
        prompt=record.get("prompt", ""),
        points=record.get("points", 1),
        options=list(record.get("options") or []),
        correct_answer=record.get("correctAnswer"),
        correct_answers=list(record.get("correctAnswers") or []),
        correct_matches=dict(record.get("correctMatches") or {}),
        time_limit=record.get("timeLimit") or DEFAULT_TIME_LIMIT_SECONDS,
    )


def quiz_to_record(quiz: Quiz) -> Record:
    return {
        "id": quiz.id,
        "title": quiz.title,
        "description": quiz.description,
        "questions": [question_to_record(q) for q in quiz.questions],
        "createdBy": quiz.created_by,
        "createdAt": quiz.created_at,
        "updatedAt": quiz.updated_at,
    }


def quiz_from_record(record: Record) -> Quiz:
    return Quiz(
        id=record["id"],
        title=record.get("title", ""),
        description=record.get("description", ""),
        questions=[question_from_record(q) for q in record.get("questions", [])],
        created_by=record.get("createdBy", ""),
        created_at=record.get("createdAt"),
        updated_at=record.get("updatedAt"),
    )


# --- Sessions ---

def session_to_record(session: QuizSession) -> Record:
    return {
        "id": session.id,
        "quizId": session.quiz_id,
        "code": session.code,
        "status": session.status.value,
        "currentQuestionIndex": session.current_question_index,
        "startTime": session.start_time,
        "endTime": session.end_time,
        "createdBy": session.created_by,
        "createdAt": session.created_at,
        "updatedAt": session.updated_at,
    }


def session_from_record(record: Record) -> QuizSession:
    return QuizSession(
        id=record["id"],
        quiz_id=record["quizId"],
        code=record["code"],
        created_by=record.get("createdBy", ""),
        status=SessionStatus(record.get("status", SessionStatus.WAITING.value)),
        current_question_index=record.get("currentQuestionIndex", 0),
        start_time=record.get("startTime"),
        end_time=record.get("endTime"),
        created_at=record.get("createdAt"),
        updated_at=record.get("updatedAt"),
        version=record.get(VERSION_FIELD, 0),
    )


# --- Participants ---

def participant_to_record(participant: Participant) -> Record:
    return {
        "id": participant.id,
        "sessionId": participant.session_id,
        "name": participant.name,
        "joinedAt": participant.joined_at,
        "status": participant.status.value,
        "currentQuestionIndex": participant.current_question_index,
        "score": participant.score,
    }


def participant_from_record(record: Record) -> Participant:
    return Participant(
        id=record["id"],
        session_id=record["sessionId"],
        name=record.get("name", ""),
        joined_at=record["joinedAt"],
        status=ParticipantStatus(record.get("status", ParticipantStatus.CONNECTED.value)),
        current_question_index=record.get("currentQuestionIndex", 0),
        score=record.get("score", 0),
    )


# --- Responses ---

def response_to_record(response: QuestionResponse) -> Record:
    return {
        "id": response.id,
        "sessionId": response.session_id,
        "participantId": response.participant_id,
        "questionId": response.question_id,
        "answer": answer_to_record(response.answer),
        "isCorrect": response.is_correct,
        "points": response.points,
        "timeSpent": response.time_spent,
        "submittedAt": response.submitted_at,
    }


def response_from_record(record: Record) -> QuestionResponse:
    return QuestionResponse(
        id=record["id"],
        session_id=record["sessionId"],
        participant_id=record["participantId"],
        question_id=record["questionId"],
        answer=answer_from_record(record["answer"]),
        is_correct=bool(record.get("isCorrect")),
        points=record.get("points", 0),
        time_spent=record.get("timeSpent", 0),
        submitted_at=record["submittedAt"],
    )


_SESSION_PATCH_KEYS = {
    "status": "status",
    "current_question_index": "currentQuestionIndex",
    "start_time": "startTime",
    "end_time": "endTime",
    "updated_at": "updatedAt",
}


def session_patch(**changes: Any) -> Record:
    """Build a session update patch from model attribute names."""
    patch: Record = {}
    for name, value in changes.items():
        patch[_SESSION_PATCH_KEYS[name]] = value.value if isinstance(value, SessionStatus) else value
    return patch
