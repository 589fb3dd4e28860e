"""Exceptions raised by the live session engine."""

from __future__ import annotations

from quiz_live.core.models import SessionStatus


class SessionEngineError(Exception):
    """Base class for every error the engine reports to its callers."""


class InvalidTransition(SessionEngineError):
    """A lifecycle operation was attempted from a status that does not allow it."""

    def __init__(self, operation: str, status: SessionStatus) -> None:
        super().__init__(f"Cannot {operation} a session that is {status.value}.")
        self.operation = operation
        self.status = status


class SessionNotFound(SessionEngineError):
    def __init__(self, reference: str) -> None:
        super().__init__(f"Session not found: {reference}. Please check the code and try again.")
        self.reference = reference


class SessionEnded(SessionEngineError):
    def __init__(self, session_id: str) -> None:
        super().__init__("This session has already ended.")
        self.session_id = session_id


class AlreadyAnswered(SessionEngineError):
    """The participant already has a stored response for this question."""

    def __init__(self, participant_id: str, question_id: str) -> None:
        super().__init__(
            f"Participant {participant_id} already answered question {question_id}."
        )
        self.participant_id = participant_id
        self.question_id = question_id


class CodeSpaceExhausted(SessionEngineError):
    def __init__(self, attempts: int) -> None:
        super().__init__(f"Could not find a free session code after {attempts} attempts.")
        self.attempts = attempts


class QuizNotFound(SessionEngineError):
    def __init__(self, quiz_id: str) -> None:
        super().__init__(f"Quiz not found: {quiz_id}")
        self.quiz_id = quiz_id


class ParticipantNotFound(SessionEngineError):
    def __init__(self, participant_id: str) -> None:
        super().__init__(f"Participant not found: {participant_id}")
        self.participant_id = participant_id


class QuestionNotFound(SessionEngineError):
    def __init__(self, question_id: str) -> None:
        super().__init__(f"Question not found in quiz: {question_id}")
        self.question_id = question_id


class QuestionClosed(SessionEngineError):
    """Raised for late answers when the engine enforces the current question."""

    def __init__(self, question_id: str) -> None:
        super().__init__(f"Question {question_id} is no longer accepting answers.")
        self.question_id = question_id


class ConcurrentSessionUpdate(SessionEngineError):
    """Another write changed the session between our read and our write."""

    def __init__(self, session_id: str) -> None:
        super().__init__(
            f"Session {session_id} was changed by another action. Refresh and try again."
        )
        self.session_id = session_id
