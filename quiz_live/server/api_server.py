"""FastAPI server exposing the session engine to students and headless teachers."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime
import logging
from threading import Thread
from typing import Annotated, Any, Literal

from fastapi import Depends, FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, Field
import uvicorn

from quiz_live.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from quiz_live.constants.session_constants import DEFAULT_TIME_LIMIT_SECONDS
from quiz_live.core.errors import (
    AlreadyAnswered,
    CodeSpaceExhausted,
    ConcurrentSessionUpdate,
    InvalidTransition,
    ParticipantNotFound,
    QuestionClosed,
    QuestionNotFound,
    QuizNotFound,
    SessionEnded,
    SessionEngineError,
    SessionNotFound,
)
from quiz_live.core.join_links import build_join_url
from quiz_live.core.markdown_math_renderer import renderer
from quiz_live.core.models import (
    ANSWER_TYPES,
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
    TextAnswer,
)
from quiz_live.core.records import answer_to_record
from quiz_live.core.session_engine import SessionEngine
from quiz_live.storage.store import (
    DuplicateRecord,
    PreconditionFailed,
    RecordNotFound,
    StaleWrite,
    StoreError,
    StoreUnavailable,
)

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type[Exception], int], ...] = (
    (SessionNotFound, 404),
    (QuizNotFound, 404),
    (ParticipantNotFound, 404),
    (QuestionNotFound, 404),
    (RecordNotFound, 404),
    (InvalidTransition, 409),
    (AlreadyAnswered, 409),
    (QuestionClosed, 409),
    (ConcurrentSessionUpdate, 409),
    (StaleWrite, 409),
    (DuplicateRecord, 409),
    (PreconditionFailed, 409),
    (SessionEnded, 410),
    (CodeSpaceExhausted, 503),
    (StoreUnavailable, 503),
    (ValueError, 422),
)

_STUDENT_PAGE_HTML = """<!doctype html>
<html lang=\"en\">
  <head>
    <meta charset=\"utf-8\" />
    <title>QuizLive Student</title>
    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />
    <style>
      :root { font-family: 'Inter', system-ui, sans-serif; background: #0b1120; color: #f5f7ff; }
      body { margin: 0; padding: 1.5rem; display: flex; flex-direction: column; gap: 1rem; }
      .card { background: #111a30; border-radius: 0.75rem; padding: 1.5rem; box-shadow: 0 0.5rem 1.5rem rgba(0, 0, 0, 0.4); }
      .hidden { display: none; }
      input, select { font-size: 1rem; padding: 0.6rem; border-radius: 0.5rem; border: 1px solid #334155; background: #0b1120; color: #f5f7ff; }
      .primary-button, .option-button { border: none; border-radius: 0.75rem; padding: 0.85rem 1.5rem; font-size: 1rem; background: #1f9aa5; color: #fff; cursor: pointer; }
      .primary-button:disabled, .option-button:disabled { opacity: 0.5; cursor: not-allowed; }
      .option-button.selected { background: #f59e0b; }
      .options-grid { display: grid; grid-template-columns: repeat(auto-fit, minmax(180px, 1fr)); gap: 0.75rem; }
      .match-row { display: flex; gap: 0.75rem; align-items: center; margin-bottom: 0.5rem; }
      .blank-slot { border-bottom: 2px solid currentColor; padding: 0 1.5rem; }
      #question-container { min-height: 4rem; font-size: 1.1rem; line-height: 1.6; }
      #status { min-height: 1.25rem; color: #94a3b8; }
      #timer { font-variant-numeric: tabular-nums; color: #fbbf24; }
    </style>
    <script>
      window.MathJax = { tex: { inlineMath: [['$','$']], displayMath: [['$$','$$']] } };
    </script>
    <script defer src=\"https://cdn.jsdelivr.net/npm/mathjax@3/es5/tex-mml-chtml.js\"></script>
  </head>
  <body>
    <section class=\"card\" id=\"join-card\">
      <h1>Join a quiz</h1>
      <p><input id=\"code-input\" maxlength=\"6\" placeholder=\"Session code\" /></p>
      <p><input id=\"name-input\" placeholder=\"Your name\" /></p>
      <button id=\"join-button\" class=\"primary-button\">Join</button>
      <p id=\"join-status\"></p>
    </section>
    <section class=\"card hidden\" id=\"quiz-card\">
      <p id=\"progress\"></p>
      <p id=\"timer\"></p>
      <div id=\"question-container\"></div>
      <div id=\"answer-container\"></div>
      <p id=\"status\"></p>
    </section>
    <script>
      const params = new URLSearchParams(window.location.search);
      const codeInput = document.getElementById('code-input');
      const nameInput = document.getElementById('name-input');
      const joinButton = document.getElementById('join-button');
      const joinStatus = document.getElementById('join-status');
      const joinCard = document.getElementById('join-card');
      const quizCard = document.getElementById('quiz-card');
      const progressEl = document.getElementById('progress');
      const questionContainer = document.getElementById('question-container');
      const answerContainer = document.getElementById('answer-container');
      const statusEl = document.getElementById('status');
      const timerEl = document.getElementById('timer');

      let sessionId = null;
      let participantId = null;
      let currentQuestionId = null;
      let questionShownAt = null;
      const answered = new Set();
      let selectedOption = null;
      let countdownHandle = null;
      let countdownQuestion = null;
      let secondsLeft = 0;

      if (params.get('code')) {
        codeInput.value = params.get('code').toUpperCase();
      }

      function show(element, visible) {
        element.classList.toggle('hidden', !visible);
      }

      async function joinSession() {
        joinButton.disabled = true;
        joinStatus.textContent = 'Joining…';
        const response = await fetch('/join', {
          method: 'POST',
          headers: { 'Content-Type': 'application/json' },
          body: JSON.stringify({ code: codeInput.value, name: nameInput.value })
        });
        const body = await response.json().catch(() => ({}));
        if (!response.ok) {
          joinStatus.textContent = body.detail || 'Unable to join.';
          joinButton.disabled = false;
          return;
        }
        sessionId = body.session_id;
        participantId = body.participant_id;
        show(joinCard, false);
        show(quizCard, true);
        reportStatus('connected');
        listen();
        refreshQuestion();
      }

      function reportStatus(status) {
        if (!participantId) {
          return;
        }
        // keepalive lets the request outlive the page during unload.
        fetch(`/participants/${participantId}/status`, {
          method: 'PUT',
          headers: { 'Content-Type': 'application/json' },
          body: JSON.stringify({ status }),
          keepalive: true
        }).catch(() => {});
      }

      function stopCountdown() {
        if (countdownHandle !== null) {
          clearInterval(countdownHandle);
          countdownHandle = null;
        }
      }

      function startCountdown(question) {
        stopCountdown();
        if (countdownQuestion !== question.id) {
          countdownQuestion = question.id;
          secondsLeft = question.time_limit;
        }
        timerEl.textContent = `${secondsLeft}s left`;
        countdownHandle = setInterval(() => {
          secondsLeft -= 1;
          timerEl.textContent = `${Math.max(secondsLeft, 0)}s left`;
          if (secondsLeft <= 0) {
            stopCountdown();
            if (!answered.has(question.id)) {
              submit(question, collectAnswer(question));
            }
          }
        }, 1000);
      }

      function listen() {
        const scheme = window.location.protocol === 'https:' ? 'wss' : 'ws';
        const socket = new WebSocket(`${scheme}://${window.location.host}/ws/sessions/${sessionId}`);
        socket.onmessage = () => refreshQuestion();
        socket.onclose = () => setTimeout(listen, 2000);
      }

      function collectAnswer(question) {
        if (question.answer_kind === 'choice') {
          return { kind: 'choice', value: selectedOption ?? '' };
        }
        if (question.answer_kind === 'text') {
          return { kind: 'text', text: answerContainer.querySelector('textarea').value };
        }
        if (question.answer_kind === 'blanks') {
          const values = Array.from(answerContainer.querySelectorAll('input')).map(i => i.value);
          return { kind: 'blanks', values };
        }
        const pairs = {};
        answerContainer.querySelectorAll('select').forEach(s => { pairs[s.dataset.left] = s.value; });
        return { kind: 'match', pairs };
      }

      function renderAnswerInputs(question) {
        answerContainer.innerHTML = '';
        selectedOption = null;
        if (question.answer_kind === 'choice') {
          const grid = document.createElement('div');
          grid.className = 'options-grid';
          question.options.forEach(option => {
            const button = document.createElement('button');
            button.className = 'option-button';
            button.textContent = option;
            button.addEventListener('click', () => {
              selectedOption = option;
              grid.querySelectorAll('.option-button').forEach(b => b.classList.toggle('selected', b === button));
            });
            grid.appendChild(button);
          });
          answerContainer.appendChild(grid);
        } else if (question.answer_kind === 'text') {
          answerContainer.appendChild(document.createElement('textarea'));
        } else if (question.answer_kind === 'blanks') {
          for (let i = 0; i < question.blank_count; i++) {
            const input = document.createElement('input');
            input.placeholder = `Blank ${i + 1}`;
            answerContainer.appendChild(input);
          }
        } else {
          question.left_items.forEach(left => {
            const row = document.createElement('div');
            row.className = 'match-row';
            const label = document.createElement('span');
            label.textContent = left;
            const select = document.createElement('select');
            select.dataset.left = left;
            question.options.forEach(option => select.add(new Option(option, option)));
            row.append(label, select);
            answerContainer.appendChild(row);
          });
        }
        const send = document.createElement('button');
        send.className = 'primary-button';
        send.textContent = 'Submit';
        send.addEventListener('click', () => submit(question, collectAnswer(question)));
        answerContainer.appendChild(send);
      }

      async function refreshQuestion() {
        const response = await fetch(`/sessions/${sessionId}/question`);
        if (!response.ok) {
          return;
        }
        const payload = await response.json();
        if (payload.status !== 'active' || !payload.question) {
          stopCountdown();
          timerEl.textContent = '';
        }
        if (payload.status === 'completed') {
          questionContainer.textContent = 'The session has ended. Thanks for playing!';
          answerContainer.innerHTML = '';
          progressEl.textContent = '';
          return;
        }
        if (payload.status !== 'active' || !payload.question) {
          questionContainer.textContent = payload.status === 'paused'
            ? 'The teacher paused the quiz.'
            : 'Waiting for the teacher to start…';
          answerContainer.innerHTML = '';
          currentQuestionId = null;
          return;
        }
        const question = payload.question;
        progressEl.textContent = `Question ${payload.question_index + 1} of ${payload.question_count}`;
        if (question.id === currentQuestionId) {
          return;
        }
        currentQuestionId = question.id;
        questionShownAt = Date.now();
        questionContainer.innerHTML = question.prompt_html;
        statusEl.textContent = '';
        if (answered.has(question.id)) {
          stopCountdown();
          timerEl.textContent = '';
          answerContainer.innerHTML = '';
          statusEl.textContent = 'Answer sent!';
        } else {
          renderAnswerInputs(question);
          startCountdown(question);
        }
        if (window.MathJax && window.MathJax.typesetPromise) {
          window.MathJax.typesetPromise([questionContainer, answerContainer]).catch(() => {});
        }
      }

      async function submit(question, answer) {
        stopCountdown();
        answerContainer.querySelectorAll('button').forEach(b => (b.disabled = true));
        const timeSpent = Math.round((Date.now() - questionShownAt) / 1000);
        const response = await fetch(`/sessions/${sessionId}/responses`, {
          method: 'POST',
          headers: { 'Content-Type': 'application/json' },
          body: JSON.stringify({
            participant_id: participantId,
            question_id: question.id,
            answer,
            time_spent: timeSpent
          })
        });
        const body = await response.json().catch(() => ({}));
        if (response.ok || response.status === 409) {
          answered.add(question.id);
          statusEl.textContent = response.ok ? 'Answer sent!' : (body.detail || 'Already answered.');
          return;
        }
        statusEl.textContent = body.detail || 'Unable to send answer.';
        answerContainer.querySelectorAll('button').forEach(b => (b.disabled = false));
        if (secondsLeft > 0 && question.id === currentQuestionId) {
          startCountdown(question);
        }
      }

      joinButton.addEventListener('click', joinSession);
      window.addEventListener('pagehide', () => reportStatus('disconnected'));
      window.addEventListener('beforeunload', () => reportStatus('disconnected'));
      document.addEventListener('visibilitychange', () => {
        if (document.visibilityState === 'visible') {
          reportStatus('connected');
        }
      });
    </script>
  </body>
</html>
"""


# --- Payload schemas ---


class ChoiceAnswerPayload(BaseModel):
    kind: Literal["choice"] = "choice"
    value: str

    def to_answer(self) -> ChoiceAnswer:
        return ChoiceAnswer(value=self.value)


class TextAnswerPayload(BaseModel):
    kind: Literal["text"] = "text"
    text: str

    def to_answer(self) -> TextAnswer:
        return TextAnswer(text=self.text)


class BlanksAnswerPayload(BaseModel):
    kind: Literal["blanks"] = "blanks"
    values: list[str]

    def to_answer(self) -> BlanksAnswer:
        return BlanksAnswer(values=tuple(self.values))


class MatchAnswerPayload(BaseModel):
    kind: Literal["match"] = "match"
    pairs: dict[str, str]

    def to_answer(self) -> MatchAnswer:
        return MatchAnswer(pairs=dict(self.pairs))


AnswerPayload = Annotated[
    ChoiceAnswerPayload | TextAnswerPayload | BlanksAnswerPayload | MatchAnswerPayload,
    Field(discriminator="kind"),
]


class ResponsePayload(BaseModel):
    """Payload schema for submitted answers."""

    participant_id: str
    question_id: str
    answer: AnswerPayload
    time_spent: int = Field(default=0, ge=0)


class JoinPayload(BaseModel):
    """Payload schema for the student join flow."""

    code: str
    name: str


class CreateSessionPayload(BaseModel):
    quiz_id: str
    teacher_id: str


class ParticipantStatusPayload(BaseModel):
    status: ParticipantStatus


class QuestionPayload(BaseModel):
    id: str = ""
    type: QuestionType
    prompt: str
    points: int = 1
    options: list[str] = []
    correct_answer: str | None = None
    correct_answers: list[str] = []
    correct_matches: dict[str, str] = {}
    time_limit: int = DEFAULT_TIME_LIMIT_SECONDS

    def to_question(self) -> Question:
        return Question(
            id=self.id,
            type=self.type,
            prompt=self.prompt,
            points=self.points,
            options=list(self.options),
            correct_answer=self.correct_answer,
            correct_answers=list(self.correct_answers),
            correct_matches=dict(self.correct_matches),
            time_limit=self.time_limit,
        )


class QuizPayload(BaseModel):
    title: str
    created_by: str
    description: str = ""
    questions: list[QuestionPayload]


# --- Serialization ---


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _session_json(session: QuizSession) -> dict[str, Any]:
    return {
        "id": session.id,
        "quiz_id": session.quiz_id,
        "code": session.code,
        "status": session.status.value,
        "current_question_index": session.current_question_index,
        "start_time": _iso(session.start_time),
        "end_time": _iso(session.end_time),
        "created_by": session.created_by,
        "created_at": _iso(session.created_at),
        "updated_at": _iso(session.updated_at),
    }


def _participant_json(participant: Participant) -> dict[str, Any]:
    return {
        "id": participant.id,
        "session_id": participant.session_id,
        "name": participant.name,
        "joined_at": _iso(participant.joined_at),
        "status": participant.status.value,
        "current_question_index": participant.current_question_index,
        "score": participant.score,
    }


def _response_json(response: QuestionResponse) -> dict[str, Any]:
    return {
        "id": response.id,
        "participant_id": response.participant_id,
        "question_id": response.question_id,
        "answer": answer_to_record(response.answer),
        "is_correct": response.is_correct,
        "points": response.points,
        "time_spent": response.time_spent,
        "submitted_at": _iso(response.submitted_at),
    }


def _quiz_json(quiz: Quiz) -> dict[str, Any]:
    return {
        "id": quiz.id,
        "title": quiz.title,
        "description": quiz.description,
        "created_by": quiz.created_by,
        "question_ids": [question.id for question in quiz.questions],
    }


def _student_question_json(question: Question) -> dict[str, Any]:
    """Question as shown to students: reference answers are never included."""
    payload: dict[str, Any] = {
        "id": question.id,
        "type": question.type.value,
        "prompt_html": renderer.render_prompt(question.prompt),
        "points": question.points,
        "time_limit": question.time_limit,
        "answer_kind": ANSWER_TYPES[question.type].kind,
        "options": [],
    }
    if question.type in (QuestionType.TRUE_FALSE, QuestionType.MULTIPLE_CHOICE):
        payload["options"] = list(question.options)
    elif question.type is QuestionType.MATCH_COLUMNS:
        payload["left_items"] = list(question.correct_matches)
        payload["options"] = sorted(question.options)
    elif question.type is QuestionType.FILL_IN_BLANK:
        payload["blank_count"] = question.blank_count()
    return payload


# --- Error translation ---


def _http_error(exc: Exception) -> HTTPException:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


@contextmanager
def _engine_errors() -> Iterator[None]:
    try:
        yield
    except (SessionEngineError, StoreError, ValueError) as exc:
        logger.info("Request rejected: %s", exc)
        raise _http_error(exc) from exc


async def _stream_snapshots(
    websocket: WebSocket,
    subscribe: Callable[[Callable[[Any], None]], Callable[[], None]],
) -> None:
    """Forward every subscription snapshot to the socket until the client leaves.

    Store callbacks run on the writer's thread, so snapshots are handed to the
    event loop through a queue. Subscribing reads the store, so it runs in the
    threadpool.
    """
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()
    unsubscribe = await run_in_threadpool(
        subscribe, lambda payload: loop.call_soon_threadsafe(queue.put_nowait, payload)
    )

    async def pump() -> None:
        while True:
            await websocket.send_json(await queue.get())

    sender = asyncio.create_task(pump())
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        sender.cancel()
        unsubscribe()
        (outcome,) = await asyncio.gather(sender, return_exceptions=True)
        if isinstance(outcome, Exception):
            logger.info("Snapshot stream closed after send failure: %s", outcome)


_LIFECYCLE_ROUTES: dict[str, Callable[[SessionEngine, str], QuizSession]] = {
    "start": SessionEngine.start_session,
    "pause": SessionEngine.pause_session,
    "resume": SessionEngine.resume_session,
    "advance": SessionEngine.advance_question,
    "retreat": SessionEngine.retreat_question,
    "end": SessionEngine.end_session,
}


def _transition_endpoint(operation: Callable[[SessionEngine, str], QuizSession], engine_dep):
    def endpoint(session_id: str, manager: SessionEngine = Depends(engine_dep)) -> dict[str, object]:
        with _engine_errors():
            return _session_json(operation(manager, session_id))

    return endpoint


def _get_engine_dependency(engine: SessionEngine):
    def dependency() -> SessionEngine:
        return engine

    return dependency


def create_api_app(engine: SessionEngine, origin: str | None = None) -> FastAPI:
    """Create a FastAPI application wired to the provided session engine.

    ``origin`` is the public base URL used in join links; when omitted the
    request's own base URL is used.
    """
    app = FastAPI(title="QuizLive API", version="0.1.0")
    engine_dep = _get_engine_dependency(engine)

    @app.get("/student", response_class=HTMLResponse)
    def serve_student_page() -> str:
        return _STUDENT_PAGE_HTML

    # --- Quizzes ---

    @app.post("/quizzes", status_code=201)
    def create_quiz(
        payload: QuizPayload, manager: SessionEngine = Depends(engine_dep)
    ) -> dict[str, object]:
        with _engine_errors():
            quiz = manager.quizzes.create_quiz(
                payload.title,
                [question.to_question() for question in payload.questions],
                payload.created_by,
                payload.description,
            )
        return _quiz_json(quiz)

    @app.get("/quizzes/{quiz_id}")
    def get_quiz(quiz_id: str, manager: SessionEngine = Depends(engine_dep)) -> dict[str, object]:
        with _engine_errors():
            return _quiz_json(manager.quizzes.require_quiz(quiz_id))

    # --- Sessions ---

    @app.post("/sessions", status_code=201)
    def create_session(
        payload: CreateSessionPayload, manager: SessionEngine = Depends(engine_dep)
    ) -> dict[str, object]:
        with _engine_errors():
            session = manager.create_session(payload.quiz_id, payload.teacher_id)
        return _session_json(session)

    @app.get("/sessions/{session_id}")
    def get_session(
        session_id: str, manager: SessionEngine = Depends(engine_dep)
    ) -> dict[str, object]:
        with _engine_errors():
            return _session_json(manager.require_session(session_id))

    @app.get("/sessions/{code}/join-url")
    def get_join_url(code: str, request: Request) -> dict[str, str]:
        base = origin or str(request.base_url)
        return {"code": code.strip().upper(), "url": build_join_url(base, code)}

    @app.delete("/sessions/{session_id}", status_code=204)
    def delete_session(session_id: str, manager: SessionEngine = Depends(engine_dep)) -> None:
        with _engine_errors():
            manager.delete_session(session_id)

    for action, operation in _LIFECYCLE_ROUTES.items():
        app.add_api_route(
            f"/sessions/{{session_id}}/{action}",
            _transition_endpoint(operation, engine_dep),
            methods=["POST"],
            name=f"{action}_session",
        )

    # --- Students ---

    @app.post("/join", status_code=201)
    def join_session(
        payload: JoinPayload, manager: SessionEngine = Depends(engine_dep)
    ) -> dict[str, object]:
        with _engine_errors():
            participant = manager.join_session(payload.code, payload.name)
        return {
            "participant_id": participant.id,
            "session_id": participant.session_id,
            "name": participant.name,
            "joined_at": _iso(participant.joined_at),
        }

    @app.get("/sessions/{session_id}/question")
    def get_current_question(
        session_id: str, manager: SessionEngine = Depends(engine_dep)
    ) -> dict[str, object]:
        with _engine_errors():
            session = manager.require_session(session_id)
            quiz = manager.quizzes.require_quiz(session.quiz_id)
            question = manager.get_current_question(session_id)
        return {
            "status": session.status.value,
            "question_index": session.current_question_index,
            "question_count": quiz.question_count(),
            "question": _student_question_json(question) if question else None,
        }

    @app.post("/sessions/{session_id}/responses", status_code=201)
    def submit_response(
        session_id: str,
        payload: ResponsePayload,
        manager: SessionEngine = Depends(engine_dep),
    ) -> dict[str, object]:
        with _engine_errors():
            response = manager.submit_response(
                session_id,
                payload.participant_id,
                payload.question_id,
                payload.answer.to_answer(),
                payload.time_spent,
            )
        return _response_json(response)

    @app.get("/sessions/{session_id}/questions/{question_id}/responses")
    def get_question_responses(
        session_id: str, question_id: str, manager: SessionEngine = Depends(engine_dep)
    ) -> list[dict[str, object]]:
        with _engine_errors():
            responses = manager.get_question_responses(session_id, question_id)
        return [_response_json(r) for r in responses]

    @app.get("/sessions/{session_id}/questions/{question_id}/tally")
    def get_question_tally(
        session_id: str, question_id: str, manager: SessionEngine = Depends(engine_dep)
    ) -> dict[str, int]:
        with _engine_errors():
            return manager.get_question_tally(session_id, question_id)

    @app.get("/sessions/{session_id}/participants")
    def get_participants(
        session_id: str, manager: SessionEngine = Depends(engine_dep)
    ) -> list[dict[str, object]]:
        with _engine_errors():
            participants = manager.get_participants(session_id)
        return [_participant_json(p) for p in participants]

    @app.put("/participants/{participant_id}/status")
    def set_participant_status(
        participant_id: str,
        payload: ParticipantStatusPayload,
        manager: SessionEngine = Depends(engine_dep),
    ) -> dict[str, object]:
        with _engine_errors():
            participant = manager.set_participant_status(participant_id, payload.status)
        return _participant_json(participant)

    @app.get("/sessions/{session_id}/stats")
    def get_session_stats(
        session_id: str, manager: SessionEngine = Depends(engine_dep)
    ) -> dict[str, object]:
        with _engine_errors():
            stats = manager.get_session_stats(session_id)
        return {
            "total_participants": stats.total_participants,
            "connected_participants": stats.connected_participants,
            "total_responses": stats.total_responses,
            "average_time_spent": stats.average_time_spent,
        }

    @app.get("/sessions/{session_id}/leaderboard")
    def get_leaderboard(
        session_id: str,
        limit: int | None = None,
        manager: SessionEngine = Depends(engine_dep),
    ) -> list[dict[str, object]]:
        with _engine_errors():
            rows = manager.get_leaderboard(session_id, limit)
        return [
            {
                "participant_id": row.participant_id,
                "name": row.name,
                "score": row.score,
                "correct_answers": row.correct_answers,
                "total_answers": row.total_answers,
            }
            for row in rows
        ]

    # --- Live updates ---

    @app.websocket("/ws/sessions/{session_id}")
    async def session_updates(websocket: WebSocket, session_id: str) -> None:
        await websocket.accept()
        if await run_in_threadpool(engine.get_session, session_id) is None:
            await websocket.close(code=4004, reason="Session not found")
            return
        await _stream_snapshots(
            websocket,
            lambda push: engine.subscribe_to_session(
                session_id, lambda s: push(_session_json(s) if s else None)
            ),
        )

    @app.websocket("/ws/sessions/{session_id}/participants")
    async def participant_updates(websocket: WebSocket, session_id: str) -> None:
        await websocket.accept()
        await _stream_snapshots(
            websocket,
            lambda push: engine.subscribe_to_participants(
                session_id, lambda rows: push([_participant_json(p) for p in rows])
            ),
        )

    @app.websocket("/ws/sessions/{session_id}/questions/{question_id}/responses")
    async def response_updates(websocket: WebSocket, session_id: str, question_id: str) -> None:
        await websocket.accept()
        await _stream_snapshots(
            websocket,
            lambda push: engine.subscribe_to_question_responses(
                session_id, question_id, lambda rows: push([_response_json(r) for r in rows])
            ),
        )

    return app


def start_api_server(
    engine: SessionEngine,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    origin: str | None = None,
) -> Thread:
    """Start the FastAPI server in a background daemon thread."""
    app = create_api_app(engine, origin=origin)
    config = uvicorn.Config(app=app, host=host, port=port, log_level="info")
    server = uvicorn.Server(config)

    def run_server() -> None:
        server.run()

    thread = Thread(target=run_server, name="QuizApiServer", daemon=True)
    thread.start()
    logger.info("API server listening on %s:%d", host, port)
    return thread
