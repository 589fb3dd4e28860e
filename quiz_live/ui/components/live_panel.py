"""Component for running a live session from the teacher console."""

from __future__ import annotations

from collections.abc import Callable
import html
import logging

from PySide6.QtCore import Signal
from PySide6.QtWidgets import (
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QPushButton,
    QTextBrowser,
    QVBoxLayout,
    QWidget,
)

from quiz_live.constants.ui_constants import (
    LIVE_END_BUTTON,
    LIVE_FINISH_BUTTON,
    LIVE_NEXT_BUTTON,
    LIVE_PAUSE_BUTTON,
    LIVE_PREV_BUTTON,
    LIVE_RESUME_BUTTON,
    LIVE_START_BUTTON,
    PARTICIPANT_COUNT_TEMPLATE,
    RESPONSE_COUNT_TEMPLATE,
    SESSION_COMPLETE_MESSAGE,
)
from quiz_live.core.errors import SessionEngineError
from quiz_live.core.markdown_math_renderer import renderer
from quiz_live.core.models import (
    Participant,
    ParticipantStatus,
    Question,
    QuestionResponse,
    Quiz,
    QuizSession,
    SessionStatus,
)
from quiz_live.core.services.response_ledger import ResponseLedger
from quiz_live.core.session_engine import SessionEngine
from quiz_live.storage.store import StoreError
from quiz_live.styling.styles import Styles
from quiz_live.ui.dialog_helpers import confirm_end_session, show_error, show_info

logger = logging.getLogger(__name__)

_LEADERBOARD_SIZE = 5


class LivePanel(QWidget):
    """UI component for pacing a live session and watching answers arrive.

    Store subscriptions may fire on any thread, so every snapshot is
    re-emitted through a Qt signal and handled on the GUI thread.
    """

    session_changed = Signal(object)
    participants_changed = Signal(object)
    responses_changed = Signal(object)

    def __init__(self, engine: SessionEngine, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.engine = engine
        self._session: QuizSession | None = None
        self._quiz: Quiz | None = None
        self._question: Question | None = None
        self._subscriptions: list[Callable[[], None]] = []
        self._response_subscription: Callable[[], None] | None = None

        self._build_ui()
        self.session_changed.connect(self._on_session_changed)
        self.participants_changed.connect(self._on_participants_changed)
        self.responses_changed.connect(self._on_responses_changed)
        self._update_controls()

    def _build_ui(self) -> None:
        layout = QVBoxLayout()
        self.setLayout(layout)

        header_row = QHBoxLayout()
        self.status_label = QLabel("", self)
        header_row.addWidget(self.status_label)
        self.progress_label = QLabel("", self)
        header_row.addWidget(self.progress_label)
        header_row.addStretch()
        layout.addLayout(header_row)

        button_row = QHBoxLayout()
        self.start_button = QPushButton(LIVE_START_BUTTON, self)
        self.start_button.clicked.connect(lambda: self._run(self.engine.start_session))
        self.pause_button = QPushButton(LIVE_PAUSE_BUTTON, self)
        self.pause_button.clicked.connect(self._handle_pause_toggle)
        self.prev_button = QPushButton(LIVE_PREV_BUTTON, self)
        self.prev_button.clicked.connect(lambda: self._run(self.engine.retreat_question))
        self.next_button = QPushButton(LIVE_NEXT_BUTTON, self)
        self.next_button.clicked.connect(lambda: self._run(self.engine.advance_question))
        self.end_button = QPushButton(LIVE_END_BUTTON, self)
        self.end_button.clicked.connect(self._handle_end)
        for button in (
            self.start_button,
            self.pause_button,
            self.prev_button,
            self.next_button,
            self.end_button,
        ):
            button_row.addWidget(button)
        layout.addLayout(button_row)

        content_row = QHBoxLayout()
        self.preview_view = QTextBrowser(self)
        content_row.addWidget(self.preview_view, stretch=3)

        side_column = QVBoxLayout()
        participants_group = QGroupBox("Students", self)
        participants_layout = QVBoxLayout()
        participants_group.setLayout(participants_layout)
        self.participant_count_label = QLabel("", self)
        participants_layout.addWidget(self.participant_count_label)
        self.participant_list = QListWidget(self)
        participants_layout.addWidget(self.participant_list)
        side_column.addWidget(participants_group, stretch=2)

        self.leaderboard_group = QGroupBox("Leaderboard", self)
        self.leaderboard_layout = QVBoxLayout()
        self.leaderboard_group.setLayout(self.leaderboard_layout)
        side_column.addWidget(self.leaderboard_group, stretch=1)
        content_row.addLayout(side_column, stretch=1)
        layout.addLayout(content_row, stretch=1)

        answers_group = QGroupBox("Answers", self)
        self.answers_layout = QVBoxLayout()
        answers_group.setLayout(self.answers_layout)
        self.response_count_label = QLabel(RESPONSE_COUNT_TEMPLATE.format(count=0), self)
        self.answers_layout.addWidget(self.response_count_label)
        self.tally_labels: list[QLabel] = []
        layout.addWidget(answers_group)

    # --- Session binding ---

    def attach(self, session: QuizSession, quiz: Quiz) -> None:
        self.detach()
        self._session = session
        self._quiz = quiz
        self._subscriptions = [
            self.engine.subscribe_to_session(session.id, self.session_changed.emit),
            self.engine.subscribe_to_participants(session.id, self.participants_changed.emit),
        ]

    def detach(self) -> None:
        for unsubscribe in self._subscriptions:
            unsubscribe()
        self._subscriptions = []
        self._unsubscribe_responses()
        self._session = None
        self._quiz = None
        self._question = None
        self._update_controls()

    def _unsubscribe_responses(self) -> None:
        if self._response_subscription is not None:
            self._response_subscription()
            self._response_subscription = None

    # --- Snapshot handlers ---

    def _on_session_changed(self, session: QuizSession | None) -> None:
        if session is None or self._quiz is None:
            return
        previous = self._session
        self._session = session
        self.status_label.setText(session.status.value.upper())
        self.status_label.setStyleSheet(Styles.get_status_badge_style(session.status.value))
        self.progress_label.setText(
            f"Question {session.current_question_index + 1} of {self._quiz.question_count()}"
        )

        question = self._quiz.question_at(session.current_question_index)
        if self._question is None or question.id != self._question.id:
            self._show_question(question)

        if (
            session.status is SessionStatus.COMPLETED
            and previous is not None
            and previous.status is not SessionStatus.COMPLETED
        ):
            show_info(self, "Session complete", SESSION_COMPLETE_MESSAGE)
        self._update_controls()

    def _on_participants_changed(self, participants: list[Participant]) -> None:
        self.participant_list.clear()
        for participant in participants:
            marker = "●" if participant.status is ParticipantStatus.CONNECTED else "○"
            QListWidgetItem(
                f"{marker} {participant.name} ({participant.score} pts)", self.participant_list
            )
        connected = sum(1 for p in participants if p.status is ParticipantStatus.CONNECTED)
        self.participant_count_label.setText(
            PARTICIPANT_COUNT_TEMPLATE.format(connected=connected, total=len(participants))
        )
        self._refresh_leaderboard()

    def _on_responses_changed(self, responses: list[QuestionResponse]) -> None:
        if self._question is None:
            return
        self.response_count_label.setText(RESPONSE_COUNT_TEMPLATE.format(count=len(responses)))
        for label in self.tally_labels:
            self.answers_layout.removeWidget(label)
            label.deleteLater()
        self.tally_labels = []
        for bucket, count in ResponseLedger.tally(self._question, responses).items():
            label = QLabel(f"{bucket}: {count}", self)
            self.answers_layout.addWidget(label)
            self.tally_labels.append(label)

    # --- Rendering ---

    def _show_question(self, question: Question) -> None:
        self._question = question
        body = renderer.render_prompt(question.prompt)
        if question.options:
            items = "".join(f"<li>{html.escape(option)}</li>" for option in question.options)
            body += f"<ul>{items}</ul>"
        self.preview_view.setHtml(body)

        self._unsubscribe_responses()
        if self._session is not None:
            self._response_subscription = self.engine.subscribe_to_question_responses(
                self._session.id, question.id, self.responses_changed.emit
            )

    def _refresh_leaderboard(self) -> None:
        while self.leaderboard_layout.count():
            item = self.leaderboard_layout.takeAt(0)
            if item.widget() is not None:
                item.widget().deleteLater()
        if self._session is None:
            return
        try:
            rows = self.engine.get_leaderboard(self._session.id, limit=_LEADERBOARD_SIZE)
        except (SessionEngineError, StoreError) as exc:
            logger.warning("Could not refresh leaderboard: %s", exc)
            return
        for position, row in enumerate(rows, start=1):
            label = QLabel(f"{position}. {row.name}: {row.score}", self)
            self.leaderboard_layout.addWidget(label)

    # --- Controls ---

    def _update_controls(self) -> None:
        session = self._session
        status = session.status if session else None
        is_active = status is SessionStatus.ACTIVE
        self.start_button.setEnabled(status is SessionStatus.WAITING)
        self.pause_button.setEnabled(status in (SessionStatus.ACTIVE, SessionStatus.PAUSED))
        self.pause_button.setText(
            LIVE_RESUME_BUTTON if status is SessionStatus.PAUSED else LIVE_PAUSE_BUTTON
        )
        self.prev_button.setEnabled(is_active and session.current_question_index > 0)
        self.next_button.setEnabled(is_active)
        at_last = (
            session is not None
            and self._quiz is not None
            and session.current_question_index >= self._quiz.question_count() - 1
        )
        self.next_button.setText(LIVE_FINISH_BUTTON if at_last else LIVE_NEXT_BUTTON)
        self.end_button.setEnabled(session is not None and session.is_open)

    def _set_controls_enabled(self, enabled: bool) -> None:
        for button in (
            self.start_button,
            self.pause_button,
            self.prev_button,
            self.next_button,
            self.end_button,
        ):
            button.setEnabled(enabled)

    def _run(self, action: Callable[[str], QuizSession]) -> None:
        if self._session is None:
            return
        # Controls come back with the next session snapshot.
        self._set_controls_enabled(False)
        try:
            action(self._session.id)
        except (SessionEngineError, StoreError) as exc:
            show_error(self, "Action failed", str(exc))
            self._update_controls()

    def _handle_pause_toggle(self) -> None:
        if self._session is not None and self._session.status is SessionStatus.PAUSED:
            self._run(self.engine.resume_session)
        else:
            self._run(self.engine.pause_session)

    def _handle_end(self) -> None:
        if confirm_end_session(self):
            self._run(self.engine.end_session)
