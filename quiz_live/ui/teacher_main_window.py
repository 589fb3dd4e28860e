"""Qt main window: import a quiz, open a session and run it live."""

from __future__ import annotations

from pathlib import Path

from PySide6.QtWidgets import (
    QFileDialog,
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from quiz_live.constants.about import APP_ABOUT_TEXT, APP_LICENSE, APP_NAME, APP_VERSION
from quiz_live.constants.ui_constants import (
    DEFAULT_TEACHER_ID,
    EXPORT_DIALOG_TITLE,
    EXPORT_FILE_FILTER,
    IMPORT_DIALOG_TITLE,
    IMPORT_FILE_FILTER,
    MODE_BUTTON_CREATE_SESSION,
    MODE_BUTTON_EXPORT,
    MODE_BUTTON_IMPORT,
    NO_QUIZ_LOADED_MESSAGE,
    WINDOW_TITLE,
)
from quiz_live.core.errors import SessionEngineError
from quiz_live.core.join_links import build_join_url
from quiz_live.core.models import Quiz
from quiz_live.core.quiz_exporter import save_quiz_to_file
from quiz_live.core.quiz_importer import QuizImportError, load_quiz_from_file
from quiz_live.core.session_engine import SessionEngine
from quiz_live.storage.store import StoreError
from quiz_live.styling.styles import Styles
from quiz_live.ui.components.live_panel import LivePanel
from quiz_live.ui.dialog_helpers import show_error, show_info, show_warning


class TeacherMainWindow(QMainWindow):
    """Main Qt window for the teacher console."""

    def __init__(
        self,
        engine: SessionEngine,
        origin: str,
        teacher_id: str = DEFAULT_TEACHER_ID,
        quiz: Quiz | None = None,
    ) -> None:
        super().__init__()
        self.setWindowTitle(WINDOW_TITLE)

        self.engine = engine
        self.origin = origin
        self.teacher_id = teacher_id
        self._quiz = quiz

        self._build_ui()
        self.setStyleSheet(Styles.get_main_window_style())
        self._refresh_quiz_label()

    def _build_ui(self) -> None:
        central_widget = QWidget(self)
        self.setCentralWidget(central_widget)
        root_layout = QVBoxLayout()
        central_widget.setLayout(root_layout)

        button_row = QHBoxLayout()
        self.import_button = QPushButton(MODE_BUTTON_IMPORT, self)
        self.import_button.clicked.connect(self._handle_import_quiz)
        button_row.addWidget(self.import_button)

        self.export_button = QPushButton(MODE_BUTTON_EXPORT, self)
        self.export_button.clicked.connect(self._handle_export_quiz)
        button_row.addWidget(self.export_button)

        self.create_session_button = QPushButton(MODE_BUTTON_CREATE_SESSION, self)
        self.create_session_button.clicked.connect(self._handle_create_session)
        button_row.addWidget(self.create_session_button)

        self.about_button = QPushButton(f"About {APP_NAME}", self)
        self.about_button.clicked.connect(self._handle_about)
        button_row.addWidget(self.about_button)
        button_row.addStretch()
        root_layout.addLayout(button_row)

        self.quiz_label = QLabel("", self)
        root_layout.addWidget(self.quiz_label)

        self.join_label = QLabel("", self)
        self.join_label.setWordWrap(True)
        self.join_label.setStyleSheet(Styles.get_large_label_style())
        root_layout.addWidget(self.join_label)

        self.live_panel = LivePanel(self.engine, self)
        root_layout.addWidget(self.live_panel, stretch=1)

    def _refresh_quiz_label(self) -> None:
        if self._quiz is None:
            self.quiz_label.setText(NO_QUIZ_LOADED_MESSAGE)
        else:
            self.quiz_label.setText(
                f"Quiz: {self._quiz.title} ({self._quiz.question_count()} questions)"
            )

    def _handle_import_quiz(self) -> None:
        file_path, _ = QFileDialog.getOpenFileName(
            self,
            IMPORT_DIALOG_TITLE,
            str(Path.home()),
            IMPORT_FILE_FILTER,
        )
        if not file_path:
            return

        try:
            imported = load_quiz_from_file(Path(file_path))
        except (OSError, QuizImportError) as exc:
            show_error(self, "Import failed", str(exc))
            return

        try:
            self._quiz = self.engine.quizzes.create_quiz(
                imported.title, imported.questions, self.teacher_id, imported.description
            )
        except (ValueError, StoreError) as exc:
            show_error(self, "Quiz rejected", str(exc))
            return

        self._refresh_quiz_label()
        show_info(
            self,
            "Quiz imported",
            f"Imported {self._quiz.question_count()} questions from {Path(file_path).name}.",
        )

    def _handle_export_quiz(self) -> None:
        if self._quiz is None:
            show_warning(self, "No quiz", NO_QUIZ_LOADED_MESSAGE)
            return
        file_path, _ = QFileDialog.getSaveFileName(
            self,
            EXPORT_DIALOG_TITLE,
            str(Path.cwd() / "quiz_export.txt"),
            EXPORT_FILE_FILTER,
        )
        if not file_path:
            return
        try:
            save_quiz_to_file(Path(file_path), self._quiz)
        except (OSError, ValueError) as exc:
            show_error(self, "Export failed", str(exc))
            return
        show_info(self, "Quiz saved", f"Quiz exported to {file_path}.")

    def _handle_create_session(self) -> None:
        if self._quiz is None:
            show_warning(self, "No quiz", NO_QUIZ_LOADED_MESSAGE)
            return
        try:
            session = self.engine.create_session(self._quiz.id, self.teacher_id)
        except (SessionEngineError, StoreError) as exc:
            show_error(self, "Could not create session", str(exc))
            return

        self.join_label.setText(
            f"Code: {session.code}    Students join at: {build_join_url(self.origin, session.code)}"
        )
        self.live_panel.attach(session, self._quiz)

    def _handle_about(self) -> None:
        show_info(
            self,
            f"About {APP_NAME}",
            f"{APP_NAME} v{APP_VERSION}\nLicense: {APP_LICENSE}\n\n{APP_ABOUT_TEXT}",
        )

    def closeEvent(self, event) -> None:
        self.live_panel.detach()
        super().closeEvent(event)
