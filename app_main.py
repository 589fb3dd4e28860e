"""Application entry point for QuizLive."""

from __future__ import annotations

import argparse
from pathlib import Path
import socket
import sys

from PySide6.QtWidgets import QApplication

from quiz_live.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from quiz_live.constants.ui_constants import DEFAULT_TEACHER_ID
from quiz_live.core.quiz_importer import QuizImportError, load_quiz_from_file
from quiz_live.core.session_engine import SessionEngine
from quiz_live.server.api_server import start_api_server
from quiz_live.storage import InMemoryStore
from quiz_live.ui.teacher_main_window import TeacherMainWindow
from quiz_live.utils.logging_config import configure_logging


def _determine_origin(port: int) -> str:
    """Best-effort determination of the local IP for student-facing URLs."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.connect(("8.8.8.8", 80))
            ip_address = sock.getsockname()[0]
    except OSError:
        ip_address = "127.0.0.1"
    return f"http://{ip_address}:{port}"


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="QuizLive live classroom quizzes")
    p.add_argument("--host", default=DEFAULT_HOST, help="Interface the API server binds to")
    p.add_argument("--port", type=int, default=DEFAULT_PORT)
    p.add_argument("--origin", default=None, help="Public base URL used in join links")
    p.add_argument("--quiz-file", type=Path, default=None, help="Quiz text file to load at startup")
    p.add_argument("--teacher-id", default=DEFAULT_TEACHER_ID)
    p.add_argument("--headless", action="store_true", help="Serve the API without the Qt console")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Initialize logging, start the API server, and launch the Qt UI."""
    args = _parse_args(argv)
    logger = configure_logging()
    logger.info("Starting QuizLive…")

    engine = SessionEngine(InMemoryStore())
    quiz = None
    if args.quiz_file is not None:
        try:
            imported = load_quiz_from_file(args.quiz_file)
            quiz = engine.quizzes.create_quiz(
                imported.title, imported.questions, args.teacher_id, imported.description
            )
        except (OSError, QuizImportError, ValueError) as exc:
            logger.error("Could not load %s: %s", args.quiz_file, exc)
            return 1
        logger.info("Loaded quiz %s (%s)", quiz.id, quiz.title)

    origin = args.origin or _determine_origin(args.port)
    server_thread = start_api_server(engine, host=args.host, port=args.port, origin=origin)
    logger.info("Student page available at %s/student", origin)

    if args.headless:
        server_thread.join()
        return 0

    app = QApplication(sys.argv)
    window = TeacherMainWindow(engine, origin=origin, teacher_id=args.teacher_id, quiz=quiz)
    window.show()
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
