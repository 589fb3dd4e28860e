"""Qt stylesheets for the teacher console."""

from __future__ import annotations

from quiz_live.core.models import ParticipantStatus, SessionStatus

BACKGROUND = "#FFFFFF"
TEXT = "#111827"
BORDER = "#CBD5E1"
ACCENT = "#1F9AA5"
ACCENT_TEXT = "#FFFFFF"

STATUS_COLORS: dict[str, str] = {
    SessionStatus.WAITING.value: "#64748B",
    SessionStatus.ACTIVE.value: "#16A34A",
    SessionStatus.PAUSED.value: "#D97706",
    SessionStatus.COMPLETED.value: "#DC2626",
    ParticipantStatus.CONNECTED.value: "#16A34A",
    ParticipantStatus.DISCONNECTED.value: "#94A3B8",
}


class Styles:
    """Helper class producing the stylesheets used by the console widgets."""

    @staticmethod
    def get_main_window_style() -> str:
        return f"""
            QWidget {{
                background-color: {BACKGROUND};
                color: {TEXT};
                font-family: 'Segoe UI', 'Roboto', sans-serif;
                font-size: 14px;
            }}
            QPushButton {{
                border: 1px solid {BORDER};
                border-radius: 4px;
                padding: 6px 12px;
            }}
            QPushButton:default {{
                background-color: {ACCENT};
                color: {ACCENT_TEXT};
            }}
            QPushButton:disabled {{
                color: {BORDER};
            }}
            QListWidget, QTextBrowser, QGroupBox {{
                border: 1px solid {BORDER};
                border-radius: 4px;
            }}
        """

    @staticmethod
    def get_large_label_style() -> str:
        return "font-size: 16pt; font-weight: bold;"

    @staticmethod
    def get_status_badge_style(status: str) -> str:
        color = STATUS_COLORS.get(status, TEXT)
        return (
            f"color: {ACCENT_TEXT}; background-color: {color}; "
            "border-radius: 4px; padding: 2px 8px; font-weight: bold;"
        )
