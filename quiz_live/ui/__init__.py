"""Qt UI components for the teacher console."""

from .dialog_helpers import confirm_end_session, show_error, show_info, show_warning
from .teacher_main_window import TeacherMainWindow

__all__ = [
    "TeacherMainWindow",
    "confirm_end_session",
    "show_error",
    "show_info",
    "show_warning",
]
