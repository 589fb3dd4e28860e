"""Qt UI constants used across widgets."""

WINDOW_TITLE: str = "QuizLive Teacher Console"
DEFAULT_TEACHER_ID: str = "teacher"

MODE_BUTTON_IMPORT: str = "Import Quiz"
MODE_BUTTON_CREATE_SESSION: str = "Create Session"
MODE_BUTTON_EXPORT: str = "Export Quiz"

LIVE_START_BUTTON: str = "Start"
LIVE_PAUSE_BUTTON: str = "Pause"
LIVE_RESUME_BUTTON: str = "Resume"
LIVE_PREV_BUTTON: str = "Previous Question"
LIVE_NEXT_BUTTON: str = "Next Question"
LIVE_FINISH_BUTTON: str = "Finish Quiz"
LIVE_END_BUTTON: str = "End Session"

IMPORT_DIALOG_TITLE: str = "Select quiz file"
IMPORT_FILE_FILTER: str = "Quiz files (*.txt);;All files (*.*)"
EXPORT_DIALOG_TITLE: str = "Save quiz as"
EXPORT_FILE_FILTER: str = "Quiz files (*.txt)"

NO_QUIZ_LOADED_MESSAGE: str = "Please import a quiz first."
SESSION_COMPLETE_MESSAGE: str = "The session has ended."
CONFIRM_END_MESSAGE: str = "Are you sure you want to end this session? This cannot be undone."
PARTICIPANT_COUNT_TEMPLATE: str = "{connected}/{total} student(s) connected"
RESPONSE_COUNT_TEMPLATE: str = "{count} answer(s) received"
