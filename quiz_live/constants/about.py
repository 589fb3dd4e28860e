"""Static metadata describing QuizLive."""

APP_NAME = "QuizLive"
APP_VERSION = "0.1"
APP_LICENSE = "MIT License"
APP_ABOUT_TEXT = (
    "QuizLive runs live classroom quiz sessions. The teacher console creates a session, "
    "students join from the browser with a six-character code, and answers stream back "
    "into the dashboard as they arrive."
)
