"""Live-session constants shared across the engine, server and UI layers."""

import string

DEFAULT_TIME_LIMIT_SECONDS: int = 30

SESSION_CODE_LENGTH: int = 6
SESSION_CODE_ALPHABET: str = string.ascii_uppercase + string.digits
SESSION_CODE_MAX_ATTEMPTS: int = 20

# Runs of three or more underscores mark a blank in fill-in-blank prompts.
BLANK_MARKER_PATTERN: str = r"_{3,}"
TRUE_FALSE_VALUES: tuple[str, str] = ("true", "false")

STORE_READ_ATTEMPTS: int = 2
# Times `end` re-lists participants when joins keep landing before its batch.
END_ROSTER_ATTEMPTS: int = 5
