"""Join URLs and QR payload decoding.

A QR code carries exactly the join URL ``<origin>/student?code=<CODE>``.
Scanned payloads that are not URLs are accepted when they are a bare code.
"""

from __future__ import annotations

import re
from urllib.parse import parse_qs, urlencode, urlsplit

from quiz_live.constants.network_constants import JOIN_CODE_QUERY_PARAM, STUDENT_PAGE_PATH
from quiz_live.constants.session_constants import SESSION_CODE_LENGTH

_BARE_CODE_RE = re.compile(rf"[A-Za-z0-9]{{{SESSION_CODE_LENGTH}}}")


def normalize_code(code: str) -> str:
    return code.strip().upper()


def build_join_url(origin: str, code: str) -> str:
    query = urlencode({JOIN_CODE_QUERY_PARAM: normalize_code(code)})
    return f"{origin.rstrip('/')}{STUDENT_PAGE_PATH}?{query}"


def extract_code(payload: str) -> str | None:
    """Return the session code carried by a scanned payload, or None if there is none."""
    text = payload.strip()
    parts = urlsplit(text)
    if parts.scheme and parts.netloc:
        values = parse_qs(parts.query).get(JOIN_CODE_QUERY_PARAM, [])
        code = normalize_code(values[0]) if values else ""
        return code or None
    if _BARE_CODE_RE.fullmatch(text):
        return text.upper()
    return None
