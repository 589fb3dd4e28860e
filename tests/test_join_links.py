from __future__ import annotations

import pytest

from quiz_live.core.join_links import build_join_url, extract_code, normalize_code


def test_build_join_url_uppercases_code_and_trims_origin():
    assert build_join_url("https://quiz.example.org/", " abc123 ") == (
        "https://quiz.example.org/student?code=ABC123"
    )


def test_normalize_code():
    assert normalize_code("  xk9p2a ") == "XK9P2A"


@pytest.mark.parametrize(
    "payload, expected",
    [
        ("https://quiz.example.org/student?code=ABC123", "ABC123"),
        ("http://10.0.0.5:8000/student?code=abc123&x=1", "ABC123"),
        ("abc123", "ABC123"),
        ("  ABC123\n", "ABC123"),
        ("https://quiz.example.org/student", None),
        ("https://quiz.example.org/student?code=", None),
        ("hello world", None),
        ("ABC1234", None),
    ],
)
def test_extract_code(payload, expected):
    assert extract_code(payload) == expected


def test_built_url_round_trips_through_extract():
    assert extract_code(build_join_url("http://localhost:8000", "q1w2e3")) == "Q1W2E3"
