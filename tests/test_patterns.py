"""Tests for src.scanner.patterns covering both accepted branch shapes.

Run with coverage:
    pytest tests/test_patterns.py --maxfail=1 -v --cov=src.scanner.patterns --cov-report=term-missing
"""

import pytest

from src.scanner.patterns import PatternMatch, match_push_branch


def test_bare_push_branch_matches_without_username():
    assert match_push_branch("push-abc123DEF456") == PatternMatch(True, None)


def test_prefixed_push_branch_returns_username():
    assert match_push_branch("alice/push-abc123DEF456") == PatternMatch(True, "alice")


def test_only_segment_before_push_is_username():
    result = match_push_branch("team/alice/push-zzzzzzzzzzzz")
    assert result.matches is True
    assert result.username == "alice"


@pytest.mark.parametrize(
    "name",
    [
        "push-short",
        "push-abc123DEF4567",
        "feature/other-branch",
        "push-abc123DEF45_",
        "push-abc-23DEF456",
        "/push-abc123DEF456",
        "alice/push-abc123DEF4567",
        "xpush-abc123DEF456",
        "push-abc123DEF456\n",
        "main",
        "",
        None,
    ],
)
def test_non_matching_names(name):
    assert match_push_branch(name).matches is False


def test_non_ascii_alphanumerics_rejected():
    assert match_push_branch("push-abc123DEF45é").matches is False
