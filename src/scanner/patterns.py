"""Branch-name matching for `jj git push` style branches."""

from __future__ import annotations

import re
from typing import NamedTuple, Optional

# "push-" followed by exactly 12 ASCII alphanumerics, optionally "<user>/" in front.
BARE_PUSH_RE = re.compile(r"push-[A-Za-z0-9]{12}")
PREFIXED_PUSH_RE = re.compile(r"([^/]+)/push-[A-Za-z0-9]{12}\Z")


class PatternMatch(NamedTuple):
    matches: bool
    username: Optional[str] = None


NO_MATCH = PatternMatch(False)


def match_push_branch(name: Optional[str]) -> PatternMatch:
    """Return whether `name` is a push branch and the username segment, if any."""
    if not name:
        return NO_MATCH
    if BARE_PUSH_RE.fullmatch(name):
        return PatternMatch(True)
    found = PREFIXED_PUSH_RE.search(name)
    if found:
        return PatternMatch(True, found.group(1))
    return NO_MATCH


__all__ = ["PatternMatch", "NO_MATCH", "match_push_branch"]
