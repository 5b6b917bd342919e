"""Group matches by repository, then by resolved username."""

from __future__ import annotations

from collections import Counter, OrderedDict
from typing import Dict, List, Sequence, Union

from .models import BranchMatch, PullRequestMatch, RepoSummary, UserStats

Match = Union[BranchMatch, PullRequestMatch]


def group_by_repository(matches: Sequence[Match]) -> "OrderedDict[str, List[Match]]":
    """Bucket matches per repository, keeping first-seen repository order."""
    grouped: "OrderedDict[str, List[Match]]" = OrderedDict()
    for match in matches:
        grouped.setdefault(match.repository, []).append(match)
    return grouped


def summarize_matches(matches: Sequence[Match]) -> List[RepoSummary]:
    """Per-repository user counts, both levels sorted by descending count.

    Ties keep first-seen order.
    """
    summaries: List[RepoSummary] = []
    for repository, repo_matches in group_by_repository(matches).items():
        counts: Dict[str, int] = Counter(match.username for match in repo_matches)
        user_stats = [
            UserStats(username=username, count=count)
            for username, count in sorted(counts.items(), key=lambda kv: kv[1], reverse=True)
        ]
        summaries.append(RepoSummary(repository=repository, total=len(repo_matches), user_stats=user_stats))
    summaries.sort(key=lambda summary: summary.total, reverse=True)
    return summaries


__all__ = ["Match", "group_by_repository", "summarize_matches"]
