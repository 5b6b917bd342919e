"""Console rendering of scan results."""

from __future__ import annotations

from typing import List, Sequence

from .aggregation import group_by_repository, summarize_matches
from .models import BranchMatch, PullRequestMatch, RepoSummary


def _plural(count: int, singular: str, plural: str) -> str:
    return singular if count == 1 else plural


def format_summary(summaries: Sequence[RepoSummary], noun: str, noun_plural: str) -> List[str]:
    lines: List[str] = []
    for summary in summaries:
        lines.append("")
        lines.append(f"{summary.repository}: {summary.total} matching {_plural(summary.total, noun, noun_plural)}")
        for stats in summary.user_stats:
            lines.append(f"  {stats.username}: {stats.count} {_plural(stats.count, noun, noun_plural)}")
    return lines


def print_branch_report(matches: Sequence[BranchMatch], limit_note: str = "") -> None:
    if not matches:
        print("No matching branches found.")
        return
    summaries = summarize_matches(matches)
    print("\nRepositories with matching branches:")
    for line in format_summary(summaries, "branch", "branches"):
        print(line)
    print(f"\nTotal: {len(matches)} matching branches in {len(summaries)} repositories{limit_note}")


def print_pull_request_report(matches: Sequence[PullRequestMatch], limit_note: str = "") -> None:
    if not matches:
        print("No matching pull requests found.")
        return
    summaries = summarize_matches(matches)
    print("\nRepositories with matching pull requests:")
    for line in format_summary(summaries, "pull request", "pull requests"):
        print(line)
    for repository, prs in group_by_repository(matches).items():
        print(f"\n{repository}:")
        for pr in prs:
            print(f"  #{pr.number} [{pr.state}] {pr.title} ({pr.branch}) {pr.url}")
    print(f"\nTotal: {len(matches)} matching pull requests in {len(summaries)} repositories{limit_note}")


__all__ = ["format_summary", "print_branch_report", "print_pull_request_report"]
