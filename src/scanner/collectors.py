"""Branch and pull-request collection for a single repository, cache first."""

from __future__ import annotations

from typing import List, Tuple

from .cache import (
    Cache,
    cached_branches,
    cached_pull_requests,
    mark_branches_processed,
    mark_prs_processed,
    record_branches,
    record_pull_requests,
)
from .config import DEFAULT_MAX_BRANCHES, DEFAULT_MAX_PRS, DEFAULT_PR_STATUS
from .http_client import GitHubAPIError
from .models import (
    NO_PREFIX_USERNAME,
    Branch,
    BranchMatch,
    PullRequest,
    PullRequestMatch,
    Repository,
)
from .patterns import match_push_branch
from .provider import GitHubProvider


def match_branches(repository: str, branches: List[Branch]) -> List[BranchMatch]:
    matches: List[BranchMatch] = []
    for branch in branches:
        result = match_push_branch(branch.name)
        if result.matches:
            matches.append(
                BranchMatch(
                    repository=repository,
                    branch=branch.name,
                    username=result.username or NO_PREFIX_USERNAME,
                )
            )
    return matches


def match_pull_requests(repository: str, prs: List[PullRequest]) -> List[PullRequestMatch]:
    """Match PR head refs; the username falls back to the PR author's login."""
    matches: List[PullRequestMatch] = []
    for pr in prs:
        result = match_push_branch(pr.head_ref)
        if not result.matches:
            continue
        matches.append(
            PullRequestMatch(
                repository=repository,
                number=pr.number,
                title=pr.title,
                state=pr.state,
                url=pr.html_url,
                created_at=pr.created_at,
                branch=pr.head_ref,
                username=result.username or pr.author_login or NO_PREFIX_USERNAME,
            )
        )
    return matches


def collect_branch_matches(
    provider: GitHubProvider,
    cache: Cache,
    repo: Repository,
    max_branches: int = DEFAULT_MAX_BRANCHES,
) -> Tuple[List[BranchMatch], Cache]:
    """Return push-branch matches for `repo`, fetching only when nothing is cached.

    A fetch failure is logged and treated as zero branches; the processed flag
    is set either way so a broken repository is not retried on resume.
    """
    cached = cached_branches(cache, repo.owner, repo.name)
    if cached is not None:
        cache = mark_branches_processed(cache, repo.owner, repo.name)
        return match_branches(repo.key, cached), cache

    branches: List[Branch] = []
    try:
        branches = provider.list_branches(repo.owner, repo.name, max_branches)
    except (GitHubAPIError, ValueError) as exc:
        print(f"[warn] fetching branches for {repo.key} failed -> {exc}")
        branches = []

    if max_branches and len(branches) > max_branches:
        branches = branches[:max_branches]

    matches = match_branches(repo.key, branches)
    cache = record_branches(cache, repo.owner, repo.name, branches)
    cache = mark_branches_processed(cache, repo.owner, repo.name)
    return matches, cache


def collect_pull_request_matches(
    provider: GitHubProvider,
    cache: Cache,
    repo: Repository,
    max_prs: int = DEFAULT_MAX_PRS,
    pr_status: str = DEFAULT_PR_STATUS,
) -> Tuple[List[PullRequestMatch], Cache]:
    cached = cached_pull_requests(cache, repo.owner, repo.name)
    if cached is not None:
        cache = mark_prs_processed(cache, repo.owner, repo.name)
        return match_pull_requests(repo.key, cached), cache

    prs: List[PullRequest] = []
    try:
        prs = provider.list_pull_requests(repo.owner, repo.name, pr_status, max_prs)
    except (GitHubAPIError, ValueError) as exc:
        print(f"[warn] fetching pull requests for {repo.key} failed -> {exc}")
        prs = []

    if max_prs and len(prs) > max_prs:
        prs = prs[:max_prs]

    matches = match_pull_requests(repo.key, prs)
    cache = record_pull_requests(cache, repo.owner, repo.name, prs)
    cache = mark_prs_processed(cache, repo.owner, repo.name)
    return matches, cache


__all__ = [
    "match_branches",
    "match_pull_requests",
    "collect_branch_matches",
    "collect_pull_request_matches",
]
