"""Entry points that drive a full scan: resolve, collect, checkpoint, report."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import List, Optional

from src.secrets import resolve_github_tokens

from .acquisition import resolve_repositories
from .cache import Cache, CacheStore, has_cached_collections, is_repo_processed, update_cli_options
from .cli import ConfigurationError, ScanSettings, parse_args, resolve_settings
from .collectors import collect_branch_matches, collect_pull_request_matches
from .http_client import GitHubClient
from .models import BranchMatch, PullRequestMatch, Repository
from .provider import GitHubProvider
from .report import print_branch_report, print_pull_request_report


@dataclass
class ScanResult:
    branch_matches: List[BranchMatch] = field(default_factory=list)
    pr_matches: List[PullRequestMatch] = field(default_factory=list)
    total_repos: int = 0
    cached_repos: int = 0
    fetched_repos: int = 0
    limit_reached: bool = False
    cache: Cache = field(default_factory=dict)


def checkpoint(store: CacheStore, cache: Cache, reason: str) -> None:
    if store.save(cache):
        print(f"[checkpoint] cache saved ({reason})")


def _progress_label(done: int, pending: int, max_repos: Optional[int]) -> str:
    if max_repos and max_repos < pending:
        return f"{done}/{max_repos} (limit: {max_repos} of {pending} pending)"
    return f"{done}/{pending}"


def scan_repository(
    provider: GitHubProvider,
    cache: Cache,
    repo: Repository,
    settings: ScanSettings,
    result: ScanResult,
) -> Cache:
    """Collect branch (and optionally PR) matches for one repository into `result`."""
    branch_matches, cache = collect_branch_matches(provider, cache, repo, settings.max_branches)
    result.branch_matches.extend(branch_matches)
    if settings.include_prs:
        pr_matches, cache = collect_pull_request_matches(
            provider, cache, repo, settings.max_prs, settings.pr_status
        )
        result.pr_matches.extend(pr_matches)
    return cache


def run_scan(settings: ScanSettings, provider: GitHubProvider, store: CacheStore) -> ScanResult:
    """Scan every resolved repository, checkpointing the cache as it goes.

    Repositories whose processed flags are already set, or whose arrays are
    still cached, are answered from the cache. Only repositories that need a
    network fetch count toward `max_repos`; once
    the cap is hit the loop stops and the saved cache lets the next run carry on.
    """
    if settings.clear_cache:
        store.clear()
    cache = store.load(force_refresh=settings.force_refresh or settings.clear_cache)
    cache = update_cli_options(cache, settings.cli_options())

    repositories, cache = resolve_repositories(
        provider,
        cache,
        owners=settings.owners,
        repos=settings.repos,
        top_repos=settings.top_repos,
    )
    checkpoint(store, cache, "repositories resolved")

    # re-registered repositories are unprocessed but may still have cached arrays;
    # those are served from cache and do not count toward max_repos
    pending = [
        repo for repo in repositories
        if not is_repo_processed(cache, repo.owner, repo.name, settings.include_prs)
        and not has_cached_collections(cache, repo.owner, repo.name, settings.include_prs)
    ]
    result = ScanResult(total_repos=len(repositories))
    result.cached_repos = len(repositories) - len(pending)
    print(
        f"Processing {len(repositories)} repositories: "
        f"{result.cached_repos} already processed (cache), {len(pending)} to fetch"
    )

    pending_keys = {repo.key for repo in pending}
    for repo in repositories:
        if repo.key not in pending_keys:
            cache = scan_repository(provider, cache, repo, settings, result)
            continue

        if settings.max_repos and result.fetched_repos >= settings.max_repos:
            result.limit_reached = True
            print(
                f"\nReached maximum repository limit ({settings.max_repos} of {len(pending)} pending). "
                "Stopping; rerun to continue from the cache."
            )
            break

        cache = scan_repository(provider, cache, repo, settings, result)
        result.fetched_repos += 1
        print(f"  processed {_progress_label(result.fetched_repos, len(pending), settings.max_repos)} repositories ({repo.key})")

        if result.fetched_repos % settings.checkpoint_interval == 0:
            checkpoint(store, cache, f"{result.fetched_repos} repositories fetched")

    checkpoint(store, cache, "scan finished")
    result.cache = cache
    return result


def _build_provider(tokens: List[str]) -> GitHubProvider:
    return GitHubProvider(GitHubClient(tokens))


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point; returns the process exit status."""

    try:
        settings = resolve_settings(parse_args(argv))
    except ConfigurationError as exc:
        print(f"[error] {exc}")
        return 2

    try:
        provider = _build_provider(resolve_github_tokens())
        store = CacheStore(settings.cache_file)
        result = run_scan(settings, provider, store)
    except Exception as exc:
        print(f"[error] scan failed: {exc}")
        return 1

    limit_note = ""
    if result.limit_reached:
        limit_note = f" (limited to {settings.max_repos} fetched of {result.total_repos} total)"
    print_branch_report(result.branch_matches, limit_note)
    if settings.include_prs:
        print_pull_request_report(result.pr_matches, limit_note)
    return 0


def cli_main() -> None:
    sys.exit(main())


__all__ = ["ScanResult", "checkpoint", "scan_repository", "run_scan", "main", "cli_main"]


if __name__ == "__main__":
    cli_main()
