"""Resolve the repositories to scan from top-N, owners and explicit repo lists."""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

from .cache import (
    ORGANIZATION,
    Cache,
    cached_owner_repositories,
    cached_owner_type,
    cached_top_repositories,
    record_owner_repositories,
    record_owner_type,
    record_repository,
    record_top_repositories,
)
from .config import OWNER_REPO_LIST_LIMIT, SEARCH_RESULT_LIMIT
from .http_client import GitHubAPIError
from .models import Repository, repo_key
from .provider import GitHubProvider


def parse_repo_string(value: str) -> Tuple[str, str]:
    """Split `owner/repo`; anything else raises ValueError."""
    parts = (value or "").strip().split("/")
    if len(parts) != 2 or not all(parts):
        raise ValueError(f'Invalid repository format: "{value}". Use the format "owner/repo"')
    return parts[0], parts[1]


def get_top_repositories(
    provider: GitHubProvider, cache: Cache, count: int
) -> Tuple[List[Repository], Cache]:
    """Top `count` repositories by stars; requests past the search ceiling are capped."""
    count = min(count, SEARCH_RESULT_LIMIT)
    cached = cached_top_repositories(cache, count)
    if cached is not None:
        print(f"[info] using cached top {count} repositories")
        return cached, cache

    print(f"Fetching top {count} repositories by stars...")
    repos = provider.search_repositories_by_stars(count)
    print(f"  found {len(repos)} repositories")
    return repos, record_top_repositories(cache, count, repos)


def _owner_is_org(provider: GitHubProvider, cache: Cache, owner: str) -> bool:
    owner_type = cached_owner_type(cache, owner)
    if owner_type:
        return owner_type == ORGANIZATION
    is_org = provider.probe_is_organization(owner)
    print(f"  {owner} is {'an organization' if is_org else 'a user'}")
    return is_org


def get_owner_repositories(
    provider: GitHubProvider,
    cache: Cache,
    owner: str,
    limit: int = OWNER_REPO_LIST_LIMIT,
) -> Tuple[List[Repository], Cache]:
    """List every repository of `owner`, falling back to GraphQL past `limit`."""
    cached = cached_owner_repositories(cache, owner)
    if cached is not None:
        print(f"[info] using cached repository list for {owner} ({len(cached)} repos)")
        return cached, cache

    is_org = _owner_is_org(provider, cache, owner)
    print(f"Fetching repositories for {owner}...")
    repos = provider.list_repositories_for_owner(owner, is_org, limit)

    if limit and len(repos) == limit:
        print(f"  listing hit the {limit} repository limit; paging the rest via GraphQL...")
        seen = {repo.key for repo in repos}
        try:
            for repo in provider.list_repositories_graphql(owner):
                if repo.key not in seen:
                    seen.add(repo.key)
                    repos.append(repo)
        except GitHubAPIError as exc:
            print(f"[warn] additional repositories for {owner} failed -> {exc}")
            print("  continuing with partial repository list")

    print(f"  found {len(repos)} repositories for {owner}")
    cache = record_owner_repositories(cache, owner, repos)
    cache = record_owner_type(cache, owner, is_org)
    return repos, cache


def get_specific_repository(
    provider: GitHubProvider, cache: Cache, owner: str, repo: str
) -> Tuple[Repository, Cache]:
    entry = (cache.get("repositories") or {}).get(repo_key(owner, repo))
    if entry and entry.get("data"):
        return Repository.from_dict(entry["data"]), cache

    print(f"Fetching repository {owner}/{repo}...")
    repository = provider.get_repository(owner, repo)
    return repository, record_repository(cache, repository)


def resolve_repositories(
    provider: GitHubProvider,
    cache: Cache,
    owners: Sequence[str] = (),
    repos: Sequence[str] = (),
    top_repos: Optional[int] = None,
) -> Tuple[List[Repository], Cache]:
    """Return the deduplicated union of top-N, owner and explicit repositories.

    Order: top-N by descending stars, then each owner's repositories in
    provider order, then explicit repositories in input order. Failures for a
    single owner or explicit repository are logged and skipped; a top-N
    failure propagates.
    """
    resolved: Dict[str, Repository] = {}

    def _add(items: Sequence[Repository]) -> None:
        for item in items:
            resolved.setdefault(item.key, item)

    if top_repos and top_repos > 0:
        top, cache = get_top_repositories(provider, cache, top_repos)
        _add(top)

    for owner in owners:
        owner = owner.strip()
        if not owner:
            continue
        try:
            owned, cache = get_owner_repositories(provider, cache, owner)
        except (GitHubAPIError, ValueError) as exc:
            print(f"[error] failed to list repositories for {owner} -> {exc}")
            continue
        _add(owned)

    for value in repos:
        try:
            owner, name = parse_repo_string(value)
            repository, cache = get_specific_repository(provider, cache, owner, name)
        except (ValueError, GitHubAPIError) as exc:
            print(f"[error] failed to fetch repository {value} -> {exc}")
            continue
        _add([repository])

    return list(resolved.values()), cache


__all__ = [
    "parse_repo_string",
    "get_top_repositories",
    "get_owner_repositories",
    "get_specific_repository",
    "resolve_repositories",
]
