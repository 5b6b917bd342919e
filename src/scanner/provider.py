"""Typed GitHub operations; raw API payloads are converted to models here only."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from .config import (
    BASE_URL,
    OWNER_REPO_LIST_LIMIT,
    PER_PAGE,
    SEARCH_RESULT_LIMIT,
    TOP_REPOS_MIN_STARS,
)
from .http_client import NOT_FOUND, GitHubAPIError, GitHubClient
from .models import Branch, PullRequest, Repository

OWNER_REPOS_QUERY = """
query OwnerRepos($owner:String!, $cursor:String) {
  repositoryOwner(login:$owner) {
    repositories(first:100, after:$cursor, orderBy:{field:NAME, direction:ASC}) {
      pageInfo { hasNextPage endCursor }
      nodes {
        name
        url
        stargazerCount
        owner { login }
      }
    }
  }
}
"""


def repository_from_api(payload: Dict[str, Any]) -> Repository:
    """Convert a REST repository object into a Repository."""
    owner = (payload.get("owner") or {}).get("login")
    name = payload.get("name")
    if not owner or not name:
        raise GitHubAPIError(f"malformed repository payload: {payload.get('full_name')!r}")
    return Repository(
        owner=owner,
        name=name,
        url=payload.get("html_url") or f"https://github.com/{owner}/{name}",
        stars=payload.get("stargazers_count"),
    )


def repository_from_graphql(node: Dict[str, Any]) -> Repository:
    owner = (node.get("owner") or {}).get("login")
    name = node.get("name")
    if not owner or not name:
        raise GitHubAPIError(f"malformed repository node: {node!r}")
    return Repository(
        owner=owner,
        name=name,
        url=node.get("url") or f"https://github.com/{owner}/{name}",
        stars=node.get("stargazerCount"),
    )


def branch_from_api(payload: Dict[str, Any]) -> Branch:
    commit = payload.get("commit") or {}
    return Branch(
        name=payload.get("name") or "",
        commit_sha=commit.get("sha") or "",
        commit_url=commit.get("url") or "",
    )


def pull_request_from_api(payload: Dict[str, Any]) -> PullRequest:
    head = payload.get("head") or {}
    base = payload.get("base") or {}
    return PullRequest(
        number=int(payload["number"]),
        title=payload.get("title") or "",
        state=payload.get("state") or "",
        created_at=payload.get("created_at") or "",
        head_ref=head.get("ref") or "",
        head_label=head.get("label") or "",
        base_ref=base.get("ref") or "",
        author_login=(payload.get("user") or {}).get("login"),
        html_url=payload.get("html_url") or "",
    )


class GitHubProvider:
    """List/get operations the scanner needs, on top of a GitHubClient."""

    def __init__(self, client: GitHubClient, base_url: str = BASE_URL) -> None:
        self.client = client
        self.base_url = base_url.rstrip("/")

    def probe_is_organization(self, owner: str) -> bool:
        """True when `owner` has an organization profile; 404 means a user."""
        try:
            self.client.get_json(f"{self.base_url}/orgs/{owner}")
        except GitHubAPIError as exc:
            if exc.not_found:
                return False
            raise
        return True

    def list_repositories_for_owner(
        self, owner: str, is_org: bool, limit: int = OWNER_REPO_LIST_LIMIT
    ) -> List[Repository]:
        """REST listing sorted by name, capped at `limit` entries."""
        kind = "orgs" if is_org else "users"
        params = {"sort": "full_name", "direction": "asc", "type": "all" if is_org else "owner"}
        raw = self.client.paged_get(
            f"{self.base_url}/{kind}/{owner}/repos", params, max_items=limit
        )
        return [repository_from_api(item) for item in raw]

    def list_repositories_graphql(self, owner: str) -> List[Repository]:
        """Every repository of `owner`, walked by name via GraphQL cursors.

        Used when the REST listing stops at its cap; callers dedupe against
        what REST already returned.
        """
        found: List[Repository] = []
        cursor: Optional[str] = None
        while True:
            data = self.client.graphql(OWNER_REPOS_QUERY, {"owner": owner, "cursor": cursor})
            owner_node = data.get("repositoryOwner")
            if not owner_node:
                raise GitHubAPIError(f"owner {owner} not found via GraphQL", NOT_FOUND)
            connection = owner_node.get("repositories") or {}
            for node in connection.get("nodes") or []:
                if node:
                    found.append(repository_from_graphql(node))
            page_info = connection.get("pageInfo") or {}
            if not page_info.get("hasNextPage"):
                break
            cursor = page_info.get("endCursor")
            print(f"  fetching additional repositories for {owner} after {cursor}...")
        return found

    def get_repository(self, owner: str, repo: str) -> Repository:
        return repository_from_api(self.client.get_json(f"{self.base_url}/repos/{owner}/{repo}"))

    def search_repositories_by_stars(
        self, count: int, min_stars: int = TOP_REPOS_MIN_STARS
    ) -> List[Repository]:
        """Top `count` repositories by star count, descending.

        Search stops at SEARCH_RESULT_LIMIT results; larger requests are capped.
        """
        if count > SEARCH_RESULT_LIMIT:
            print(
                f"[warn] GitHub search returns at most {SEARCH_RESULT_LIMIT} results; "
                f"capping --top-repos {count} to {SEARCH_RESULT_LIMIT}"
            )
            count = SEARCH_RESULT_LIMIT
        params = {"q": f"stars:>{min_stars}", "sort": "stars", "order": "desc"}
        raw = self.client.paged_get(
            f"{self.base_url}/search/repositories",
            params,
            max_items=count,
            per_page=min(PER_PAGE, max(1, count)),
            items_key="items",
        )
        return [repository_from_api(item) for item in raw]

    def list_branches(self, owner: str, repo: str, max_items: int = 0) -> List[Branch]:
        raw = self.client.paged_get(
            f"{self.base_url}/repos/{owner}/{repo}/branches", max_items=max_items
        )
        return [branch_from_api(item) for item in raw if item.get("name")]

    def list_pull_requests(
        self, owner: str, repo: str, state: str = "all", max_items: int = 0
    ) -> List[PullRequest]:
        params = {"state": state, "sort": "created", "direction": "desc"}
        raw = self.client.paged_get(
            f"{self.base_url}/repos/{owner}/{repo}/pulls", params, max_items=max_items
        )
        return [pull_request_from_api(item) for item in raw if item.get("number") is not None]


__all__ = [
    "OWNER_REPOS_QUERY",
    "repository_from_api",
    "repository_from_graphql",
    "branch_from_api",
    "pull_request_from_api",
    "GitHubProvider",
]
