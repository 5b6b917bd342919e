"""Persistent scan cache: a JSON snapshot plus pure helpers that return new snapshots.

Snapshot layout::

    {
      "cli_options": {...},              # last-used settings, for debugging
      "timestamp": "2024-01-01T00:00:00Z",
      "repositories": {
        "owner/name": {
          "owner_type": "organization" | "user",
          "data": {...Repository...},
          "branches": [...], "branches_timestamp": "...",
          "pull_requests": [...], "pull_requests_timestamp": "...",
          "branches_processed": bool,
          "prs_processed": bool
        }
      },
      "top_repos": {"count": N, "data": [...], "timestamp": "..."},
      "owner_repos": {"owner": {"data": [...], "timestamp": "..."}}
    }

The processed flags, not the presence of cached arrays, decide whether a
repository still needs a fetch. Entries never expire; only a force refresh or
an explicit clear discards them.
"""

from __future__ import annotations

import datetime as dt
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .config import CACHE_FILE, DEFAULT_MAX_BRANCHES, DEFAULT_MAX_PRS, DEFAULT_PR_STATUS
from .models import Branch, PullRequest, Repository, repo_key

Cache = Dict[str, Any]

ORGANIZATION = "organization"
USER = "user"


def utc_now_iso() -> str:
    return (
        dt.datetime.now(dt.timezone.utc)
        .replace(microsecond=0)
        .isoformat()
        .replace("+00:00", "Z")
    )


def default_cli_options() -> Dict[str, Any]:
    return {
        "owners": [],
        "repos": [],
        "max_branches": DEFAULT_MAX_BRANCHES,
        "include_prs": False,
        "max_prs": DEFAULT_MAX_PRS,
        "pr_status": DEFAULT_PR_STATUS,
    }


def initialize_cache() -> Cache:
    """Return an empty cache carrying the default CLI options."""
    return {
        "cli_options": default_cli_options(),
        "timestamp": utc_now_iso(),
        "repositories": {},
    }


def _is_valid_cache(data: Any) -> bool:
    return isinstance(data, dict) and isinstance(data.get("repositories"), dict)


class CacheStore:
    """Reads, writes and deletes the cache snapshot at a fixed path."""

    def __init__(self, path: str | Path = CACHE_FILE) -> None:
        self.path = Path(path)

    def load(self, force_refresh: bool = False) -> Cache:
        """Return the persisted snapshot, or a fresh cache when forced/missing/corrupt."""
        if force_refresh:
            print("[info] force refresh requested; starting with a fresh cache")
            return initialize_cache()
        if not self.path.exists():
            print("[info] no cache found; starting fresh")
            return initialize_cache()
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as exc:
            print(f"[warn] unreadable cache at {self.path} -> {exc}; starting fresh")
            return initialize_cache()
        if not _is_valid_cache(data):
            print(f"[warn] cache at {self.path} has an unexpected shape; starting fresh")
            return initialize_cache()
        print(f"[info] loaded cache from {self.path} (use --force-refresh to ignore it)")
        return data

    def save(self, cache: Cache) -> bool:
        """Write the whole snapshot via a temp file and atomic replace.

        Errors are logged and reported through the return value only.
        """
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
            )
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(cache, fh, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self.path)
            return True
        except (OSError, TypeError, ValueError) as exc:
            print(f"[error] failed to save cache to {self.path} -> {exc}")
            if tmp_name and os.path.exists(tmp_name):
                try:
                    os.remove(tmp_name)
                except OSError:
                    pass
            return False

    def clear(self) -> None:
        """Delete the snapshot; a missing file is not an error."""
        try:
            self.path.unlink()
            print("[info] cache cleared")
        except FileNotFoundError:
            pass
        except OSError as exc:
            print(f"[error] failed to clear cache at {self.path} -> {exc}")


# pure snapshot helpers


def _with_entry(cache: Cache, key: str, entry: Dict[str, Any]) -> Cache:
    new_cache = dict(cache)
    repositories = dict(cache.get("repositories") or {})
    repositories[key] = entry
    new_cache["repositories"] = repositories
    return new_cache


def _entry_or_placeholder(cache: Cache, owner: str, repo: str) -> Dict[str, Any]:
    existing = (cache.get("repositories") or {}).get(repo_key(owner, repo))
    if existing is not None:
        return dict(existing)
    return {
        "data": Repository.placeholder(owner, repo).to_dict(),
        "branches_processed": False,
        "prs_processed": False,
    }


def _register_repositories(cache: Cache, repos: Iterable[Repository]) -> Cache:
    new_cache = dict(cache)
    repositories = dict(cache.get("repositories") or {})
    for repo in repos:
        entry = dict(repositories.get(repo.key) or {})
        entry["data"] = repo.to_dict()
        entry["branches_processed"] = False
        entry["prs_processed"] = False
        repositories[repo.key] = entry
    new_cache["repositories"] = repositories
    return new_cache


def record_owner_repositories(cache: Cache, owner: str, repos: List[Repository]) -> Cache:
    """Upsert `owner_repos[owner]` and register every repo as unprocessed."""
    new_cache = _register_repositories(cache, repos)
    owner_repos = dict(cache.get("owner_repos") or {})
    owner_repos[owner] = {
        "data": [repo.to_dict() for repo in repos],
        "timestamp": utc_now_iso(),
    }
    new_cache["owner_repos"] = owner_repos
    return new_cache


def record_top_repositories(cache: Cache, count: int, repos: List[Repository]) -> Cache:
    new_cache = _register_repositories(cache, repos)
    new_cache["top_repos"] = {
        "count": count,
        "data": [repo.to_dict() for repo in repos],
        "timestamp": utc_now_iso(),
    }
    return new_cache


def record_repository(cache: Cache, repo: Repository) -> Cache:
    """Store a single repository snapshot, keeping any flags already set."""
    entry = _entry_or_placeholder(cache, repo.owner, repo.name)
    entry["data"] = repo.to_dict()
    return _with_entry(cache, repo.key, entry)


def record_branches(cache: Cache, owner: str, repo: str, branches: List[Branch]) -> Cache:
    entry = _entry_or_placeholder(cache, owner, repo)
    entry["branches"] = [branch.to_dict() for branch in branches]
    entry["branches_timestamp"] = utc_now_iso()
    return _with_entry(cache, repo_key(owner, repo), entry)


def record_pull_requests(cache: Cache, owner: str, repo: str, prs: List[PullRequest]) -> Cache:
    entry = _entry_or_placeholder(cache, owner, repo)
    entry["pull_requests"] = [pr.to_dict() for pr in prs]
    entry["pull_requests_timestamp"] = utc_now_iso()
    return _with_entry(cache, repo_key(owner, repo), entry)


def mark_branches_processed(cache: Cache, owner: str, repo: str) -> Cache:
    entry = _entry_or_placeholder(cache, owner, repo)
    entry["branches_processed"] = True
    return _with_entry(cache, repo_key(owner, repo), entry)


def mark_prs_processed(cache: Cache, owner: str, repo: str) -> Cache:
    entry = _entry_or_placeholder(cache, owner, repo)
    entry["prs_processed"] = True
    return _with_entry(cache, repo_key(owner, repo), entry)


def record_owner_type(cache: Cache, owner: str, is_org: bool) -> Cache:
    """Stamp the owner type on every repository entry keyed under `owner`."""
    owner_type = ORGANIZATION if is_org else USER
    prefix = f"{owner}/"
    new_cache = dict(cache)
    repositories = dict(cache.get("repositories") or {})
    for key, entry in repositories.items():
        if key.startswith(prefix):
            updated = dict(entry)
            updated["owner_type"] = owner_type
            repositories[key] = updated
    new_cache["repositories"] = repositories
    return new_cache


def update_cli_options(cache: Cache, options: Dict[str, Any]) -> Cache:
    new_cache = dict(cache)
    new_cache["cli_options"] = dict(options)
    new_cache["timestamp"] = utc_now_iso()
    return new_cache


# read accessors


def _entry(cache: Cache, owner: str, repo: str) -> Dict[str, Any]:
    return (cache.get("repositories") or {}).get(repo_key(owner, repo)) or {}


def cached_branches(cache: Cache, owner: str, repo: str) -> Optional[List[Branch]]:
    raw = _entry(cache, owner, repo).get("branches")
    if raw is None:
        return None
    return [Branch.from_dict(item) for item in raw]


def cached_pull_requests(cache: Cache, owner: str, repo: str) -> Optional[List[PullRequest]]:
    raw = _entry(cache, owner, repo).get("pull_requests")
    if raw is None:
        return None
    return [PullRequest.from_dict(item) for item in raw]


def cached_owner_repositories(cache: Cache, owner: str) -> Optional[List[Repository]]:
    snapshot = (cache.get("owner_repos") or {}).get(owner)
    if not snapshot:
        return None
    return [Repository.from_dict(item) for item in snapshot.get("data") or []]


def cached_top_repositories(cache: Cache, count: int) -> Optional[List[Repository]]:
    """Cached top-N list, only when it holds exactly `count` repositories."""
    snapshot = cache.get("top_repos")
    if not snapshot or snapshot.get("count") != count:
        return None
    data = snapshot.get("data") or []
    if len(data) != count:
        return None
    return [Repository.from_dict(item) for item in data]


def cached_owner_type(cache: Cache, owner: str) -> Optional[str]:
    prefix = f"{owner}/"
    for key, entry in (cache.get("repositories") or {}).items():
        if key.startswith(prefix) and entry.get("owner_type"):
            return entry["owner_type"]
    return None


def is_repo_processed(cache: Cache, owner: str, repo: str, include_prs: bool = False) -> bool:
    entry = _entry(cache, owner, repo)
    if not entry.get("branches_processed"):
        return False
    if include_prs and not entry.get("prs_processed"):
        return False
    return True


def has_cached_collections(cache: Cache, owner: str, repo: str, include_prs: bool = False) -> bool:
    """True when the arrays a scan would read are already cached, whatever the flags say."""
    entry = _entry(cache, owner, repo)
    if entry.get("branches") is None:
        return False
    if include_prs and entry.get("pull_requests") is None:
        return False
    return True


__all__ = [
    "Cache",
    "ORGANIZATION",
    "USER",
    "utc_now_iso",
    "default_cli_options",
    "initialize_cache",
    "CacheStore",
    "record_owner_repositories",
    "record_top_repositories",
    "record_repository",
    "record_branches",
    "record_pull_requests",
    "mark_branches_processed",
    "mark_prs_processed",
    "record_owner_type",
    "update_cli_options",
    "cached_branches",
    "cached_pull_requests",
    "cached_owner_repositories",
    "cached_top_repositories",
    "cached_owner_type",
    "is_repo_processed",
    "has_cached_collections",
]
