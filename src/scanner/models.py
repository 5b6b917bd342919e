"""Typed records shared by the provider, cache, collectors and report."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

NO_PREFIX_USERNAME = "(no prefix)"


def repo_key(owner: str, name: str) -> str:
    return f"{owner}/{name}"


@dataclass(frozen=True)
class Repository:
    """A GitHub repository identified by `owner/name`."""

    owner: str
    name: str
    url: str
    stars: Optional[int] = None

    @property
    def key(self) -> str:
        return repo_key(self.owner, self.name)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Repository":
        return cls(
            owner=data["owner"],
            name=data["name"],
            url=data.get("url") or f"https://github.com/{data['owner']}/{data['name']}",
            stars=data.get("stars"),
        )

    @classmethod
    def placeholder(cls, owner: str, name: str) -> "Repository":
        return cls(owner=owner, name=name, url=f"https://github.com/{owner}/{name}")


@dataclass(frozen=True)
class Branch:
    name: str
    commit_sha: str = ""
    commit_url: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Branch":
        return cls(
            name=data["name"],
            commit_sha=data.get("commit_sha") or "",
            commit_url=data.get("commit_url") or "",
        )


@dataclass(frozen=True)
class PullRequest:
    number: int
    title: str
    state: str
    created_at: str
    head_ref: str
    head_label: str = ""
    base_ref: str = ""
    author_login: Optional[str] = None
    html_url: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PullRequest":
        return cls(
            number=int(data["number"]),
            title=data.get("title") or "",
            state=data.get("state") or "",
            created_at=data.get("created_at") or "",
            head_ref=data.get("head_ref") or "",
            head_label=data.get("head_label") or "",
            base_ref=data.get("base_ref") or "",
            author_login=data.get("author_login"),
            html_url=data.get("html_url") or "",
        )


@dataclass(frozen=True)
class BranchMatch:
    repository: str
    branch: str
    username: str = NO_PREFIX_USERNAME


@dataclass(frozen=True)
class PullRequestMatch:
    repository: str
    number: int
    title: str
    state: str
    url: str
    created_at: str
    branch: str
    username: str = NO_PREFIX_USERNAME


@dataclass(frozen=True)
class UserStats:
    username: str
    count: int


@dataclass
class RepoSummary:
    """Matches for one repository, grouped by resolved username."""

    repository: str
    total: int
    user_stats: List[UserStats] = field(default_factory=list)


__all__ = [
    "NO_PREFIX_USERNAME",
    "repo_key",
    "Repository",
    "Branch",
    "PullRequest",
    "BranchMatch",
    "PullRequestMatch",
    "UserStats",
    "RepoSummary",
]
