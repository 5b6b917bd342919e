"""Command-line parsing and settings resolution for the scanner."""

from __future__ import annotations

import argparse
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .config import (
    CACHE_FILE,
    CHECKPOINT_INTERVAL,
    DEFAULT_MAX_BRANCHES,
    DEFAULT_MAX_PRS,
    DEFAULT_PR_STATUS,
    PR_STATUSES,
)


class ConfigurationError(ValueError):
    """Invalid repository selection or limits; reported before any network call."""


@dataclass(frozen=True)
class ScanSettings:
    """Resolved runtime settings for one scan."""

    owners: Tuple[str, ...] = ()
    repos: Tuple[str, ...] = ()
    top_repos: Optional[int] = None
    max_branches: int = DEFAULT_MAX_BRANCHES
    max_repos: Optional[int] = None
    include_prs: bool = False
    max_prs: int = DEFAULT_MAX_PRS
    pr_status: str = DEFAULT_PR_STATUS
    force_refresh: bool = False
    clear_cache: bool = False
    checkpoint_interval: int = CHECKPOINT_INTERVAL
    cache_file: Path = field(default_factory=lambda: Path(CACHE_FILE))

    def cli_options(self) -> Dict[str, Any]:
        """JSON-friendly copy stored in the cache for debugging."""
        options = asdict(self)
        options["owners"] = list(self.owners)
        options["repos"] = list(self.repos)
        options["cache_file"] = str(self.cache_file)
        return options


def build_arg_parser() -> argparse.ArgumentParser:
    """Return the CLI parser used by the scan entry point."""

    parser = argparse.ArgumentParser(
        description="Find `push-xxxxxxxxxxxx` branches and pull requests across GitHub repositories.",
    )
    parser.add_argument(
        "--owner",
        dest="owners",
        action="append",
        default=[],
        help="GitHub organization or user to scan (repeatable; org vs user is detected)",
    )
    parser.add_argument(
        "--repo",
        dest="repos",
        action="append",
        default=[],
        help='Specific repository in the form "owner/repo" (repeatable)',
    )
    parser.add_argument("--top-repos", type=int, help="Scan the top N repositories by stars")
    parser.add_argument("--max-branches", type=int, default=DEFAULT_MAX_BRANCHES)
    parser.add_argument("--max-repos", type=int, help="Stop after fetching this many repositories")
    parser.add_argument("--include-prs", action="store_true", help="Also search pull request head branches")
    parser.add_argument("--max-prs", type=int, default=DEFAULT_MAX_PRS)
    parser.add_argument("--pr-status", choices=PR_STATUSES, default=DEFAULT_PR_STATUS)
    parser.add_argument("--force-refresh", action="store_true", help="Ignore cached data for this run")
    parser.add_argument("--clear-cache", action="store_true", help="Delete the cache file before running")
    parser.add_argument("--checkpoint-interval", type=int, default=CHECKPOINT_INTERVAL)
    parser.add_argument("--cache-file", default=CACHE_FILE)
    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments; accepts argv overrides for testing."""

    return build_arg_parser().parse_args(argv)


def validate_settings(settings: ScanSettings) -> ScanSettings:
    """Raise ConfigurationError unless the settings describe a runnable scan."""
    if not settings.owners and not settings.repos and not settings.top_repos:
        raise ConfigurationError("At least one of --owner, --repo, or --top-repos must be specified")
    for value in settings.repos:
        parts = value.split("/")
        if len(parts) != 2 or not all(parts):
            raise ConfigurationError(f'Invalid repository format: "{value}". Use the format "owner/repo"')
    if settings.top_repos is not None and settings.top_repos < 0:
        raise ConfigurationError("--top-repos must be positive")
    if settings.max_branches < 1 or settings.max_prs < 1:
        raise ConfigurationError("--max-branches and --max-prs must be at least 1")
    if settings.max_repos is not None and settings.max_repos < 1:
        raise ConfigurationError("--max-repos must be at least 1")
    if settings.checkpoint_interval < 1:
        raise ConfigurationError("--checkpoint-interval must be at least 1")
    if settings.pr_status not in PR_STATUSES:
        raise ConfigurationError(f"--pr-status must be one of {', '.join(PR_STATUSES)}")
    return settings


def resolve_settings(args: Optional[argparse.Namespace] = None) -> ScanSettings:
    """Build validated, immutable settings from parsed arguments."""

    args = args or parse_args()
    settings = ScanSettings(
        owners=tuple(o.strip() for o in args.owners if o and o.strip()),
        repos=tuple(r.strip() for r in args.repos if r and r.strip()),
        top_repos=args.top_repos,
        max_branches=int(args.max_branches),
        max_repos=args.max_repos,
        include_prs=bool(args.include_prs),
        max_prs=int(args.max_prs),
        pr_status=args.pr_status,
        force_refresh=bool(args.force_refresh),
        clear_cache=bool(args.clear_cache),
        checkpoint_interval=int(args.checkpoint_interval),
        cache_file=Path(args.cache_file),
    )
    return validate_settings(settings)


__all__ = [
    "ConfigurationError",
    "ScanSettings",
    "build_arg_parser",
    "parse_args",
    "validate_settings",
    "resolve_settings",
]
