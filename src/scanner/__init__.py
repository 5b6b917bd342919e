"""Resumable scanner for `jj git push` style branches across GitHub repositories."""

from .patterns import match_push_branch
from .runner import main, run_scan

__all__ = ["main", "match_push_branch", "run_scan"]
