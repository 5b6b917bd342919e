"""Central configuration constants for the push-branch scanner."""

from __future__ import annotations

import os

USER_AGENT = "push-branch-scanner/1.0"
BASE_URL = "https://api.github.com"
GRAPHQL_URL = "https://api.github.com/graphql"
PER_PAGE = 100
REQUEST_TIMEOUT = 90
MAX_RETRIES = int(os.getenv("MAX_RETRIES", "6"))
BACKOFF_BASE_SEC = 2
MAX_WAIT_ON_403 = int(os.getenv("MAX_WAIT_ON_403", "180"))
RATE_LIMIT_TOKEN_RESET_WAIT_SEC = int(
    os.getenv("RATE_LIMIT_TOKEN_RESET_WAIT_SEC", str(60 * 60))
)

CACHE_FILE = os.getenv("PUSH_SCAN_CACHE_FILE", os.path.join(".cache", "push-scan-cache.json"))
CHECKPOINT_INTERVAL = int(os.getenv("CHECKPOINT_INTERVAL", "5"))

OWNER_REPO_LIST_LIMIT = int(os.getenv("OWNER_REPO_LIST_LIMIT", "1000"))
TOP_REPOS_MIN_STARS = int(os.getenv("TOP_REPOS_MIN_STARS", "1000"))
# GitHub search never returns more than this many results for one query
SEARCH_RESULT_LIMIT = 1000

DEFAULT_MAX_BRANCHES = 1000
DEFAULT_MAX_PRS = 100
DEFAULT_PR_STATUS = "all"
PR_STATUSES = ("open", "closed", "all")

__all__ = [
    "USER_AGENT",
    "BASE_URL",
    "GRAPHQL_URL",
    "PER_PAGE",
    "REQUEST_TIMEOUT",
    "MAX_RETRIES",
    "BACKOFF_BASE_SEC",
    "MAX_WAIT_ON_403",
    "RATE_LIMIT_TOKEN_RESET_WAIT_SEC",
    "CACHE_FILE",
    "CHECKPOINT_INTERVAL",
    "OWNER_REPO_LIST_LIMIT",
    "TOP_REPOS_MIN_STARS",
    "SEARCH_RESULT_LIMIT",
    "DEFAULT_MAX_BRANCHES",
    "DEFAULT_MAX_PRS",
    "DEFAULT_PR_STATUS",
    "PR_STATUSES",
]
