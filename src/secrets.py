"""Utilities for loading local (gitignored) credentials and GitHub tokens."""

from __future__ import annotations

import json
import os
import shutil
import subprocess
from pathlib import Path
from typing import Any, Dict, List, Optional

DEFAULT_SECRETS_FILENAME = "local_secrets.json"
GH_AUTH_TIMEOUT_SEC = 10


def _default_secrets_path() -> Path:
    root = Path(__file__).resolve().parents[1]
    return root / DEFAULT_SECRETS_FILENAME


def load_local_secrets(path: Optional[str | Path] = None) -> Dict[str, Any]:
    """Load secrets from a JSON file; return {} when unavailable."""

    candidate = path or os.getenv("LOCAL_SECRETS_FILE") or _default_secrets_path()
    secrets_path = Path(candidate).expanduser()
    if not secrets_path.exists():
        return {}
    try:
        with secrets_path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
            return data if isinstance(data, dict) else {}
    except (OSError, json.JSONDecodeError):
        return {}


def token_from_gh_cli() -> Optional[str]:
    """Ask the GitHub CLI credential helper for a token, if `gh` is installed."""
    if not shutil.which("gh"):
        return None
    try:
        proc = subprocess.run(
            ["gh", "auth", "token"],
            check=False,
            capture_output=True,
            text=True,
            timeout=GH_AUTH_TIMEOUT_SEC,
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        print(f"[warn] gh auth token failed -> {exc}")
        return None
    if proc.returncode != 0:
        return None
    return proc.stdout.strip() or None


def resolve_github_tokens(secrets: Optional[Dict[str, Any]] = None) -> List[str]:
    """Collect tokens from local secrets, GITHUB_TOKEN, then `gh auth token`.

    Duplicates are dropped while keeping the first-seen order. An empty list
    means requests go out anonymously with the lower rate limit.
    """
    secrets = load_local_secrets() if secrets is None else secrets
    candidates: List[str] = [t for t in secrets.get("github_tokens", []) if t]
    env_token = os.getenv("GITHUB_TOKEN")
    if env_token:
        candidates.append(env_token.strip())
    if not candidates:
        cli_token = token_from_gh_cli()
        if cli_token:
            candidates.append(cli_token)

    tokens: List[str] = []
    for token in candidates:
        if token and token not in tokens:
            tokens.append(token)

    if not tokens:
        print(
            "[warn] no GitHub token found (local_secrets.json, GITHUB_TOKEN, gh auth token); "
            "continuing anonymously with reduced rate limits"
        )
    return tokens


__all__ = [
    "load_local_secrets",
    "token_from_gh_cli",
    "resolve_github_tokens",
    "DEFAULT_SECRETS_FILENAME",
]
