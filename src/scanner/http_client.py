"""HTTP and GraphQL helpers with retry/backoff logic for the scanner."""

from __future__ import annotations

import os
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

import requests

from .config import (
    BACKOFF_BASE_SEC,
    GRAPHQL_URL,
    MAX_RETRIES,
    MAX_WAIT_ON_403,
    PER_PAGE,
    RATE_LIMIT_TOKEN_RESET_WAIT_SEC,
    REQUEST_TIMEOUT,
    USER_AGENT,
)

NOT_FOUND = "not_found"
UNAUTHORIZED = "unauthorized"
HTTP_ERROR = "http"
GRAPHQL_ERROR = "graphql"
NETWORK_ERROR = "network"

PRIMARY_LIMIT = "primary"
SECONDARY_LIMIT = "secondary"

TERMINAL_STATUSES = {400, 403, 410, 422}
SECONDARY_LIMIT_MARKERS = ("secondary rate limit", "abuse detection")


class GitHubAPIError(RuntimeError):
    """A failed GitHub call, tagged with a `kind` the callers branch on."""

    def __init__(self, message: str, kind: str = HTTP_ERROR, status: Optional[int] = None):
        super().__init__(message)
        self.kind = kind
        self.status = status

    @property
    def not_found(self) -> bool:
        return self.kind == NOT_FOUND


def sleep_with_jitter(base: float) -> None:
    """Pause execution with +/- 25% jitter to avoid synchronized retries."""
    jitter = base * 0.25 * (0.5 - (os.urandom(1)[0] / 255.0))
    time.sleep(max(0.0, base + jitter))


def error_message(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        body = {"text": (resp.text or "")[:300]}
    if not isinstance(body, dict):
        return str(body)[:300]
    return str(body.get("message") or body.get("error") or body.get("text") or "")


def log_http_error(resp: requests.Response, url: str) -> None:
    """Print a short, human-readable message when GitHub returns an error."""
    print(f"[error] HTTP {resp.status_code} for {url}\n  -> {error_message(resp)}")


def _body_signals_secondary_limit(resp: requests.Response) -> bool:
    # GitHub may send a secondary-limit 403 without Retry-After; only the body says so
    try:
        body = resp.json()
    except ValueError:
        return False
    if not isinstance(body, dict):
        return False
    doc_url = str(body.get("documentation_url") or "").lower()
    message = str(body.get("message") or "").lower()
    if "secondary-rate-limits" in doc_url:
        return True
    return any(marker in message for marker in SECONDARY_LIMIT_MARKERS)


def classify_rate_limit(resp: requests.Response) -> Optional[str]:
    """Return PRIMARY_LIMIT/SECONDARY_LIMIT for rate-limited responses, else None.

    Primary limits are recognised from `X-RateLimit-Remaining: 0`; secondary
    ones from `Retry-After`, a 429, or GitHub's documented secondary-limit body.
    """
    if resp.status_code not in (403, 429):
        return None
    headers = resp.headers or {}
    if headers.get("X-RateLimit-Remaining") == "0":
        return PRIMARY_LIMIT
    retry_after = headers.get("Retry-After")
    if (retry_after and str(retry_after).isdigit()) or resp.status_code == 429:
        return SECONDARY_LIMIT
    if _body_signals_secondary_limit(resp):
        return SECONDARY_LIMIT
    return None


def rate_limit_wait(resp: requests.Response, limit: str, attempt: int) -> float:
    """Seconds to wait before retrying a rate-limited response."""
    headers = resp.headers or {}
    retry_after = headers.get("Retry-After")
    reset = headers.get("X-RateLimit-Reset")
    if retry_after and str(retry_after).isdigit():
        return min(int(retry_after), MAX_WAIT_ON_403)
    if limit == PRIMARY_LIMIT and reset and str(reset).isdigit():
        wait_sec = max(0, int(reset) - int(time.time())) + 1
        return min(wait_sec, max(RATE_LIMIT_TOKEN_RESET_WAIT_SEC, 1))
    return min(BACKOFF_BASE_SEC * (2 ** max(0, attempt - 1)), MAX_WAIT_ON_403)


class GitHubClient:
    """REST/GraphQL transport holding its own session and token rotation state."""

    def __init__(
        self,
        tokens: Optional[Sequence[str]] = None,
        *,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = sleep_with_jitter,
        max_retries: int = MAX_RETRIES,
        timeout: float = REQUEST_TIMEOUT,
    ) -> None:
        self.tokens: List[str] = [t for t in (tokens or []) if t]
        self.token_index = 0
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Accept": "application/vnd.github+json",
                "User-Agent": USER_AGENT,
            }
        )
        self.sleep = sleep
        self.max_retries = max(1, max_retries)
        self.timeout = timeout
        self.set_auth_header_for_current_token()

    # token handling

    def current_token(self) -> Optional[str]:
        if not self.tokens:
            return None
        return self.tokens[self.token_index % len(self.tokens)]

    def set_auth_header_for_current_token(self) -> None:
        token = self.current_token()
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"
        else:
            self.session.headers.pop("Authorization", None)

    def switch_to_next_token(self) -> bool:
        """Advance to the next token if available; return True if switched."""
        if len(self.tokens) <= 1:
            return False
        self.token_index = (self.token_index + 1) % len(self.tokens)
        self.set_auth_header_for_current_token()
        print(f"[rate-limit] switched to token {self.token_index + 1}/{len(self.tokens)}")
        return True

    # requests

    def request(self, method: str, url: str, **kwargs) -> requests.Response:
        """Perform a call, retrying transient failures and waiting out rate limits.

        Rate-limit waits do not count against `max_retries`; a primary limit
        first rotates through the remaining tokens before sleeping. Non-2xx
        terminal responses raise GitHubAPIError tagged with a kind.
        """
        timeout = kwargs.pop("timeout", self.timeout)
        attempt = 0
        rotations = 0
        limited_waits = 0

        while True:
            try:
                resp = self.session.request(method, url, timeout=timeout, **kwargs)
            except requests.RequestException as exc:
                attempt += 1
                if attempt >= self.max_retries:
                    raise GitHubAPIError(f"{method} {url} failed: {exc}", NETWORK_ERROR) from exc
                delay = BACKOFF_BASE_SEC * (2 ** (attempt - 1))
                print(f"[retry {attempt}/{self.max_retries}] {exc} -> sleep {delay:.1f}s")
                self.sleep(delay)
                continue

            if 200 <= resp.status_code < 300:
                return resp

            if resp.status_code == 401:
                if rotations < len(self.tokens) - 1 and self.switch_to_next_token():
                    rotations += 1
                    continue
                log_http_error(resp, url)
                raise GitHubAPIError(f"unauthorized for {url}", UNAUTHORIZED, 401)

            limit = classify_rate_limit(resp)
            if limit:
                if limit == PRIMARY_LIMIT and rotations < len(self.tokens) - 1:
                    if self.switch_to_next_token():
                        rotations += 1
                        continue
                rotations = 0
                limited_waits += 1
                wait_sec = rate_limit_wait(resp, limit, limited_waits)
                print(f"[rate-limit] {limit} limit hit for {url}; waiting {wait_sec}s")
                self.sleep(wait_sec)
                continue

            if resp.status_code == 404:
                raise GitHubAPIError(f"not found: {url}", NOT_FOUND, 404)

            if resp.status_code in TERMINAL_STATUSES:
                log_http_error(resp, url)
                raise GitHubAPIError(
                    f"HTTP {resp.status_code} for {url}: {error_message(resp)}",
                    HTTP_ERROR,
                    resp.status_code,
                )

            attempt += 1
            if attempt >= self.max_retries:
                log_http_error(resp, url)
                raise GitHubAPIError(
                    f"HTTP {resp.status_code} for {url} after {attempt} attempts",
                    HTTP_ERROR,
                    resp.status_code,
                )
            delay = BACKOFF_BASE_SEC * (2 ** (attempt - 1))
            print(f"[retry {attempt}/{self.max_retries}] HTTP {resp.status_code} -> sleep {delay:.1f}s")
            self.sleep(delay)

    def get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("GET", url, params=params).json()

    def paged_get(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        *,
        max_items: int = 0,
        per_page: int = PER_PAGE,
        items_key: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Retrieve pages until a short/empty page or `max_items` (0 = no cap).

        `items_key` selects the list inside an object payload, as returned by
        the search endpoints.
        """
        results: List[Dict[str, Any]] = []
        page = 1
        while True:
            if max_items and len(results) >= max_items:
                break
            query = dict(params or {})
            query.update({"per_page": per_page, "page": page})
            payload = self.get_json(url, query)
            batch = payload.get(items_key) if items_key and isinstance(payload, dict) else payload
            if not isinstance(batch, list) or not batch:
                break

            results.extend(batch)
            if len(batch) < per_page:
                break
            page += 1

        if max_items and len(results) > max_items:
            results = results[:max_items]
        return results

    def graphql(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        """Execute a GraphQL query, retrying on RATE_LIMITED error payloads."""
        payload = {"query": query, "variables": variables}
        limited_waits = 0
        while True:
            data = self.request("POST", GRAPHQL_URL, json=payload).json()
            errors = [err for err in (data.get("errors") or []) if isinstance(err, dict)]
            if not errors:
                return data.get("data") or {}

            kinds = {err.get("type") for err in errors}
            messages = ", ".join(str(err.get("message")) for err in errors)
            if "RATE_LIMITED" in kinds:
                limited_waits += 1
                wait_sec = min(
                    BACKOFF_BASE_SEC * (2 ** (limited_waits - 1)),
                    max(RATE_LIMIT_TOKEN_RESET_WAIT_SEC, 1),
                )
                print(f"[rate-limit] GraphQL rate limited; waiting {wait_sec}s")
                self.sleep(wait_sec)
                continue
            if "NOT_FOUND" in kinds:
                raise GitHubAPIError(f"GraphQL not found: {messages}", NOT_FOUND)
            raise GitHubAPIError(f"GraphQL error: {messages}", GRAPHQL_ERROR)


__all__ = [
    "NOT_FOUND",
    "UNAUTHORIZED",
    "HTTP_ERROR",
    "GRAPHQL_ERROR",
    "NETWORK_ERROR",
    "PRIMARY_LIMIT",
    "SECONDARY_LIMIT",
    "GitHubAPIError",
    "sleep_with_jitter",
    "error_message",
    "log_http_error",
    "classify_rate_limit",
    "rate_limit_wait",
    "GitHubClient",
]
