"""Unit tests for src.scanner.http_client covering retries, rate limits and pagination.

Execute with coverage to validate networking helpers:
    pytest tests/test_http_client.py --maxfail=1 -v --cov=src.scanner.http_client --cov-report=term-missing
"""

from typing import Any, Dict
from unittest.mock import MagicMock

import pytest
import requests

from src.scanner import http_client
from src.scanner.http_client import GitHubAPIError, GitHubClient


def _make_resp(status: int = 200, payload: Any = None, headers: Dict[str, str] | None = None):
    resp = MagicMock()
    resp.status_code = status
    resp.headers = headers or {}
    if payload is None:
        payload = {}
    resp.json.return_value = payload
    resp.text = str(payload)
    return resp


def _client(responses, tokens=None, max_retries=3):
    session = MagicMock()
    session.headers = {}
    session.request.side_effect = responses
    sleeps = []
    client = GitHubClient(tokens, session=session, sleep=sleeps.append, max_retries=max_retries)
    return client, session, sleeps


def test_sleep_with_jitter(monkeypatch):
    called = {}
    monkeypatch.setattr(http_client.time, "sleep", lambda value: called.setdefault("val", value))
    http_client.sleep_with_jitter(1.5)
    assert isinstance(called["val"], float)


def test_log_http_error_handles_json_and_text(capsys):
    resp = _make_resp(403, {"message": "bad"})
    http_client.log_http_error(resp, "url")
    assert "bad" in capsys.readouterr().out

    resp = _make_resp(429)
    resp.json.side_effect = ValueError()
    resp.text = "plain"
    http_client.log_http_error(resp, "url")
    assert "plain" in capsys.readouterr().out


def test_classify_rate_limit():
    assert http_client.classify_rate_limit(_make_resp(403, headers={"X-RateLimit-Remaining": "0"})) == "primary"
    assert http_client.classify_rate_limit(_make_resp(403, headers={"Retry-After": "5"})) == "secondary"
    assert http_client.classify_rate_limit(_make_resp(429)) == "secondary"
    assert http_client.classify_rate_limit(_make_resp(403, {"message": "Resource not accessible by integration"})) is None
    assert http_client.classify_rate_limit(_make_resp(500)) is None


def test_token_rotation(capsys):
    client, session, _ = _client([], tokens=["t1", "t2"])
    assert session.headers["Authorization"].endswith("t1")
    assert client.switch_to_next_token() is True
    assert session.headers["Authorization"].endswith("t2")
    assert "switched to token 2/2" in capsys.readouterr().out

    solo, _, _ = _client([], tokens=["solo"])
    assert solo.switch_to_next_token() is False


def test_no_tokens_means_no_auth_header():
    _, session, _ = _client([], tokens=[])
    assert "Authorization" not in session.headers


def test_request_success():
    client, _, _ = _client([_make_resp(200, {"ok": 1})])
    resp = client.request("GET", "https://api.github.com/x")
    assert resp.status_code == 200


def test_request_retry_on_exception():
    client, _, sleeps = _client([requests.RequestException("boom"), _make_resp(200, {"ok": 1})])
    resp = client.request("GET", "url")
    assert resp.status_code == 200
    assert len(sleeps) == 1


def test_request_network_failure_raises_after_retries():
    client, _, _ = _client([requests.RequestException("boom")] * 3, max_retries=3)
    with pytest.raises(GitHubAPIError) as excinfo:
        client.request("GET", "url")
    assert excinfo.value.kind == http_client.NETWORK_ERROR


def test_request_primary_rate_limit_switches_token():
    r1 = _make_resp(403, {"message": ""}, headers={"X-RateLimit-Remaining": "0"})
    r2 = _make_resp(200, {"ok": True})
    client, _, sleeps = _client([r1, r2], tokens=["t1", "t2"])
    resp = client.request("GET", "url")
    assert resp.status_code == 200
    assert client.token_index == 1
    assert sleeps == []


def test_request_primary_rate_limit_single_token_waits_for_reset(monkeypatch):
    monkeypatch.setattr(http_client.time, "time", lambda: 1000)
    r1 = _make_resp(403, headers={"X-RateLimit-Remaining": "0", "X-RateLimit-Reset": "1010"})
    client, _, sleeps = _client([r1, _make_resp(200, {})], tokens=["solo"])
    client.request("GET", "url")
    assert sleeps == [11]


def test_rate_limit_waits_do_not_use_retry_budget():
    limited = [_make_resp(429, headers={"Retry-After": "1"}) for _ in range(5)]
    client, _, sleeps = _client(limited + [_make_resp(200, {})], max_retries=2)
    resp = client.request("GET", "url")
    assert resp.status_code == 200
    assert sleeps == [1, 1, 1, 1, 1]


def test_request_not_found_is_tagged():
    client, _, _ = _client([_make_resp(404, {"message": "Not Found"})])
    with pytest.raises(GitHubAPIError) as excinfo:
        client.request("GET", "url")
    assert excinfo.value.not_found
    assert excinfo.value.status == 404


def test_request_terminal_error_raises_http_kind(capsys):
    client, _, _ = _client([_make_resp(422, {"message": "bad query"})])
    with pytest.raises(GitHubAPIError) as excinfo:
        client.request("GET", "url")
    assert excinfo.value.kind == http_client.HTTP_ERROR
    assert "bad query" in capsys.readouterr().out


def test_request_unauthorized_rotates_then_fails():
    client, _, _ = _client([_make_resp(401), _make_resp(401)], tokens=["a", "b"])
    with pytest.raises(GitHubAPIError) as excinfo:
        client.request("GET", "url")
    assert excinfo.value.kind == http_client.UNAUTHORIZED


def test_request_server_error_retries_then_succeeds():
    client, _, sleeps = _client([_make_resp(502), _make_resp(200, {})])
    assert client.request("GET", "url").status_code == 200
    assert sleeps == [http_client.BACKOFF_BASE_SEC]


def test_paged_get_stops_on_short_page():
    client, session, _ = _client([_make_resp(200, [{"id": 1}, {"id": 2}]), _make_resp(200, [{"id": 3}])])
    results = client.paged_get("url", {"state": "all"}, per_page=2)
    assert [r["id"] for r in results] == [1, 2, 3]
    params = [call.kwargs["params"] for call in session.request.call_args_list]
    assert params[0] == {"state": "all", "per_page": 2, "page": 1}
    assert params[1]["page"] == 2


def test_paged_get_respects_max_items():
    client, session, _ = _client([_make_resp(200, [{"id": i} for i in range(2)])] * 5)
    results = client.paged_get("url", per_page=2, max_items=3)
    assert len(results) == 3
    assert session.request.call_count == 2


def test_paged_get_reads_items_key():
    client, _, _ = _client([_make_resp(200, {"items": [{"id": 1}], "total_count": 1})])
    results = client.paged_get("url", per_page=5, items_key="items")
    assert results == [{"id": 1}]


def test_graphql_success():
    client, session, _ = _client([_make_resp(200, {"data": {"ok": True}})])
    assert client.graphql("query", {"a": 1}) == {"ok": True}
    assert session.request.call_args.kwargs["json"] == {"query": "query", "variables": {"a": 1}}


def test_graphql_rate_limited_payload_is_retried():
    limited = _make_resp(200, {"errors": [{"type": "RATE_LIMITED", "message": "slow down"}]})
    client, _, sleeps = _client([limited, _make_resp(200, {"data": {"ok": 1}})])
    assert client.graphql("query", {}) == {"ok": 1}
    assert len(sleeps) == 1


def test_graphql_errors_are_tagged():
    not_found = _make_resp(200, {"errors": [{"type": "NOT_FOUND", "message": "nope"}]})
    other = _make_resp(200, {"errors": [{"type": "SOMETHING", "message": "bad"}]})
    client, _, _ = _client([not_found, other])
    with pytest.raises(GitHubAPIError) as first:
        client.graphql("query", {})
    assert first.value.not_found
    with pytest.raises(GitHubAPIError) as second:
        client.graphql("query", {})
    assert second.value.kind == http_client.GRAPHQL_ERROR


def test_classify_secondary_limit_from_body_without_headers():
    by_message = _make_resp(
        403,
        {"message": "You have exceeded a secondary rate limit. Please wait a few minutes before you try again."},
        headers={"X-RateLimit-Remaining": "4999"},
    )
    by_doc_url = _make_resp(
        403,
        {
            "message": "Forbidden",
            "documentation_url": "https://docs.github.com/rest/overview/rate-limits-for-the-rest-api#about-secondary-rate-limits",
        },
    )
    assert http_client.classify_rate_limit(by_message) == http_client.SECONDARY_LIMIT
    assert http_client.classify_rate_limit(by_doc_url) == http_client.SECONDARY_LIMIT


def test_request_waits_out_secondary_limit_body_and_retries():
    limited = _make_resp(
        403,
        {"message": "You have exceeded a secondary rate limit."},
        headers={"X-RateLimit-Remaining": "4999"},
    )
    client, session, sleeps = _client([limited, _make_resp(200, [])], max_retries=1)
    assert client.request("GET", "url").status_code == 200
    assert session.request.call_count == 2
    assert sleeps == [http_client.BACKOFF_BASE_SEC]
