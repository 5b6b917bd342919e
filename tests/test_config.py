"""Tests for src.scanner.config ensuring env overrides and defaults work.

Run with coverage to validate configuration handling:
    pytest tests/test_config.py --maxfail=1 -v --cov=src.scanner.config --cov-report=term-missing
"""

from importlib import reload

import src.scanner.config as config


def test_config_defaults_are_present():
    assert config.PER_PAGE == 100
    assert config.BACKOFF_BASE_SEC >= 1
    assert config.USER_AGENT.startswith("push-branch-scanner")
    assert config.DEFAULT_PR_STATUS in config.PR_STATUSES
    assert config.CACHE_FILE.endswith(".json")


def test_env_override_for_checkpoint_interval(monkeypatch):
    monkeypatch.setenv("CHECKPOINT_INTERVAL", "9")
    reloaded = reload(config)
    try:
        assert reloaded.CHECKPOINT_INTERVAL == 9
    finally:
        monkeypatch.delenv("CHECKPOINT_INTERVAL", raising=False)
        reload(config)


def test_env_override_for_cache_file(monkeypatch, tmp_path):
    target = str(tmp_path / "scan.json")
    monkeypatch.setenv("PUSH_SCAN_CACHE_FILE", target)
    reloaded = reload(config)
    try:
        assert reloaded.CACHE_FILE == target
    finally:
        monkeypatch.delenv("PUSH_SCAN_CACHE_FILE", raising=False)
        reload(config)
