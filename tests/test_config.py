# tests/test_config.py
from __future__ import annotations

import pytest

from gscrape.config import DEFAULT_ENDPOINT, load_settings


def test_defaults():
    s = load_settings()
    assert s.search.api_key == ""
    assert s.search.endpoint == DEFAULT_ENDPOINT
    assert s.search.page_size == 10
    assert s.search.max_results == 100
    assert s.search.page_interval_s == 0.0
    assert s.search.malformed_max_retries == 3
    assert s.search.malformed_retry_delay_s == 2.0
    assert s.search.denylist_path is None
    assert s.rate.requests_per_window == 50
    assert s.rate.window_s == 60.0
    assert s.rate.redis_url is None
    assert (s.backoff.floor_s, s.backoff.ceiling_s, s.backoff.max_jitter_s) == (5.0, 80.0, 1.0)


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("GOOGLE_CSE_API_KEY", "  k  ")
    monkeypatch.setenv("GOOGLE_CSE_CX", "c")
    monkeypatch.setenv("CSE_QUERIES_PER_MINUTE", "100")
    monkeypatch.setenv("CSE_MAX_RESULTS", "0")
    monkeypatch.setenv("BACKOFF_CEILING_SECONDS", "40")
    monkeypatch.setenv("GSCRAPE_DENYLIST_PATH", "deny.txt")
    monkeypatch.setenv("GSCRAPE_REDIS_URL", "redis://localhost:6379/2")

    s = load_settings()

    assert s.search.api_key == "k"
    assert s.search.cx == "c"
    assert s.rate.requests_per_window == 100
    assert s.search.max_results == 0
    assert s.backoff.ceiling_s == 40.0
    assert s.search.denylist_path == "deny.txt"
    assert s.rate.redis_url == "redis://localhost:6379/2"


@pytest.mark.parametrize(
    "name, value",
    [
        ("CSE_MAX_RESULTS", "lots"),
        ("BACKOFF_FLOOR_SECONDS", "soon"),
        ("CSE_PAGE_SIZE", "11"),
        ("CSE_PAGE_SIZE", "0"),
        ("BACKOFF_FLOOR_SECONDS", "0"),
    ],
)
def test_invalid_values_rejected(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError):
        load_settings()


def test_settings_are_frozen():
    s = load_settings()
    with pytest.raises(AttributeError):
        s.search.api_key = "other"
