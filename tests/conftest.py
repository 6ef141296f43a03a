# tests/conftest.py
from __future__ import annotations

import sys
import types
from collections.abc import Iterator
from pathlib import Path

import pytest

# Ensure project root importable
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

TEST_ENDPOINT = "https://cse.test/customsearch/v1"

_ENV_VARS = (
    "GOOGLE_CSE_API_KEY",
    "GOOGLE_CSE_CX",
    "CSE_ENDPOINT",
    "CSE_PAGE_SIZE",
    "CSE_QUERIES_PER_MINUTE",
    "CSE_RATE_WINDOW_SECONDS",
    "CSE_MAX_RESULTS",
    "CSE_PAGE_INTERVAL_SECONDS",
    "CSE_MALFORMED_MAX_RETRIES",
    "CSE_MALFORMED_RETRY_DELAY_SECONDS",
    "BACKOFF_FLOOR_SECONDS",
    "BACKOFF_CEILING_SECONDS",
    "BACKOFF_MAX_JITTER_SECONDS",
    "FETCH_CONNECT_TIMEOUT_S",
    "FETCH_READ_TIMEOUT_S",
    "FETCH_USER_AGENT",
    "GSCRAPE_DENYLIST_PATH",
    "GSCRAPE_REDIS_URL",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Autouse: tests never see the developer's real key, cx or limits."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings(monkeypatch: pytest.MonkeyPatch):
    """AppConfig pointed at the respx test endpoint with deterministic backoff."""
    from gscrape.config import load_settings

    monkeypatch.setenv("GOOGLE_CSE_API_KEY", "test-key")
    monkeypatch.setenv("GOOGLE_CSE_CX", "test-cx")
    monkeypatch.setenv("CSE_ENDPOINT", TEST_ENDPOINT)
    monkeypatch.setenv("BACKOFF_MAX_JITTER_SECONDS", "0")
    return load_settings()


@pytest.fixture
def fake_clock(monkeypatch: pytest.MonkeyPatch) -> Iterator[types.SimpleNamespace]:
    """
    Freeze time and capture sleeps.

    - Overrides time.monotonic()/perf_counter()/time.time so governors see our clock.
    - Overrides time.sleep(dt) to *advance* the frozen clock by dt and record it.

    Exposes:
      now() -> float            current monotonic time
      advance(dt)               manually advance without calling sleep()
      slept() -> float          total seconds 'slept'
      sleeps                    list of individual sleeps, in order
      reset_slept()             zero the sleep accumulator
    """
    t = {"now": 1_000_000.0, "slept": 0.0}
    sleeps: list[float] = []
    epoch0 = 1_700_000_000.0

    def monotonic():
        return t["now"]

    def time_time():
        return epoch0 + (t["now"] - 1_000_000.0)

    def sleep(dt):
        dt = float(dt)
        if dt <= 0:
            return
        sleeps.append(dt)
        t["slept"] += dt
        t["now"] += dt

    monkeypatch.setattr("time.monotonic", monotonic)
    monkeypatch.setattr("time.perf_counter", monotonic)
    monkeypatch.setattr("time.time", time_time)
    monkeypatch.setattr("time.sleep", sleep)

    yield types.SimpleNamespace(
        now=lambda: t["now"],
        advance=lambda dt: t.__setitem__("now", t["now"] + float(dt)),
        slept=lambda: t["slept"],
        sleeps=sleeps,
        reset_slept=lambda: (t.__setitem__("slept", 0.0), sleeps.clear()),
    )
