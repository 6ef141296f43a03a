from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


def _getenv_int(name: str, default: int) -> int:
    v = os.getenv(name, str(default)).strip()
    try:
        return int(v)
    except ValueError as err:
        raise ValueError(f"Environment variable {name} must be an integer; got {v!r}") from err


def _getenv_float(name: str, default: float) -> float:
    v = os.getenv(name, str(default)).strip()
    try:
        return float(v)
    except ValueError as err:
        raise ValueError(f"Environment variable {name} must be a number; got {v!r}") from err


def _getenv_str(name: str, default: str) -> str:
    return os.getenv(name, default).strip()


# Load .env from project root if present
ROOT = Path(__file__).resolve().parents[1]
load_dotenv(ROOT / ".env", override=False)

DEFAULT_ENDPOINT = "https://www.googleapis.com/customsearch/v1"
DEFAULT_USER_AGENT = "gscrape/1.0 (+https://github.com/gscrape/gscrape)"


@dataclass(frozen=True)
class SearchConfig:
    api_key: str
    cx: str
    endpoint: str
    page_size: int
    user_agent: str
    connect_timeout_s: float
    read_timeout_s: float
    max_results: int  # <= 0 disables the cap
    page_interval_s: float
    malformed_max_retries: int
    malformed_retry_delay_s: float
    denylist_path: str | None


@dataclass(frozen=True)
class RateConfig:
    requests_per_window: int
    window_s: float
    redis_url: str | None


@dataclass(frozen=True)
class BackoffConfig:
    floor_s: float
    ceiling_s: float
    max_jitter_s: float


@dataclass(frozen=True)
class AppConfig:
    search: SearchConfig
    rate: RateConfig
    backoff: BackoffConfig


def load_settings() -> AppConfig:
    """
    Build the structured config from the environment (and .env).

    Values are read at call time so tests can monkeypatch the environment and
    call this again.
    """
    search = SearchConfig(
        api_key=_getenv_str("GOOGLE_CSE_API_KEY", ""),
        cx=_getenv_str("GOOGLE_CSE_CX", ""),
        endpoint=_getenv_str("CSE_ENDPOINT", DEFAULT_ENDPOINT),
        page_size=_getenv_int("CSE_PAGE_SIZE", 10),
        user_agent=_getenv_str("FETCH_USER_AGENT", DEFAULT_USER_AGENT),
        connect_timeout_s=_getenv_float("FETCH_CONNECT_TIMEOUT_S", 5.0),
        read_timeout_s=_getenv_float("FETCH_READ_TIMEOUT_S", 15.0),
        max_results=_getenv_int("CSE_MAX_RESULTS", 100),
        page_interval_s=_getenv_float("CSE_PAGE_INTERVAL_SECONDS", 0.0),
        malformed_max_retries=_getenv_int("CSE_MALFORMED_MAX_RETRIES", 3),
        malformed_retry_delay_s=_getenv_float("CSE_MALFORMED_RETRY_DELAY_SECONDS", 2.0),
        denylist_path=_getenv_str("GSCRAPE_DENYLIST_PATH", "") or None,
    )
    rate = RateConfig(
        requests_per_window=_getenv_int("CSE_QUERIES_PER_MINUTE", 50),
        window_s=_getenv_float("CSE_RATE_WINDOW_SECONDS", 60.0),
        # Only set when several processes share one API key
        redis_url=_getenv_str("GSCRAPE_REDIS_URL", "") or None,
    )
    backoff = BackoffConfig(
        floor_s=_getenv_float("BACKOFF_FLOOR_SECONDS", 5.0),
        ceiling_s=_getenv_float("BACKOFF_CEILING_SECONDS", 80.0),
        max_jitter_s=_getenv_float("BACKOFF_MAX_JITTER_SECONDS", 1.0),
    )
    if search.page_size < 1 or search.page_size > 10:
        raise ValueError(f"CSE_PAGE_SIZE must be between 1 and 10; got {search.page_size}")
    if backoff.floor_s <= 0:
        raise ValueError("BACKOFF_FLOOR_SECONDS must be positive")
    return AppConfig(search=search, rate=rate, backoff=backoff)


__all__ = [
    "SearchConfig",
    "RateConfig",
    "BackoffConfig",
    "AppConfig",
    "load_settings",
    "DEFAULT_ENDPOINT",
    "DEFAULT_USER_AGENT",
]
