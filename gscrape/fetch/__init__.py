# gscrape/fetch/__init__.py
"""
Fetch layer: one-page search client, request-rate governor, and 429 backoff policy.

Public entry points:
  - PageFetcher, PageResult, PageStatus
  - RateGovernor (in-process), RedisRateGovernor (shared across processes)
  - BackoffPolicy
"""

from .backoff import (
    BACKOFF_CEILING_S,
    BACKOFF_FLOOR_S,
    BACKOFF_MAX_JITTER_S,
    BackoffPolicy,
)
from .client import (
    PageFetcher,
    PageResult,
    PageStatus,
    build_url,
    classify_status,
    parse_page,
)
from .governor import (
    RateGovernor,
    RedisRateGovernor,
)

__all__ = [
    # client
    "PageFetcher",
    "PageResult",
    "PageStatus",
    "build_url",
    "classify_status",
    "parse_page",
    # governor
    "RateGovernor",
    "RedisRateGovernor",
    # backoff
    "BackoffPolicy",
    "BACKOFF_FLOOR_S",
    "BACKOFF_CEILING_S",
    "BACKOFF_MAX_JITTER_S",
]
