# gscrape/controller.py
"""
Fetch controller: drives one query's session from cursor 1 to a terminal state.

Per iteration:
  1) governor.admit()                      (per-window request cap)
  2) fetcher.fetch(query, cursor)
  3) classify:
       400 -> bounded retry on the same cursor, then abandon the query
       429 -> sleep backoff (+jitter), double it, retry the same cursor;
              past the ceiling -> RateLimitCeilingExceeded (fatal for the run)
       other non-200 -> UnexpectedStatusError (fatal for the query)
       200 -> reset retries/backoff, filter + write items
  4) stop at the result cap (even mid-page), on an empty page, or when there
     is no next cursor; otherwise advance the cursor and loop.

Session state lives on the SessionState instance created by run(); nothing
carries over from one query to the next.
"""

from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from redis import Redis

from .config import AppConfig, load_settings
from .exceptions import RateLimitCeilingExceeded, UnexpectedStatusError
from .fetch.backoff import BackoffPolicy
from .fetch.client import PageFetcher, PageResult, PageStatus
from .fetch.governor import RateGovernor, RedisRateGovernor
from .filters import DEFAULT_DENYLIST, DomainFilter, load_denylist
from .sink import FileSink

log = logging.getLogger(__name__)

# Terminal session statuses
CAPPED = "capped"
EXHAUSTED = "exhausted"
ABANDONED = "abandoned"


def _sleep(dt: float) -> None:
    # Calls real time.sleep, but tests can monkeypatch it.
    time.sleep(dt)


class Fetcher(Protocol):
    def fetch(self, query: str, cursor: int) -> PageResult: ...


class Governor(Protocol):
    def admit(self) -> float: ...


class Sink(Protocol):
    def append(self, url: str) -> None: ...


@dataclass
class SessionState:
    cursor: int
    backoff_delay: float
    accepted: int = 0
    retries: int = 0
    pages: int = 0
    requests: int = 0


@dataclass
class SessionOutcome:
    query: str
    status: str  # "capped" | "exhausted" | "abandoned"
    written: int
    pages: int
    requests: int

    @property
    def ok(self) -> bool:
        return self.status in (CAPPED, EXHAUSTED)


class FetchController:
    """
    Orchestrates governor, backoff, fetcher, filter and sink for one query at a time.

    A controller can run many queries in sequence; each run() builds fresh
    SessionState. The governor may be shared with other controllers.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        url_filter: DomainFilter,
        sink: Sink,
        *,
        governor: Governor | None = None,
        backoff: BackoffPolicy | None = None,
        max_results: int = 100,
        max_malformed_retries: int = 3,
        malformed_retry_delay_s: float = 2.0,
        page_interval_s: float = 0.0,
    ) -> None:
        self.fetcher = fetcher
        self.url_filter = url_filter
        self.sink = sink
        self.governor = governor if governor is not None else RateGovernor(0)
        self.backoff = backoff or BackoffPolicy()
        self.max_results = int(max_results)
        self.max_malformed_retries = int(max_malformed_retries)
        self.malformed_retry_delay_s = float(malformed_retry_delay_s)
        self.page_interval_s = float(page_interval_s)

    def _capped(self, state: SessionState) -> bool:
        return self.max_results > 0 and state.accepted >= self.max_results

    def _outcome(self, query: str, status: str, state: SessionState) -> SessionOutcome:
        return SessionOutcome(
            query=query,
            status=status,
            written=state.accepted,
            pages=state.pages,
            requests=state.requests,
        )

    def run(self, query: str) -> SessionOutcome:
        """
        Fetch every page for `query` and append accepted URLs to the sink.

        Returns the outcome for capped, exhausted and abandoned sessions.
        Raises SearchError subclasses for fatal conditions.
        """
        query = (query or "").strip()
        if not query:
            raise ValueError("query must be a non-empty string")

        state = SessionState(cursor=1, backoff_delay=self.backoff.reset())

        while True:
            self.governor.admit()
            page = self.fetcher.fetch(query, state.cursor)
            state.requests += 1

            if page.status is PageStatus.MALFORMED:
                state.retries += 1
                if state.retries > self.max_malformed_retries:
                    log.warning("Max retries reached for query: %s", query)
                    return self._outcome(query, ABANDONED, state)
                log.info("Retrying query: %s (attempt %d)", query, state.retries)
                _sleep(self.malformed_retry_delay_s)
                continue

            if page.status is PageStatus.RATE_LIMITED:
                wait = self.backoff.jittered(state.backoff_delay)
                log.warning(
                    "Received 429 Too Many Requests. Waiting %.1fs before retrying query: %s",
                    wait,
                    query,
                )
                _sleep(wait)
                try:
                    state.backoff_delay = self.backoff.next_delay(state.backoff_delay)
                except RateLimitCeilingExceeded:
                    log.error("Exceeded maximum wait time for query: %s", query)
                    raise
                continue

            if not page.ok:
                raise UnexpectedStatusError(page.http_status, page.reason)

            state.retries = 0
            state.backoff_delay = self.backoff.reset()
            state.pages += 1

            if not page.items:
                return self._outcome(query, EXHAUSTED, state)

            for url in page.items:
                blocked = self.url_filter.blocked_by(url)
                if blocked is not None:
                    log.debug("Skipping %s (denylisted: %s)", url, blocked)
                    continue
                self.sink.append(url)
                state.accepted += 1
                if self._capped(state):
                    log.info("Result cap of %d reached for query: %s", self.max_results, query)
                    return self._outcome(query, CAPPED, state)

            nxt = page.next_cursor
            if nxt is None:
                return self._outcome(query, EXHAUSTED, state)
            if nxt <= state.cursor:
                log.warning(
                    "Next page cursor %d does not advance past %d for query: %s",
                    nxt,
                    state.cursor,
                    query,
                )
                return self._outcome(query, EXHAUSTED, state)
            state.cursor = nxt

            if self.page_interval_s > 0:
                _sleep(self.page_interval_s)


# --- one-call facade ---------------------------------------------------------


def build_filter(settings: AppConfig, denylist_path: str | Path | None = None) -> DomainFilter:
    path = denylist_path or settings.search.denylist_path
    if path:
        return DomainFilter(load_denylist(path))
    return DomainFilter(DEFAULT_DENYLIST)


def build_governor(settings: AppConfig, redis: Redis | None = None) -> Governor:
    """In-process governor, or a Redis-backed one when a client/URL is available."""
    rate = settings.rate
    if redis is None and rate.redis_url:
        redis = Redis.from_url(rate.redis_url)
    if redis is not None:
        # Key windows by a digest of the API key, never the key itself
        digest = hashlib.sha256(settings.search.api_key.encode()).hexdigest()[:16]
        return RedisRateGovernor(redis, digest, rate.requests_per_window, rate.window_s)
    return RateGovernor(rate.requests_per_window, rate.window_s)


def build_fetcher(settings: AppConfig) -> PageFetcher:
    s = settings.search
    return PageFetcher(
        s.api_key,
        s.cx,
        endpoint=s.endpoint,
        page_size=s.page_size,
        user_agent=s.user_agent,
        connect_timeout_s=s.connect_timeout_s,
        read_timeout_s=s.read_timeout_s,
    )


def build_controller(
    settings: AppConfig,
    fetcher: Fetcher,
    sink: Sink,
    *,
    url_filter: DomainFilter | None = None,
    governor: Governor | None = None,
    max_results: int | None = None,
) -> FetchController:
    b = settings.backoff
    return FetchController(
        fetcher,
        url_filter if url_filter is not None else build_filter(settings),
        sink,
        governor=governor if governor is not None else build_governor(settings),
        backoff=BackoffPolicy(b.floor_s, b.ceiling_s, b.max_jitter_s),
        max_results=settings.search.max_results if max_results is None else max_results,
        max_malformed_retries=settings.search.malformed_max_retries,
        malformed_retry_delay_s=settings.search.malformed_retry_delay_s,
        page_interval_s=settings.search.page_interval_s,
    )


def run_query(
    query: str,
    output_path: str | Path,
    *,
    settings: AppConfig | None = None,
    max_results: int | None = None,
    url_filter: DomainFilter | None = None,
) -> SessionOutcome:
    """
    Convenience wrapper: build every collaborator from settings and run one session.

    Usage:
        from gscrape import run_query
        outcome = run_query("intitle:index.of backup", "output.txt")
    """
    settings = settings or load_settings()
    with build_fetcher(settings) as fetcher, FileSink(output_path) as sink:
        controller = build_controller(
            settings, fetcher, sink, url_filter=url_filter, max_results=max_results
        )
        return controller.run(query)


__all__ = [
    "FetchController",
    "SessionState",
    "SessionOutcome",
    "CAPPED",
    "EXHAUSTED",
    "ABANDONED",
    "build_filter",
    "build_governor",
    "build_fetcher",
    "build_controller",
    "run_query",
]
