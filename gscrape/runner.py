# gscrape/runner.py
from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Iterator
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

from .config import AppConfig, load_settings
from .controller import (
    FetchController,
    SessionOutcome,
    build_controller,
    build_fetcher,
    build_filter,
)
from .exceptions import RateLimitCeilingExceeded, SearchError
from .filters import DomainFilter
from .sink import FileSink

log = logging.getLogger(__name__)


@dataclass
class RunSummary:
    outcomes: list[SessionOutcome] = field(default_factory=list)
    failures: list[tuple[str, str]] = field(default_factory=list)  # (query, error message)
    aborted: RateLimitCeilingExceeded | None = None

    @property
    def written(self) -> int:
        return sum(o.written for o in self.outcomes)

    @property
    def ok(self) -> bool:
        return self.aborted is None


def iter_queries(path: str | Path) -> Iterator[str]:
    """Yield one query per non-blank line of a wordlist file."""
    with Path(path).open("r", encoding="utf-8") as f:
        for line in f:
            q = line.strip()
            if q:
                yield q


def _run_one(
    controller: FetchController,
    query: str,
    summary: RunSummary,
    lock: threading.Lock,
    stop: threading.Event,
) -> None:
    if stop.is_set():
        return
    try:
        outcome = controller.run(query)
    except RateLimitCeilingExceeded as exc:
        with lock:
            if summary.aborted is None:
                summary.aborted = exc
        stop.set()
        return
    except SearchError as exc:
        log.error("Error processing query '%s': %s", query, exc)
        with lock:
            summary.failures.append((query, str(exc)))
        return
    log.log(
        logging.INFO if outcome.ok else logging.WARNING,
        "Query '%s' finished: %s, %d written over %d pages",
        query,
        outcome.status,
        outcome.written,
        outcome.pages,
    )
    with lock:
        summary.outcomes.append(outcome)


def run_queries(
    queries: Iterable[str],
    controller: FetchController,
    *,
    workers: int = 1,
) -> RunSummary:
    """
    Run one session per query.

    Per-query fatal errors are logged and recorded, and the run moves on to the
    next query. Exceeding the rate-limit ceiling stops the whole run: no further
    sessions start and the exception is returned on RunSummary.aborted.

    With workers > 1, sessions run on a thread pool. The controller keeps all
    per-session state local to run(), and its governor and sink are lock-guarded,
    so one controller is shared by every worker.
    """
    summary = RunSummary()
    lock = threading.Lock()
    stop = threading.Event()

    if workers <= 1:
        for q in queries:
            _run_one(controller, q, summary, lock, stop)
            if stop.is_set():
                break
        return summary

    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(_run_one, controller, q, summary, lock, stop) for q in queries]
        for fut in futures:
            fut.result()
    return summary


def run_wordlist(
    wordlist: str | Path,
    output_path: str | Path,
    *,
    settings: AppConfig | None = None,
    workers: int = 1,
    max_results: int | None = None,
    denylist_path: str | Path | None = None,
    url_filter: DomainFilter | None = None,
) -> RunSummary:
    """
    Convenience wrapper: run every query in `wordlist` against one shared sink.

    A ready-made `url_filter` wins over `denylist_path`.
    """
    settings = settings or load_settings()
    if url_filter is None:
        url_filter = build_filter(settings, denylist_path)
    with build_fetcher(settings) as fetcher, FileSink(output_path) as sink:
        controller = build_controller(
            settings, fetcher, sink, url_filter=url_filter, max_results=max_results
        )
        return run_queries(iter_queries(wordlist), controller, workers=workers)


__all__ = [
    "RunSummary",
    "iter_queries",
    "run_queries",
    "run_wordlist",
]
