"""
gscrape: rate-limited Google Custom Search harvester.

Pages through results for a query, drops denylisted URLs, and appends the rest
to a text file, one per line.

Entry points:
  - run_query(query, output_path) -> SessionOutcome
  - run_wordlist(wordlist, output_path) -> RunSummary
  - FetchController for wiring your own fetcher/sink/governor
"""

from .controller import (
    FetchController,
    SessionOutcome,
    SessionState,
    run_query,
)
from .exceptions import (
    RateLimitCeilingExceeded,
    ResponseParseError,
    SearchError,
    SinkError,
    TransportError,
    UnexpectedStatusError,
)
from .filters import DEFAULT_DENYLIST, DomainFilter, load_denylist
from .runner import RunSummary, run_queries, run_wordlist
from .sink import FileSink

__all__ = [
    "FetchController",
    "SessionOutcome",
    "SessionState",
    "run_query",
    "run_queries",
    "run_wordlist",
    "RunSummary",
    "DomainFilter",
    "DEFAULT_DENYLIST",
    "load_denylist",
    "FileSink",
    "SearchError",
    "UnexpectedStatusError",
    "TransportError",
    "ResponseParseError",
    "SinkError",
    "RateLimitCeilingExceeded",
]

__version__ = "1.0.0"
