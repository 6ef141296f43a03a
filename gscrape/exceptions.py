# gscrape/exceptions.py
"""
Shared exception classes used across the codebase.

Every error a search session can surface derives from SearchError so callers
driving many queries can catch one type and move on.
"""

from __future__ import annotations


class SearchError(Exception):
    """Base class for failures of a single search session."""

    pass


class UnexpectedStatusError(SearchError):
    """
    Raised when the search API answers with a status we do not retry.

    Examples:
        - 401/403 (bad key, API disabled)
        - 404 (wrong endpoint)
        - 5xx
    """

    def __init__(self, status: int, reason: str = "") -> None:
        self.status = int(status)
        self.reason = reason
        msg = f"unexpected response status: {self.status}"
        if reason:
            msg = f"{msg} {reason}"
        super().__init__(msg)


class TransportError(SearchError):
    """Raised when the request never produced a response (DNS, connect, timeout)."""

    pass


class ResponseParseError(SearchError):
    """Raised when a 200 response body is not the JSON object we expect."""

    pass


class SinkError(SearchError):
    """Raised when the output file cannot be opened or written."""

    pass


class RateLimitCeilingExceeded(SearchError):
    """
    Raised when repeated 429s push the backoff delay past its ceiling.

    This is fatal for the whole run, not just the current query: the quota is
    exhausted beyond what waiting can fix.
    """

    def __init__(self, delay_s: float, ceiling_s: float) -> None:
        self.delay_s = float(delay_s)
        self.ceiling_s = float(ceiling_s)
        super().__init__(
            f"backoff delay {self.delay_s:.1f}s exceeds ceiling {self.ceiling_s:.1f}s"
        )


__all__ = [
    "SearchError",
    "UnexpectedStatusError",
    "TransportError",
    "ResponseParseError",
    "SinkError",
    "RateLimitCeilingExceeded",
]
