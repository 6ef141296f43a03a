# gscrape/fetch/client.py
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from urllib.parse import urlencode

import httpx

from ..config import DEFAULT_ENDPOINT, DEFAULT_USER_AGENT
from ..exceptions import ResponseParseError, TransportError

log = logging.getLogger(__name__)

# --------------------------------------------------------------------------------------------------
# Results
# --------------------------------------------------------------------------------------------------


class PageStatus(str, Enum):
    SUCCESS = "success"
    MALFORMED = "malformed"  # 400: retried a few times
    RATE_LIMITED = "rate_limited"  # 429: retried with backoff
    UNEXPECTED = "unexpected"  # anything else: fatal for the query


@dataclass
class PageResult:
    status: PageStatus
    http_status: int
    items: list[str] = field(default_factory=list)
    next_cursor: int | None = None
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.status is PageStatus.SUCCESS


# --------------------------------------------------------------------------------------------------
# Helpers
# --------------------------------------------------------------------------------------------------


def classify_status(status: int) -> PageStatus:
    if status == 200:
        return PageStatus.SUCCESS
    if status == 400:
        return PageStatus.MALFORMED
    if status == 429:
        return PageStatus.RATE_LIMITED
    return PageStatus.UNEXPECTED


def build_url(
    endpoint: str,
    *,
    api_key: str,
    cx: str,
    query: str,
    cursor: int,
    page_size: int = 10,
) -> str:
    # urlencode uses quote_plus, so spaces in the query travel as '+'
    params = {
        "key": api_key,
        "cx": cx,
        "q": query,
        "start": int(cursor),
        "num": int(page_size),
    }
    return f"{endpoint}?{urlencode(params)}"


def parse_page(payload: Any) -> tuple[list[str], int | None]:
    """
    Pull result links and the next-page cursor out of a decoded response body.

    Items without a string `link` are skipped. A missing or unusable
    `queries.nextPage[0].startIndex` means there is no next page.
    """
    if not isinstance(payload, dict):
        raise ResponseParseError(f"expected a JSON object, got {type(payload).__name__}")

    raw_items = payload.get("items") or []
    if not isinstance(raw_items, list):
        raise ResponseParseError("'items' is not a list")
    links = [
        it["link"]
        for it in raw_items
        if isinstance(it, dict) and isinstance(it.get("link"), str) and it["link"]
    ]

    next_cursor: int | None = None
    queries = payload.get("queries") or {}
    if isinstance(queries, dict):
        next_page = queries.get("nextPage") or []
        if isinstance(next_page, list) and next_page and isinstance(next_page[0], dict):
            raw = next_page[0].get("startIndex")
            if isinstance(raw, int) and not isinstance(raw, bool):
                next_cursor = raw
            elif isinstance(raw, str) and raw.strip().isdigit():
                next_cursor = int(raw.strip())
    return links, next_cursor


# --------------------------------------------------------------------------------------------------
# Fetcher
# --------------------------------------------------------------------------------------------------


class PageFetcher:
    """
    One request for one page of Custom Search results.

    Flow:
      1) build GET url with key, cx, q, start, num
      2) stream the response (always closed on exit)
      3) 200 -> parse items + next cursor
         400 -> MALFORMED, 429 -> RATE_LIMITED, other -> UNEXPECTED
      4) transport failures raise TransportError

    The fetcher does no waiting or retrying of its own; that is the
    controller's job.
    """

    def __init__(
        self,
        api_key: str,
        cx: str,
        *,
        endpoint: str = DEFAULT_ENDPOINT,
        page_size: int = 10,
        user_agent: str = DEFAULT_USER_AGENT,
        connect_timeout_s: float = 5.0,
        read_timeout_s: float = 15.0,
        client: httpx.Client | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("GOOGLE_CSE_API_KEY not configured")
        if not cx:
            raise ValueError("GOOGLE_CSE_CX not configured")
        self.api_key = api_key
        self.cx = cx
        self.endpoint = endpoint
        self.page_size = int(page_size)
        self._owns_client = client is None
        self._client = client or httpx.Client(
            headers={"User-Agent": user_agent, "Accept": "application/json"},
            timeout=httpx.Timeout(read_timeout_s, connect=connect_timeout_s),
            follow_redirects=True,
        )

    # ---- core fetch ------------------------------------------------------------------

    def fetch(self, query: str, cursor: int) -> PageResult:
        url = build_url(
            self.endpoint,
            api_key=self.api_key,
            cx=self.cx,
            query=query,
            cursor=cursor,
            page_size=self.page_size,
        )
        # Never log `url`: it carries the API key
        log.debug("Fetching page start=%d for query %r", cursor, query)
        try:
            with self._client.stream("GET", url) as resp:
                status = int(resp.status_code)
                kind = classify_status(status)
                if kind is not PageStatus.SUCCESS:
                    return PageResult(status=kind, http_status=status, reason=resp.reason_phrase)
                body = resp.read()
        except httpx.RequestError as exc:
            raise TransportError(
                f"failed to fetch search results: {type(exc).__name__}: {exc}"
            ) from exc

        try:
            payload = json.loads(body)
        except ValueError as exc:
            raise ResponseParseError(f"failed to parse search results: {exc}") from exc
        items, next_cursor = parse_page(payload)
        return PageResult(
            status=PageStatus.SUCCESS,
            http_status=status,
            items=items,
            next_cursor=next_cursor,
        )

    # ----------------------------------------------------------------------------------
    # Context manager
    # ----------------------------------------------------------------------------------

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> PageFetcher:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = [
    "PageFetcher",
    "PageResult",
    "PageStatus",
    "build_url",
    "classify_status",
    "parse_page",
]
