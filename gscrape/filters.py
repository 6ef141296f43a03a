# gscrape/filters.py
"""
Denylist filtering for harvested result URLs.

A URL is rejected when it contains any denylist entry as a substring. This is
deliberately not a host match:
  - "github.com" also blocks "gist.github.com" and "notgithub.com"
  - "tomshardware.com/forum" blocks only the forum section of that site
  - a URL whose *path* mentions "medium.com" is blocked too (known over-block)

Matching is case-insensitive; entries are stored lowercased.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Default denylist: forums, social networks, code hosts and vendor docs that
# rarely yield useful targets
# ---------------------------------------------------------------------------

DEFAULT_DENYLIST: tuple[str, ...] = (
    # Code hosting / Q&A
    "github.com",
    "reddit.com",
    "stackexchange.com",
    "stackoverflow.com",
    "quora.com",
    "medium.com",
    # Social
    "facebook.com",
    "x.com",
    "twitter.com",
    "linkedin.com",
    "pinterest.com",
    "tumblr.com",
    "instagram.com",
    "flickr.com",
    "wikipedia.org",
    "youtube.com",
    "pastebin.com",
    "mozilla.org",
    "duckduckgo.com",
    # Developer communities
    "sitepoint.com",
    "codecademy.com",
    "bytes.com",
    "programmingforums.org",
    "dev.to",
    "codenewbie.org",
    "slashdot.org",
    "daniweb.com",
    "coderanch.com",
    "gamedev.net",
    "replit.com",
    # Vendor / tech-support forums
    "community.sap.com",
    "community.spiceworks.com",
    "techguy.org",
    "techsupportforum.com",
    "bleepingcomputer.com/forums",
    "linustechtips.com/main",
    "tomshardware.com/forum",
    "hardforum.com",
    "arstechnica.com/civis",
    "neowin.net/forum",
    "forums.anandtech.com",
    # Vendor sites / intentionally vulnerable test sites
    "php.net",
    "microsoft.com",
    "vulnweb.com",
    "intel.com",
)


def _normalize_entries(entries: Iterable[str]) -> tuple[str, ...]:
    """Lowercase, strip, drop blanks and duplicates while keeping first-seen order."""
    seen: set[str] = set()
    out: list[str] = []
    for raw in entries:
        entry = (raw or "").strip().lower()
        if not entry or entry in seen:
            continue
        seen.add(entry)
        out.append(entry)
    return tuple(out)


def load_denylist(path: str | Path) -> tuple[str, ...]:
    """
    Read a denylist file: one entry per line, blank lines and '#' comments ignored.

    Raises OSError if the file cannot be read.
    """
    p = Path(path)
    lines: list[str] = []
    with p.open("r", encoding="utf-8") as f:
        for line in f:
            line = line.split("#", 1)[0].strip()
            if line:
                lines.append(line)
    entries = _normalize_entries(lines)
    log.debug("Loaded %d denylist entries from %s", len(entries), p)
    return entries


class DomainFilter:
    """
    Pure predicate over result URLs.

    The denylist is injected at construction and never mutated afterwards, so
    one instance can be shared by concurrent sessions.
    """

    def __init__(self, denylist: Iterable[str] = DEFAULT_DENYLIST) -> None:
        self._denylist = _normalize_entries(denylist)

    @property
    def denylist(self) -> tuple[str, ...]:
        return self._denylist

    def blocked_by(self, url: str) -> str | None:
        """Return the first denylist entry found in url, or None."""
        low = (url or "").lower()
        for entry in self._denylist:
            if entry in low:
                return entry
        return None

    def accept(self, url: str) -> bool:
        return self.blocked_by(url) is None

    def __len__(self) -> int:
        return len(self._denylist)


__all__ = [
    "DEFAULT_DENYLIST",
    "DomainFilter",
    "load_denylist",
]
