# gscrape/cli.py
"""
gscrape CLI

Usage examples
--------------
# One query, results appended to output.txt
python -m gscrape -q 'intitle:"index of" backup'

# Every line of a wordlist, into a chosen file
python -m gscrape -w dorks.txt -o urls.txt

# Four queries in flight at once, sharing one rate window
python -m gscrape -w dorks.txt -o urls.txt --workers 4
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys

from .config import AppConfig, load_settings
from .controller import build_filter, run_query
from .exceptions import SearchError
from .filters import DomainFilter
from .runner import run_wordlist

log = logging.getLogger(__name__)

USAGE = (
    "Usage: gscrape -q 'search-term' -o output.txt\n"
    "       gscrape -w wordlist.txt -o output.txt"
)


def _configure_logging(verbose: bool) -> None:
    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gscrape",
        description="Harvest result URLs from the Google Custom Search JSON API.",
    )
    parser.add_argument("-q", "--query", default="", help="Search query.")
    parser.add_argument(
        "-w",
        "--wordlist",
        default="",
        help="Wordlist file with one search query per line.",
    )
    parser.add_argument(
        "-o",
        "--output",
        default="output.txt",
        help="Output file; results are appended (default: output.txt).",
    )
    parser.add_argument(
        "--max-results",
        type=int,
        default=None,
        help="Stop each query after this many accepted URLs (default: CSE_MAX_RESULTS; 0 = no cap).",
    )
    parser.add_argument(
        "--rpm",
        type=int,
        default=None,
        help="Requests allowed per rate window (default: CSE_QUERIES_PER_MINUTE).",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Queries to run concurrently from a wordlist (default: 1).",
    )
    parser.add_argument(
        "--denylist",
        default=None,
        help="File of denylisted domain substrings, one per line (default: built-in list).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Debug logging (shows skipped URLs).",
    )
    return parser


def _settings_from_args(args: argparse.Namespace) -> AppConfig:
    settings = load_settings()
    if args.rpm is not None:
        settings = dataclasses.replace(
            settings,
            rate=dataclasses.replace(settings.rate, requests_per_window=args.rpm),
        )
    if args.denylist:
        settings = dataclasses.replace(
            settings,
            search=dataclasses.replace(settings.search, denylist_path=args.denylist),
        )
    return settings


def _cmd_query(
    args: argparse.Namespace, settings: AppConfig, url_filter: DomainFilter
) -> int:
    try:
        outcome = run_query(
            args.query,
            args.output,
            settings=settings,
            max_results=args.max_results,
            url_filter=url_filter,
        )
    except (SearchError, ValueError, OSError) as exc:
        print(f"Error processing query '{args.query}': {exc}", file=sys.stderr)
        return 1
    log.info("Query finished: %s, %d written", outcome.status, outcome.written)
    return 0


def _cmd_wordlist(
    args: argparse.Namespace, settings: AppConfig, url_filter: DomainFilter
) -> int:
    try:
        summary = run_wordlist(
            args.wordlist,
            args.output,
            settings=settings,
            workers=args.workers,
            max_results=args.max_results,
            url_filter=url_filter,
        )
    except OSError as exc:
        print(f"Error reading wordlist file: {exc}", file=sys.stderr)
        return 1
    except (SearchError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if not summary.ok:
        print(f"Error: rate limit not recovering ({summary.aborted}); stopping.", file=sys.stderr)
        return 1
    log.info(
        "Wordlist finished: %d queries ok, %d failed, %d URLs written",
        len(summary.outcomes),
        len(summary.failures),
        summary.written,
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if not args.query and not args.wordlist:
        print(USAGE)
        return 1

    try:
        settings = _settings_from_args(args)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    # Denylist file errors are reported on their own, before any wordlist IO
    try:
        url_filter = build_filter(settings)
    except OSError as exc:
        print(f"Error reading denylist file: {exc}", file=sys.stderr)
        return 1

    try:
        if args.wordlist:
            rc = _cmd_wordlist(args, settings, url_filter)
        else:
            rc = _cmd_query(args, settings, url_filter)
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130

    if rc == 0:
        print(f"Search results saved to {args.output}")
    return rc


if __name__ == "__main__":
    raise SystemExit(main())
