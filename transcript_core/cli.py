"""Command-line interface for transcript acquisition.

WHY: Users (and shell scripts) need a quick way to pull the transcript of a
video link, see which provider produced it, and inspect or reset the
transcript cache, without writing Python.

HOW: Uses argparse to accept a URL, the transcript mode, optional page HTML
and cache flags. Runs fetch_transcript() via asyncio.run() against the
cache file at --cache-path (default ~/.summarize/cache.sqlite). Transcript
text goes to stdout; status and logs go to stderr.

RULES:
- Positional argument: url (optional only with --cache-stats / --clear-cache)
- --mode: auto | web | apify | yt-dlp | no-auto (default: TRANSCRIPT_MODE or auto)
- --html-file: page HTML the caller already has (enables native providers)
- --timestamps: print "[M:SS] text" lines when segments are known
- --no-cache: skip the cache entirely; --cache-stats / --clear-cache
  operate on the cache and exit
- Exit code 1 when no transcript is available or the cache is unusable
- Python 3.9 compatible — no match/case, no X | Y unions at runtime
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from transcript_core.cache import CacheStore, create_cache_store
from transcript_core.config import (
    DEFAULT_CACHE_MAX_BYTES,
    DEFAULT_CACHE_PATH,
    DEFAULT_NEGATIVE_TTL_MS,
    DEFAULT_TRANSCRIPT_MODE,
    DEFAULT_TRANSCRIPT_TTL_MS,
    TRANSCRIPT_CACHE_NAMESPACE,
)
from transcript_core.core.ir import TranscriptMode, TranscriptRequest, TranscriptResult
from transcript_core.core.timestamps import format_transcript_segments
from transcript_core.core.youtube import extract_youtube_video_id
from transcript_core.errors import CacheIOError
from transcript_core.providers.base import TranscriptOptions
from transcript_core.service import fetch_transcript


def _status(msg: str) -> None:
    """Print a status message to stderr so stdout stays pipeable."""
    print(msg, file=sys.stderr, flush=True)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        stream=sys.stderr,
    )


def _print_cache_stats(store: CacheStore) -> None:
    """Print entry counts for --cache-stats.

    Output shape:
        Cache: /path/to/cache.sqlite
        Size: 1234 / 536870912 bytes
        Entries: total=3 (extract=1, summary=1, transcript=1)
    """
    stats = store.stats()
    breakdown = ", ".join(
        "{}={}".format(namespace, count)
        for namespace, count in sorted(stats.entries_by_namespace.items())
    )
    print("Cache: {}".format(store.path or ":memory:"))
    print("Size: {} / {} bytes".format(stats.total_bytes, stats.max_bytes))
    if breakdown:
        print("Entries: total={} ({})".format(stats.total_entries, breakdown))
    else:
        print("Entries: total={}".format(stats.total_entries))


def _render_result(result: TranscriptResult, timestamps: bool) -> str:
    if timestamps and result.segments:
        return format_transcript_segments(result.segments)
    return result.text or ""


async def _run(
    args: argparse.Namespace,
    store: Optional[CacheStore],
    options: TranscriptOptions,
) -> int:
    """Acquire the transcript for args.url and print it; returns the exit code."""
    html: Optional[str] = None
    if args.html_file:
        html_path = Path(args.html_file)
        if not html_path.is_file():
            print("Error: HTML file not found: {}".format(html_path), file=sys.stderr)
            return 1
        html = html_path.read_text(encoding="utf-8", errors="replace")

    request = TranscriptRequest(
        url=args.url,
        resource_key=extract_youtube_video_id(args.url),
        html=html,
        mode=TranscriptMode(args.mode),
    )

    _status("Fetching transcript for {} (mode: {})...".format(args.url, args.mode))
    result = await fetch_transcript(
        request,
        options,
        cache=store,
        ttl_ms=DEFAULT_TRANSCRIPT_TTL_MS,
        negative_ttl_ms=DEFAULT_NEGATIVE_TTL_MS,
    )

    if result.attempted_providers:
        _status("  Tried: {}".format(", ".join(result.attempted_providers)))
    if result.cache_status:
        _status("  Cache: {}".format(result.cache_status))

    if not result.text:
        if result.source is None:
            _status("No transcript provider was eligible for this link.")
        else:
            _status("No transcript available.")
        return 1

    _status("  Source: {}".format(result.source))
    print(_render_result(result, args.timestamps))
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI.

    Kept separate from main() so tests can inspect the parser without
    touching the network or the cache file.
    """
    parser = argparse.ArgumentParser(
        prog="transcript_core",
        description="Fetch the transcript of a video link, trying native captions, "
                    "Apify, and yt-dlp in order, with a persistent cache.",
    )

    parser.add_argument(
        "url",
        nargs="?",
        default=None,
        help="Video URL (e.g. https://www.youtube.com/watch?v=...).",
    )

    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in TranscriptMode],
        default=DEFAULT_TRANSCRIPT_MODE,
        help="Which providers may be used (default: %(default)s).",
    )

    parser.add_argument(
        "--html-file",
        default=None,
        help="Path to the already-fetched watch page HTML (enables native providers).",
    )

    parser.add_argument(
        "--timestamps",
        action="store_true",
        help="Print [M:SS] timestamps when segment timing is known.",
    )

    parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Do not read or write the transcript cache.",
    )

    parser.add_argument(
        "--cache-path",
        default=None,
        help="Cache file location (default: {}).".format(DEFAULT_CACHE_PATH),
    )

    parser.add_argument(
        "--cache-stats",
        action="store_true",
        help="Print cache entry counts and exit.",
    )

    parser.add_argument(
        "--clear-cache",
        action="store_true",
        help="Delete every cache entry and exit.",
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging on stderr.",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for ``python -m transcript_core``.

    RULES:
    - argv=None means use sys.argv (normal CLI invocation)
    - Explicit argv is for testing
    - Always exits via sys.exit with 0 or 1
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if not (args.url or args.cache_stats or args.clear_cache):
        parser.error("a url is required unless --cache-stats or --clear-cache is given")

    options: Optional[TranscriptOptions] = None
    if args.url:
        if args.mode not in {m.value for m in TranscriptMode}:
            print("Error: unknown transcript mode {!r} (TRANSCRIPT_MODE)".format(args.mode), file=sys.stderr)
            sys.exit(1)
        try:
            options = TranscriptOptions.from_env()
        except ValueError as e:
            print("Error: {}".format(e), file=sys.stderr)
            sys.exit(1)

    cache_path = Path(args.cache_path).expanduser() if args.cache_path else DEFAULT_CACHE_PATH
    store: Optional[CacheStore] = None
    try:
        if args.cache_stats or args.clear_cache or not args.no_cache:
            store = create_cache_store(
                cache_path,
                DEFAULT_CACHE_MAX_BYTES,
                transcript_namespace=TRANSCRIPT_CACHE_NAMESPACE,
            )

        if args.clear_cache:
            store.clear()
            _status("Cleared cache at {}".format(cache_path))
        if args.cache_stats:
            _print_cache_stats(store)
        if args.cache_stats or args.clear_cache:
            sys.exit(0)

        sys.exit(asyncio.run(_run(args, None if args.no_cache else store, options)))
    except CacheIOError as e:
        print("Error: {}".format(e), file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        _status("\nCancelled by user.")
        sys.exit(130)
    finally:
        if store is not None:
            store.close()


if __name__ == "__main__":
    main()
