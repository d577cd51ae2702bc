"""Canonical dataclasses for transcript requests, segments, and results.

WHY: Providers return wildly different shapes — json3 caption events,
Innertube renderer trees, Apify dataset rows, VTT files. Everything
downstream (cache, summarizer, CLI) needs one stable form to work with.

HOW: Three frozen dataclasses and one enum form the contract:
  TranscriptMode    — which providers a request allows
  TranscriptRequest — the input of one acquisition call
  TranscriptSegment — one timed cue, in milliseconds
  TranscriptResult  — the output of one acquisition call

RULES:
- All times are integer milliseconds
- Segment sequences are sorted by start_ms ascending
- end_ms, when present, is >= start_ms; text is non-empty and collapsed
- Results are never mutated; use dataclasses.replace for variants
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional, Tuple

UNAVAILABLE = "unavailable"
"""Terminal source value: every eligible provider was tried and none succeeded."""


class ProviderId(str, enum.Enum):
    """Identifiers of the transcript providers, in no particular order.

    HOW: Inherits from str so values serialize cleanly to JSON and compare
    equal to their plain string form.
    """

    YOUTUBEI = "youtubei"
    CAPTION_TRACKS = "captionTracks"
    APIFY = "apify"
    YT_DLP = "yt-dlp"


KNOWN_SOURCES = frozenset({p.value for p in ProviderId} | {UNAVAILABLE})
"""Source values accepted when reading cached transcript records."""


class TranscriptMode(str, enum.Enum):
    """Which providers an acquisition call may use.

    RULES:
    - auto: native → apify (token) → yt-dlp (binary)
    - web: native providers only
    - apify / yt-dlp: that single provider
    - no-auto: nothing is attempted (caller brought its own HTML)
    """

    AUTO = "auto"
    WEB = "web"
    APIFY = "apify"
    YT_DLP = "yt-dlp"
    NO_AUTO = "no-auto"


@dataclass(frozen=True)
class TranscriptRequest:
    """Input of a single acquisition call.

    RULES:
    - url: the media link as given by the caller
    - resource_key: stable id of the resource (e.g. the video id), if known
    - html: page HTML already fetched by the caller, or None
    - mode: eligible providers, see TranscriptMode
    """

    url: str
    resource_key: Optional[str] = None
    html: Optional[str] = None
    mode: TranscriptMode = TranscriptMode.AUTO


@dataclass(frozen=True)
class TranscriptSegment:
    """One timed cue in canonical form."""

    start_ms: int
    end_ms: Optional[int]
    text: str

    def to_dict(self) -> dict:
        return {"startMs": self.start_ms, "endMs": self.end_ms, "text": self.text}


@dataclass(frozen=True)
class TranscriptResult:
    """Outcome of one acquisition call.

    WHY: Callers learn what happened from the value, never from an
    exception: source tells them which provider won, or that none did.

    RULES:
    - source is a ProviderId value, "unavailable", or None (nothing attempted)
    - attempted_providers lists ids in the order they were tried; when
      the chain is exhausted it ends with "unavailable"
    - segments is None when the winning provider only produced text
    - cache_status is set by the caching layer (hit/miss/stale/bypass)
    """

    text: Optional[str]
    source: Optional[str]
    attempted_providers: Tuple[str, ...] = ()
    segments: Optional[Tuple[TranscriptSegment, ...]] = None
    cache_status: Optional[str] = None


def empty_result() -> TranscriptResult:
    """The result of a call that attempted nothing."""
    return TranscriptResult(text=None, source=None, attempted_providers=())


def segments_to_text(segments) -> str:
    """Join segment texts with newlines."""
    return "\n".join(segment.text for segment in segments).strip()
