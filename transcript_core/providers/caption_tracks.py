"""Native caption-track provider: the timedtext files linked from the watch page.

WHY: Most YouTube videos publish caption tracks (manual or auto-generated)
whose URLs sit in the inline player response. Fetching one is a single
free GET, so this is the cheapest provider in the chain.

HOW: Read "captionTracks" from the caller-supplied HTML, pick the track
that best matches the preferred language, fetch it as json3 and normalize
its events. If json3 is unusable, fetch the same track as VTT and run it
through the VTT parser.

RULES:
- Requires caller-supplied HTML (no page fetch here)
- Track preference: exact language manual > language-prefix manual >
  exact language auto-generated > first manual > first track
- json3 events without "segs" (window/style events) are skipped
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from transcript_core.config import PROVIDER_TIMEOUTS_S, YOUTUBE_BASE_URL
from transcript_core.core.ir import TranscriptRequest, segments_to_text
from transcript_core.core.parse import (
    json_transcript_to_segments,
    vtt_to_plain_text,
    vtt_to_segments,
)
from transcript_core.core.youtube import (
    extract_caption_tracks,
    sanitize_youtube_json_response,
)
from transcript_core.errors import ParseError, ProviderError, ProviderUnavailable
from transcript_core.providers.base import BaseProvider, ProviderOutcome, TranscriptOptions

logger = logging.getLogger(__name__)


def select_caption_track(
    tracks: List[Dict[str, Any]],
    language: str,
) -> Optional[Dict[str, Any]]:
    """Pick the caption track to fetch for the preferred language."""
    if not tracks:
        return None
    language = language.lower()

    def _lang(track: Dict[str, Any]) -> str:
        code = track.get("languageCode")
        return code.lower() if isinstance(code, str) else ""

    def _is_auto(track: Dict[str, Any]) -> bool:
        return track.get("kind") == "asr"

    manual = [t for t in tracks if not _is_auto(t)]
    for candidates in (
        [t for t in manual if _lang(t) == language],
        [t for t in manual if _lang(t).startswith(language + "-")],
        [t for t in tracks if _is_auto(t) and _lang(t) == language],
        manual,
    ):
        if candidates:
            return candidates[0]
    return tracks[0]


def json3_to_cues(payload: Any) -> List[Dict[str, Any]]:
    """Flatten json3 caption events into {startMs, endMs, text} cue dicts."""
    if not isinstance(payload, dict) or not isinstance(payload.get("events"), list):
        return []

    cues: List[Dict[str, Any]] = []
    for event in payload["events"]:
        if not isinstance(event, dict) or not isinstance(event.get("segs"), list):
            continue
        text = "".join(
            seg["utf8"] for seg in event["segs"]
            if isinstance(seg, dict) and isinstance(seg.get("utf8"), str)
        )
        start = event.get("tStartMs")
        duration = event.get("dDurationMs")
        cue: Dict[str, Any] = {"startMs": start, "text": text}
        if isinstance(start, (int, float)) and isinstance(duration, (int, float)):
            cue["endMs"] = start + duration
        cues.append(cue)
    return cues


class CaptionTracksProvider(BaseProvider):
    """Fetches a caption track listed in the watch page's player response."""

    default_timeout_s = PROVIDER_TIMEOUTS_S["captionTracks"]

    @property
    def provider_id(self) -> str:
        return "captionTracks"

    def check_eligible(self, request: TranscriptRequest, options: TranscriptOptions) -> None:
        if not request.html:
            raise ProviderUnavailable(self.provider_id, "no page HTML supplied")

    async def attempt(
        self,
        request: TranscriptRequest,
        options: TranscriptOptions,
    ) -> ProviderOutcome:
        tracks = extract_caption_tracks(request.html or "")
        track = select_caption_track(tracks or [], options.language)
        if track is None:
            raise ParseError(self.provider_id, "page has no caption tracks")

        base_url = track["baseUrl"]
        if base_url.startswith("/"):
            base_url = YOUTUBE_BASE_URL.rstrip("/") + base_url
        logger.debug(
            "Caption track selected: lang=%s kind=%s",
            track.get("languageCode"), track.get("kind", "manual"),
        )

        try:
            return await self._fetch_json3(base_url, options)
        except ProviderError as exc:
            logger.debug("json3 caption fetch failed (%s); trying VTT", exc.message)

        return await self._fetch_vtt(base_url, options)

    async def _fetch_json3(self, base_url: str, options: TranscriptOptions) -> ProviderOutcome:
        resp = await self._request(options, "GET", base_url, params={"fmt": "json3"})
        payload = self._json(resp, sanitize_youtube_json_response(resp.text))
        segments = json_transcript_to_segments(json3_to_cues(payload))
        if not segments:
            raise ParseError(self.provider_id, "json3 track has no cues")
        return ProviderOutcome(text=segments_to_text(segments), segments=segments)

    async def _fetch_vtt(self, base_url: str, options: TranscriptOptions) -> ProviderOutcome:
        resp = await self._request(options, "GET", base_url, params={"fmt": "vtt"})
        segments = vtt_to_segments(resp.text)
        if segments:
            return ProviderOutcome(text=segments_to_text(segments), segments=segments)

        text = vtt_to_plain_text(resp.text)
        if not text:
            raise ParseError(self.provider_id, "VTT track has no text")
        return ProviderOutcome(text=text)
