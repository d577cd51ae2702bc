"""Apify scraping-actor provider (run-sync-get-dataset-items).

WHY: When YouTube blocks or hides captions, a paid Apify actor can still
scrape the transcript. Each run costs money, so the provider is only
eligible when a token is configured and sits after the free native
providers in the auto chain.

HOW: POST the video URL to the actor's run-sync-get-dataset-items endpoint
and read the dataset rows it returns. Different actors use different row
shapes, so each row is tried as: "transcript", "transcriptText", "text"
(string or JSON transcript), then a "data" list of {start, dur, text} rows.

RULES:
- Actor ids in "user/name" form are normalized to "user~name"
- The legacy Topaz actor takes {"startUrls": [...], "includeTimestamps": "No"}
- All other actors take {"videoUrl": url}
- The first dataset row that yields text wins
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from transcript_core.config import (
    APIFY_BASE_URL,
    DEFAULT_APIFY_YOUTUBE_ACTOR,
    LEGACY_APIFY_TOPAZ_ACTOR,
    PROVIDER_TIMEOUTS_S,
)
from transcript_core.core.ir import TranscriptRequest, TranscriptSegment, segments_to_text
from transcript_core.core.parse import (
    json_transcript_to_plain_text,
    json_transcript_to_segments,
)
from transcript_core.core.timestamps import parse_timestamp_to_ms
from transcript_core.errors import ParseError, ProviderUnavailable
from transcript_core.providers.base import BaseProvider, ProviderOutcome, TranscriptOptions

logger = logging.getLogger(__name__)

_LEGACY_TOPAZ_SLUG = "topaz_sharingan~youtube-transcript-scraper-1"


def normalize_apify_actor_id(actor: Optional[str]) -> str:
    """Return the actor id in the "user~name" form the API path expects."""
    raw = actor.strip() if isinstance(actor, str) else ""
    if not raw:
        return DEFAULT_APIFY_YOUTUBE_ACTOR
    if "~" in raw:
        return raw
    user, slash, name = raw.partition("/")
    if slash and user and name:
        return "{}~{}".format(user, name)
    return raw


def is_legacy_topaz_actor(actor: str) -> bool:
    return actor == LEGACY_APIFY_TOPAZ_ACTOR or actor.lower() == _LEGACY_TOPAZ_SLUG


def _normalize_transcript_value(value: Any) -> Optional[ProviderOutcome]:
    """Interpret a "transcript"/"transcriptText"/"text" field value."""
    if isinstance(value, str):
        text = value.strip()
        return ProviderOutcome(text=text) if text else None
    if isinstance(value, (list, dict)):
        text = json_transcript_to_plain_text(value)
        if text:
            return ProviderOutcome(text=text, segments=json_transcript_to_segments(value))
    return None


def _normalize_data_rows(item: Any) -> Optional[ProviderOutcome]:
    """Interpret {"data": [{"start", "dur", "text"}, ...]} rows."""
    if not isinstance(item, dict) or not isinstance(item.get("data"), list):
        return None

    lines: List[str] = []
    segments: List[TranscriptSegment] = []
    for row in item["data"]:
        if not isinstance(row, dict) or not isinstance(row.get("text"), str):
            continue
        text = " ".join(row["text"].split())
        if not text:
            continue
        lines.append(text)
        start = parse_timestamp_to_ms(row.get("start"), True)
        duration = parse_timestamp_to_ms(row.get("dur"), True)
        if start is not None:
            end = start + duration if duration is not None else None
            segments.append(TranscriptSegment(start_ms=start, end_ms=end, text=text))

    if not lines:
        return None
    if segments and len(segments) == len(lines):
        ordered = sorted(segments, key=lambda s: s.start_ms)
        return ProviderOutcome(text=segments_to_text(ordered), segments=ordered)
    return ProviderOutcome(text="\n".join(lines))


def normalize_dataset_item(item: Dict[str, Any]) -> Optional[ProviderOutcome]:
    for field_name in ("transcript", "transcriptText", "text"):
        outcome = _normalize_transcript_value(item.get(field_name))
        if outcome is not None:
            return outcome
    nested = item.get("data")
    if isinstance(nested, dict):
        outcome = _normalize_data_rows(nested)
        if outcome is not None:
            return outcome
    return _normalize_data_rows(item)


class ApifyProvider(BaseProvider):
    """Runs an Apify transcript actor synchronously and reads its dataset."""

    default_timeout_s = PROVIDER_TIMEOUTS_S["apify"]

    @property
    def provider_id(self) -> str:
        return "apify"

    def check_eligible(self, request: TranscriptRequest, options: TranscriptOptions) -> None:
        if not options.apify_api_token:
            raise ProviderUnavailable(self.provider_id, "APIFY_API_TOKEN is not configured")

    async def attempt(
        self,
        request: TranscriptRequest,
        options: TranscriptOptions,
    ) -> ProviderOutcome:
        self.check_eligible(request, options)
        actor = normalize_apify_actor_id(options.apify_youtube_actor)
        if is_legacy_topaz_actor(actor):
            body: Dict[str, Any] = {"startUrls": [request.url], "includeTimestamps": "No"}
        else:
            body = {"videoUrl": request.url}

        logger.info("Running Apify actor %s", actor)
        resp = await self._request(
            options,
            "POST",
            "{}/acts/{}/run-sync-get-dataset-items".format(APIFY_BASE_URL.rstrip("/"), actor),
            params={"token": options.apify_api_token},
            json=body,
            timeout=options.budget_for(self.provider_id, self.default_timeout_s),
        )

        payload = self._json(resp)
        if not isinstance(payload, list):
            raise ParseError(self.provider_id, "dataset is not a list")

        for item in payload:
            if not isinstance(item, dict):
                continue
            outcome = normalize_dataset_item(item)
            if outcome is not None:
                return outcome

        raise ParseError(self.provider_id, "no dataset item carried a transcript")
