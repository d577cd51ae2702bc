"""Cached transcript acquisition: the orchestrator behind the cache store.

WHY: The orchestrator never touches persistence, so every caller would
otherwise repeat the same read-through/write-back dance. Doing it once here
also keeps the two TTL policies (long for transcripts, short for "nothing
found") and the stale fallback consistent between the CLI and library use.

HOW: Read the transcript cache with allow_expired=True. A fresh record
answers the call; an expired one is remembered as a fallback. On a miss the
orchestrator runs and its result is written back: transcripts with ttl_ms,
"unavailable" with negative_ttl_ms. If the chain comes back unavailable
and the fallback holds content, the stale transcript is returned instead.

RULES:
- cache_mode="bypass" never reads or writes the cache
- Results where nothing was attempted (source=None) are never written
- A stale fallback is not overwritten by a negative record
- cache_status is hit, miss, stale, bypass, or None when no cache is given
- CacheIOError propagates; corrupt records behave like misses
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple

from transcript_core.cache.store import CacheStore
from transcript_core.cache.transcript_cache import TranscriptCacheRecord
from transcript_core.config import DEFAULT_NEGATIVE_TTL_MS, DEFAULT_TRANSCRIPT_TTL_MS
from transcript_core.core.ir import (
    UNAVAILABLE,
    TranscriptRequest,
    TranscriptResult,
    TranscriptSegment,
)
from transcript_core.core.youtube import extract_youtube_video_id
from transcript_core.providers.base import TranscriptOptions
from transcript_core.providers.orchestrator import acquire_transcript

logger = logging.getLogger(__name__)

CACHE_MODES = ("default", "bypass")
TRANSCRIPT_SERVICE = "youtube"


def segments_to_metadata(segments: Optional[Tuple[TranscriptSegment, ...]]) -> Optional[Dict[str, Any]]:
    if not segments:
        return None
    return {"segments": [segment.to_dict() for segment in segments]}


def segments_from_metadata(
    metadata: Optional[Dict[str, Any]],
) -> Optional[Tuple[TranscriptSegment, ...]]:
    """Rebuild segments stored by segments_to_metadata; bad rows are skipped."""
    if not isinstance(metadata, dict) or not isinstance(metadata.get("segments"), list):
        return None

    segments: List[TranscriptSegment] = []
    for row in metadata["segments"]:
        if not isinstance(row, dict):
            continue
        start_ms = row.get("startMs")
        end_ms = row.get("endMs")
        text = row.get("text")
        if isinstance(start_ms, bool) or not isinstance(start_ms, int):
            continue
        if not isinstance(text, str) or not text.strip():
            continue
        if isinstance(end_ms, bool) or not isinstance(end_ms, int) or end_ms < start_ms:
            end_ms = None
        segments.append(TranscriptSegment(start_ms=start_ms, end_ms=end_ms, text=text.strip()))

    return tuple(segments) if segments else None


def _result_from_record(record: TranscriptCacheRecord, cache_status: str) -> TranscriptResult:
    return TranscriptResult(
        text=record.content,
        source=record.source,
        attempted_providers=(),
        segments=segments_from_metadata(record.metadata),
        cache_status=cache_status,
    )


async def fetch_transcript(
    request: TranscriptRequest,
    options: Optional[TranscriptOptions] = None,
    cache: Optional[CacheStore] = None,
    cache_mode: str = "default",
    ttl_ms: Optional[int] = DEFAULT_TRANSCRIPT_TTL_MS,
    negative_ttl_ms: Optional[int] = DEFAULT_NEGATIVE_TTL_MS,
) -> TranscriptResult:
    """Acquire a transcript, reading through and writing back to cache.

    Args:
        request: What to fetch and which providers are allowed.
        options: Injected capabilities and budgets for the orchestrator.
        cache: Open cache store, or None to skip caching entirely.
        cache_mode: "default" or "bypass".
        ttl_ms: Lifetime of a stored transcript (None = no expiry).
        negative_ttl_ms: Lifetime of a stored "unavailable" outcome.

    Returns:
        TranscriptResult with cache_status set.

    Raises:
        ValueError: If cache_mode is not one of CACHE_MODES.
        CacheIOError: If the cache cannot be read or written.
    """
    if cache_mode not in CACHE_MODES:
        raise ValueError(
            "cache_mode must be one of {}, got {!r}".format(", ".join(CACHE_MODES), cache_mode)
        )

    if cache is None:
        return await acquire_transcript(request, options)
    if cache_mode == "bypass":
        result = await acquire_transcript(request, options)
        return replace(result, cache_status="bypass")

    transcripts = cache.transcript_cache
    stale: Optional[TranscriptCacheRecord] = None
    record = transcripts.get(url=request.url, allow_expired=True)
    if record is not None and not record.expired:
        if record.content:
            logger.info("Transcript cache hit for %s (source=%s)", request.url, record.source)
            return _result_from_record(record, "hit")
        if record.source == UNAVAILABLE:
            logger.info("Negative transcript cache hit for %s", request.url)
            return TranscriptResult(text=None, source=UNAVAILABLE, cache_status="hit")
    elif record is not None:
        stale = record

    result = await acquire_transcript(request, options)
    if result.source is None:
        return replace(result, cache_status="miss")

    if result.source == UNAVAILABLE and stale is not None and stale.content:
        logger.info("All providers failed for %s; serving stale cached transcript", request.url)
        return replace(
            _result_from_record(stale, "stale"),
            attempted_providers=result.attempted_providers,
        )

    resource_key = request.resource_key or extract_youtube_video_id(request.url)
    if result.source == UNAVAILABLE:
        transcripts.set(
            url=request.url,
            service=TRANSCRIPT_SERVICE,
            resource_key=resource_key,
            ttl_ms=negative_ttl_ms,
            content=None,
            source=UNAVAILABLE,
        )
    else:
        transcripts.set(
            url=request.url,
            service=TRANSCRIPT_SERVICE,
            resource_key=resource_key,
            ttl_ms=ttl_ms,
            content=result.text,
            source=result.source,
            metadata=segments_to_metadata(result.segments),
        )
    return replace(result, cache_status="miss")
