"""Transcript Core — transcript acquisition with provider fallback and caching.

WHY: Media links publish transcripts in many places and formats — native
caption tracks, Innertube transcript panels, paid scraping actors, and
subtitles that a local yt-dlp binary can pull. Summarizing a link needs one
clean transcript, quickly, without paying for the same acquisition twice.

HOW: Three layers — normalize (core: timestamp codec, VTT/JSON parsers),
acquire (providers + orchestrator, strictly sequential fallback), and cache
(SQLite store with TTL and byte-budget eviction, transcript specialization).
service.fetch_transcript wires them together.

RULES:
- Providers never write to the cache; caching is the caller's layer
- acquire_transcript never raises for provider failures
- The cache store is the only component that persists state
"""

__version__ = "0.1.0"
