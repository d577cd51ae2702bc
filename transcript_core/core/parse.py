"""Format normalizers: VTT text and JSON transcript payloads → segments.

WHY: Every provider hands back a different transcript format. The cache
and the summarizer only understand the canonical TranscriptSegment, so
every raw payload passes through one of these functions before it is
trusted.

HOW: vtt_to_segments walks the file line by line, turning each "-->" line
plus its following text lines into one segment. JSON payloads are checked
shape by shape — a top-level list of cue objects, an object with a
"segments" list, or an object with a direct "transcript"/"text" string —
and every field is type-checked before use.

RULES:
- vtt_to_segments / json_transcript_to_segments return None, never [],
  when no valid cue is found (callers fall back to plain-text extraction)
- Cue text is whitespace-collapsed; empty cues are dropped
- A cue whose start cannot be resolved is dropped
- JSON cues prefer startMs/endMs over start/end seconds when both exist
- Output is sorted by start_ms; an end_ms before start_ms becomes None
"""

from __future__ import annotations

import html
import re
from typing import Any, Dict, List, Optional, Sequence

from transcript_core.core.ir import TranscriptSegment, segments_to_text
from transcript_core.core.timestamps import (
    parse_timestamp_string_to_ms,
    parse_timestamp_to_ms,
)

_BLOCK_HEADER_RE = re.compile(r"^(NOTE|STYLE|REGION)\b", re.IGNORECASE)
_CUE_INDEX_RE = re.compile(r"^\d+$")
# Inline cue markup: <c.colorE5E5E5>, </c>, <00:00:01.520>, <v Speaker>
_INLINE_TAG_RE = re.compile(r"<[^>]*>")
_WHITESPACE_RE = re.compile(r"\s+")


def _collapse(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def _finalize(segments: List[TranscriptSegment]) -> Optional[List[TranscriptSegment]]:
    """Sort segments by start and enforce end >= start; None when empty."""
    if not segments:
        return None
    ordered = sorted(segments, key=lambda s: s.start_ms)
    return [
        s if s.end_ms is None or s.end_ms >= s.start_ms
        else TranscriptSegment(start_ms=s.start_ms, end_ms=None, text=s.text)
        for s in ordered
    ]


# ---------------------------------------------------------------------------
# VTT
# ---------------------------------------------------------------------------


def vtt_to_segments(raw: str) -> Optional[List[TranscriptSegment]]:
    """Parse WebVTT text into segments.

    WHY: Caption tracks and yt-dlp both emit VTT. Keeping the cue timing
    lets the CLI print "[M:SS]" labels and the cache store timed text.

    HOW: Normalize line endings, skip the header and NOTE/STYLE/REGION
    lines, then treat every line containing "-->" as a cue timing line.
    The text before "-->" is the start, the first token after it is the
    end. Non-blank lines that follow are the cue body.

    RULES:
    - Inline tags are stripped and HTML entities decoded
    - Returns None when zero cues survive
    """
    lines = raw.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    segments: List[TranscriptSegment] = []

    idx = 0
    while idx < len(lines):
        line = lines[idx].strip()
        if not line or line.upper().startswith("WEBVTT") or _BLOCK_HEADER_RE.match(line):
            idx += 1
            continue
        if "-->" not in line:
            idx += 1
            continue

        start_raw, _, rest = line.partition("-->")
        end_tokens = rest.strip().split()
        start_ms = parse_timestamp_string_to_ms(start_raw.strip())
        end_ms = parse_timestamp_string_to_ms(end_tokens[0]) if end_tokens else None
        idx += 1

        text_lines: List[str] = []
        while idx < len(lines) and lines[idx].strip():
            cue_line = lines[idx].strip()
            if not _BLOCK_HEADER_RE.match(cue_line):
                text_lines.append(cue_line)
            idx += 1

        if start_ms is None:
            continue
        text = _collapse(html.unescape(_INLINE_TAG_RE.sub("", " ".join(text_lines))))
        if not text:
            continue
        segments.append(TranscriptSegment(start_ms=start_ms, end_ms=end_ms, text=text))

    return _finalize(segments)


def vtt_to_plain_text(raw: str) -> str:
    """Extract readable text from VTT, even when cue timing is unusable."""
    segments = vtt_to_segments(raw)
    if segments:
        return segments_to_text(segments)

    kept: List[str] = []
    for line in raw.replace("\r\n", "\n").replace("\r", "\n").split("\n"):
        line = line.strip()
        if not line:
            continue
        if line.upper().startswith("WEBVTT"):
            continue
        if "-->" in line or _CUE_INDEX_RE.match(line):
            continue
        if _BLOCK_HEADER_RE.match(line):
            continue
        kept.append(line)
    return "\n".join(kept).strip()


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------


def _cue_text(record: Dict[str, Any]) -> Optional[str]:
    for field_name in ("text", "utf8"):
        value = record.get(field_name)
        if isinstance(value, str) and value.strip():
            return value
    return None


def _segments_from_cue_list(items: Sequence[Any]) -> List[TranscriptSegment]:
    segments: List[TranscriptSegment] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        text = _cue_text(item)
        if text is None:
            continue

        # Millisecond fields win over second fields when both are present
        start = parse_timestamp_to_ms(item.get("startMs"), False)
        if start is None:
            start = parse_timestamp_to_ms(item.get("start"), True)
        end = parse_timestamp_to_ms(item.get("endMs"), False)
        if end is None:
            end = parse_timestamp_to_ms(item.get("end"), True)
        if start is None:
            continue

        collapsed = _collapse(text)
        if not collapsed:
            continue
        segments.append(TranscriptSegment(start_ms=start, end_ms=end, text=collapsed))
    return segments


def json_transcript_to_segments(payload: Any) -> Optional[List[TranscriptSegment]]:
    """Normalize a JSON transcript payload into segments.

    RULES:
    - Accepted shapes: list of cue objects, or {"segments": [cue, ...]}
    - Cue text: "text", falling back to "utf8"
    - Cue start/end: "startMs"/"endMs", falling back to "start"/"end" seconds
    - Returns None when no valid cue results
    """
    if isinstance(payload, list):
        return _finalize(_segments_from_cue_list(payload))
    if isinstance(payload, dict) and isinstance(payload.get("segments"), list):
        return _finalize(_segments_from_cue_list(payload["segments"]))
    return None


def _row_texts(rows: Sequence[Any]) -> Optional[str]:
    parts = [
        row["text"].strip()
        for row in rows
        if isinstance(row, dict) and isinstance(row.get("text"), str) and row["text"].strip()
    ]
    text = "\n".join(parts).strip()
    return text or None


def json_transcript_to_plain_text(payload: Any) -> Optional[str]:
    """Extract plain transcript text from a JSON payload.

    HOW: Direct "transcript" / "text" strings on an object win. Otherwise
    the payload's cues are normalized into segments; when none carry a
    usable start, the bare "text" fields of the rows are joined instead.
    """
    if isinstance(payload, list):
        segments = json_transcript_to_segments(payload)
        if segments:
            return segments_to_text(segments) or None
        return _row_texts(payload)

    if isinstance(payload, dict):
        for field_name in ("transcript", "text"):
            value = payload.get(field_name)
            if isinstance(value, str) and value.strip():
                return value.strip()
        rows = payload.get("segments")
        if isinstance(rows, list):
            segments = json_transcript_to_segments(payload)
            if segments:
                return segments_to_text(segments) or None
            return _row_texts(rows)

    return None
